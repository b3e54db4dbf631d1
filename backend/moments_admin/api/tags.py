from fastapi import APIRouter, Depends, HTTPException, Path
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from moments_admin.api.auth import require_current_user
from moments_admin.core.database import get_db
from moments_admin.models.user import User
from moments_admin.services import tags as tag_service

router = APIRouter(prefix="/tags", tags=["tags"])


class UpdateTagPayload(BaseModel):
    name: str
    slug: str | None = None
    kind: str | None = None


@router.get("")
async def list_tags(
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
):
    tags = await tag_service.list_tags(db)
    return {"tags": [tag_service.tag_to_dict(tag) for tag in tags]}


@router.get("/{tag_id}")
async def get_tag(
    tag_id: str = Path(...),
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
):
    tag = await tag_service.get_tag(db, tag_id)
    if tag is None:
        raise HTTPException(status_code=404, detail="Tag not found")
    return tag_service.tag_to_dict(tag)


@router.patch("/{tag_id}")
async def update_tag(
    payload: UpdateTagPayload,
    tag_id: str = Path(...),
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
):
    tag = await tag_service.update_tag(db, tag_id, payload.name, slug=payload.slug, kind=payload.kind)
    if tag is None:
        raise HTTPException(status_code=404, detail="Tag not found")
    return tag_service.tag_to_dict(tag)
