import httpx
from fastapi import APIRouter, Depends, HTTPException, Path
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from moments_admin.api.auth import require_current_user
from moments_admin.core.database import get_db
from moments_admin.core.http_client import get_http_client
from moments_admin.models.user import User
from moments_admin.services import items as item_service
from moments_admin.services import tags as tag_service
from moments_admin.services.image_fetch import THUMB_SIZE, fetch_item_image
from moments_admin.services.item_meta import FocalPoint, parse_item_meta
from moments_admin.services.ownership import require_owned

router = APIRouter(prefix="/items", tags=["items"])


class UpdateItemPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str | None = None
    description: str | None = None
    crop: dict[str, FocalPoint] | None = Field(default=None, alias="cropMeta")


class TagNamesPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    tag_names: list[str] = []


def _item_to_dict(item) -> dict:
    meta = parse_item_meta(item.meta)
    return {
        **item_service.item_snapshot(item),
        "meta": meta.model_dump(by_alias=True, exclude_none=True),
        "createdAt": item.created_at.isoformat() if item.created_at else None,
        "updatedAt": item.updated_at.isoformat() if item.updated_at else None,
    }


@router.get("/{item_id}")
async def get_item(
    item_id: str = Path(...),
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
):
    item = await require_owned(db, "item", item_id, current_user.id)
    tags = await tag_service.get_tags_for_entity(db, "item", item_id)
    return {**_item_to_dict(item), "tags": [tag_service.tag_to_dict(tag) for tag in tags]}


@router.api_route("/{item_id}", methods=["PATCH", "PUT"])
async def update_item(
    payload: UpdateItemPayload,
    item_id: str = Path(...),
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)
    if "crop" in changes:
        changes["crop"] = payload.crop
    item = await item_service.update_item(db, item_id, current_user.id, changes)
    return {"ok": True, "version": item.version}


@router.delete("/{item_id}")
async def delete_item(
    item_id: str = Path(...),
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
):
    deleted = await item_service.delete_item(db, item_id, current_user.id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Item not found")
    return {"ok": True}


@router.get("/{item_id}/image")
async def get_item_image(
    item_id: str = Path(...),
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    image_id = await item_service.get_owned_item_image_id(db, item_id, current_user.id)
    image = (await fetch_item_image(client, image_id, photoprism_size=THUMB_SIZE)).as_private()
    return Response(
        content=image.content,
        media_type=image.content_type,
        headers={"Cache-Control": image.cache_control},
    )


@router.get("/{item_id}/tags")
async def get_item_tags(
    item_id: str = Path(...),
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
):
    await require_owned(db, "item", item_id, current_user.id)
    tags = await tag_service.get_tags_for_entity(db, "item", item_id)
    return {"tags": [tag_service.tag_to_dict(tag) for tag in tags]}


@router.put("/{item_id}/tags")
async def set_item_tags(
    payload: TagNamesPayload,
    item_id: str = Path(...),
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
):
    tags = await tag_service.set_tags_for_entity(db, "item", item_id, current_user.id, payload.tag_names)
    return {"tags": [tag_service.tag_to_dict(tag) for tag in tags]}


@router.post("/{item_id}/tags")
async def add_item_tags(
    payload: TagNamesPayload,
    item_id: str = Path(...),
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
):
    tags = await tag_service.add_tags_to_entity(db, "item", item_id, current_user.id, payload.tag_names)
    return {"tags": [tag_service.tag_to_dict(tag) for tag in tags]}


@router.delete("/{item_id}/tags/{tag_id}")
async def remove_item_tag(
    item_id: str = Path(...),
    tag_id: str = Path(...),
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
):
    removed = await tag_service.remove_tag_from_entity(db, "item", item_id, current_user.id, tag_id)
    if not removed:
        raise HTTPException(status_code=404, detail="Tag not attached")
    return {"ok": True}
