import httpx
from fastapi import APIRouter, Depends, Path, Query
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from moments_admin.core.database import get_db
from moments_admin.core.http_client import get_http_client
from moments_admin.services.gallery import get_gallery
from moments_admin.services.image_fetch import fetch_item_image
from moments_admin.services.items import get_public_item_image_id

router = APIRouter(prefix="/public", tags=["public"])
GALLERY_CACHE_CONTROL = "public, max-age=60, s-maxage=60"


@router.get("/gallery")
async def public_gallery(
    tag: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    gallery = await get_gallery(db, tag=tag.strip() if tag else None)
    return JSONResponse(gallery, headers={"Cache-Control": GALLERY_CACHE_CONTROL})


@router.get("/items/{item_id}/image")
async def public_item_image(
    item_id: str = Path(...),
    db: AsyncSession = Depends(get_db),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    image_id = await get_public_item_image_id(db, item_id)
    image = await fetch_item_image(client, image_id)
    return Response(
        content=image.content,
        media_type=image.content_type,
        headers={"Cache-Control": image.cache_control},
    )
