import httpx
from fastapi import APIRouter, Depends, Path, Query
from fastapi.responses import Response

from moments_admin.api.auth import require_current_user
from moments_admin.core.http_client import get_http_client
from moments_admin.models.user import User
from moments_admin.services import photoprism
from moments_admin.services.image_fetch import THUMB_SIZE, fetch_photoprism_image

router = APIRouter(prefix="/photoprism", tags=["photoprism"])


@router.get("/albums")
async def list_photoprism_albums(
    offset: int = Query(default=0, ge=0),
    count: int = Query(default=100, ge=1, le=500),
    current_user: User = Depends(require_current_user),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    base_url, username, password = photoprism.get_photoprism_config()
    albums = await photoprism.fetch_albums(client, base_url, username, password, offset, count)
    return {"albums": [album.model_dump() for album in albums]}


@router.get("/photos")
async def list_photoprism_photos(
    album: str | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    count: int = Query(default=photoprism.PHOTOS_PAGE_SIZE, ge=1, le=500),
    current_user: User = Depends(require_current_user),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    base_url, username, password = photoprism.get_photoprism_config()
    page = await photoprism.fetch_photos(client, base_url, username, password, album, offset, count)
    return {
        "photos": [photo.model_dump(exclude_none=True) for photo in page.photos],
        "previewToken": page.preview_token,
        "hasMore": page.has_more,
        "total": page.total,
    }


@router.get("/photos/all")
async def list_all_photoprism_photos(
    album: str | None = Query(default=None),
    current_user: User = Depends(require_current_user),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    base_url, username, password = photoprism.get_photoprism_config()
    photos = await photoprism.fetch_all_photos(client, base_url, username, password, album)
    return {"photos": [photo.model_dump(exclude_none=True) for photo in photos]}


@router.get("/thumb/{content_hash}")
async def get_photoprism_thumbnail(
    content_hash: str = Path(...),
    current_user: User = Depends(require_current_user),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    image = (await fetch_photoprism_image(client, content_hash, size=THUMB_SIZE)).as_private()
    return Response(
        content=image.content,
        media_type=image.content_type,
        headers={"Cache-Control": image.cache_control},
    )
