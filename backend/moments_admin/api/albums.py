from pathlib import PurePosixPath

import httpx
from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, Path, UploadFile
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from moments_admin.api.auth import require_current_user
from moments_admin.core.database import get_db
from moments_admin.core.http_client import get_http_client
from moments_admin.core.ids import new_id
from moments_admin.jobs.queue import enqueue_cf_images_upload
from moments_admin.models.album import Album
from moments_admin.models.user import User
from moments_admin.services import albums as album_service
from moments_admin.services import items as item_service
from moments_admin.services import tags as tag_service
from moments_admin.services.exif import extract_exif
from moments_admin.services.image_refs import to_photoprism_ref
from moments_admin.services.item_meta import ItemMeta
from moments_admin.services.ownership import require_owned
from moments_admin.services.webdav import get_webdav_config, upload_to_webdav

router = APIRouter(prefix="/albums", tags=["albums"])

JPEG_EXTENSIONS = {".jpg", ".jpeg"}
MAX_UPLOAD_BYTES = 50 * 1024 * 1024


class CamelPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateAlbumPayload(CamelPayload):
    name: str
    slug: str | None = None
    kind: str = "portfolio"
    description: str | None = None
    model: str | None = None
    is_public: bool = False
    lat: float | None = None
    lng: float | None = None
    order_id: str | None = None


class UpdateAlbumPayload(CamelPayload):
    name: str | None = None
    slug: str | None = None
    kind: str | None = None
    description: str | None = None
    model: str | None = None
    is_public: bool | None = None
    lat: float | None = None
    lng: float | None = None
    order_id: str | None = None
    cover_item_id: str | None = None


class CoverPayload(CamelPayload):
    cover_item_id: str | None = None


class AddItemPayload(CamelPayload):
    image_id: str | None = None
    photoprism_hash: str | None = None


class RemoveItemsPayload(CamelPayload):
    item_ids: list[str]


class TagNamesPayload(CamelPayload):
    tag_names: list[str] = []


class BulkItemTagsPayload(CamelPayload):
    item_ids: list[str] = []
    tag_names: list[str] = []


def album_to_dict(album: Album) -> dict:
    return {
        **album_service.album_snapshot(album),
        "createdAt": album.created_at.isoformat() if album.created_at else None,
        "updatedAt": album.updated_at.isoformat() if album.updated_at else None,
    }


def _is_jpeg(filename: str) -> bool:
    return PurePosixPath(filename.lower()).suffix in JPEG_EXTENSIONS


@router.get("")
async def list_albums(
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
):
    albums = await album_service.list_albums(db, current_user.id)
    return {"albums": [album_to_dict(album) for album in albums]}


@router.post("", status_code=201)
async def create_album(
    payload: CreateAlbumPayload,
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
):
    album = await album_service.create_album(
        db,
        current_user.id,
        payload.name,
        slug=payload.slug,
        kind=payload.kind,
        description=payload.description,
        model=payload.model,
        is_public=payload.is_public,
        lat=payload.lat,
        lng=payload.lng,
        order_id=payload.order_id,
    )
    return album_to_dict(album)


@router.get("/{album_id}")
async def get_album(
    album_id: str = Path(...),
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
):
    album = await require_owned(db, "album", album_id, current_user.id)
    entries = await item_service.list_album_items(db, album_id, current_user.id)
    item_tags = await tag_service.get_tags_for_entities(db, "item", [entry.item.id for entry in entries])
    album_tags = await tag_service.get_tags_for_entity(db, "album", album_id)

    return {
        **album_to_dict(album),
        "tags": [tag_service.tag_to_dict(tag) for tag in album_tags],
        "items": [
            {
                **item_service.item_snapshot(entry.item),
                "sortOrder": entry.sort_order,
                "imageUrl": f"/api/items/{entry.item.id}/image",
                "tags": [tag_service.tag_to_dict(tag) for tag in item_tags.get(entry.item.id, [])],
            }
            for entry in entries
        ],
    }


@router.patch("/{album_id}")
async def update_album(
    payload: UpdateAlbumPayload,
    album_id: str = Path(...),
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
):
    album = await album_service.update_album(db, album_id, current_user.id, payload.model_dump(exclude_unset=True))
    if album is None:
        raise HTTPException(status_code=404, detail="Album not found")
    return album_to_dict(album)


@router.delete("/{album_id}")
async def delete_album(
    album_id: str = Path(...),
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
):
    deleted = await album_service.delete_album(db, album_id, current_user.id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Album not found")
    return {"ok": True}


@router.api_route("/{album_id}/cover", methods=["PUT", "PATCH"])
async def set_album_cover(
    payload: CoverPayload,
    album_id: str = Path(...),
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
):
    album = await album_service.set_album_cover(db, album_id, current_user.id, payload.cover_item_id)
    return {"coverItemId": album.cover_item_id}


@router.post("/{album_id}/items", status_code=201)
async def add_album_item(
    payload: AddItemPayload,
    background_tasks: BackgroundTasks,
    album_id: str = Path(...),
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
):
    image_id = (payload.image_id or "").strip()
    if not image_id and (payload.photoprism_hash or "").strip():
        image_id = to_photoprism_ref(payload.photoprism_hash.strip())
    if not image_id:
        raise HTTPException(status_code=400, detail="imageId or photoprismHash is required")

    item = await item_service.add_item_to_album(db, album_id, current_user.id, image_id)
    background_tasks.add_task(enqueue_cf_images_upload, item.id, image_id)
    return {"id": item.id}


@router.post("/{album_id}/items/remove")
async def remove_album_items(
    payload: RemoveItemsPayload,
    album_id: str = Path(...),
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
):
    removed = await album_service.remove_items_from_album(db, album_id, payload.item_ids, current_user.id)
    return {"removed": removed}


@router.post("/{album_id}/upload", status_code=201)
async def upload_album_photo(
    background_tasks: BackgroundTasks,
    album_id: str = Path(...),
    file: UploadFile = File(...),
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    await require_owned(db, "album", album_id, current_user.id)
    base_url, username, password = get_webdav_config()

    if not file.filename or not _is_jpeg(file.filename):
        raise HTTPException(status_code=400, detail="Only JPEG images (.jpg, .jpeg) are allowed")
    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="No file provided")
    if len(content) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File too large")

    storage_path = f"{album_id}/{new_id()}.jpg"
    await upload_to_webdav(
        client,
        base_url,
        username,
        password,
        storage_path,
        content,
        file.content_type or "image/jpeg",
    )

    exif = extract_exif(content)
    meta = ItemMeta(exif=exif) if exif is not None else None
    item = await item_service.add_item_to_album(db, album_id, current_user.id, storage_path, meta=meta)
    background_tasks.add_task(enqueue_cf_images_upload, item.id, storage_path)
    return {"id": item.id, "imageId": storage_path}


@router.get("/{album_id}/tags")
async def get_album_tags(
    album_id: str = Path(...),
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
):
    await require_owned(db, "album", album_id, current_user.id)
    tags = await tag_service.get_tags_for_entity(db, "album", album_id)
    return {"tags": [tag_service.tag_to_dict(tag) for tag in tags]}


@router.put("/{album_id}/tags")
async def set_album_tags(
    payload: TagNamesPayload,
    album_id: str = Path(...),
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
):
    tags = await tag_service.set_tags_for_entity(db, "album", album_id, current_user.id, payload.tag_names)
    return {"tags": [tag_service.tag_to_dict(tag) for tag in tags]}


@router.put("/{album_id}/items/tags")
async def add_album_item_tags(
    payload: BulkItemTagsPayload,
    album_id: str = Path(...),
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
):
    updated = await tag_service.add_tags_to_album_items(
        db, album_id, current_user.id, payload.item_ids, payload.tag_names
    )
    return {"updated": updated}
