from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel

from moments_admin.core.config import Settings, settings
from moments_admin.core.errors import NotConfiguredError, UpstreamError
from moments_admin.services.item_meta import ExifMeta

DEFAULT_PREVIEW_TOKEN = "public"
PHOTOS_PAGE_SIZE = 120
logger = logging.getLogger(__name__)


class PhotoPrismError(UpstreamError):
    pass


class PhotoPrismAlbum(BaseModel):
    uid: str
    title: str = ""
    description: str = ""
    photo_count: int = 0
    created_at: str = ""
    updated_at: str = ""


class PhotoPrismPhoto(BaseModel):
    uid: str
    hash: str
    title: str = ""
    taken_at: str = ""
    width: int = 0
    height: int = 0
    exif: ExifMeta | None = None


class PhotoPage(BaseModel):
    photos: list[PhotoPrismPhoto]
    preview_token: str = DEFAULT_PREVIEW_TOKEN
    has_more: bool = False
    total: int = 0


def get_photoprism_config(config: Settings = settings) -> tuple[str, str, str]:
    username = config.PHOTOPRISM_USERNAME or config.WEBDAV_USERNAME
    password = config.PHOTOPRISM_PASSWORD or config.WEBDAV_PASSWORD
    if not config.PHOTOPRISM_BASE_URL or not username or not password:
        raise NotConfiguredError("PhotoPrism not configured")
    return config.PHOTOPRISM_BASE_URL, username, password


def _base(base_url: str) -> str:
    return base_url.rstrip("/")


def thumbnail_url(base_url: str, content_hash: str, preview_token: str, size: str = "fit_720") -> str:
    return f"{_base(base_url)}/api/v1/t/{content_hash}/{preview_token}/{size}"


async def create_session(client: httpx.AsyncClient, base_url: str, username: str, password: str) -> str:
    response = await client.post(
        f"{_base(base_url)}/api/v1/session",
        json={"username": username, "password": password},
    )
    if not response.is_success:
        raise PhotoPrismError(
            f"PhotoPrism login failed: {response.status_code} {response.text}",
            upstream_status=response.status_code,
            body=response.text,
        )
    try:
        body = response.json()
    except ValueError as exc:
        raise PhotoPrismError("PhotoPrism session response is not JSON") from exc
    session_id = body.get("id") if isinstance(body, dict) else None
    if not session_id:
        raise PhotoPrismError("PhotoPrism session missing id")
    return session_id


async def _api_get(
    client: httpx.AsyncClient,
    base_url: str,
    session_id: str,
    path: str,
    params: dict[str, Any],
) -> tuple[Any, str, int]:
    response = await client.get(
        f"{_base(base_url)}{path}",
        params=params,
        headers={"Accept": "application/json", "X-Session-ID": session_id},
    )
    if not response.is_success:
        raise PhotoPrismError(
            f"PhotoPrism API error: {response.status_code} {response.text}",
            upstream_status=response.status_code,
            body=response.text,
        )
    preview_token = response.headers.get("X-Preview-Token") or DEFAULT_PREVIEW_TOKEN
    try:
        x_count = int(response.headers.get("X-Count") or 0)
    except ValueError:
        x_count = 0
    try:
        data = response.json()
    except ValueError as exc:
        raise PhotoPrismError(f"PhotoPrism API returned invalid JSON for {path}") from exc
    return data, preview_token, x_count


def _pick(raw: dict, *keys: str, default=None):
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return default


def _to_album(raw: dict) -> PhotoPrismAlbum:
    return PhotoPrismAlbum(
        uid=str(_pick(raw, "UID", "uid", default="")),
        title=_pick(raw, "Title", "title", default="") or "",
        description=_pick(raw, "Description", "description", default="") or "",
        photo_count=int(_pick(raw, "PhotoCount", "photo_count", default=0) or 0),
        created_at=_pick(raw, "CreatedAt", "created_at", default="") or "",
        updated_at=_pick(raw, "UpdatedAt", "updated_at", default="") or "",
    )


def primary_file_hash(raw: dict) -> str:
    files = raw.get("Files") or []
    primary = next((f for f in files if f.get("Primary")), files[0] if files else None)
    if primary and primary.get("Hash"):
        return str(primary["Hash"])
    return str(raw.get("Hash") or "")


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def extract_photo_exif(raw: dict) -> ExifMeta | None:
    exif = ExifMeta(
        camera_make=str(raw["CameraMake"]) if raw.get("CameraMake") else None,
        camera_model=str(raw["CameraModel"]) if raw.get("CameraModel") else None,
        lens_model=str(raw["LensModel"]) if raw.get("LensModel") else None,
        iso=int(raw["Iso"]) if _is_number(raw.get("Iso")) else None,
        focal_length=raw["FocalLength"] if _is_number(raw.get("FocalLength")) else None,
        f_number=raw["FNumber"] if _is_number(raw.get("FNumber")) else None,
        exposure=str(raw["Exposure"]) if raw.get("Exposure") else None,
        taken_at=str(raw["TakenAt"]) if raw.get("TakenAt") else None,
        width=int(raw["Width"]) if _is_number(raw.get("Width")) else None,
        height=int(raw["Height"]) if _is_number(raw.get("Height")) else None,
        lat=raw["Lat"] if _is_number(raw.get("Lat")) else None,
        lng=raw["Lng"] if _is_number(raw.get("Lng")) else None,
    )
    return None if exif.is_empty() else exif


def _to_photo(raw: dict) -> PhotoPrismPhoto:
    return PhotoPrismPhoto(
        uid=str(raw.get("UID") or ""),
        hash=primary_file_hash(raw),
        title=raw.get("Title") or raw.get("Name") or "",
        taken_at=raw.get("TakenAt") or "",
        width=int(raw["Width"]) if _is_number(raw.get("Width")) else 0,
        height=int(raw["Height"]) if _is_number(raw.get("Height")) else 0,
        exif=extract_photo_exif(raw),
    )


async def fetch_albums(
    client: httpx.AsyncClient,
    base_url: str,
    username: str,
    password: str,
    offset: int = 0,
    count: int = 100,
) -> list[PhotoPrismAlbum]:
    session_id = await create_session(client, base_url, username, password)
    data, _, _ = await _api_get(
        client,
        base_url,
        session_id,
        "/api/v1/albums",
        {"count": count, "offset": offset, "type": "album", "order": "favorites"},
    )
    raw_albums = data if isinstance(data, list) else (data or {}).get("albums") or []
    return [_to_album(raw) for raw in raw_albums if isinstance(raw, dict)]


async def fetch_photos(
    client: httpx.AsyncClient,
    base_url: str,
    username: str,
    password: str,
    album_uid: str | None = None,
    offset: int = 0,
    count: int = PHOTOS_PAGE_SIZE,
) -> PhotoPage:
    session_id = await create_session(client, base_url, username, password)
    params: dict[str, Any] = {"count": count, "offset": offset, "merged": "true", "order": "oldest"}
    if album_uid:
        params["s"] = album_uid
    data, preview_token, x_count = await _api_get(client, base_url, session_id, "/api/v1/photos", params)
    raw_photos = data if isinstance(data, list) else []
    return PhotoPage(
        photos=[_to_photo(raw) for raw in raw_photos if isinstance(raw, dict)],
        preview_token=preview_token,
        has_more=len(raw_photos) >= count,
        total=x_count,
    )


async def fetch_all_photos(
    client: httpx.AsyncClient,
    base_url: str,
    username: str,
    password: str,
    album_uid: str | None = None,
) -> list[PhotoPrismPhoto]:
    photos: list[PhotoPrismPhoto] = []
    offset = 0
    while True:
        page = await fetch_photos(client, base_url, username, password, album_uid, offset, PHOTOS_PAGE_SIZE)
        photos.extend(page.photos)
        if not page.has_more or len(page.photos) < PHOTOS_PAGE_SIZE:
            break
        offset += PHOTOS_PAGE_SIZE
    return photos


async def get_preview_token(client: httpx.AsyncClient, base_url: str, username: str, password: str) -> str:
    page = await fetch_photos(client, base_url, username, password, count=1)
    return page.preview_token


async def fetch_thumbnail(
    client: httpx.AsyncClient,
    base_url: str,
    username: str,
    password: str,
    content_hash: str,
    size: str,
) -> httpx.Response:
    """Fetch a thumbnail, first anonymously and then with a fresh session.

    The preview token usually grants access on its own; some instances
    require ``X-Session-ID`` as well, so a failed anonymous attempt logs in
    once and retries.
    """
    preview_token = await get_preview_token(client, base_url, username, password)
    url = thumbnail_url(base_url, content_hash, preview_token, size)

    response = await client.get(url, headers={"Accept": "image/*"})
    if response.is_success:
        return response

    logger.info("photoprism event=thumb_retry_with_session hash=%s status=%s", content_hash, response.status_code)
    session_id = await create_session(client, base_url, username, password)
    response = await client.get(url, headers={"Accept": "image/*", "X-Session-ID": session_id})
    if not response.is_success:
        raise PhotoPrismError(
            f"PhotoPrism thumbnail fetch failed: {response.status_code}",
            upstream_status=response.status_code,
            body=response.text,
        )
    return response
