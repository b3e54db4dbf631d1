from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from moments_admin.core.errors import NotFoundError, ValidationFailure
from moments_admin.core.ids import new_id
from moments_admin.models.album import ALBUM_KINDS, Album, AlbumItem
from moments_admin.models.item import Item
from moments_admin.models.tag import TagRef
from moments_admin.services.outbox import EVENT_DELETE, EVENT_UPSERT, outbox_event
from moments_admin.services.ownership import get_owned, require_owned
from moments_admin.services.slugs import slugify

DEFAULT_SLUG = "untitled"
# The probe loop is not atomic; the unique constraint catches the rare race
# and the write is retried with a fresh probe.
SLUG_WRITE_ATTEMPTS = 3
UPDATABLE_FIELDS = {
    "name",
    "slug",
    "kind",
    "description",
    "model",
    "is_public",
    "cover_item_id",
    "lat",
    "lng",
    "order_id",
}
logger = logging.getLogger(__name__)


def is_valid_kind(kind: str) -> bool:
    return kind in ALBUM_KINDS


def album_snapshot(album: Album) -> dict[str, Any]:
    return {
        "id": album.id,
        "slug": album.slug,
        "name": album.name,
        "kind": album.kind,
        "isPublic": bool(album.is_public),
        "description": album.description,
        "model": album.model,
        "lat": album.lat,
        "lng": album.lng,
        "orderId": album.order_id,
        "coverItemId": album.cover_item_id,
        "publicVersion": album.public_version,
    }


async def list_albums(db: AsyncSession, owner_user_id: str) -> list[Album]:
    result = await db.execute(
        select(Album).where(Album.owner_user_id == owner_user_id).order_by(Album.created_at.desc(), Album.id.desc())
    )
    return list(result.scalars().all())


async def get_album(db: AsyncSession, album_id: str, owner_user_id: str) -> Album | None:
    return await get_owned(db, "album", album_id, owner_user_id)


async def ensure_unique_slug(
    db: AsyncSession,
    owner_user_id: str,
    slug: str,
    exclude_id: str | None = None,
) -> str:
    base = slug or DEFAULT_SLUG
    candidate = base
    suffix = 0
    while True:
        query = select(Album.id).where(Album.owner_user_id == owner_user_id, Album.slug == candidate)
        if exclude_id:
            query = query.where(Album.id != exclude_id)
        result = await db.execute(query.limit(1))
        if result.scalar_one_or_none() is None:
            return candidate
        suffix += 1
        candidate = f"{base}-{suffix}"


def _clean_name(name: str | None) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationFailure("Album name is required")
    if len(cleaned) > 200:
        raise ValidationFailure("Album name must be 200 characters or fewer")
    return cleaned


def _check_kind(kind: str) -> str:
    if not is_valid_kind(kind):
        raise ValidationFailure(f"Invalid album kind: {kind}")
    return kind


async def create_album(
    db: AsyncSession,
    owner_user_id: str,
    name: str,
    slug: str | None = None,
    kind: str = "portfolio",
    description: str | None = None,
    model: str | None = None,
    is_public: bool = False,
    lat: float | None = None,
    lng: float | None = None,
    order_id: str | None = None,
) -> Album:
    name = _clean_name(name)
    kind = _check_kind(kind)
    base_slug = slugify(slug) if slug else slugify(name)

    for attempt in range(1, SLUG_WRITE_ATTEMPTS + 1):
        unique_slug = await ensure_unique_slug(db, owner_user_id, base_slug)
        now = datetime.now(timezone.utc)
        album = Album(
            id=new_id(),
            owner_user_id=owner_user_id,
            kind=kind,
            is_public=is_public,
            order_id=order_id,
            slug=unique_slug,
            name=name,
            description=description,
            model=model,
            lat=lat,
            lng=lng,
            public_version=0,
            created_at=now,
            updated_at=now,
        )
        db.add(album)
        db.add(outbox_event("album", album.id, EVENT_UPSERT, album_snapshot(album), 0))
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.warning("albums event=slug_conflict owner=%s slug=%s attempt=%s", owner_user_id, unique_slug, attempt)
            continue
        return album

    raise ValidationFailure("Could not allocate a unique slug")


async def _check_cover_item(db: AsyncSession, album_id: str, owner_user_id: str, cover_item_id: str) -> None:
    result = await db.execute(
        select(AlbumItem.item_id)
        .join(Item, Item.id == AlbumItem.item_id)
        .where(
            AlbumItem.album_id == album_id,
            AlbumItem.item_id == cover_item_id,
            Item.owner_user_id == owner_user_id,
            Item.deleted_at.is_(None),
        )
    )
    if result.scalar_one_or_none() is None:
        raise ValidationFailure("Item not in this album")


async def update_album(
    db: AsyncSession,
    album_id: str,
    owner_user_id: str,
    changes: dict[str, Any],
) -> Album | None:
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationFailure(f"Unknown album fields: {', '.join(sorted(unknown))}")
    if "name" in changes:
        changes["name"] = _clean_name(changes["name"])
    if changes.get("kind") is not None:
        _check_kind(changes["kind"])

    for attempt in range(1, SLUG_WRITE_ATTEMPTS + 1):
        album = await get_owned(db, "album", album_id, owner_user_id)
        if album is None:
            return None
        if changes.get("cover_item_id"):
            await _check_cover_item(db, album_id, owner_user_id, changes["cover_item_id"])

        name = changes.get("name") or album.name
        base_slug = slugify(changes["slug"]) if changes.get("slug") else slugify(name)
        album.slug = await ensure_unique_slug(db, owner_user_id, base_slug, exclude_id=album.id)
        album.name = name
        if changes.get("kind") is not None:
            album.kind = changes["kind"]
        if changes.get("is_public") is not None:
            album.is_public = bool(changes["is_public"])
        for field in ("description", "model", "lat", "lng", "order_id"):
            if changes.get(field) is not None:
                setattr(album, field, changes[field])
        if "cover_item_id" in changes:
            album.cover_item_id = changes["cover_item_id"] or None
        album.public_version = album.public_version + 1
        album.updated_at = datetime.now(timezone.utc)

        db.add(outbox_event("album", album.id, EVENT_UPSERT, album_snapshot(album), album.public_version))
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.warning("albums event=slug_conflict owner=%s album=%s attempt=%s", owner_user_id, album_id, attempt)
            continue
        return album

    raise ValidationFailure("Could not allocate a unique slug")


async def set_album_cover(
    db: AsyncSession,
    album_id: str,
    owner_user_id: str,
    cover_item_id: str | None,
) -> Album:
    await require_owned(db, "album", album_id, owner_user_id)
    album = await update_album(db, album_id, owner_user_id, {"cover_item_id": cover_item_id})
    if album is None:
        raise NotFoundError("Album not found")
    return album


async def delete_album(db: AsyncSession, album_id: str, owner_user_id: str) -> bool:
    album = await get_owned(db, "album", album_id, owner_user_id)
    if album is None:
        return False

    version = album.public_version + 1
    await db.execute(delete(AlbumItem).where(AlbumItem.album_id == album_id))
    await db.execute(delete(TagRef).where(TagRef.entity_type == "album", TagRef.entity_id == album_id))
    db.add(outbox_event("album", album_id, EVENT_DELETE, {"id": album_id}, version))
    await db.execute(delete(Album).where(Album.id == album_id, Album.owner_user_id == owner_user_id))
    await db.commit()
    return True


def record_items_removed(db: AsyncSession, album: Album, item_ids: list[str]) -> None:
    """Apply the cover, version and event rules for items leaving ``album``.

    The cover is cleared when it is among the removed items. Only public
    albums get an outbox event since private albums are not replicated.
    """
    cover_removed = album.cover_item_id is not None and album.cover_item_id in item_ids
    if not (cover_removed or album.is_public):
        return
    if cover_removed:
        album.cover_item_id = None
    album.public_version = album.public_version + 1
    album.updated_at = datetime.now(timezone.utc)
    if album.is_public:
        db.add(
            outbox_event(
                "album",
                album.id,
                EVENT_UPSERT,
                {**album_snapshot(album), "removedItemIds": item_ids},
                album.public_version,
            )
        )


async def remove_items_from_album(
    db: AsyncSession,
    album_id: str,
    item_ids: list[str],
    owner_user_id: str,
) -> int:
    """Detach items from an album; bumps the version when the public view changes."""
    album = await require_owned(db, "album", album_id, owner_user_id)
    valid_ids = list(dict.fromkeys(item_id for item_id in item_ids if item_id))
    if not valid_ids:
        return 0

    result = await db.execute(
        delete(AlbumItem).where(AlbumItem.album_id == album_id, AlbumItem.item_id.in_(valid_ids))
    )
    removed = result.rowcount or 0
    record_items_removed(db, album, valid_ids)
    await db.commit()
    return removed
