from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from moments_admin.core.errors import NotFoundError, ValidationFailure
from moments_admin.core.ids import new_id
from moments_admin.models.album import Album, AlbumItem
from moments_admin.models.item import Item
from moments_admin.models.tag import TagRef
from moments_admin.services.albums import record_items_removed
from moments_admin.services.image_urls import IMAGE_VARIANTS
from moments_admin.services.item_meta import FocalPoint, ItemMeta, dump_item_meta, parse_item_meta
from moments_admin.services.outbox import EVENT_DELETE, EVENT_UPSERT, outbox_event
from moments_admin.services.ownership import get_owned, require_owned

logger = logging.getLogger(__name__)


@dataclass
class AlbumItemEntry:
    item: Item
    sort_order: int
    added_at: datetime | None


def item_snapshot(item: Item, album_id: str | None = None) -> dict[str, Any]:
    snapshot = {
        "id": item.id,
        "type": item.type,
        "imageId": item.image_id,
        "title": item.title,
        "description": item.description,
        "version": item.version,
    }
    if album_id is not None:
        snapshot["albumId"] = album_id
    return snapshot


async def get_item(db: AsyncSession, item_id: str, owner_user_id: str) -> Item | None:
    return await get_owned(db, "item", item_id, owner_user_id)


async def list_album_items(db: AsyncSession, album_id: str, owner_user_id: str) -> list[AlbumItemEntry]:
    result = await db.execute(
        select(Item, AlbumItem.sort_order, AlbumItem.created_at)
        .join(AlbumItem, AlbumItem.item_id == Item.id)
        .where(
            AlbumItem.album_id == album_id,
            Item.owner_user_id == owner_user_id,
            Item.image_id.is_not(None),
            Item.deleted_at.is_(None),
        )
        .order_by(AlbumItem.sort_order.asc(), AlbumItem.created_at.asc())
    )
    return [AlbumItemEntry(item=item, sort_order=sort_order, added_at=added_at) for item, sort_order, added_at in result.all()]


async def next_sort_order(db: AsyncSession, album_id: str) -> int:
    result = await db.execute(select(func.max(AlbumItem.sort_order)).where(AlbumItem.album_id == album_id))
    current_max = result.scalar_one_or_none()
    return 0 if current_max is None else current_max + 1


async def add_item_to_album(
    db: AsyncSession,
    album_id: str,
    owner_user_id: str,
    image_id: str,
    meta: ItemMeta | None = None,
    title: str | None = None,
) -> Item:
    image_id = (image_id or "").strip()
    if not image_id:
        raise ValidationFailure("imageId is required")
    await require_owned(db, "album", album_id, owner_user_id)

    sort_order = await next_sort_order(db, album_id)
    now = datetime.now(timezone.utc)
    item = Item(
        id=new_id(),
        owner_user_id=owner_user_id,
        type="photo",
        image_id=image_id,
        title=title,
        meta=dump_item_meta(meta) if meta is not None else None,
        version=0,
        created_at=now,
        updated_at=now,
    )
    db.add(item)
    db.add(AlbumItem(album_id=album_id, item_id=item.id, sort_order=sort_order, created_at=now))
    db.add(outbox_event("item", item.id, EVENT_UPSERT, item_snapshot(item, album_id), 0))
    await db.commit()
    return item


def _check_crop(crop: dict[str, Any]) -> dict[str, FocalPoint]:
    unknown = set(crop) - set(IMAGE_VARIANTS)
    if unknown:
        raise ValidationFailure(f"Unknown crop variants: {', '.join(sorted(unknown))}")
    return {variant: point if isinstance(point, FocalPoint) else FocalPoint.model_validate(point) for variant, point in crop.items()}


async def update_item(
    db: AsyncSession,
    item_id: str,
    owner_user_id: str,
    changes: dict[str, Any],
) -> Item:
    """Update title, description and/or per-variant crop focal points.

    ``crop=None`` clears the overrides; other keys in ``meta`` survive.
    """
    item = await require_owned(db, "item", item_id, owner_user_id)

    if "title" in changes:
        item.title = changes["title"]
    if "description" in changes:
        item.description = changes["description"]
    if "crop" in changes:
        meta = parse_item_meta(item.meta)
        meta.crop = _check_crop(changes["crop"]) if changes["crop"] else None
        item.meta = dump_item_meta(meta)
    item.version = item.version + 1
    item.updated_at = datetime.now(timezone.utc)

    db.add(outbox_event("item", item.id, EVENT_UPSERT, item_snapshot(item), item.version))
    await db.commit()
    return item


async def delete_item(db: AsyncSession, item_id: str, owner_user_id: str) -> bool:
    item = await get_owned(db, "item", item_id, owner_user_id)
    if item is None:
        return False

    now = datetime.now(timezone.utc)
    version = item.version + 1
    member_of = select(AlbumItem.album_id).where(AlbumItem.item_id == item_id)
    albums_result = await db.execute(
        select(Album)
        .where(
            Album.owner_user_id == owner_user_id,
            or_(Album.id.in_(member_of), Album.cover_item_id == item_id),
        )
        .execution_options(populate_existing=True)
    )
    albums = list(albums_result.scalars().all())

    await db.execute(delete(AlbumItem).where(AlbumItem.item_id == item_id))
    await db.execute(delete(TagRef).where(TagRef.entity_type == "item", TagRef.entity_id == item_id))
    for album in albums:
        record_items_removed(db, album, [item_id])
    item.deleted_at = now
    item.updated_at = now
    item.version = version
    db.add(outbox_event("item", item_id, EVENT_DELETE, {"id": item_id}, version))
    await db.commit()
    return True


async def is_item_in_public_album(db: AsyncSession, item_id: str) -> bool:
    result = await db.execute(
        select(AlbumItem.album_id)
        .join(Album, Album.id == AlbumItem.album_id)
        .where(AlbumItem.item_id == item_id, Album.is_public.is_(True))
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def get_owned_item_image_id(db: AsyncSession, item_id: str, owner_user_id: str) -> str:
    item = await get_owned(db, "item", item_id, owner_user_id)
    if item is None or not item.image_id:
        raise NotFoundError("Not found")
    return item.image_id


async def get_public_item_image_id(db: AsyncSession, item_id: str) -> str:
    result = await db.execute(select(Item.image_id).where(Item.id == item_id, Item.deleted_at.is_(None)))
    image_id = result.scalar_one_or_none()
    if not image_id or not await is_item_in_public_album(db, item_id):
        raise NotFoundError("Not found")
    return image_id


async def replace_item_image(db: AsyncSession, item_id: str, expected_image_id: str, new_image_id: str) -> bool:
    """Swap the image reference if the item still points at ``expected_image_id``.

    Returns False, writing nothing, when the item was deleted or its image
    changed in the meantime.
    """
    result = await db.execute(
        update(Item)
        .where(Item.id == item_id, Item.image_id == expected_image_id, Item.deleted_at.is_(None))
        .values(image_id=new_image_id, version=Item.version + 1, updated_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        await db.rollback()
        return False

    item_result = await db.execute(
        select(Item).where(Item.id == item_id).execution_options(populate_existing=True)
    )
    item = item_result.scalar_one()
    album_result = await db.execute(select(AlbumItem.album_id).where(AlbumItem.item_id == item_id).limit(1))
    album_id = album_result.scalar_one_or_none() or ""

    db.add(outbox_event("item", item_id, EVENT_UPSERT, item_snapshot(item, album_id), item.version))
    await db.commit()
    return True
