"""Shared tag vocabulary and the polymorphic ``tag_refs`` join.

Tags are created (and committed) on their own before the entity write so a
concurrent insert of the same slug only costs a re-read. Every change to an
entity's tag set then goes out in one batch with the entity's version bump
and its outbox upsert.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from moments_admin.core.errors import ValidationFailure
from moments_admin.core.ids import new_id
from moments_admin.models.album import Album, AlbumItem
from moments_admin.models.item import Item
from moments_admin.models.tag import Tag, TagRef
from moments_admin.services.albums import SLUG_WRITE_ATTEMPTS, album_snapshot
from moments_admin.services.items import item_snapshot
from moments_admin.services.outbox import EVENT_UPSERT, outbox_event
from moments_admin.services.ownership import EntityType, require_owned
from moments_admin.services.slugs import slugify

DEFAULT_TAG_SLUG = "untitled"
logger = logging.getLogger(__name__)


def tag_slug(name: str) -> str:
    return slugify(name) or DEFAULT_TAG_SLUG


def tag_to_dict(tag: Tag) -> dict[str, Any]:
    return {"id": tag.id, "name": tag.name, "slug": tag.slug, "kind": tag.kind}


def normalize_tag_names(tag_names: list[str]) -> list[str]:
    """Trim, drop blanks and collapse names that map to the same slug."""
    seen: set[str] = set()
    names: list[str] = []
    for raw in tag_names:
        name = (raw or "").strip() if isinstance(raw, str) else ""
        if not name:
            continue
        slug = tag_slug(name)
        if slug in seen:
            continue
        seen.add(slug)
        names.append(name)
    return names


async def list_tags(db: AsyncSession) -> list[Tag]:
    result = await db.execute(select(Tag).order_by(Tag.name.asc()))
    return list(result.scalars().all())


async def get_tag(db: AsyncSession, tag_id: str) -> Tag | None:
    result = await db.execute(select(Tag).where(Tag.id == tag_id).execution_options(populate_existing=True))
    return result.scalar_one_or_none()


async def _tag_by_slug(db: AsyncSession, slug: str) -> Tag | None:
    result = await db.execute(select(Tag).where(Tag.slug == slug))
    return result.scalar_one_or_none()


async def get_or_create_tag(db: AsyncSession, name: str) -> Tag:
    name = (name or "").strip()
    if not name:
        raise ValidationFailure("Tag name is required")
    slug = tag_slug(name)

    existing = await _tag_by_slug(db, slug)
    if existing is not None:
        return existing

    tag = Tag(id=new_id(), name=name, slug=slug, created_at=datetime.now(timezone.utc))
    db.add(tag)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info("tags event=concurrent_create slug=%s", slug)
        existing = await _tag_by_slug(db, slug)
        if existing is None:
            raise
        return existing
    return tag


async def get_tags_for_entity(db: AsyncSession, entity_type: EntityType, entity_id: str) -> list[Tag]:
    result = await db.execute(
        select(Tag)
        .join(TagRef, TagRef.tag_id == Tag.id)
        .where(TagRef.entity_type == entity_type, TagRef.entity_id == entity_id)
        .order_by(Tag.name.asc())
    )
    return list(result.scalars().all())


async def get_tags_for_entities(
    db: AsyncSession,
    entity_type: EntityType,
    entity_ids: list[str],
) -> dict[str, list[Tag]]:
    if not entity_ids:
        return {}
    tags_by_entity: dict[str, list[Tag]] = {entity_id: [] for entity_id in entity_ids}
    result = await db.execute(
        select(TagRef.entity_id, Tag)
        .join(Tag, Tag.id == TagRef.tag_id)
        .where(TagRef.entity_type == entity_type, TagRef.entity_id.in_(entity_ids))
        .order_by(Tag.name.asc())
    )
    for entity_id, tag in result.all():
        tags_by_entity.setdefault(entity_id, []).append(tag)
    return tags_by_entity


def _record_tag_change(db: AsyncSession, entity: Album | Item, tags: list[Tag]) -> None:
    """Bump the entity version and queue its upsert with the new tag set."""
    now = datetime.now(timezone.utc)
    tag_slugs = sorted(tag.slug for tag in tags)
    if isinstance(entity, Album):
        entity.public_version = entity.public_version + 1
        entity.updated_at = now
        snapshot = {**album_snapshot(entity), "tags": tag_slugs}
        db.add(outbox_event("album", entity.id, EVENT_UPSERT, snapshot, entity.public_version))
    else:
        entity.version = entity.version + 1
        entity.updated_at = now
        snapshot = {**item_snapshot(entity), "tags": tag_slugs}
        db.add(outbox_event("item", entity.id, EVENT_UPSERT, snapshot, entity.version))


async def ensure_unique_tag_slug(db: AsyncSession, slug: str, exclude_id: str | None = None) -> str:
    base = slug or DEFAULT_TAG_SLUG
    candidate = base
    suffix = 0
    while True:
        query = select(Tag.id).where(Tag.slug == candidate)
        if exclude_id:
            query = query.where(Tag.id != exclude_id)
        result = await db.execute(query.limit(1))
        if result.scalar_one_or_none() is None:
            return candidate
        suffix += 1
        candidate = f"{base}-{suffix}"


async def _record_slug_change(db: AsyncSession, tag_id: str) -> None:
    """Re-publish every live album and item carrying the tag."""
    refs = await db.execute(select(TagRef.entity_type, TagRef.entity_id).where(TagRef.tag_id == tag_id))
    for entity_type, entity_id in refs.all():
        if entity_type == "album":
            query = select(Album).where(Album.id == entity_id)
        else:
            query = select(Item).where(Item.id == entity_id, Item.deleted_at.is_(None))
        result = await db.execute(query.execution_options(populate_existing=True))
        entity = result.scalar_one_or_none()
        if entity is None:
            continue
        _record_tag_change(db, entity, await get_tags_for_entity(db, entity_type, entity_id))


async def update_tag(
    db: AsyncSession,
    tag_id: str,
    name: str,
    slug: str | None = None,
    kind: str | None = None,
) -> Tag | None:
    """Rename a tag; a slug change re-publishes every entity carrying it.

    ``kind=""`` clears the kind, ``None`` leaves it alone.
    """
    name = (name or "").strip()
    if not name:
        raise ValidationFailure("Tag name is required")
    base_slug = tag_slug(slug) if slug and slug.strip() else tag_slug(name)

    for attempt in range(1, SLUG_WRITE_ATTEMPTS + 1):
        tag = await get_tag(db, tag_id)
        if tag is None:
            return None
        old_slug = tag.slug
        tag.name = name
        tag.slug = await ensure_unique_tag_slug(db, base_slug, exclude_id=tag_id)
        if kind is not None:
            tag.kind = kind.strip() or None
        try:
            if tag.slug != old_slug:
                await _record_slug_change(db, tag_id)
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.warning("tags event=slug_conflict tag=%s slug=%s attempt=%s", tag_id, base_slug, attempt)
            continue
        return tag

    raise ValidationFailure("Could not allocate a unique slug")


async def set_tags_for_entity(
    db: AsyncSession,
    entity_type: EntityType,
    entity_id: str,
    owner_user_id: str,
    tag_names: list[str],
) -> list[Tag]:
    """Replace the entity's tag set; no event when the set is unchanged."""
    await require_owned(db, entity_type, entity_id, owner_user_id)
    tags = [await get_or_create_tag(db, name) for name in normalize_tag_names(tag_names)]
    # tag creation commits on its own; reload so the entity is fresh for the batch
    entity = await require_owned(db, entity_type, entity_id, owner_user_id)

    current = await get_tags_for_entity(db, entity_type, entity_id)
    if {tag.id for tag in current} == {tag.id for tag in tags}:
        return current

    await db.execute(delete(TagRef).where(TagRef.entity_type == entity_type, TagRef.entity_id == entity_id))
    now = datetime.now(timezone.utc)
    for tag in tags:
        db.add(TagRef(tag_id=tag.id, entity_type=entity_type, entity_id=entity_id, created_at=now))
    _record_tag_change(db, entity, tags)
    await db.commit()
    return sorted(tags, key=lambda tag: tag.name)


async def add_tags_to_entity(
    db: AsyncSession,
    entity_type: EntityType,
    entity_id: str,
    owner_user_id: str,
    tag_names: list[str],
) -> list[Tag]:
    await require_owned(db, entity_type, entity_id, owner_user_id)
    current = await get_tags_for_entity(db, entity_type, entity_id)
    present = {tag.slug for tag in current}
    wanted = [name for name in normalize_tag_names(tag_names) if tag_slug(name) not in present]
    new_tags = [await get_or_create_tag(db, name) for name in wanted]
    if not new_tags:
        return current
    entity = await require_owned(db, entity_type, entity_id, owner_user_id)

    now = datetime.now(timezone.utc)
    for tag in new_tags:
        db.add(TagRef(tag_id=tag.id, entity_type=entity_type, entity_id=entity_id, created_at=now))
    tags = await get_tags_for_entity(db, entity_type, entity_id)
    _record_tag_change(db, entity, tags)
    await db.commit()
    return tags


async def remove_tag_from_entity(
    db: AsyncSession,
    entity_type: EntityType,
    entity_id: str,
    owner_user_id: str,
    tag_id: str,
) -> bool:
    entity = await require_owned(db, entity_type, entity_id, owner_user_id)
    result = await db.execute(
        delete(TagRef).where(
            TagRef.entity_type == entity_type,
            TagRef.entity_id == entity_id,
            TagRef.tag_id == tag_id,
        )
    )
    if not result.rowcount:
        await db.rollback()
        return False
    remaining = await get_tags_for_entity(db, entity_type, entity_id)
    _record_tag_change(db, entity, remaining)
    await db.commit()
    return True


async def add_tags_to_album_items(
    db: AsyncSession,
    album_id: str,
    owner_user_id: str,
    item_ids: list[str],
    tag_names: list[str],
) -> int:
    """Add tags to the given items that are live members of the album.

    Ids outside the album (or not owned) are skipped; returns how many items
    were considered.
    """
    await require_owned(db, "album", album_id, owner_user_id)
    if not item_ids or not normalize_tag_names(tag_names):
        raise ValidationFailure("itemIds and tagNames arrays required")

    result = await db.execute(
        select(AlbumItem.item_id)
        .join(Item, Item.id == AlbumItem.item_id)
        .where(
            AlbumItem.album_id == album_id,
            AlbumItem.item_id.in_(item_ids),
            Item.owner_user_id == owner_user_id,
            Item.deleted_at.is_(None),
        )
    )
    verified = set(result.scalars().all())
    ordered = [item_id for item_id in dict.fromkeys(item_ids) if item_id in verified]
    for item_id in ordered:
        await add_tags_to_entity(db, "item", item_id, owner_user_id, tag_names)
    return len(ordered)
