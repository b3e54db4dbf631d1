"""Read side for the public portfolio: public albums and their image URLs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from moments_admin.core.config import Settings, settings
from moments_admin.models.album import Album, AlbumItem
from moments_admin.models.item import Item
from moments_admin.models.tag import Tag, TagRef
from moments_admin.services.image_urls import ImageVariant, build_item_image_url
from moments_admin.services.item_meta import parse_item_meta

ITEMS_PER_ALBUM = 12
TOP_TAGS_LIMIT = 10


@dataclass
class PublicAlbum:
    id: str
    slug: str
    name: str
    description: str | None
    cover_item_id: str | None
    items: list[Item] = field(default_factory=list)


async def get_public_albums(db: AsyncSession) -> list[PublicAlbum]:
    result = await db.execute(
        select(Album).where(Album.is_public.is_(True)).order_by(Album.order_id.asc(), Album.created_at.asc())
    )
    albums = [
        PublicAlbum(
            id=album.id,
            slug=album.slug,
            name=album.name,
            description=album.description,
            cover_item_id=album.cover_item_id,
        )
        for album in result.scalars().all()
    ]
    for album in albums:
        items_result = await db.execute(
            select(Item)
            .join(AlbumItem, AlbumItem.item_id == Item.id)
            .where(
                AlbumItem.album_id == album.id,
                Item.deleted_at.is_(None),
                Item.image_id.is_not(None),
            )
            .order_by(AlbumItem.sort_order.asc(), AlbumItem.created_at.asc())
        )
        album.items = list(items_result.scalars().all())
    return albums


async def get_item_tag_slugs(db: AsyncSession, item_ids: list[str]) -> dict[str, list[str]]:
    if not item_ids:
        return {}
    result = await db.execute(
        select(TagRef.entity_id, Tag.slug)
        .join(Tag, Tag.id == TagRef.tag_id)
        .where(TagRef.entity_type == "item", TagRef.entity_id.in_(item_ids))
        .order_by(Tag.slug.asc())
    )
    slugs: dict[str, list[str]] = {}
    for item_id, slug in result.all():
        slugs.setdefault(item_id, []).append(slug)
    return slugs


async def get_public_tags(db: AsyncSession, limit: int = TOP_TAGS_LIMIT) -> list[dict[str, Any]]:
    """Tags used by items of public albums, most used first."""
    usage = func.count(func.distinct(TagRef.entity_id)).label("usage")
    result = await db.execute(
        select(Tag.slug, Tag.name, usage)
        .join(TagRef, TagRef.tag_id == Tag.id)
        .join(Item, Item.id == TagRef.entity_id)
        .join(AlbumItem, AlbumItem.item_id == Item.id)
        .join(Album, Album.id == AlbumItem.album_id)
        .where(TagRef.entity_type == "item", Item.deleted_at.is_(None), Album.is_public.is_(True))
        .group_by(Tag.slug, Tag.name)
        .order_by(usage.desc(), Tag.slug.asc())
        .limit(limit)
    )
    return [{"slug": slug, "name": name, "count": count} for slug, name, count in result.all()]


def item_image_url(item: Item, variant: ImageVariant, config: Settings = settings) -> str:
    return build_item_image_url(
        item.id,
        item.image_id,
        parse_item_meta(item.meta),
        variant,
        admin_base_url=config.ADMIN_BASE_URL,
        cdn_origin=config.CDN_ORIGIN,
        delivery_hash=config.CF_IMAGES_DELIVERY_HASH,
    )


async def get_gallery(
    db: AsyncSession,
    tag: str | None = None,
    config: Settings = settings,
    items_per_album: int = ITEMS_PER_ALBUM,
) -> dict[str, Any]:
    albums = await get_public_albums(db)
    entries = [(album, item) for album in albums for item in album.items[:items_per_album]]
    tag_slugs = await get_item_tag_slugs(db, [item.id for _, item in entries])

    gallery_items = [
        {
            "id": item.id,
            "albumId": album.id,
            "albumName": album.name,
            "albumSlug": album.slug,
            "thumbUrl": item_image_url(item, "thumb", config),
            "tagSlugs": tag_slugs.get(item.id, []),
        }
        for album, item in entries
    ]
    if tag:
        gallery_items = [entry for entry in gallery_items if tag in entry["tagSlugs"]]

    return {
        "albums": [
            {
                "id": album.id,
                "slug": album.slug,
                "name": album.name,
                "description": album.description,
                "coverItemId": album.cover_item_id,
                "itemCount": len(album.items),
            }
            for album in albums
        ],
        "galleryItems": gallery_items,
        "topTags": await get_public_tags(db),
    }
