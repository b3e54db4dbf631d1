from __future__ import annotations

from typing import Literal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from moments_admin.core.errors import NotFoundError
from moments_admin.models.album import Album
from moments_admin.models.item import Item

EntityType = Literal["album", "item"]


async def get_owned(db: AsyncSession, entity_type: EntityType, entity_id: str, owner_user_id: str) -> Album | Item | None:
    """Load an album or a live item only when ``owner_user_id`` owns it."""
    if entity_type == "album":
        query = select(Album).where(Album.id == entity_id, Album.owner_user_id == owner_user_id)
    elif entity_type == "item":
        query = select(Item).where(
            Item.id == entity_id,
            Item.owner_user_id == owner_user_id,
            Item.deleted_at.is_(None),
        )
    else:
        raise ValueError(f"Unknown entity type: {entity_type}")
    result = await db.execute(query.execution_options(populate_existing=True))
    return result.scalar_one_or_none()


async def require_owned(db: AsyncSession, entity_type: EntityType, entity_id: str, owner_user_id: str) -> Album | Item:
    entity = await get_owned(db, entity_type, entity_id, owner_user_id)
    if entity is None:
        raise NotFoundError(f"{entity_type.capitalize()} not found")
    return entity
