from moments_admin.models.album import Album, AlbumItem
from moments_admin.models.item import Item
from moments_admin.models.outbox import OutboxEvent
from moments_admin.models.tag import Tag, TagRef
from moments_admin.models.user import User

__all__ = [
    "User",
    "Album",
    "AlbumItem",
    "Item",
    "Tag",
    "TagRef",
    "OutboxEvent",
]
