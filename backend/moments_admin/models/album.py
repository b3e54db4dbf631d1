from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.sql import expression, func

from moments_admin.core.database import Base

ALBUM_KINDS = ("portfolio", "client_delivery")


class Album(Base):
    __tablename__ = "albums"
    __table_args__ = (
        UniqueConstraint("owner_user_id", "slug", name="uq_albums_owner_slug"),
    )

    id = Column(String(26), primary_key=True, nullable=False)
    owner_user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    kind = Column(String, nullable=False, server_default="portfolio")
    is_public = Column(Boolean, nullable=False, server_default=expression.false())
    order_id = Column(String, nullable=True)
    slug = Column(String, nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    model = Column(Text, nullable=True)
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)
    cover_item_id = Column(String(26), nullable=True)
    public_version = Column(Integer, nullable=False, server_default="0")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)


class AlbumItem(Base):
    __tablename__ = "album_items"
    album_id = Column(String(26), ForeignKey("albums.id", ondelete="CASCADE"), primary_key=True, nullable=False)
    item_id = Column(String(26), ForeignKey("items.id", ondelete="CASCADE"), primary_key=True, nullable=False)
    sort_order = Column(Integer, nullable=False, server_default="0")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
