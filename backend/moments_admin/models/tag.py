from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.sql import func

from moments_admin.core.database import Base


class Tag(Base):
    __tablename__ = "tags"

    id = Column(String(26), primary_key=True, nullable=False)
    name = Column(Text, nullable=False)
    slug = Column(String, nullable=False, unique=True)
    kind = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class TagRef(Base):
    __tablename__ = "tag_refs"

    tag_id = Column(String(26), ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True)
    entity_type = Column(String, primary_key=True)
    entity_id = Column(String(26), primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
