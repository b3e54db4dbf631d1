from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from moments_admin.core.database import Base


class OutboxEvent(Base):
    __tablename__ = "outbox_events"

    id = Column(String(26), primary_key=True, nullable=False)
    aggregate_type = Column(String, nullable=False)
    aggregate_id = Column(String(26), nullable=False, index=True)
    event_type = Column(String, nullable=False)
    payload = Column(Text, nullable=False)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    processed_at = Column(DateTime(timezone=True), nullable=True, index=True)
