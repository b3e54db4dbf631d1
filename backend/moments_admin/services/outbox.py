"""Append-only outbox rows written in the same transaction as domain changes.

Callers add the event to the session *after* the domain writes and commit
once; the downstream consumer reads rows with ``processed_at IS NULL`` in
``created_at``/``id`` order.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from moments_admin.core.ids import new_id
from moments_admin.models.outbox import OutboxEvent

AGGREGATE_TYPES = ("album", "item")
EVENT_UPSERT = "upsert"
EVENT_DELETE = "delete"


def encode_payload(payload: dict[str, Any]) -> str:
    return json.dumps(payload, separators=(",", ":"), default=str)


def outbox_event(
    aggregate_type: str,
    aggregate_id: str,
    event_type: str,
    payload: dict[str, Any],
    version: int,
) -> OutboxEvent:
    if aggregate_type not in AGGREGATE_TYPES:
        raise ValueError(f"Unknown aggregate type: {aggregate_type}")
    return OutboxEvent(
        id=new_id(),
        aggregate_type=aggregate_type,
        aggregate_id=aggregate_id,
        event_type=event_type,
        payload=encode_payload(payload),
        version=version,
        created_at=datetime.now(timezone.utc),
    )


async def list_events(db: AsyncSession, aggregate_id: str | None = None, pending_only: bool = False) -> list[OutboxEvent]:
    query = select(OutboxEvent).order_by(OutboxEvent.created_at.asc(), OutboxEvent.id.asc())
    if aggregate_id is not None:
        query = query.where(OutboxEvent.aggregate_id == aggregate_id)
    if pending_only:
        query = query.where(OutboxEvent.processed_at.is_(None))
    result = await db.execute(query)
    return list(result.scalars().all())
