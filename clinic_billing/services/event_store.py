"""Append-only event store.

Every invoice and customer change appends one event (``InvoiceCreated``,
``InvoiceUpdated``, ``CustomerCreated``, ``CustomerUpdated``) carrying the
field diff. Events are staged in the caller's session, so they commit or roll
back together with the change and its audit entry. The audit toggles do not
apply here: the store always records.
"""
from __future__ import annotations

from datetime import datetime, UTC
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.database import StoredEvent


def event_name(aggregate_type: str, operation: str) -> str:
    """``("Invoice", "created")`` -> ``"InvoiceCreated"``."""
    return f"{aggregate_type}{operation.capitalize()}"


async def next_version(db: AsyncSession, aggregate_type: str, aggregate_id: Any) -> int:
    result = await db.execute(
        select(func.max(StoredEvent.version)).where(
            StoredEvent.aggregate_type == aggregate_type,
            StoredEvent.aggregate_id == str(aggregate_id),
        )
    )
    return (result.scalar_one_or_none() or 0) + 1


async def append(
    db: AsyncSession,
    aggregate_type: str,
    aggregate_id: Any,
    name: str,
    payload: Mapping[str, Any],
    occurred_on: Optional[datetime] = None,
) -> StoredEvent:
    """Stage one event; flushed so a later append in the same transaction sees it."""
    event = StoredEvent(
        aggregate_type=aggregate_type,
        aggregate_id=str(aggregate_id),
        event_name=name,
        payload=dict(payload),
        occurred_on=occurred_on or datetime.now(UTC),
        version=await next_version(db, aggregate_type, aggregate_id),
    )
    db.add(event)
    await db.flush()
    return event


async def list_events(
    db: AsyncSession,
    *,
    aggregate_type: Optional[str] = None,
    aggregate_id: Optional[str] = None,
    name: Optional[str] = None,
    limit: int = 100,
) -> List[Dict[str, Any]]:
    """Events oldest first, optionally narrowed to one aggregate or event name."""
    stmt = select(StoredEvent).order_by(StoredEvent.id).limit(limit)
    if aggregate_type:
        stmt = stmt.where(StoredEvent.aggregate_type == aggregate_type)
    if aggregate_id is not None:
        stmt = stmt.where(StoredEvent.aggregate_id == str(aggregate_id))
    if name:
        stmt = stmt.where(StoredEvent.event_name == name)
    result = await db.execute(stmt)
    return [serialize_event(e) for e in result.scalars().all()]


def serialize_event(event: StoredEvent) -> Dict[str, Any]:
    return {
        "id": event.id,
        "aggregate_type": event.aggregate_type,
        "aggregate_id": event.aggregate_id,
        "event_name": event.event_name,
        "payload": event.payload,
        "occurred_on": event.occurred_on.isoformat() if event.occurred_on else None,
        "version": event.version,
    }
