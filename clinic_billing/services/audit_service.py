"""Audit trail recording for invoices and customers.

Entries store a field -> [old, new] map. ``record_event`` also appends the
matching event to ``event_store``. Audit entries can be switched off
globally (``AUDIT_TRAIL_ENABLED``) or per entity type, e.g. while importing
legacy data in bulk.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config.settings import get_settings
from ..models.database import AuditTrail
from . import event_store

OPERATION_CREATED = "created"
OPERATION_UPDATED = "updated"


def is_enabled(entity_type: Optional[str] = None) -> bool:
    s = get_settings()
    if not s.AUDIT_TRAIL_ENABLED:
        return False
    if entity_type == "Invoice":
        return s.AUDIT_TRAIL_INVOICE_ENABLED
    if entity_type == "Customer":
        return s.AUDIT_TRAIL_CUSTOMER_ENABLED
    return True


def _jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def diff(before: Mapping[str, Any], after: Mapping[str, Any]) -> Dict[str, List[Any]]:
    """Field -> [old, new] for every key whose value differs."""
    changes: Dict[str, List[Any]] = {}
    for key in sorted(set(before) | set(after)):
        old, new = before.get(key), after.get(key)
        if old != new:
            changes[key] = [_jsonable(old), _jsonable(new)]
    return changes


def record_change(
    db: AsyncSession,
    entity_type: str,
    entity_id: Any,
    operation: str,
    before: Mapping[str, Any],
    after: Mapping[str, Any],
    *,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> Optional[AuditTrail]:
    """Stage an audit entry in ``db``; the caller's commit persists it.

    Returns None when auditing is disabled for the entity type or nothing
    changed.
    """
    if not is_enabled(entity_type):
        return None
    changes = diff(before, after)
    if not changes:
        return None
    entry = AuditTrail(
        entity_type=entity_type,
        entity_id=str(entity_id),
        operation=operation,
        changes=changes,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.add(entry)
    return entry


async def record_event(
    db: AsyncSession,
    entity_type: str,
    entity_id: Any,
    operation: str,
    before: Mapping[str, Any],
    after: Mapping[str, Any],
    *,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> Optional[AuditTrail]:
    """Append the ``{entity_type}{Operation}`` event, then stage the audit entry.

    The event is written even when auditing is off or nothing changed.
    """
    await event_store.append(db, entity_type, entity_id,
                             event_store.event_name(entity_type, operation),
                             {"changes": diff(before, after)})
    return record_change(db, entity_type, entity_id, operation, before, after,
                         ip_address=ip_address, user_agent=user_agent)


async def list_audit_trails(
    db: AsyncSession,
    *,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    limit: int = 100,
) -> List[Dict[str, Any]]:
    stmt = select(AuditTrail).order_by(AuditTrail.changed_at.desc(), AuditTrail.id.desc()).limit(limit)
    if entity_type:
        stmt = stmt.where(AuditTrail.entity_type == entity_type)
    if entity_id is not None:
        stmt = stmt.where(AuditTrail.entity_id == str(entity_id))
    result = await db.execute(stmt)
    return [serialize_audit_trail(a) for a in result.scalars().all()]


def serialize_audit_trail(entry: AuditTrail) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "entity_type": entry.entity_type,
        "entity_id": entry.entity_id,
        "operation": entry.operation,
        "changes": entry.changes,
        "changed_fields": entry.changed_fields(),
        "changed_at": entry.changed_at.isoformat() if entry.changed_at else None,
        "ip_address": entry.ip_address,
        "user_agent": entry.user_agent,
    }
