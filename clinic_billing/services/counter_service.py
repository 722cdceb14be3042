"""Named counters backing invoice number allocation."""
from __future__ import annotations

import asyncio
import logging

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.database import Counter

logger = logging.getLogger(__name__)

MAX_BUSY_RETRIES = 10

_UPSERT = text(
    """
    INSERT INTO counters (name, value)
    VALUES (:name, :initial_value)
    ON CONFLICT(name) DO UPDATE SET value = CAST(CAST(counters.value AS BIGINT) + 1 AS TEXT)
    RETURNING value
    """
)


def invoice_counter_name(year: int) -> str:
    return f"invoices_{year}"


def invoice_counter_initial_value(year: int) -> str:
    return f"{year}000001"


async def increment_and_get_next(db: AsyncSession, name: str, initial_value: str) -> str:
    """Advance counter ``name`` and return its new value.

    A missing counter is created holding ``initial_value``, which is returned
    as-is. Uses a single INSERT .. ON CONFLICT .. DO UPDATE .. RETURNING so two
    concurrent transactions can never observe the same value. The increment is
    part of the caller's transaction: a rollback returns the value to the pool.
    """
    for _ in range(MAX_BUSY_RETRIES):
        try:
            result = await db.execute(_UPSERT, {"name": name, "initial_value": initial_value})
            value = str(result.scalar_one())
            logger.debug("counter %s issued %s", name, value)
            return value
        except Exception as exc:  # SQLITE_BUSY / locked are transient under contention
            msg = str(exc).lower()
            if "busy" in msg or "locked" in msg:
                await asyncio.sleep(0.005)
                continue
            raise
    raise RuntimeError(f"Failed to advance counter {name!r} after retries")


async def get_counter_value(db: AsyncSession, name: str) -> str | None:
    result = await db.execute(select(Counter.value).where(Counter.name == name))
    return result.scalar_one_or_none()
