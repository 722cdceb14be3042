from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..config.database import get_async_db_dependency
from ..services import event_store
from ..utils.api_shapes import success as _success

router = APIRouter()


@router.get("")
async def list_events(
    aggregate_type: Optional[str] = Query(None),
    aggregate_id: Optional[str] = Query(None),
    event_name: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_async_db_dependency),
):
    """Stored events in append order."""
    events = await event_store.list_events(
        db, aggregate_type=aggregate_type, aggregate_id=aggregate_id, name=event_name, limit=limit)
    return _success({"events": events})
