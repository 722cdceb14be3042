from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..config.database import get_async_db_dependency
from ..services import audit_service
from ..utils.api_shapes import success as _success

router = APIRouter()


@router.get("")
async def list_audit_trails(
    entity_type: Optional[str] = Query(None),
    entity_id: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_async_db_dependency),
):
    """Audit entries, newest first, optionally narrowed to one entity."""
    entries = await audit_service.list_audit_trails(
        db, entity_type=entity_type, entity_id=entity_id, limit=limit)
    return _success({"audit_trails": entries})
