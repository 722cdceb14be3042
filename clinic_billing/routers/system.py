"""System router providing health and readiness endpoints."""
import time

from fastapi import APIRouter

from ..config.database import async_database_health_check
from ..utils.api_shapes import success as _success

router = APIRouter()

_start_time = time.time()


@router.get("/health")  # liveness
async def health():
    return _success({"ok": True})


@router.get("/readiness")  # readiness: db connectivity
async def readiness():
    db_health = await async_database_health_check()
    return _success({"database": db_health, "uptime_s": int(time.time() - _start_time)})
