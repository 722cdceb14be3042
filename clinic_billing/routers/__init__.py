"""API routers package."""
from .audit import router as audit_router
from .customers import router as customers_router
from .events import router as events_router
from .invoices import router as invoices_router
from .metrics import router as metrics_router
from .system import router as system_router

__all__ = [
    "audit_router",
    "customers_router",
    "events_router",
    "invoices_router",
    "metrics_router",
    "system_router",
]
