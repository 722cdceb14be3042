"""
FastAPI application factory and configuration.
"""

import logging
import os
import time
import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from .config.database import check_async_database_connection
from .config.logsetup import configure_logging
from .config.observability import APP_REQUEST_COUNT, APP_REQUEST_LATENCY
from .routers import (
    audit_router,
    customers_router,
    events_router,
    invoices_router,
    metrics_router,
    system_router,
)
from .utils.errors import ERROR_CODES, DomainError, error_payload

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


class ResponseTimeMiddleware(BaseHTTPMiddleware):
    """Stamp X-Response-Time and record request count / latency metrics."""

    async def dispatch(self, request: Request, call_next):  # noqa: D401
        start_time = time.time()
        response = await call_next(request)
        duration_s = time.time() - start_time
        response.headers["X-Response-Time"] = f"{duration_s * 1000:.1f}ms"

        # Route template keeps label cardinality bounded (/invoices/{invoice_id})
        route = request.scope.get("route")
        path = getattr(route, "path", request.url.path)
        status_code = str(response.status_code)
        APP_REQUEST_COUNT.labels(request.method, path, status_code).inc()
        APP_REQUEST_LATENCY.labels(request.method, path, status_code).observe(duration_s)

        if duration_s > 0.2:
            logger.warning("Slow response: %.1fms for %s %s",
                           duration_s * 1000, request.method, request.url.path)
        return response


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Generate a per-request ID, bind it to the log context and echo it back."""

    async def dispatch(self, request: Request, call_next):  # noqa: D401
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")
        response.headers["X-Request-ID"] = request_id
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):  # noqa: ARG001
    """Application lifespan management."""
    configure_logging()
    logger.info("Starting up Clinic Billing API...")

    # Tests manage the schema themselves (create_all in fixtures)
    if os.getenv("TESTING", "false").lower() != "true":
        if not await check_async_database_connection():
            logger.error("Failed to connect to database")
            raise RuntimeError("Database connection failed")
        logger.info("[startup] Schema is managed by Alembic migrations")

    yield

    logger.info("Shutting down Clinic Billing API...")


def create_application() -> FastAPI:
    """Create and configure FastAPI application."""
    application_obj = FastAPI(
        title="Clinic Billing API",
        description="Invoices, invoice numbering and customers for a physiotherapy clinic",
        version=API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/api/v1/openapi.json",
        lifespan=lifespan,
    )
    setup_middleware(application_obj)
    setup_exception_handlers(application_obj)
    setup_routes(application_obj)
    return application_obj


def setup_middleware(app: FastAPI) -> None:
    cors_origins = os.getenv("CORS_ORIGINS", "*").split(",")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(ResponseTimeMiddleware)
    app.add_middleware(RequestIDMiddleware)


def setup_exception_handlers(app: FastAPI) -> None:
    """Map every failure onto the standard error envelope."""

    @app.exception_handler(DomainError)
    async def domain_exception_handler(request: Request, exc: DomainError):
        if exc.status_code >= 500:
            logger.error("Domain failure %s: %s", exc.code, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_payload(exc.code, exc.message, details=exc.details,
                                  path=str(request.url.path)),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        # Error contexts may hold exception objects; stringify anything non-primitive
        sanitized = []
        for err in exc.errors():
            sanitized.append({
                k: v if isinstance(v, (str, int, float, bool, list, type(None))) else str(v)
                for k, v in err.items()
            })
        return JSONResponse(
            status_code=422,
            content=error_payload(ERROR_CODES["validation"], "Request validation failed",
                                  details=sanitized, path=str(request.url.path)),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_payload(getattr(exc, "code", "HTTP_ERROR"), str(exc.detail),
                                  path=str(request.url.path)),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled exception: %s", exc, exc_info=True)
        return JSONResponse(
            status_code=500,
            content=error_payload(ERROR_CODES["internal"], "An unexpected error occurred",
                                  path=str(request.url.path)),
        )


def setup_routes(app: FastAPI) -> None:

    @app.get("/")
    async def root():
        return {
            "status": "success",
            "data": {
                "message": "Clinic Billing API",
                "version": API_VERSION,
                "docs": "/docs",
                "health": "/api/v1/system/health",
            },
            "timestamp": time.time(),
        }

    app.include_router(invoices_router, prefix="/api/v1/invoices", tags=["Invoices"])
    app.include_router(customers_router, prefix="/api/v1/customers", tags=["Customers"])
    app.include_router(audit_router, prefix="/api/v1/audit-trails", tags=["Audit"])
    app.include_router(events_router, prefix="/api/v1/events", tags=["Events"])
    app.include_router(system_router, prefix="/api/v1/system", tags=["System"])
    app.include_router(metrics_router)


app = create_application()

__all__ = ["app", "create_application"]
