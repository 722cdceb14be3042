"""Structured logging configuration (kept apart from stdlib ``logging`` name)."""
from __future__ import annotations

import json
import logging
import os
import sys
import time
import traceback
from typing import Any, Dict

import structlog

DEFAULT_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

_CONTEXT_ATTRS = ("request_id", "invoice_id", "invoice_number")


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        base: Dict[str, Any] = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # request_id and friends bound through structlog.contextvars in middleware
        for key, value in structlog.contextvars.get_contextvars().items():
            if key in _CONTEXT_ATTRS:
                base[key] = value
        for attr in _CONTEXT_ATTRS:
            if hasattr(record, attr):
                base[attr] = getattr(record, attr)
        if record.exc_info:
            base["exc_info"] = "".join(
                traceback.format_exception(*record.exc_info))
        return json.dumps(base, ensure_ascii=False, default=str)


def configure_logging(level: str | None = None) -> None:
    """Configure structlog and the root logger for application startup."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level or DEFAULT_LEVEL)


def bind_context(logger: logging.Logger, **kwargs: Any) -> logging.LoggerAdapter | logging.Logger:
    """Attach contextual attributes (picked up by :class:`JsonFormatter`)."""
    if not kwargs:
        return logger
    return logging.LoggerAdapter(logger, extra=kwargs)


__all__ = ["JsonFormatter", "configure_logging", "bind_context"]
