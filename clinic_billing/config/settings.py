"""Application settings module.

Centralized configuration read from environment variables with sane defaults.
The invoice prefix is display-only: stored invoice numbers never carry it.
"""
from __future__ import annotations

from functools import lru_cache
import os

from pydantic import BaseModel


class Settings(BaseModel):
    # Invoice display / defaults
    INVOICE_PREFIX: str = "F"
    DEFAULT_CURRENCY: str = "EUR"
    DEFAULT_PAGE_SIZE: int = 30

    # Audit trail toggles (global switch + per entity type)
    AUDIT_TRAIL_ENABLED: bool = True
    AUDIT_TRAIL_INVOICE_ENABLED: bool = True
    AUDIT_TRAIL_CUSTOMER_ENABLED: bool = True

    @classmethod
    def load(cls) -> "Settings":
        """Load settings from environment with type coercion and defaults."""
        def _get_int(name: str, default: int) -> int:
            raw = os.getenv(name)
            if raw is None:
                return default
            try:
                return int(raw)
            except ValueError:
                return default

        def _get_bool(name: str, default: bool) -> bool:
            raw = os.getenv(name)
            if raw is None:
                return default
            return raw.lower() in {"1", "true", "yes", "on"}

        return cls(
            INVOICE_PREFIX=os.getenv("INVOICE_PREFIX", "F"),
            DEFAULT_CURRENCY=os.getenv("DEFAULT_CURRENCY", "EUR"),
            DEFAULT_PAGE_SIZE=_get_int("DEFAULT_PAGE_SIZE", 30),
            AUDIT_TRAIL_ENABLED=_get_bool("AUDIT_TRAIL_ENABLED", True),
            AUDIT_TRAIL_INVOICE_ENABLED=_get_bool("AUDIT_TRAIL_INVOICE_ENABLED", True),
            AUDIT_TRAIL_CUSTOMER_ENABLED=_get_bool("AUDIT_TRAIL_CUSTOMER_ENABLED", True),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached Settings instance (singleton pattern)."""
    return Settings.load()


def get_invoice_formatter():
    """Formatter bound to the configured display prefix."""
    from ..services.invoice_numbering import InvoiceFormatter
    return InvoiceFormatter(get_settings().INVOICE_PREFIX)


__all__ = ["Settings", "get_settings", "get_invoice_formatter"]
