"""Models package.

Exposes Base and the model classes for simplified imports.
"""
from .database import (  # noqa: F401
    AuditTrail, Base, Counter, Customer, Invoice, InvoiceLine, StoredEvent,
)
