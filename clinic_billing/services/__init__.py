"""Service layer package.

Business rules for invoices, customers, counters, the audit trail and the
event store. Services raise ``utils.errors`` exceptions and never touch HTTP objects.
"""

__all__ = [
    "audit_service",
    "counter_service",
    "customer_service",
    "event_store",
    "invoice_numbering",
    "invoice_service",
]
