"""Prometheus collectors for the invoicing domain.

Collectors are module-level singletons registered on the default registry,
exposed by ``routers/metrics.py``.
"""
from __future__ import annotations

from prometheus_client import Counter, Histogram

APP_REQUEST_COUNT = Counter(
    "app_requests_total",
    "Total HTTP requests processed",
    ["method", "path", "status"],
)
APP_REQUEST_LATENCY = Histogram(
    "app_request_duration_seconds",
    "Request latency in seconds",
    ["method", "path", "status"],
)

invoice_create_counter = Counter(
    "invoices_created_total",
    "Total number of invoices created",
)
invoice_update_counter = Counter(
    "invoices_updated_total",
    "Total number of invoices updated",
)
invoice_number_validation_counter = Counter(
    "invoice_number_validation_total",
    "Invoice number validations by outcome (valid or rejection reason)",
    ["result"],
)


def record_invoice_number_validation(result) -> None:
    """Count one validator outcome (``InvoiceNumberValidationResult``)."""
    label = "valid" if result.is_valid else str(getattr(result.reason, "value", result.reason))
    invoice_number_validation_counter.labels(label).inc()


__all__ = [
    "APP_REQUEST_COUNT",
    "APP_REQUEST_LATENCY",
    "invoice_create_counter",
    "invoice_update_counter",
    "invoice_number_validation_counter",
    "record_invoice_number_validation",
]
