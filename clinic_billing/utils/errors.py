"""Centralized error response helpers and domain exceptions.

Services raise :class:`DomainError` subclasses; the application maps them to the
standard error envelope (see ``main.setup_exception_handlers``).
"""
from __future__ import annotations
from typing import Any, Dict
import time

ERROR_CODES = {
    "validation": "VALIDATION_ERROR",
    "not_found": "NOT_FOUND",
    "invoice_not_found": "INVOICE_NOT_FOUND",
    "customer_not_found": "CUSTOMER_NOT_FOUND",
    "customer_tax_id_duplicate": "error_customer_tax_id_duplicate",
    "invoice_number_unavailable": "INVOICE_NUMBER_UNAVAILABLE",
    "db": "DB_ERROR",
    "internal": "INTERNAL_SERVER_ERROR",
}


def error_payload(code: str, message: str, details: Any | None = None, path: str | None = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "status": "error",
        "error": {
            "code": code,
            "message": message,
        },
        "timestamp": time.time(),
    }
    if details is not None:
        payload["error"]["details"] = details
    if path:
        payload["path"] = path
    return payload


class DomainError(Exception):
    """Base domain error storing standardized fields."""
    status_code = 400

    def __init__(self, code: str, message: str, details: Any | None = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details


class ValidationError(DomainError):
    """Incoming payload failed a business rule."""

    def __init__(self, message: str, code: str = ERROR_CODES["validation"], details: Any | None = None):
        super().__init__(code, message, details)


class InvoiceNotFound(DomainError):
    status_code = 404

    def __init__(self, invoice_id: Any):
        super().__init__(ERROR_CODES["invoice_not_found"], "Invoice not found", {"id": invoice_id})


class CustomerNotFound(DomainError):
    status_code = 404

    def __init__(self, customer_id: Any):
        super().__init__(ERROR_CODES["customer_not_found"], "Customer not found", {"id": customer_id})


class DuplicateTaxId(DomainError):
    status_code = 409

    def __init__(self, tax_id: str):
        super().__init__(ERROR_CODES["customer_tax_id_duplicate"],
                         f"A customer with tax id {tax_id} already exists")


class InvoiceNumberRejected(DomainError):
    """Candidate invoice number refused by the sequencing rules.

    The code is the validator reason (e.g. ``invoice_number_duplicate``) so
    clients can translate it directly.
    """

    def __init__(self, number: str, reason: str):
        super().__init__(reason, f"Invoice number {number!r} rejected: {reason}", {"number": number})
        self.reason = reason


__all__ = [
    "ERROR_CODES",
    "error_payload",
    "DomainError",
    "ValidationError",
    "InvoiceNotFound",
    "CustomerNotFound",
    "DuplicateTaxId",
    "InvoiceNumberRejected",
]
