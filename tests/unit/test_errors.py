import pytest  # noqa: F401

from clinic_billing.utils.errors import (
    ERROR_CODES,
    CustomerNotFound,
    DuplicateTaxId,
    InvoiceNotFound,
    InvoiceNumberRejected,
    ValidationError,
    error_payload,
)

pytestmark = pytest.mark.unit


def test_error_payload_basic():
    p = error_payload(ERROR_CODES["validation"], "Invalid data", details={
                      "field": "x"}, path="/api/v1/invoices")
    assert p["status"] == "error"
    assert p["error"]["code"] == ERROR_CODES["validation"]
    assert p["error"]["details"] == {"field": "x"}
    assert p["path"] == "/api/v1/invoices"
    assert isinstance(p["timestamp"], float)


def test_error_payload_omits_empty_details_and_path():
    p = error_payload("X", "msg")
    assert "details" not in p["error"]
    assert "path" not in p


def test_not_found_errors_map_to_404():
    assert InvoiceNotFound(7).status_code == 404
    assert InvoiceNotFound(7).code == ERROR_CODES["invoice_not_found"]
    assert CustomerNotFound(3).details == {"id": 3}


def test_duplicate_tax_id_is_conflict():
    exc = DuplicateTaxId("12345678Z")
    assert exc.status_code == 409
    assert exc.code == "error_customer_tax_id_duplicate"
    assert "12345678Z" in exc.message


def test_validation_error_accepts_custom_code():
    exc = ValidationError("Address is required.", code="invoice_address_required")
    assert exc.status_code == 400
    assert exc.code == "invoice_address_required"


def test_rejected_number_uses_reason_as_code():
    exc = InvoiceNumberRejected("2025000009", "invoice_number_out_of_sequence")
    assert exc.status_code == 400
    assert exc.code == exc.reason == "invoice_number_out_of_sequence"
    assert exc.details == {"number": "2025000009"}
