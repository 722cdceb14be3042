from datetime import datetime, UTC

import pytest

from clinic_billing.services import audit_service, event_store
from clinic_billing.services.customer_service import split_full_name

pytestmark = pytest.mark.unit


def test_diff_reports_changed_fields_only():
    before = {"number": "2025000001", "amount": 80.0, "phone": None}
    after = {"number": "2025000002", "amount": 80.0, "phone": "600"}
    assert audit_service.diff(before, after) == {
        "number": ["2025000001", "2025000002"],
        "phone": [None, "600"],
    }


def test_diff_of_creation_lists_every_field():
    changes = audit_service.diff({}, {"a": 1, "b": None, "c": "x"})
    # None -> None is not a change
    assert changes == {"a": [None, 1], "c": [None, "x"]}


def test_diff_serializes_datetimes():
    when = datetime(2025, 3, 10, 10, 0, tzinfo=UTC)
    assert audit_service.diff({}, {"date": when}) == {"date": [None, when.isoformat()]}


def test_audit_toggles(settings_env):
    settings_env(AUDIT_TRAIL_INVOICE_ENABLED="false")
    assert audit_service.is_enabled("Invoice") is False
    assert audit_service.is_enabled("Customer") is True

    settings_env(AUDIT_TRAIL_ENABLED="false")
    assert audit_service.is_enabled("Customer") is False
    assert audit_service.is_enabled() is False


def test_record_change_skips_when_nothing_changed():
    snap = {"number": "2025000001"}
    # The session is never touched on the no-op path
    assert audit_service.record_change(None, "Invoice", 1, "updated", snap, dict(snap)) is None


@pytest.mark.parametrize("full_name,expected", [
    ("Ana", ("Ana", "")),
    ("Ana María López", ("Ana", "María López")),
    ("  Luis   Pérez ", ("Luis", "Pérez")),
    ("", ("", "")),
])
def test_split_full_name(full_name, expected):
    assert split_full_name(full_name) == expected


@pytest.mark.parametrize("entity_type,operation,expected", [
    ("Invoice", audit_service.OPERATION_CREATED, "InvoiceCreated"),
    ("Invoice", audit_service.OPERATION_UPDATED, "InvoiceUpdated"),
    ("Customer", audit_service.OPERATION_UPDATED, "CustomerUpdated"),
])
def test_event_names(entity_type, operation, expected):
    assert event_store.event_name(entity_type, operation) == expected
