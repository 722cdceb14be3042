import doctest

import pytest

from clinic_billing.services import invoice_numbering
from clinic_billing.services.invoice_numbering import (
    InvoiceNumberError,
    InvoiceNumberValidationResult,
    InvoiceNumberValidator,
)

pytestmark = pytest.mark.unit


def _reason(candidate, existing):
    return InvoiceNumberValidator.validate_with_reason(candidate, existing).reason


@pytest.mark.parametrize("candidate", ["", "   ", "\t\n", "\x00", " \x0b\r"])
def test_blank_candidate_is_required(candidate):
    assert _reason(candidate, []) == InvoiceNumberError.REQUIRED


@pytest.mark.parametrize("candidate", [
    "202500001",      # 9 digits
    "20250000001",    # 11 digits
    "2025-00001",
    "F2025000001",    # display form, prefix not stripped
    "2025ABCDEF",
    " 2025000001",    # surrounding whitespace is not trimmed for the format check
    "\u00a0",         # NBSP is not a blank
    "２０２５０００００１",  # full-width digits are not ASCII
])
def test_malformed_candidate_is_invalid_format(candidate):
    assert _reason(candidate, []) == InvoiceNumberError.INVALID_FORMAT


@pytest.mark.parametrize("candidate", ["0000000000", "2025000000", "9999000000"])
def test_zero_sequence_is_invalid_format(candidate):
    assert _reason(candidate, []) == InvoiceNumberError.INVALID_FORMAT


def test_first_number_of_empty_history_is_valid():
    result = InvoiceNumberValidator.validate_with_reason("2025000001", [])
    assert result == InvoiceNumberValidationResult.valid()
    assert result.is_valid is True
    assert result.reason is None


def test_exact_duplicate_is_rejected():
    assert _reason("2025000001", ["2025000001"]) == InvoiceNumberError.DUPLICATE


def test_next_in_sequence_is_valid():
    assert InvoiceNumberValidator.validate("2025000002", ["2025000001"]) is True


def test_skipping_ahead_is_out_of_sequence():
    assert _reason("2025000005", ["2025000001"]) == InvoiceNumberError.OUT_OF_SEQUENCE


def test_first_number_above_one_is_out_of_sequence():
    assert _reason("2025000002", []) == InvoiceNumberError.OUT_OF_SEQUENCE


def test_backfill_below_max_ignores_year():
    assert InvoiceNumberValidator.validate("2024000003", ["2025000005"]) is True


def test_sequences_collide_across_years():
    # Only the last six digits take part: 2024/000001 clashes with 2025/000001
    assert _reason("2024000001", ["2025000001"]) == InvoiceNumberError.DUPLICATE


def test_backfill_accepts_any_unused_lower_sequence():
    existing = ["2025000001", "2025000002", "2025000010"]
    assert InvoiceNumberValidator.validate("2025000007", existing) is True
    assert InvoiceNumberValidator.validate("2025000011", existing) is True
    assert _reason("2025000012", existing) == InvoiceNumberError.OUT_OF_SEQUENCE


def test_malformed_existing_entries_are_ignored():
    existing = ["", "   ", "abc", "2025000000", "F2025000009", " 2025000002 "]
    # Only " 2025000002 " survives (trimmed), so max is 2
    assert InvoiceNumberValidator.validate("2025000003", existing) is True
    assert _reason("2025000002", existing) == InvoiceNumberError.DUPLICATE
    assert _reason("2025000004", existing) == InvoiceNumberError.OUT_OF_SEQUENCE


def test_existing_entries_trim_nul_but_not_nbsp():
    existing = ["2025000001\x00", "\u00a02025000002"]
    # NUL is trimmed, NBSP is not, so only sequence 1 counts
    assert _reason("2025000001", existing) == InvoiceNumberError.DUPLICATE
    assert InvoiceNumberValidator.validate("2025000002", existing) is True


def test_existing_may_be_any_iterable():
    existing = (n for n in ["2025000001", "2025000002"])
    assert InvoiceNumberValidator.validate("2025000003", existing) is True


def test_validate_matches_validate_with_reason():
    cases = [("", []), ("2025000001", []), ("2025000001", ["2025000001"]), ("2025000009", [])]
    for candidate, existing in cases:
        assert InvoiceNumberValidator.validate(candidate, existing) == \
            InvoiceNumberValidator.validate_with_reason(candidate, existing).is_valid


def test_reason_codes_are_stable_strings():
    assert [e.value for e in InvoiceNumberError] == [
        "invoice_number_required",
        "invoice_number_invalid_format",
        "invoice_number_duplicate",
        "invoice_number_out_of_sequence",
    ]
    assert InvoiceNumberError.DUPLICATE == "invoice_number_duplicate"


def test_module_doctests():
    failures, _ = doctest.testmod(invoice_numbering)
    assert failures == 0
