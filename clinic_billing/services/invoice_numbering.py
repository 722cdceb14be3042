"""Invoice number sequencing rules.

Stored invoice numbers are 10-digit strings ``{year:4}{sequence:6}``. Only the
last six digits take part in sequencing; the year prefix is ignored when
comparing against already-used numbers, so numbers from different years share
one sequence space.

Examples:
>>> InvoiceNumberValidator.validate("2025000001", [])
True
>>> InvoiceNumberValidator.validate_with_reason("2025000005", ["2025000001"]).reason.value
'invoice_number_out_of_sequence'
>>> InvoiceFormatter("F").format_number("2025000001")
'F2025000001'
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Set

__all__ = [
    "InvoiceNumberError",
    "InvoiceNumberValidationResult",
    "InvoiceNumberValidator",
    "InvoiceFormatter",
    "InvoiceNumberGaps",
    "find_invoice_number_gaps",
    "format_invoice_number",
]

_NUMBER_RE = re.compile(r"[0-9]{10}")
_LEADING_INT_RE = re.compile(r"[ \t\n\r\v\f]*([+-]?[0-9]+)")
# ASCII blanks and NUL only; NBSP and other Unicode spaces are kept
_TRIM_CHARS = " \t\n\r\0\x0b"

YEAR_DIGITS = 4
SEQUENCE_DIGITS = 6


class InvoiceNumberError(str, Enum):
    """Rejection reasons, stable identifiers for the translation layer."""
    REQUIRED = "invoice_number_required"
    INVALID_FORMAT = "invoice_number_invalid_format"
    DUPLICATE = "invoice_number_duplicate"
    OUT_OF_SEQUENCE = "invoice_number_out_of_sequence"


@dataclass(frozen=True)
class InvoiceNumberValidationResult:
    is_valid: bool
    reason: Optional[InvoiceNumberError] = None

    @classmethod
    def valid(cls) -> "InvoiceNumberValidationResult":
        return cls(True, None)

    @classmethod
    def invalid(cls, reason: InvoiceNumberError) -> "InvoiceNumberValidationResult":
        return cls(False, reason)


def _sequence_of(number: str) -> int:
    return int(number[YEAR_DIGITS:])


def _is_ten_digits(value: str) -> bool:
    return _NUMBER_RE.fullmatch(value) is not None


class InvoiceNumberValidator:
    """Decide whether a candidate invoice number may be accepted.

    Rules, in order:
      - blank candidate -> ``invoice_number_required``
      - not exactly 10 ASCII digits, or sequence part is zero -> ``invoice_number_invalid_format``
      - sequence already used by an existing number -> ``invoice_number_duplicate``
      - sequence is ``max + 1`` or any unused value below ``max`` -> valid
      - anything above ``max + 1`` -> ``invoice_number_out_of_sequence``

    Malformed entries in ``existing`` are ignored rather than reported.
    """

    @classmethod
    def validate(cls, candidate: str, existing: Iterable[str]) -> bool:
        return cls.validate_with_reason(candidate, existing).is_valid

    @classmethod
    def validate_with_reason(cls, candidate: str, existing: Iterable[str]) -> InvoiceNumberValidationResult:
        if candidate.strip(_TRIM_CHARS) == "":
            return InvoiceNumberValidationResult.invalid(InvoiceNumberError.REQUIRED)

        if not _is_ten_digits(candidate):
            return InvoiceNumberValidationResult.invalid(InvoiceNumberError.INVALID_FORMAT)

        sequence = _sequence_of(candidate)
        if sequence <= 0:
            return InvoiceNumberValidationResult.invalid(InvoiceNumberError.INVALID_FORMAT)

        sequences = cls._extract_sequences(existing)
        if sequence in sequences:
            return InvoiceNumberValidationResult.invalid(InvoiceNumberError.DUPLICATE)

        max_sequence = max(sequences) if sequences else 0
        if sequence == max_sequence + 1:
            return InvoiceNumberValidationResult.valid()

        # Backfill: any unused sequence below the current maximum is accepted.
        if sequence <= max_sequence:
            return InvoiceNumberValidationResult.valid()

        return InvoiceNumberValidationResult.invalid(InvoiceNumberError.OUT_OF_SEQUENCE)

    @staticmethod
    def _extract_sequences(existing: Iterable[str]) -> Set[int]:
        sequences: Set[int] = set()
        for number in existing:
            number = number.strip(_TRIM_CHARS)
            if not number or not _is_ten_digits(number):
                continue
            sequence = _sequence_of(number)
            if sequence > 0:
                sequences.add(sequence)
        return sequences


class InvoiceFormatter:
    """Add or remove the display prefix on stored invoice numbers."""

    def __init__(self, prefix: str):
        self._prefix = prefix

    @property
    def prefix(self) -> str:
        return self._prefix

    def get_prefix(self) -> str:
        return self._prefix

    def format_number(self, number: str) -> str:
        """``"2025000001"`` -> ``"F2025000001"``."""
        return self._prefix + number

    def strip_prefix(self, formatted: str) -> str:
        """``"F2025000001"`` -> ``"2025000001"``; values without the prefix pass through."""
        if formatted.startswith(self._prefix):
            return formatted[len(self._prefix):]
        return formatted


# ------------------------------- Gap report -------------------------------- #


@dataclass(frozen=True)
class InvoiceNumberGaps:
    year: int
    total_invoices: int
    total_gaps: int
    gaps: List[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "year": self.year,
            "total_invoices": self.total_invoices,
            "total_gaps": self.total_gaps,
            "gaps": list(self.gaps),
        }


def format_invoice_number(year: int, sequence: int) -> str:
    return f"{year}{sequence:0{SEQUENCE_DIGITS}d}"


def _leading_int(value: str) -> int:
    # Integer value of the leading digits, 0 when there are none.
    m = _LEADING_INT_RE.match(value)
    return int(m.group(1)) if m else 0


def _lenient_sequence(number: str) -> int:
    if len(number) >= SEQUENCE_DIGITS:
        sequence = _leading_int(number[YEAR_DIGITS:])
        if sequence > 0:
            return sequence
    return _leading_int(number)


def find_invoice_number_gaps(year: int, numbers: Iterable[str]) -> InvoiceNumberGaps:
    """List the sequence numbers missing between 1 and the highest issued one.

    Extraction is more forgiving than :class:`InvoiceNumberValidator` so legacy
    numbers that are not exactly 10 digits still count toward the report.
    """
    sequences: Set[int] = set()
    for number in numbers:
        number = number.strip(_TRIM_CHARS)
        if not number:
            continue
        sequence = _lenient_sequence(number)
        if sequence > 0:
            sequences.add(sequence)

    if not sequences:
        return InvoiceNumberGaps(year=year, total_invoices=0, total_gaps=0, gaps=[])

    missing = [seq for seq in range(1, max(sequences) + 1) if seq not in sequences]
    return InvoiceNumberGaps(
        year=year,
        total_invoices=len(sequences),
        total_gaps=len(missing),
        gaps=[format_invoice_number(year, seq) for seq in missing],
    )
