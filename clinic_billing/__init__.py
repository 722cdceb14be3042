"""Clinic billing backend: invoices, invoice numbering and customers."""

__version__ = "1.0.0"
