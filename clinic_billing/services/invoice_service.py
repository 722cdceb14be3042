"""Invoice domain service layer.

Create / update / read logic for invoices, kept free of HTTP concerns: rule
violations raise domain exceptions from ``utils.errors``.

Numbering:
 - New invoices draw ``{year}{seq:06d}`` from the per-year counter
   ``invoices_{year}``; values already taken (e.g. set by hand through an
   update) are skipped.
 - Updates may set any number the sequencing rules accept
   (see ``invoice_numbering.InvoiceNumberValidator``), checked against the
   other invoices dated in the year the number names.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..config.logsetup import bind_context
from ..config.observability import (
    invoice_create_counter,
    invoice_update_counter,
    record_invoice_number_validation,
)
from ..config.settings import get_settings
from ..models.database import Invoice, InvoiceLine
from ..utils.errors import (
    ERROR_CODES,
    DomainError,
    InvoiceNotFound,
    InvoiceNumberRejected,
    ValidationError,
)
from . import audit_service, counter_service, customer_service
from .invoice_numbering import (
    InvoiceFormatter,
    InvoiceNumberError,
    InvoiceNumberGaps,
    InvoiceNumberValidator,
    find_invoice_number_gaps,
)

logger = logging.getLogger(__name__)

# Bounded loops: skipping taken counter values, and re-running a create whose
# commit lost a unique-constraint race.
MAX_NUMBER_SKIPS = 64
MAX_CREATE_RETRIES = 8

_AUDITED_FIELDS = ("number", "date", "amount", "currency", "full_name", "phone",
                   "address", "email", "tax_id", "customer_id")


@dataclass
class RequestContext:
    """Origin of a mutating call, copied into audit entries."""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


# ------------------------------ Payload helpers ------------------------------ #


def normalize_lines(raw_lines: Any) -> List[Dict[str, Any]]:
    """Coerce incoming line dicts to ``concept/description/quantity/price``."""
    lines: List[Dict[str, Any]] = []
    for raw in raw_lines or []:
        if not isinstance(raw, dict):
            continue
        lines.append({
            "concept": raw.get("concept"),
            "description": raw.get("description"),
            "quantity": int(raw.get("quantity") if raw.get("quantity") is not None else 1),
            "price": float(raw.get("price") if raw.get("price") is not None else 0.0),
        })
    return lines


def _validate_payload(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    if not (payload.get("full_name") or "").strip():
        raise ValidationError("Customer name is required.")
    if not (payload.get("address") or "").strip():
        raise ValidationError("Address is required.", code="invoice_address_required")
    lines = normalize_lines(payload.get("lines"))
    if len(lines) < 1:
        raise ValidationError("At least one invoice line is required.", code="invoice_lines_min")
    return lines


def _as_utc(value: Optional[datetime]) -> datetime:
    if value is None:
        return datetime.now(UTC)
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _build_lines(lines: List[Dict[str, Any]]) -> Tuple[List[InvoiceLine], float]:
    built: List[InvoiceLine] = []
    total = 0.0
    for line in lines:
        amount = line["quantity"] * line["price"]
        built.append(InvoiceLine(
            concept=line["concept"],
            description=line["description"],
            quantity=line["quantity"],
            price=line["price"],
            amount=amount,
        ))
        total += amount
    return built, total


def _year_bounds(year: int) -> Tuple[datetime, datetime]:
    return datetime(year, 1, 1, tzinfo=UTC), datetime(year + 1, 1, 1, tzinfo=UTC)


def _number_year(number: str) -> int:
    head = (number or "")[:4]
    return int(head) if head.isdigit() else 0


def _snapshot(invoice: Invoice, lines: Optional[List[InvoiceLine]] = None) -> Dict[str, Any]:
    snap = {f: getattr(invoice, f) for f in _AUDITED_FIELDS}
    # SQLite hands back naive datetimes; compare everything as UTC
    snap["date"] = _as_utc(invoice.date).isoformat() if invoice.date else None
    snap["lines"] = [
        {"concept": ln.concept, "description": ln.description,
         "quantity": ln.quantity, "price": ln.price}
        for ln in (lines if lines is not None else invoice.lines)
    ]
    return snap


# ------------------------------- Repository-ish ------------------------------ #


async def numbers_by_year(db: AsyncSession, year: int, exclude_id: Optional[int] = None) -> List[str]:
    """Numbers of invoices dated within ``year`` (optionally excluding one invoice)."""
    start, end = _year_bounds(year)
    stmt = select(Invoice.number).where(Invoice.date >= start, Invoice.date < end)
    if exclude_id is not None:
        stmt = stmt.where(Invoice.id != exclude_id)
    result = await db.execute(stmt)
    return [n for (n,) in result.all()]


async def _number_taken(db: AsyncSession, number: str, exclude_id: Optional[int] = None) -> bool:
    stmt = select(Invoice.id).where(Invoice.number == number)
    if exclude_id is not None:
        stmt = stmt.where(Invoice.id != exclude_id)
    result = await db.execute(stmt.limit(1))
    return result.scalar_one_or_none() is not None


async def allocate_invoice_number(db: AsyncSession, year: int) -> str:
    name = counter_service.invoice_counter_name(year)
    initial = counter_service.invoice_counter_initial_value(year)
    for _ in range(MAX_NUMBER_SKIPS):
        number = await counter_service.increment_and_get_next(db, name, initial)
        if not await _number_taken(db, number):
            return number
        logger.info("Counter %s issued %s which is already in use; skipping", name, number)
    raise DomainError(ERROR_CODES["invoice_number_unavailable"],
                      f"Could not allocate a free invoice number for {year}")


# --------------------------------- Operations -------------------------------- #


async def get_invoice_service(db: AsyncSession, invoice_id: int) -> Invoice:
    result = await db.execute(
        select(Invoice)
        .options(selectinload(Invoice.lines))
        .where(Invoice.id == invoice_id)
        .execution_options(populate_existing=True)
    )
    invoice = result.scalar_one_or_none()
    if not invoice:
        raise InvoiceNotFound(invoice_id)
    return invoice


async def create_invoice_service(
    db: AsyncSession,
    payload: Dict[str, Any],
    ctx: Optional[RequestContext] = None,
) -> Invoice:
    """Create an invoice with lines, a freshly allocated number and optional customer link.

    Raises:
        ValidationError: missing name / address or no lines
        DomainError: no free number could be allocated
    """
    lines = _validate_payload(payload)
    ctx = ctx or RequestContext()
    invoice_date = _as_utc(payload.get("date"))
    currency = payload.get("currency") or get_settings().DEFAULT_CURRENCY

    for attempt in range(1, MAX_CREATE_RETRIES + 1):
        number = None
        try:
            customer_id = None
            if payload.get("tax_id"):
                customer = await customer_service.find_or_create_by_tax_id(
                    db,
                    tax_id=payload["tax_id"],
                    full_name=payload["full_name"],
                    email=payload.get("email"),
                    phone=payload.get("phone"),
                    billing_address=payload.get("address"),
                )
                customer_id = customer.id

            number = await allocate_invoice_number(db, invoice_date.year)
            built_lines, total = _build_lines(lines)
            invoice = Invoice(
                number=number,
                date=invoice_date,
                amount=total,
                currency=currency,
                full_name=payload["full_name"],
                phone=payload.get("phone"),
                address=payload.get("address"),
                email=payload.get("email"),
                tax_id=payload.get("tax_id"),
                customer_id=customer_id,
                lines=built_lines,
            )
            db.add(invoice)
            await db.flush()
            await audit_service.record_event(
                db, "Invoice", invoice.id, audit_service.OPERATION_CREATED,
                {}, _snapshot(invoice, built_lines),
                ip_address=ctx.ip_address, user_agent=ctx.user_agent,
            )
            await db.commit()
            invoice_create_counter.inc()
            logger.info("Invoice created", extra={"invoice_id": invoice.id, "invoice_number": number})
            return await get_invoice_service(db, invoice.id)
        except IntegrityError:
            await db.rollback()
            # Only a concurrent creator committing the same number is retried
            if number is None or not await _number_taken(db, number) or attempt == MAX_CREATE_RETRIES:
                raise
            logger.warning("Invoice number collision on create (attempt %d); retrying", attempt)
    raise RuntimeError("Failed to create invoice after retries (unexpected fallthrough)")


async def update_invoice_service(
    db: AsyncSession,
    invoice_id: int,
    payload: Dict[str, Any],
    ctx: Optional[RequestContext] = None,
) -> Invoice:
    """Replace an invoice's billing data, number and lines.

    Raises:
        InvoiceNotFound: unknown id
        ValidationError: missing name / address or no lines
        InvoiceNumberRejected: number refused by the sequencing rules
    """
    ctx = ctx or RequestContext()
    invoice = await get_invoice_service(db, invoice_id)
    lines = _validate_payload(payload)

    candidate = payload.get("number") or ""
    year = _number_year(candidate)
    existing = await numbers_by_year(db, year, exclude_id=invoice.id) if year > 0 else []
    result = InvoiceNumberValidator.validate_with_reason(candidate, existing)
    record_invoice_number_validation(result)
    log = bind_context(logger, invoice_id=invoice.id, invoice_number=candidate)
    if not result.is_valid:
        log.info("Invoice number rejected: %s", result.reason.value)
        raise InvoiceNumberRejected(candidate, result.reason.value)

    before = _snapshot(invoice)

    customer_id = None
    if payload.get("tax_id"):
        customer = await customer_service.find_or_create_by_tax_id(
            db,
            tax_id=payload["tax_id"],
            full_name=payload["full_name"],
            email=payload.get("email"),
            phone=payload.get("phone"),
            billing_address=payload.get("address"),
        )
        customer_id = customer.id

    invoice.number = candidate
    invoice.full_name = payload["full_name"]
    invoice.phone = payload.get("phone")
    invoice.address = payload.get("address")
    invoice.email = payload.get("email")
    invoice.tax_id = payload.get("tax_id")
    invoice.currency = payload.get("currency") or invoice.currency or get_settings().DEFAULT_CURRENCY
    invoice.customer_id = customer_id
    if payload.get("date") is not None:
        invoice.date = _as_utc(payload["date"])

    built_lines, total = _build_lines(lines)
    invoice.lines = built_lines
    invoice.amount = total

    try:
        await db.flush()
    except IntegrityError as ie:
        await db.rollback()
        if await _number_taken(db, candidate, exclude_id=invoice_id):  # claimed by a concurrent update
            raise InvoiceNumberRejected(candidate, InvoiceNumberError.DUPLICATE.value) from ie
        raise
    await audit_service.record_event(
        db, "Invoice", invoice.id, audit_service.OPERATION_UPDATED,
        before, _snapshot(invoice, built_lines),
        ip_address=ctx.ip_address, user_agent=ctx.user_agent,
    )
    await db.commit()
    invoice_update_counter.inc()
    log.info("Invoice updated")
    return await get_invoice_service(db, invoice.id)


async def list_invoices_service(
    db: AsyncSession,
    *,
    full_name: Optional[str] = None,
    tax_id: Optional[str] = None,
    number: Optional[str] = None,
    page: int = 1,
    items_per_page: int = 30,
) -> Tuple[List[Invoice], int]:
    """Filtered page of invoices (newest first) and the total match count.

    Filters are case-insensitive substring matches.
    """
    conditions = []
    if full_name:
        conditions.append(func.lower(Invoice.full_name).like(f"%{full_name.lower()}%"))
    if tax_id:
        conditions.append(func.lower(Invoice.tax_id).like(f"%{tax_id.lower()}%"))
    if number:
        conditions.append(func.lower(Invoice.number).like(f"%{number.lower()}%"))

    count_stmt = select(func.count(Invoice.id)).where(*conditions)
    total = (await db.execute(count_stmt)).scalar_one()

    stmt = (
        select(Invoice)
        .options(selectinload(Invoice.lines))
        .where(*conditions)
        .order_by(Invoice.date.desc(), Invoice.number.desc())
        .offset((page - 1) * items_per_page)
        .limit(items_per_page)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all()), int(total)


async def invoice_number_gaps_service(db: AsyncSession, year: int) -> InvoiceNumberGaps:
    numbers = await numbers_by_year(db, year)
    return find_invoice_number_gaps(year, numbers)


def serialize_invoice(invoice: Invoice, formatter: InvoiceFormatter) -> Dict[str, Any]:
    return {
        "id": invoice.id,
        "number": invoice.number,
        "formatted_number": formatter.format_number(invoice.number),
        "date": invoice.date.isoformat() if invoice.date else None,
        "amount": invoice.amount,
        "currency": invoice.currency,
        "full_name": invoice.full_name,
        "phone": invoice.phone,
        "address": invoice.address,
        "email": invoice.email,
        "tax_id": invoice.tax_id,
        "customer_id": invoice.customer_id,
        "customer": f"/api/v1/customers/{invoice.customer_id}" if invoice.customer_id else None,
        "lines": [
            {
                "id": ln.id,
                "concept": ln.concept,
                "description": ln.description,
                "quantity": ln.quantity,
                "price": ln.price,
                "amount": ln.amount,
            }
            for ln in invoice.lines
        ],
        "created_at": invoice.created_at.isoformat() if invoice.created_at else None,
    }
