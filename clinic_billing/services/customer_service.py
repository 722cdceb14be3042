from typing import Any, Dict, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.database import Customer
from ..utils.errors import CustomerNotFound, DuplicateTaxId, ValidationError
from . import audit_service

# Customer service.
# Responsibilities:
# - Create / update customers (tax id is unique)
# - Find-or-create by tax id when an invoice names a new billing party
# - List with name / tax id search

_EDITABLE_FIELDS = ("first_name", "last_name", "tax_id", "email", "phone", "billing_address")


def split_full_name(full_name: str) -> Tuple[str, str]:
    """``"Ana María López"`` -> ``("Ana", "María López")``."""
    parts = (full_name or "").strip().split(None, 1)
    if not parts:
        return "", ""
    if len(parts) == 1:
        return parts[0], ""
    return parts[0], parts[1]


def _snapshot(customer: Customer) -> Dict[str, Any]:
    return {f: getattr(customer, f) for f in _EDITABLE_FIELDS}


def _serialize_customer(c: Customer) -> Dict[str, Any]:
    return {
        "id": c.id,
        "first_name": c.first_name,
        "last_name": c.last_name,
        "full_name": c.full_name,
        "tax_id": c.tax_id,
        "email": c.email,
        "phone": c.phone,
        "billing_address": c.billing_address,
        "created_at": c.created_at.isoformat() if c.created_at else None,
        "updated_at": c.updated_at.isoformat() if c.updated_at else None,
    }


def _require(payload: Dict[str, Any], *fields: str) -> None:
    missing = [f for f in fields if not str(payload.get(f) or "").strip()]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", details={"fields": missing})


async def find_by_tax_id(db: AsyncSession, tax_id: str) -> Optional[Customer]:
    result = await db.execute(select(Customer).where(Customer.tax_id == tax_id.strip().upper()))
    return result.scalar_one_or_none()


async def find_or_create_by_tax_id(
    db: AsyncSession,
    *,
    tax_id: str,
    full_name: str,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    billing_address: Optional[str] = None,
) -> Customer:
    """Return the customer with ``tax_id``, creating it from ``full_name`` if absent.

    Does not commit; the new row is flushed so its id is available to the
    caller's transaction.
    """
    customer = await find_by_tax_id(db, tax_id)
    if customer:
        return customer
    first_name, last_name = split_full_name(full_name)
    customer = Customer(
        first_name=first_name,
        last_name=last_name,
        tax_id=tax_id,
        email=email,
        phone=phone,
        billing_address=billing_address or "",
    )
    db.add(customer)
    await db.flush()
    await audit_service.record_event(db, "Customer", customer.id, audit_service.OPERATION_CREATED,
                                      {}, _snapshot(customer))
    return customer


async def create_customer(db: AsyncSession, payload: Dict[str, Any]) -> Dict[str, Any]:
    _require(payload, "first_name", "last_name", "tax_id")
    if await find_by_tax_id(db, payload["tax_id"]):
        raise DuplicateTaxId(payload["tax_id"])
    customer = Customer(**{f: payload.get(f) for f in _EDITABLE_FIELDS})
    db.add(customer)
    try:
        await db.flush()
        await audit_service.record_event(db, "Customer", customer.id, audit_service.OPERATION_CREATED,
                                          {}, _snapshot(customer))
        await db.commit()
    except IntegrityError as ie:  # concurrent insert of the same tax id
        await db.rollback()
        raise DuplicateTaxId(payload["tax_id"]) from ie
    await db.refresh(customer)
    return _serialize_customer(customer)


async def list_customers(
    db: AsyncSession,
    *,
    search: Optional[str] = None,
    limit: int = 500,
) -> list[Dict[str, Any]]:
    """List customers ordered by last name, first name.

    search: case-insensitive substring match on full name or tax id
    """
    stmt = select(Customer).order_by(Customer.last_name, Customer.first_name).limit(limit)
    if search:
        like = f"%{search.lower()}%"
        stmt = stmt.where(or_(func.lower(Customer.full_name).like(like),
                              func.lower(Customer.tax_id).like(like)))
    result = await db.execute(stmt)
    return [_serialize_customer(c) for c in result.scalars().all()]


async def get_customer_model(db: AsyncSession, customer_id: int) -> Customer:
    result = await db.execute(select(Customer).where(Customer.id == customer_id))
    customer = result.scalar_one_or_none()
    if not customer:
        raise CustomerNotFound(customer_id)
    return customer


async def get_customer(db: AsyncSession, customer_id: int) -> Dict[str, Any]:
    return _serialize_customer(await get_customer_model(db, customer_id))


async def update_customer(db: AsyncSession, customer_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
    customer = await get_customer_model(db, customer_id)
    before = _snapshot(customer)
    new_tax_id = payload.get("tax_id")
    if new_tax_id and new_tax_id.strip().upper() != customer.tax_id:
        other = await find_by_tax_id(db, new_tax_id)
        if other and other.id != customer.id:
            raise DuplicateTaxId(new_tax_id)
    for f in _EDITABLE_FIELDS:
        if f in payload and payload[f] is not None:
            setattr(customer, f, payload[f])
    await audit_service.record_event(db, "Customer", customer.id, audit_service.OPERATION_UPDATED,
                                      before, _snapshot(customer))
    await db.commit()
    await db.refresh(customer)
    return _serialize_customer(customer)


async def get_invoice_prefill(db: AsyncSession, customer_id: int) -> Dict[str, Any]:
    """Billing fields of a customer, shaped like an invoice payload."""
    customer = await get_customer_model(db, customer_id)
    return {
        "full_name": customer.full_name,
        "tax_id": customer.tax_id or "",
        "email": customer.email or "",
        "phone": customer.phone or "",
        "address": customer.billing_address or "",
    }
