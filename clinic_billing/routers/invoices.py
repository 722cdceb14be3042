"""Invoice router: CRUD, number gap report and customer prefill.

Business rules live in ``services.invoice_service``; this module only shapes
input / output. Domain errors propagate to the global handlers in ``main``.
"""
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel, ConfigDict, model_validator
from sqlalchemy.ext.asyncio import AsyncSession

from ..config.database import get_async_db_dependency
from ..config.settings import get_invoice_formatter, get_settings
from ..services import customer_service
from ..services.invoice_numbering import InvoiceFormatter
from ..services.invoice_service import (
    RequestContext,
    create_invoice_service,
    get_invoice_service,
    invoice_number_gaps_service,
    list_invoices_service,
    serialize_invoice,
    update_invoice_service,
)
from ..utils.api_shapes import pagination, success as _success
from ..utils.errors import ValidationError

router = APIRouter()

_KEY_MAP = {
    'fullName': 'full_name',
    'taxId': 'tax_id',
    'invoiceNumber': 'number',
}


class InvoiceLineInput(BaseModel):
    model_config = ConfigDict(extra='ignore')

    concept: Optional[str] = None
    description: Optional[str] = None
    quantity: int = 1
    price: float = 0.0


class InvoiceInput(BaseModel):
    """Create / update payload.

    Required-field checks (name, address, at least one line) are enforced by
    the service so their error codes stay stable across entry points.
    """
    model_config = ConfigDict(extra='ignore')

    date: Optional[datetime] = None
    full_name: Optional[str] = None
    number: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    email: Optional[str] = None
    tax_id: Optional[str] = None
    currency: Optional[str] = None
    lines: List[InvoiceLineInput] = []

    @model_validator(mode="before")
    @classmethod
    def normalize_input(cls, values):  # type: ignore
        """Accept camelCase keys and treat blank strings as missing."""
        if not isinstance(values, dict):
            return values
        for src_key, dest_key in _KEY_MAP.items():
            if src_key in values and dest_key not in values:
                values[dest_key] = values[src_key]
        for key in ('date', 'phone', 'email', 'tax_id', 'currency'):
            if isinstance(values.get(key), str) and values[key].strip() == '':
                values[key] = None
        return values


def _request_context(request: Request) -> RequestContext:
    return RequestContext(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


@router.get("", status_code=status.HTTP_200_OK)
async def list_invoices(
    full_name: Optional[str] = Query(None),
    tax_id: Optional[str] = Query(None),
    number: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    items_per_page: Optional[int] = Query(None, ge=1, le=200),
    db: AsyncSession = Depends(get_async_db_dependency),
    formatter: InvoiceFormatter = Depends(get_invoice_formatter),
):
    page_size = items_per_page or get_settings().DEFAULT_PAGE_SIZE
    invoices, total = await list_invoices_service(
        db, full_name=full_name, tax_id=tax_id, number=number,
        page=page, items_per_page=page_size,
    )
    return _success({
        "invoices": [serialize_invoice(i, formatter) for i in invoices],
        "pagination": pagination(page, page_size, total),
    })


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_invoice(
    request: Request,
    body: InvoiceInput,
    db: AsyncSession = Depends(get_async_db_dependency),
    formatter: InvoiceFormatter = Depends(get_invoice_formatter),
):
    invoice = await create_invoice_service(db, body.model_dump(), _request_context(request))
    return _success(serialize_invoice(invoice, formatter))


@router.get("/gaps", status_code=status.HTTP_200_OK)
async def invoice_number_gaps(
    year: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_async_db_dependency),
):
    """Sequence numbers missing between 1 and the highest number issued in ``year``."""
    if year is None or year <= 0:
        year = datetime.now(UTC).year
    gaps = await invoice_number_gaps_service(db, year)
    return _success(gaps.as_dict())


@router.get("/prefill", status_code=status.HTTP_200_OK)
async def invoice_prefill(
    customer_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_async_db_dependency),
):
    if not customer_id:
        raise ValidationError("customer_id parameter is required")
    return _success(await customer_service.get_invoice_prefill(db, customer_id))


@router.get("/{invoice_id}", status_code=status.HTTP_200_OK)
async def get_invoice(
    invoice_id: int,
    db: AsyncSession = Depends(get_async_db_dependency),
    formatter: InvoiceFormatter = Depends(get_invoice_formatter),
):
    invoice = await get_invoice_service(db, invoice_id)
    return _success(serialize_invoice(invoice, formatter))


@router.put("/{invoice_id}", status_code=status.HTTP_200_OK)
async def update_invoice(
    request: Request,
    invoice_id: int,
    body: InvoiceInput,
    db: AsyncSession = Depends(get_async_db_dependency),
    formatter: InvoiceFormatter = Depends(get_invoice_formatter),
) -> Dict[str, Any]:
    invoice = await update_invoice_service(db, invoice_id, body.model_dump(), _request_context(request))
    return _success(serialize_invoice(invoice, formatter))


__all__ = ["router", "InvoiceInput", "InvoiceLineInput"]
