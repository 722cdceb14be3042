from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, model_validator
from sqlalchemy.ext.asyncio import AsyncSession

from ..config.database import get_async_db_dependency
from ..services import customer_service
from ..utils.api_shapes import success as _success

router = APIRouter()


class CustomerInput(BaseModel):
    model_config = ConfigDict(extra='ignore')

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    tax_id: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    billing_address: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def normalize_input(cls, values):  # type: ignore
        if not isinstance(values, dict):
            return values
        key_map = {
            'firstName': 'first_name',
            'lastName': 'last_name',
            'taxId': 'tax_id',
            'billingAddress': 'billing_address',
        }
        for src_key, dest_key in key_map.items():
            if src_key in values and dest_key not in values:
                values[dest_key] = values[src_key]
        return values


@router.get("", status_code=status.HTTP_200_OK)
async def list_customers(
    search: Optional[str] = None,
    db: AsyncSession = Depends(get_async_db_dependency),
):
    customers = await customer_service.list_customers(db, search=search)
    return _success({"customers": customers})


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_customer(
    body: CustomerInput,
    db: AsyncSession = Depends(get_async_db_dependency),
):
    customer = await customer_service.create_customer(db, body.model_dump())
    return _success({"customer": customer})


@router.get("/{customer_id}", status_code=status.HTTP_200_OK)
async def get_customer(
    customer_id: int,
    db: AsyncSession = Depends(get_async_db_dependency),
):
    return _success({"customer": await customer_service.get_customer(db, customer_id)})


@router.put("/{customer_id}", status_code=status.HTTP_200_OK)
async def update_customer(
    customer_id: int,
    body: CustomerInput,
    db: AsyncSession = Depends(get_async_db_dependency),
):
    customer = await customer_service.update_customer(
        db, customer_id, body.model_dump(exclude_none=True))
    return _success({"customer": customer})
