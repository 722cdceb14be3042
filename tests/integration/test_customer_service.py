import pytest

from clinic_billing.services import customer_service
from clinic_billing.utils.errors import CustomerNotFound, DuplicateTaxId, ValidationError

pytestmark = pytest.mark.integration


def _customer(**overrides):
    data = {
        "first_name": "Ana",
        "last_name": "López",
        "tax_id": "12345678z",
        "email": "ana@example.com",
        "phone": "600123123",
        "billing_address": "Calle Mayor 1",
    }
    data.update(overrides)
    return data


@pytest.mark.asyncio
async def test_create_normalizes_tax_id_and_full_name(db_session):
    created = await customer_service.create_customer(db_session, _customer())
    assert created["tax_id"] == "12345678Z"
    assert created["full_name"] == "Ana López"
    assert created["id"] is not None


@pytest.mark.asyncio
async def test_duplicate_tax_id_is_rejected(db_session):
    await customer_service.create_customer(db_session, _customer())
    with pytest.raises(DuplicateTaxId) as ei:
        await customer_service.create_customer(db_session, _customer(first_name="Otra", tax_id=" 12345678Z "))
    assert ei.value.code == "error_customer_tax_id_duplicate"


@pytest.mark.asyncio
async def test_create_requires_names_and_tax_id(db_session):
    with pytest.raises(ValidationError) as ei:
        await customer_service.create_customer(db_session, _customer(last_name="", tax_id=None))
    assert ei.value.details == {"fields": ["last_name", "tax_id"]}


@pytest.mark.asyncio
async def test_find_or_create_reuses_existing(db_session):
    created = await customer_service.create_customer(db_session, _customer())
    found = await customer_service.find_or_create_by_tax_id(
        db_session, tax_id="12345678Z", full_name="Someone Else")
    assert found.id == created["id"]
    assert found.full_name == "Ana López"


@pytest.mark.asyncio
async def test_find_or_create_splits_name(db_session):
    customer = await customer_service.find_or_create_by_tax_id(
        db_session, tax_id="X1234567L", full_name="Luis Pérez García", billing_address="Calle Sol 2")
    await db_session.commit()
    assert (customer.first_name, customer.last_name) == ("Luis", "Pérez García")
    assert customer.full_name == "Luis Pérez García"


@pytest.mark.asyncio
async def test_update_changes_fields_and_keeps_full_name_in_sync(db_session):
    created = await customer_service.create_customer(db_session, _customer())
    updated = await customer_service.update_customer(
        db_session, created["id"], {"last_name": "López Ruiz", "phone": "611000000"})
    assert updated["full_name"] == "Ana López Ruiz"
    assert updated["phone"] == "611000000"
    assert updated["email"] == "ana@example.com"


@pytest.mark.asyncio
async def test_update_to_taken_tax_id_is_rejected(db_session):
    await customer_service.create_customer(db_session, _customer())
    other = await customer_service.create_customer(db_session, _customer(tax_id="X1234567L"))
    with pytest.raises(DuplicateTaxId):
        await customer_service.update_customer(db_session, other["id"], {"tax_id": "12345678z"})


@pytest.mark.asyncio
async def test_list_search(db_session):
    await customer_service.create_customer(db_session, _customer())
    await customer_service.create_customer(db_session, _customer(
        first_name="Luis", last_name="Pérez", tax_id="X1234567L"))
    assert [c["first_name"] for c in await customer_service.list_customers(db_session)] == ["Ana", "Luis"]
    assert [c["first_name"] for c in await customer_service.list_customers(db_session, search="x123")] == ["Luis"]
    assert [c["first_name"] for c in await customer_service.list_customers(db_session, search="ana l")] == ["Ana"]


@pytest.mark.asyncio
async def test_invoice_prefill(db_session):
    created = await customer_service.create_customer(db_session, _customer(email=None))
    prefill = await customer_service.get_invoice_prefill(db_session, created["id"])
    assert prefill == {
        "full_name": "Ana López",
        "tax_id": "12345678Z",
        "email": "",
        "phone": "600123123",
        "address": "Calle Mayor 1",
    }


@pytest.mark.asyncio
async def test_unknown_customer(db_session):
    with pytest.raises(CustomerNotFound):
        await customer_service.get_customer(db_session, 404)
