import pytest
from httpx import AsyncClient

pytestmark = [pytest.mark.contract]


@pytest.mark.asyncio
async def test_root(async_client: AsyncClient):
    resp = await async_client.get("/")
    assert resp.status_code == 200
    assert resp.json()["data"]["health"] == "/api/v1/system/health"


@pytest.mark.asyncio
async def test_health(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/system/health")
    assert resp.status_code == 200
    assert resp.json()["data"] == {"ok": True}
    assert resp.headers["X-Response-Time"].endswith("ms")


@pytest.mark.asyncio
async def test_readiness_reports_database(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/system/readiness")
    assert resp.status_code == 200
    db = resp.json()["data"]["database"]
    assert db["status"] == "healthy"
    assert db["connection"] is True


@pytest.mark.asyncio
async def test_request_id_is_echoed(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/system/health", headers={"X-Request-ID": "abc-123"})
    assert resp.headers["X-Request-ID"] == "abc-123"


@pytest.mark.asyncio
async def test_unknown_route_uses_error_envelope(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/nope")
    assert resp.status_code == 404
    body = resp.json()
    assert body["status"] == "error"
    assert body["error"]["code"] == "HTTP_ERROR"
