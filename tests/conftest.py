"""Test configuration and fixtures.

Environment Variables:
    TESTING=true      -> activates test-oriented code paths (file-based SQLite)
    TEST_DB_URL=...   -> overrides the async database URL used under TESTING

Every test that touches the database gets a freshly created schema
(``drop_all`` + ``create_all``) so counters, invoices and audit entries never
leak between tests.
"""
import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

# Flag test mode early, before the application modules build their engine
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("FAST_TESTS", "1")

from clinic_billing.config.database import (  # noqa: E402
    AsyncSessionLocal,
    create_database_tables_async,
    drop_database_tables_async,
)
from clinic_billing.config.settings import get_settings  # noqa: E402
from clinic_billing.main import app  # noqa: E402


@pytest_asyncio.fixture
async def _fresh_schema() -> AsyncGenerator[None, None]:
    await drop_database_tables_async()
    await create_database_tables_async()
    yield


@pytest_asyncio.fixture
async def db_session(_fresh_schema) -> AsyncGenerator[AsyncSession, None]:  # noqa: D401
    """Async session bound to the test database."""
    async with AsyncSessionLocal() as session:
        yield session


@pytest_asyncio.fixture
async def async_client(_fresh_schema) -> AsyncGenerator[AsyncClient, None]:  # noqa: D401
    """Async HTTP client for tests."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def settings_env(monkeypatch):
    """Set environment overrides and reload the cached settings around a test."""
    def _apply(**overrides: str):
        for key, value in overrides.items():
            monkeypatch.setenv(key, value)
        get_settings.cache_clear()
        return get_settings()

    yield _apply
    monkeypatch.undo()
    get_settings.cache_clear()


@pytest.fixture
def invoice_payload():
    """Representative invoice create payload (camelCase, as the frontend sends it)."""
    def _make(**overrides):
        payload = {
            "fullName": "Ana López",
            "address": "Calle Mayor 1, Madrid",
            "phone": "600123123",
            "email": "ana@example.com",
            "date": "2025-03-10T10:00:00Z",
            "lines": [
                {"concept": "Sesión fisioterapia", "description": "Espalda", "quantity": 2, "price": 40.0},
            ],
        }
        payload.update(overrides)
        return payload

    return _make


def _register_markers(config):  # noqa: D401
    """Internal helper to register custom markers (invoked from hook)."""
    markers = [
        ("contract", "mark test as a contract test"),
        ("integration", "mark test as an integration test"),
        ("unit", "mark test as a unit test"),
        ("slow", "mark test as slow running"),
    ]
    for name, desc in markers:
        config.addinivalue_line("markers", f"{name}: {desc}")


def pytest_configure(config):  # noqa: D401
    """Pytest hook: register custom markers."""
    _register_markers(config)
