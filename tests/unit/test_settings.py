import pytest

from clinic_billing.config.settings import Settings, get_settings

pytestmark = pytest.mark.unit


def test_defaults(settings_env):
    s = settings_env()
    assert s.INVOICE_PREFIX == "F"
    assert s.DEFAULT_CURRENCY == "EUR"
    assert s.DEFAULT_PAGE_SIZE == 30
    assert s.AUDIT_TRAIL_ENABLED is True


def test_environment_overrides(settings_env):
    s = settings_env(INVOICE_PREFIX="FAC", DEFAULT_PAGE_SIZE="10", AUDIT_TRAIL_CUSTOMER_ENABLED="off")
    assert s.INVOICE_PREFIX == "FAC"
    assert s.DEFAULT_PAGE_SIZE == 10
    assert s.AUDIT_TRAIL_CUSTOMER_ENABLED is False
    assert s.AUDIT_TRAIL_INVOICE_ENABLED is True


def test_bad_integer_falls_back_to_default(settings_env):
    assert settings_env(DEFAULT_PAGE_SIZE="lots").DEFAULT_PAGE_SIZE == 30


def test_settings_are_cached(settings_env):
    settings_env()
    assert get_settings() is get_settings()
    assert isinstance(Settings.load(), Settings)
