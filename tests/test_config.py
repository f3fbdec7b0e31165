import pytest
from pydantic import ValidationError

from mex_orders.core.config import EnvironmentMode, OrderStoreBackend, Settings


def test_env_mode_is_case_insensitive():
    settings = Settings(env_mode="PRODUCTION")
    assert settings.env_mode == EnvironmentMode.PRODUCTION
    assert settings.use_real_services


def test_invalid_env_mode_rejected():
    with pytest.raises(ValidationError):
        Settings(env_mode="qa")


def test_ws_path_gets_leading_slash():
    assert Settings(ws_path="tracking").ws_path == "/tracking"


def test_notify_statuses_list_is_normalized():
    settings = Settings(notify_statuses=" Confirmed, ready ,,")
    assert settings.notify_statuses_list == ["confirmed", "ready"]


def test_production_config_reports_missing_keys():
    settings = Settings(
        env_mode="production",
        twilio_account_sid=None,
        twilio_auth_token=None,
        twilio_phone_number=None,
        admin_api_token=None,
    )

    assert settings.validate_production_config() == [
        "TWILIO_ACCOUNT_SID",
        "TWILIO_AUTH_TOKEN",
        "TWILIO_PHONE_NUMBER",
        "ADMIN_API_TOKEN",
    ]


def test_development_needs_no_production_keys():
    settings = Settings(env_mode="development", order_store_backend="memory")

    assert settings.validate_production_config() == []
    assert settings.order_store_backend == OrderStoreBackend.MEMORY
