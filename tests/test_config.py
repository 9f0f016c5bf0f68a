import pytest
from pydantic import ValidationError

from support_bot.config import Settings


@pytest.fixture
def required_env(monkeypatch):
    monkeypatch.setenv("TELEGRAM_TOKEN", "123456:ABC")
    monkeypatch.setenv("TELEGRAM_ADMIN_ID", "1000")
    monkeypatch.setenv("YOOKASSA_SHOP_ID", "123456")
    monkeypatch.setenv("YOOKASSA_SECRET_KEY", "test_secret_key")


def test_settings_defaults(required_env):
    settings = Settings(_env_file=None)
    assert settings.telegram_admin_id == 1000
    assert settings.database_path == "support_bot.sqlite3"
    assert settings.yookassa_api_url == "https://api.yookassa.ru/v3/payments"
    assert settings.payment_currency == "RUB"
    assert settings.pending_request_ttl_seconds == 600
    assert settings.dedupe_credited_payments is True
    assert settings.log_level == "INFO"


def test_settings_overrides(required_env, monkeypatch):
    monkeypatch.setenv("PENDING_REQUEST_TTL_SECONDS", "120")
    monkeypatch.setenv("DEDUPE_CREDITED_PAYMENTS", "false")
    settings = Settings(_env_file=None)
    assert settings.pending_request_ttl_seconds == 120
    assert settings.dedupe_credited_payments is False


def test_settings_reads_env_file(tmp_path, monkeypatch):
    for name in ("TELEGRAM_TOKEN", "TELEGRAM_ADMIN_ID", "YOOKASSA_SHOP_ID", "YOOKASSA_SECRET_KEY"):
        monkeypatch.delenv(name, raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text(
        "TELEGRAM_TOKEN=123456:ABC\n"
        "TELEGRAM_ADMIN_ID=77\n"
        "YOOKASSA_SHOP_ID=123456\n"
        "YOOKASSA_SECRET_KEY=test_secret_key\n"
        "UNRELATED_KEY=ignored\n"
    )
    settings = Settings(_env_file=env_file)
    assert settings.telegram_admin_id == 77


def test_settings_require_admin_id(required_env, monkeypatch):
    monkeypatch.setenv("TELEGRAM_ADMIN_ID", "not-a-number")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)
