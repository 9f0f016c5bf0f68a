from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    telegram_token: str
    telegram_admin_id: int
    database_path: str = "support_bot.sqlite3"

    yookassa_shop_id: str
    yookassa_secret_key: str
    yookassa_return_url: str = "https://t.me"
    yookassa_api_url: str = "https://api.yookassa.ru/v3/payments"
    payment_currency: str = "RUB"

    pending_request_ttl_seconds: int = 600
    # Persisted ledger of credited payment ids; off reproduces double crediting.
    dedupe_credited_payments: bool = True

    log_level: str = "INFO"
