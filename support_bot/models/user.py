from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    telegram_id: int
    phone: str | None = None
    subscription_expires_at: datetime | None = None

    @property
    def has_phone(self) -> bool:
        return bool(self.phone and self.phone.strip())

    def is_subscription_active(self, now: datetime) -> bool:
        return self.subscription_expires_at is not None and self.subscription_expires_at > now
