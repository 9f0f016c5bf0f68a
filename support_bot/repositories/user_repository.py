from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging
import re
from typing import Callable

from support_bot.db import Database, Transaction
from support_bot.errors import ValidationError
from support_bot.models.user import User

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r"^\+?[0-9\s\-()]+$")
PHONE_MIN_LENGTH = 10
PHONE_MAX_LENGTH = 15


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate_phone(phone: str | None) -> str:
    if phone is None or not phone.strip():
        raise ValidationError("Phone number cannot be empty")
    trimmed = phone.strip()
    if not PHONE_MIN_LENGTH <= len(trimmed) <= PHONE_MAX_LENGTH:
        raise ValidationError(
            f"Phone number length must be between {PHONE_MIN_LENGTH} and {PHONE_MAX_LENGTH} characters"
        )
    if not PHONE_PATTERN.match(trimmed):
        raise ValidationError("Phone number contains invalid characters")
    return trimmed


def _row_to_user(row: tuple) -> User:
    expires_at = datetime.fromisoformat(row[2]) if row[2] else None
    return User(telegram_id=row[0], phone=row[1], subscription_expires_at=expires_at)


class UserRepository:
    def __init__(self, db: Database, now: Callable[[], datetime] = utcnow):
        self._db = db
        self._now = now

    async def get_by_telegram_id(self, telegram_id: int) -> User | None:
        row = await self._db.fetchone(
            "SELECT telegram_id, phone, subscription_expires_at FROM users WHERE telegram_id = ?",
            telegram_id,
        )
        return _row_to_user(row) if row else None

    async def get_or_create(self, telegram_id: int) -> User:
        async with self._db.transaction() as tx:
            created = await tx.execute(
                "INSERT INTO users (telegram_id) VALUES (?) ON CONFLICT(telegram_id) DO NOTHING",
                telegram_id,
            )
            row = await tx.fetchone(
                "SELECT telegram_id, phone, subscription_expires_at FROM users WHERE telegram_id = ?",
                telegram_id,
            )
        if created:
            logger.info("Created user: telegram_id=%s", telegram_id)
        return _row_to_user(row)

    async def save_phone(self, telegram_id: int, phone: str) -> User:
        normalized = validate_phone(phone)
        await self._db.execute(
            """
            INSERT INTO users (telegram_id, phone)
            VALUES (?, ?)
            ON CONFLICT(telegram_id) DO UPDATE SET phone = excluded.phone
            """,
            telegram_id,
            normalized,
        )
        logger.info("Saved phone number: telegram_id=%s", telegram_id)
        return await self.get_by_telegram_id(telegram_id)

    async def extend_subscription(self, telegram_id: int, days: int) -> datetime:
        async with self._db.transaction() as tx:
            return await self.extend_in(tx, telegram_id, days)

    async def expiry_in(self, tx: Transaction, telegram_id: int) -> datetime | None:
        row = await tx.fetchone(
            "SELECT subscription_expires_at FROM users WHERE telegram_id = ?",
            telegram_id,
        )
        return datetime.fromisoformat(row[0]) if row and row[0] else None

    async def extend_in(self, tx: Transaction, telegram_id: int, days: int) -> datetime:
        """Extend inside an open transaction.

        An expiry still in the future is extended from itself, anything else
        from now.
        """
        if days <= 0:
            raise ValidationError("Subscription days must be positive")
        current = await self.expiry_in(tx, telegram_id)
        now = self._now()
        start = current if current and current > now else now
        expires_at = start + timedelta(days=days)
        await tx.execute(
            """
            INSERT INTO users (telegram_id, subscription_expires_at)
            VALUES (?, ?)
            ON CONFLICT(telegram_id) DO UPDATE SET
                subscription_expires_at = excluded.subscription_expires_at
            """,
            telegram_id,
            expires_at.isoformat(),
        )
        logger.info(
            "Subscription extended: telegram_id=%s days=%s expires_at=%s",
            telegram_id,
            days,
            expires_at.isoformat(),
        )
        return expires_at

    async def is_subscription_active(self, telegram_id: int) -> bool:
        user = await self.get_by_telegram_id(telegram_id)
        return bool(user and user.is_subscription_active(self._now()))
