from __future__ import annotations

from support_bot.db import Database, Transaction


class PaymentRepository:
    """Ledger of gateway payment ids that already extended a subscription."""

    def __init__(self, db: Database):
        self._db = db

    async def mark_credited_in(
        self,
        tx: Transaction,
        payment_id: str,
        telegram_id: int,
        tariff_token: str,
    ) -> bool:
        """Idempotent insert; returns True only the first time a payment id is seen."""
        rowcount = await tx.execute(
            """
            INSERT OR IGNORE INTO credited_payments (payment_id, telegram_id, tariff_token)
            VALUES (?, ?, ?)
            """,
            payment_id,
            telegram_id,
            tariff_token,
        )
        return rowcount == 1

    async def was_credited(self, payment_id: str) -> bool:
        row = await self._db.fetchone(
            "SELECT 1 FROM credited_payments WHERE payment_id = ?",
            payment_id,
        )
        return row is not None

    async def count_credited(self, telegram_id: int) -> int:
        row = await self._db.fetchone(
            "SELECT COUNT(*) FROM credited_payments WHERE telegram_id = ?",
            telegram_id,
        )
        return row[0] if row else 0
