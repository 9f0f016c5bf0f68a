from __future__ import annotations

import logging

from support_bot.db import Database
from support_bot.models.payment import CreditResult
from support_bot.models.tariff import Tariff
from support_bot.repositories.payment_repository import PaymentRepository
from support_bot.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

# Every succeeded payment adds the same 30 days, whatever tariff was bought,
# including the multi-month ones. Kept literal until product confirms the
# intended period per tariff.
SUBSCRIPTION_DAYS = 30


class SubscriptionService:
    def __init__(
        self,
        db: Database,
        user_repo: UserRepository,
        payment_repo: PaymentRepository,
        dedupe_credited_payments: bool = True,
    ):
        self._db = db
        self.user_repo = user_repo
        self.payment_repo = payment_repo
        self.dedupe_credited_payments = dedupe_credited_payments

    async def credit_payment(self, telegram_id: int, payment_id: str, tariff: Tariff) -> CreditResult:
        """Extend the subscription once per succeeded payment id.

        The ledger insert and the extension share one transaction, so a store
        failure leaves neither behind and the payment can be re-checked later.
        """
        async with self._db.transaction() as tx:
            fresh = True
            if self.dedupe_credited_payments:
                fresh = await self.payment_repo.mark_credited_in(tx, payment_id, telegram_id, tariff.token)
            if fresh:
                expires_at = await self.user_repo.extend_in(tx, telegram_id, SUBSCRIPTION_DAYS)
            else:
                expires_at = await self.user_repo.expiry_in(tx, telegram_id)
        if not fresh:
            logger.info(
                "Payment already credited: telegram_id=%s payment_id=%s",
                telegram_id,
                payment_id,
            )
            return CreditResult(credited=False, expires_at=expires_at)
        return CreditResult(credited=True, expires_at=expires_at)
