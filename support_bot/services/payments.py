from __future__ import annotations

import logging

from support_bot.errors import PermanentGatewayError
from support_bot.models.callbacks import check_payment_token
from support_bot.models.payment import PaymentLink, PaymentStatus
from support_bot.models.tariff import Tariff
from support_bot.services.yookassa import YooKassaClient, sanitize_description, validate_amount

logger = logging.getLogger(__name__)

# Telegram rejects inline buttons whose callback_data exceeds 64 bytes.
MAX_CALLBACK_DATA_BYTES = 64


def describe_purchase(tariff: Tariff, user_id: int) -> str:
    return f"Покупка тарифа: '{tariff.title}' для пользователя {user_id}"


def extract_payment_id(confirmation_url: str, fallback: str = "") -> str:
    """The payment id is whatever follows the last '=' of the confirmation URL."""
    if "=" in confirmation_url:
        candidate = confirmation_url.rsplit("=", maxsplit=1)[1]
        if candidate:
            return candidate
    return fallback


class PaymentService:
    def __init__(self, gateway: YooKassaClient):
        self.gateway = gateway

    async def create_payment_link(self, user_id: int, tariff: Tariff) -> PaymentLink:
        amount = validate_amount(tariff.price)
        description = sanitize_description(describe_purchase(tariff, user_id))
        created = await self.gateway.create_payment(amount, description)
        payment_id = extract_payment_id(created.confirmation_url, created.payment_id)
        if not payment_id:
            raise PermanentGatewayError("Payment id not found in confirmation URL")
        check_token = check_payment_token(tariff.token, payment_id)
        if len(check_token.encode()) > MAX_CALLBACK_DATA_BYTES:
            raise PermanentGatewayError("Payment id too long for a confirmation button")
        logger.info("Payment link issued: user_id=%s tariff=%s", user_id, tariff.code)
        return PaymentLink(
            payment_id=payment_id,
            confirmation_url=created.confirmation_url,
            check_token=check_token,
        )

    async def check_status(self, payment_id: str) -> PaymentStatus:
        return await self.gateway.check_payment_status(payment_id)
