from __future__ import annotations

import asyncio
from decimal import ROUND_HALF_UP, Decimal
import logging
import re
from typing import Any
from uuid import uuid4

import aiohttp

from support_bot.errors import PermanentGatewayError, TransientGatewayError, ValidationError
from support_bot.models.payment import CancellationResult, CreatedPayment, PaymentStatus
from support_bot.services.log_context import describe_log_context

logger = logging.getLogger(__name__)

YOOKASSA_API_URL = "https://api.yookassa.ru/v3/payments"
MIN_PAYMENT_AMOUNT = Decimal("1.00")
MAX_PAYMENT_AMOUNT = Decimal("15000000.00")
MAX_DESCRIPTION_LENGTH = 128
PAYMENT_ID_PATTERN = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$")


def validate_amount(amount: Decimal | None) -> Decimal:
    if amount is None:
        raise ValidationError("Payment amount cannot be empty")
    amount = Decimal(amount)
    if amount < MIN_PAYMENT_AMOUNT:
        raise ValidationError(f"Payment amount cannot be less than {MIN_PAYMENT_AMOUNT}")
    if amount > MAX_PAYMENT_AMOUNT:
        raise ValidationError(f"Payment amount cannot be greater than {MAX_PAYMENT_AMOUNT}")
    return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def sanitize_description(description: str | None) -> str:
    if description is None or not description.strip():
        raise ValidationError("Payment description cannot be empty")
    cleaned = re.sub(r"[\r\n\t]", " ", description.strip())
    if len(cleaned) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(
            f"Payment description cannot be longer than {MAX_DESCRIPTION_LENGTH} characters"
        )
    return cleaned


def validate_payment_id(payment_id: str | None) -> str:
    if payment_id is None or not payment_id.strip():
        raise ValidationError("Payment ID cannot be empty")
    if not PAYMENT_ID_PATTERN.match(payment_id):
        raise ValidationError("Invalid payment ID format")
    return payment_id


def mask(value: str | None) -> str:
    if not value or len(value) <= 8:
        return "***"
    return f"{value[:4]}***{value[-4:]}"


def backoff_delay_seconds(attempt: int, base_delay: float, max_delay: float) -> float:
    delay = base_delay * (2 ** max(attempt - 1, 0))
    return min(delay, max_delay)


class YooKassaClient:
    def __init__(
        self,
        shop_id: str,
        secret_key: str,
        return_url: str,
        api_url: str = YOOKASSA_API_URL,
        currency: str = "RUB",
        status_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 8.0,
    ):
        self.api_url = api_url.rstrip("/")
        self.return_url = return_url
        self.currency = currency
        self.status_attempts = status_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._auth = aiohttp.BasicAuth(shop_id, secret_key)
        self._session: aiohttp.ClientSession | None = None
        logger.info("YooKassa client initialized: shop_id=%s", mask(shop_id))

    async def close(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if not self._session or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        idempotence_key: str | None = None,
    ) -> dict[str, Any]:
        context_str = describe_log_context()
        headers = {"Idempotence-Key": idempotence_key} if idempotence_key else {}
        session = await self._get_session()
        try:
            async with session.request(
                method,
                f"{self.api_url}{path}",
                json=json,
                headers=headers,
                auth=self._auth,
                timeout=aiohttp.ClientTimeout(total=15),
            ) as resp:
                if resp.status >= 400:
                    body = await resp.text()
                    logger.error(
                        "YooKassa API error %s %s: status=%s body=%s %s",
                        method,
                        path,
                        resp.status,
                        body,
                        context_str,
                    )
                    raise PermanentGatewayError(f"YooKassa API error: {resp.status}", status=resp.status)
                try:
                    data = await resp.json(content_type=None)
                except (aiohttp.ContentTypeError, ValueError) as exc:
                    raise PermanentGatewayError("YooKassa returned a malformed body") from exc
        except (aiohttp.ClientConnectionError, asyncio.TimeoutError) as exc:
            logger.error(
                "YooKassa API connection error %s %s: error=%s %s",
                method,
                path,
                exc,
                context_str,
            )
            raise TransientGatewayError(f"Network error calling YooKassa API: {exc}") from exc
        except aiohttp.ClientError as exc:
            raise PermanentGatewayError(f"YooKassa client error: {exc}") from exc
        return data if isinstance(data, dict) else {}

    async def create_payment(self, amount: Decimal, description: str) -> CreatedPayment:
        value = validate_amount(amount)
        description = sanitize_description(description)
        logger.info(
            "Creating payment: amount=%s %s description_length=%s",
            value,
            self.currency,
            len(description),
        )
        payload = {
            "amount": {"value": str(value), "currency": self.currency},
            "capture": True,
            "confirmation": {"type": "redirect", "return_url": self.return_url},
            "description": description,
        }
        data = await self._request("POST", "", json=payload, idempotence_key=str(uuid4()))
        confirmation_url = (data.get("confirmation") or {}).get("confirmation_url") or ""
        if not confirmation_url:
            raise PermanentGatewayError("Confirmation URL not found in response")
        payment_id = data.get("id") or ""
        status = PaymentStatus.from_value(data.get("status"))
        logger.info("Payment created: id=%s status=%s", mask(payment_id), status.value)
        return CreatedPayment(payment_id=payment_id, confirmation_url=confirmation_url, status=status)

    async def check_payment_status(self, payment_id: str) -> PaymentStatus:
        """Fetch the payment status, retrying network failures only.

        HTTP and parsing errors are raised on the first attempt. After
        ``status_attempts`` network failures a ``TransientGatewayError`` is raised.
        """
        validate_payment_id(payment_id)
        logger.info("Checking payment status: id=%s", mask(payment_id))
        for attempt in range(1, self.status_attempts + 1):
            try:
                data = await self._request("GET", f"/{payment_id}")
            except TransientGatewayError as exc:
                logger.warning(
                    "Network error on attempt %s of %s: %s",
                    attempt,
                    self.status_attempts,
                    exc,
                )
                if attempt == self.status_attempts:
                    logger.error("All retry attempts failed for payment %s", mask(payment_id))
                    raise TransientGatewayError(
                        f"Failed to check payment status after {self.status_attempts} attempts"
                    ) from exc
                await asyncio.sleep(backoff_delay_seconds(attempt, self.base_delay, self.max_delay))
                continue
            raw_status = data.get("status")
            if not raw_status:
                raise PermanentGatewayError("Status not found in response")
            status = PaymentStatus.from_value(raw_status)
            if status is PaymentStatus.UNKNOWN:
                logger.warning("Unknown payment status received: %s", raw_status)
            logger.info("Payment status retrieved: id=%s status=%s", mask(payment_id), status.value)
            return status
        raise TransientGatewayError("Payment status check made no attempts")

    async def cancel_payment(self, payment_id: str) -> CancellationResult:
        validate_payment_id(payment_id)
        logger.info("Cancelling payment: id=%s", mask(payment_id))
        try:
            data = await self._request("POST", f"/{payment_id}/cancel", idempotence_key=str(uuid4()))
        except PermanentGatewayError as exc:
            if exc.status == 422:
                logger.warning("Payment %s cannot be canceled in current state", mask(payment_id))
                return CancellationResult(False, "Payment cannot be canceled in current state")
            raise
        status = data.get("status")
        if status == PaymentStatus.CANCELED.value:
            logger.info("Payment %s canceled", mask(payment_id))
            return CancellationResult(True, "Payment canceled successfully")
        logger.warning("Payment %s cancellation failed: status=%s", mask(payment_id), status)
        return CancellationResult(False, f"Unexpected status: {status}")
