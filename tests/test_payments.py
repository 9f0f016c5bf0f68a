from dataclasses import replace
from decimal import Decimal

import pytest

from support_bot.errors import PermanentGatewayError, ValidationError
from support_bot.models.tariff import get_tariff
from support_bot.services.payments import PaymentService, describe_purchase, extract_payment_id

from tests.conftest import PAYMENT_ID


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://yoomoney.ru/checkout/payments/v2/contract?paymentId=abc123", "abc123"),
        ("https://pay.example/?a=1&orderId=xyz", "xyz"),
        ("https://pay.example/no-query", "fallback"),
        ("https://pay.example/?orderId=", "fallback"),
    ],
)
def test_extract_payment_id(url, expected):
    assert extract_payment_id(url, "fallback") == expected


def test_describe_purchase():
    assert describe_purchase(get_tariff("GLOBAL"), 42) == "Покупка тарифа: 'Глобальный тариф' для пользователя 42"


async def test_payment_link_uses_id_from_confirmation_url(gateway):
    gateway.confirmation_url = "https://yoomoney.ru/checkout/payments/v2/contract?paymentId=abc123"
    link = await PaymentService(gateway).create_payment_link(42, get_tariff("SUBSCRIPTION_2M"))

    assert link.payment_id == "abc123"
    assert link.check_token == "check_payment:tariff_sub_2m:abc123"
    assert gateway.created == [
        (Decimal("28000.00"), "Покупка тарифа: '2 месяца подписки' для пользователя 42"),
    ]


async def test_payment_link_falls_back_to_gateway_id(gateway):
    gateway.confirmation_url = "https://yoomoney.ru/checkout/payments/v2/contract"
    link = await PaymentService(gateway).create_payment_link(42, get_tariff("SUBSCRIPTION_1M"))
    assert link.payment_id == PAYMENT_ID


async def test_payment_link_rejects_oversized_token(gateway):
    gateway.confirmation_url = "https://pay.example/?paymentId=" + "x" * 64
    with pytest.raises(PermanentGatewayError):
        await PaymentService(gateway).create_payment_link(42, get_tariff("SUBSCRIPTION_1M"))


async def test_out_of_range_price_never_reaches_gateway(gateway):
    tariff = replace(get_tariff("SUBSCRIPTION_1M"), price=Decimal("0.50"))
    with pytest.raises(ValidationError):
        await PaymentService(gateway).create_payment_link(42, tariff)
    assert gateway.created == []
