from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class Tariff:
    code: str
    title: str
    price: Decimal
    token: str

    @property
    def price_label(self) -> str:
        return f"{self.price:.2f}"


TARIFFS: tuple[Tariff, ...] = (
    Tariff("ACTIVATION_1M", "Активация и 1 месяц", Decimal("14500.00"), "tariff_act_1m"),
    Tariff("SUBSCRIPTION_1M", "1 месяц подписки", Decimal("14000.00"), "tariff_sub_1m"),
    Tariff("SUBSCRIPTION_2M", "2 месяца подписки", Decimal("28000.00"), "tariff_sub_2m"),
    Tariff("GLOBAL", "Глобальный тариф", Decimal("54000.00"), "tariff_global"),
)

_BY_TOKEN = {tariff.token: tariff for tariff in TARIFFS}
_BY_CODE = {tariff.code: tariff for tariff in TARIFFS}


def get_tariff_by_token(token: str | None) -> Tariff | None:
    if not token:
        return None
    return _BY_TOKEN.get(token)


def get_tariff(code: str) -> Tariff | None:
    return _BY_CODE.get(code)
