"""Callback payload codec.

Inline buttons carry colon-delimited tokens. Inbound data is untrusted, so
``parse_callback`` is total: every string maps to exactly one action type,
with ``Malformed`` for recognised prefixes whose segments do not parse and
``Unrecognized`` for everything else.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from support_bot.models.tariff import Tariff, get_tariff_by_token

REPLY_TO = "reply_to"
CHECK_PAYMENT = "check_payment"
SKIP_PHONE = "skip_phone_and_send"
SHARE_PHONE = "share_phone"
BUY_DEVICE = "buy_device"
ACTIVATE_DEVICE = "activate_device"
BUY_SUBSCRIPTION = "buy_subscription"
OTHER_QUESTION = "other_question"

CANNED_REQUESTS = (BUY_DEVICE, ACTIVATE_DEVICE)


@dataclass(frozen=True)
class ReplyTo:
    user_id: int
    username: str | None


@dataclass(frozen=True)
class CheckPayment:
    tariff_token: str
    payment_id: str


@dataclass(frozen=True)
class SkipPhone:
    token: str


@dataclass(frozen=True)
class SharePhone:
    pass


@dataclass(frozen=True)
class BuyTariff:
    tariff: Tariff


@dataclass(frozen=True)
class CannedRequest:
    kind: str


@dataclass(frozen=True)
class ShowTariffs:
    pass


@dataclass(frozen=True)
class OtherQuestion:
    pass


@dataclass(frozen=True)
class Malformed:
    raw: str
    reason: str


@dataclass(frozen=True)
class Unrecognized:
    raw: str


CallbackAction = Union[
    ReplyTo,
    CheckPayment,
    SkipPhone,
    SharePhone,
    BuyTariff,
    CannedRequest,
    ShowTariffs,
    OtherQuestion,
    Malformed,
    Unrecognized,
]


def parse_callback(data: str | None) -> CallbackAction:
    raw = data or ""
    head, sep, rest = raw.partition(":")

    if head == REPLY_TO and sep:
        user_part, _, username = rest.partition(":")
        try:
            user_id = int(user_part)
        except ValueError:
            return Malformed(raw, "reply target id is not a number")
        return ReplyTo(user_id, username or None)

    if head == CHECK_PAYMENT and sep:
        parts = raw.split(":")
        if len(parts) != 3:
            return Malformed(raw, f"expected 3 segments, got {len(parts)}")
        _, tariff_token, payment_id = parts
        if not tariff_token or not payment_id:
            return Malformed(raw, "empty segment")
        return CheckPayment(tariff_token, payment_id)

    if head == SKIP_PHONE and sep:
        return SkipPhone(rest)

    if raw == SHARE_PHONE:
        return SharePhone()

    tariff = get_tariff_by_token(raw)
    if tariff is not None:
        return BuyTariff(tariff)

    if raw in CANNED_REQUESTS:
        return CannedRequest(raw)
    if raw == BUY_SUBSCRIPTION:
        return ShowTariffs()
    if raw == OTHER_QUESTION:
        return OtherQuestion()
    return Unrecognized(raw)


def reply_to_token(user_id: int, username: str | None) -> str:
    return f"{REPLY_TO}:{user_id}:{username or ''}"


def check_payment_token(tariff_token: str, payment_id: str) -> str:
    return f"{CHECK_PAYMENT}:{tariff_token}:{payment_id}"


def skip_phone_token(stamp: int) -> str:
    return f"{SKIP_PHONE}:{stamp}"
