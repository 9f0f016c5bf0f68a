import pytest

from support_bot.models.callbacks import (
    BuyTariff,
    CannedRequest,
    CheckPayment,
    Malformed,
    OtherQuestion,
    ReplyTo,
    SharePhone,
    ShowTariffs,
    SkipPhone,
    Unrecognized,
    check_payment_token,
    parse_callback,
    reply_to_token,
    skip_phone_token,
)
from support_bot.models.tariff import get_tariff


@pytest.mark.parametrize(
    ("data", "expected"),
    [
        ("reply_to:42:buyer", ReplyTo(42, "buyer")),
        ("reply_to:42:", ReplyTo(42, None)),
        ("reply_to:42", ReplyTo(42, None)),
        ("check_payment:tariff_sub_2m:abc123", CheckPayment("tariff_sub_2m", "abc123")),
        ("skip_phone_and_send:1760000000000", SkipPhone("1760000000000")),
        ("share_phone", SharePhone()),
        ("tariff_global", BuyTariff(get_tariff("GLOBAL"))),
        ("buy_device", CannedRequest("buy_device")),
        ("activate_device", CannedRequest("activate_device")),
        ("buy_subscription", ShowTariffs()),
        ("other_question", OtherQuestion()),
    ],
)
def test_parse_known_tokens(data, expected):
    assert parse_callback(data) == expected


@pytest.mark.parametrize(
    "data",
    [
        "reply_to:abc:buyer",
        "reply_to::buyer",
        "check_payment:tariff_sub_1m",
        "check_payment:tariff_sub_1m:abc:extra",
        "check_payment::abc",
        "check_payment:tariff_sub_1m:",
    ],
)
def test_parse_malformed_tokens(data):
    action = parse_callback(data)
    assert isinstance(action, Malformed)
    assert action.raw == data
    assert action.reason


@pytest.mark.parametrize("data", [None, "", "something_else", "reply_to", "check_payment"])
def test_parse_unrecognized_tokens(data):
    assert isinstance(parse_callback(data), Unrecognized)


def test_token_builders_round_trip_through_parser():
    assert parse_callback(reply_to_token(7, None)) == ReplyTo(7, None)
    assert check_payment_token("tariff_sub_2m", "abc123") == "check_payment:tariff_sub_2m:abc123"
    assert skip_phone_token(1760000000000) == "skip_phone_and_send:1760000000000"
