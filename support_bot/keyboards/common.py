from __future__ import annotations

from support_bot.models.callbacks import (
    ACTIVATE_DEVICE,
    BUY_DEVICE,
    BUY_SUBSCRIPTION,
    OTHER_QUESTION,
    SHARE_PHONE,
)
from support_bot.models.events import Button
from support_bot.models.payment import PaymentLink
from support_bot.models.tariff import TARIFFS
from support_bot.texts import CANNED_REQUEST_LABELS, tariff_button

Keyboard = list[list[Button]]

CONTACT_BUTTON_TEXT = "📱 Поделиться номером телефона"


def main_menu() -> Keyboard:
    return [
        [
            Button.callback(CANNED_REQUEST_LABELS[BUY_DEVICE], BUY_DEVICE),
            Button.callback(CANNED_REQUEST_LABELS[ACTIVATE_DEVICE], ACTIVATE_DEVICE),
        ],
        [Button.callback("Покупка подписки", BUY_SUBSCRIPTION)],
        [Button.callback("❓ Другой вопрос", OTHER_QUESTION)],
    ]


def tariffs_keyboard() -> Keyboard:
    return [[Button.callback(tariff_button(tariff), tariff.token)] for tariff in TARIFFS]


def phone_choice_keyboard(skip_token: str) -> Keyboard:
    return [
        [Button.callback("📱 Поделиться номером", SHARE_PHONE)],
        [Button.callback("⏭️ Продолжить без номера", skip_token)],
    ]


def payment_keyboard(link: PaymentLink) -> Keyboard:
    return [
        [Button.link("🔗 Перейти к оплате", link.confirmation_url)],
        [Button.callback("✅ Я оплатил(а)", link.check_token)],
    ]
