from __future__ import annotations

from datetime import datetime

from support_bot.models.callbacks import ACTIVATE_DEVICE, BUY_DEVICE
from support_bot.models.tariff import Tariff

START_COMMAND = "/start"
STOP_COMMAND = "/stop"

WELCOME = "Добро пожаловать! По какому вопросу обращаетесь?"
ADMIN_WELCOME = "Добро пожаловать, Администратор!"
ADMIN_HINT = "Для ответа пользователю, нажмите кнопку '✍️ Ответить' под его сообщением."
ADMIN_REPLY_EXIT = "✅ Вы вышли из режима ответа."
SUPPORT_MESSAGE_PREFIX = "Сообщение от поддержки:\n\n"

CANNED_REQUEST_LABELS = {
    BUY_DEVICE: "Приобретение устройства",
    ACTIVATE_DEVICE: "Активация устройства",
}

CONTACT_SAVED = "✅ Спасибо, ваш контакт сохранен!"
CONTACT_INVALID = "❌ Не удалось сохранить номер: неверный формат. Попробуйте еще раз."
CONTACT_FAILED = "❌ Произошла ошибка при сохранении контакта. Попробуйте еще раз."

PHONE_CHOICE_PROMPT = (
    "💡 Для более быстрой связи с поддержкой рекомендуем поделиться номером телефона, "
    "но это необязательно. Выберите один из вариантов:"
)
SHARE_PHONE_PROMPT = "📱 Поделитесь своим номером телефона для связи с поддержкой:"
REQUEST_SENT = "Ваш запрос отправлен администратору. Скоро с вами свяжутся."
REQUEST_SENT_WITHOUT_PHONE = (
    "Ваш запрос отправлен администратору без контактного номера. "
    "Ответ будет отправлен в этом чате."
)
SESSION_EXPIRED = "Сессия истекла. Пожалуйста, повторите ваш запрос."
OTHER_QUESTION_PROMPT = "📝 Введите свой вопрос и он будет отправлен администратору:"
TARIFFS_PROMPT = "Выберите тарифный план:"

PAYMENT_CREATING = "Создаем ссылку на оплату, пожалуйста, подождите..."
PAYMENT_LINK_READY = "Ваша ссылка на оплату готова. После успешной оплаты нажмите кнопку 'Я оплатил(а)'."
PAYMENT_CREATE_FAILED = "❌ Произошла ошибка при создании платежа. Попробуйте позже."
PAYMENT_UNKNOWN_TARIFF = "Не удалось определить оплаченный тариф. Обратитесь в поддержку."
PAYMENT_CHECK_MALFORMED = "Произошла ошибка при проверке платежа. Пожалуйста, попробуйте снова."
PAYMENT_SUCCEEDED_STORE_FAILED = (
    "✅ Оплата прошла успешно, но произошла ошибка при активации подписки. Обратитесь в поддержку."
)
PAYMENT_PENDING = "⏳ Платеж еще не подтвержден. Пожалуйста, завершите оплату и попробуйте снова через минуту."
PAYMENT_WAITING_FOR_CAPTURE = "⏳ Платеж ожидает подтверждения. Попробуйте проверить через несколько минут."
PAYMENT_CANCELED = "❌ Платеж был отменен."
PAYMENT_UNKNOWN_STATUS = "❌ Получен неизвестный статус платежа. Обратитесь в поддержку."
PAYMENT_GATEWAY_FAILED = "❌ Произошла ошибка при обращении к платежной системе. Попробуйте позже."

CALLBACK_MALFORMED = "Не удалось обработать запрос. Пожалуйста, попробуйте снова."
GENERIC_ERROR = "❌ Произошла ошибка. Попробуйте ещё раз позже."


def format_date(value: datetime | None) -> str:
    return value.strftime("%d.%m.%Y") if value else "не указана"


def support_message(text: str) -> str:
    return f"{SUPPORT_MESSAGE_PREFIX}{text}"


def admin_delivered(display: str) -> str:
    return f"↪️ Сообщение отправлено пользователю {display}"


def admin_reply_mode(display: str) -> str:
    return (
        f"✅ Вы вошли в режим ответа пользователю {display}.\n"
        "Все следующие сообщения будут отправлены ему.\n"
        "Для выхода из режима отправьте /stop."
    )


def user_question(text: str) -> str:
    return f'❓ Вопрос от пользователя:\n\n"{text}"'


def user_message(text: str) -> str:
    return f'Сообщение от пользователя:\n\n"{text}"'


def canned_request(kind: str) -> str:
    return f"❗️ Пользователь нажал на кнопку '{CANNED_REQUEST_LABELS.get(kind, kind)}'"


def admin_incoming(user_id: int, username: str | None, phone: str | None, request_text: str) -> str:
    return (
        f"Входящий запрос от @{username or 'неизвестно'} "
        f"(ID: {user_id}, Тел: {phone or 'не указан'}):\n\n{request_text}"
    )


def tariff_button(tariff: Tariff) -> str:
    return f"{tariff.title} - {tariff.price_label} ₽"


def payment_succeeded(expires_at: datetime | None) -> str:
    return f"✅ Оплата прошла успешно! Ваша подписка активна до {format_date(expires_at)}."


def payment_already_credited(expires_at: datetime | None) -> str:
    return f"✅ Эта оплата уже зачтена. Подписка активна до {format_date(expires_at)}."


def admin_payment_succeeded(tariff: Tariff) -> str:
    return f"✅ Пользователь успешно оплатил тариф: '{tariff.title}'"


def admin_payment_not_credited(tariff: Tariff, payment_id: str) -> str:
    return (
        "⚠️ Оплата подтверждена, но подписка не продлена.\n"
        f"Тариф: '{tariff.title}'\n"
        f"Платеж: {payment_id}\n"
        "Требуется ручная сверка."
    )


def admin_payment_unknown(tariff: Tariff, payment_id: str) -> str:
    return (
        "⚠️ Платежная система вернула неизвестный статус.\n"
        f"Тариф: '{tariff.title}'\n"
        f"Платеж: {payment_id}"
    )
