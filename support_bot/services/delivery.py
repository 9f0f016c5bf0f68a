from __future__ import annotations

import logging
from typing import Iterable

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError
from aiogram.types import (
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    KeyboardButton,
    ReplyKeyboardMarkup,
    ReplyKeyboardRemove,
)

from support_bot.keyboards.common import CONTACT_BUTTON_TEXT
from support_bot.models.events import Button, ClearMarkup, Outbound, OutboundMessage

logger = logging.getLogger(__name__)

ReplyMarkup = InlineKeyboardMarkup | ReplyKeyboardMarkup | ReplyKeyboardRemove


def _inline_button(button: Button) -> InlineKeyboardButton:
    if button.url:
        return InlineKeyboardButton(text=button.text, url=button.url)
    return InlineKeyboardButton(text=button.text, callback_data=button.callback_data)


def build_markup(message: OutboundMessage) -> ReplyMarkup | None:
    if message.buttons:
        return InlineKeyboardMarkup(
            inline_keyboard=[[_inline_button(button) for button in row] for row in message.buttons]
        )
    if message.request_contact:
        return ReplyKeyboardMarkup(
            keyboard=[[KeyboardButton(text=CONTACT_BUTTON_TEXT, request_contact=True)]],
            resize_keyboard=True,
            one_time_keyboard=True,
            selective=True,
        )
    if message.remove_keyboard:
        return ReplyKeyboardRemove()
    return None


async def deliver(bot: Bot, instructions: Iterable[Outbound]) -> int:
    """Send instructions in order; a failed one is logged and skipped."""
    delivered = 0
    for instruction in instructions:
        try:
            if isinstance(instruction, ClearMarkup):
                await bot.edit_message_reply_markup(
                    chat_id=instruction.chat_id,
                    message_id=instruction.message_id,
                    reply_markup=None,
                )
            else:
                await bot.send_message(
                    instruction.chat_id,
                    instruction.text,
                    reply_markup=build_markup(instruction),
                )
        except TelegramAPIError as exc:
            logger.exception("Failed to deliver %s to %s: %s", type(instruction).__name__, instruction.chat_id, exc)
            continue
        delivered += 1
    return delivered
