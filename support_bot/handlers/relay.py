from __future__ import annotations

import logging

from aiogram import Bot, F, Router
from aiogram.enums import ChatType
from aiogram.exceptions import TelegramAPIError
from aiogram.types import CallbackQuery, Message

from support_bot.models.events import CallbackEvent, ContactEvent, TextEvent, UnsupportedEvent
from support_bot.services.conversation import ConversationRouter
from support_bot.services.delivery import deliver

router = Router()
router.message.filter(F.chat.type == ChatType.PRIVATE)
logger = logging.getLogger(__name__)


@router.message(F.contact)
async def handle_contact(message: Message, bot: Bot, conversation: ConversationRouter) -> None:
    event = ContactEvent(
        sender_id=message.from_user.id,
        chat_id=message.chat.id,
        username=message.from_user.username,
        phone=message.contact.phone_number,
    )
    await deliver(bot, await conversation.handle(event))


@router.message(F.text)
async def handle_text(message: Message, bot: Bot, conversation: ConversationRouter) -> None:
    event = TextEvent(
        sender_id=message.from_user.id,
        chat_id=message.chat.id,
        username=message.from_user.username,
        text=message.text,
    )
    await deliver(bot, await conversation.handle(event))


@router.message()
async def handle_other(message: Message, bot: Bot, conversation: ConversationRouter) -> None:
    if message.from_user is None:
        return
    event = UnsupportedEvent(
        sender_id=message.from_user.id,
        chat_id=message.chat.id,
        username=message.from_user.username,
    )
    await deliver(bot, await conversation.handle(event))


@router.callback_query()
async def handle_callback(callback: CallbackQuery, bot: Bot, conversation: ConversationRouter) -> None:
    # The sender lock is taken inside handle(); nothing may be awaited before it.
    if callback.message is None:
        await _answer(callback)
        return
    event = CallbackEvent(
        sender_id=callback.from_user.id,
        chat_id=callback.message.chat.id,
        username=callback.from_user.username,
        data=callback.data or "",
        message_id=callback.message.message_id,
    )
    replies = await conversation.handle(event)
    await _answer(callback)
    await deliver(bot, replies)


async def _answer(callback: CallbackQuery) -> None:
    try:
        await callback.answer()
    except TelegramAPIError as exc:
        logger.warning("Failed to answer callback %s: %s", callback.id, exc)
