from __future__ import annotations

from aiogram.client.default import DefaultBotProperties

import logging
import asyncio

from aiogram import Bot, Dispatcher

from support_bot.config import Settings
from support_bot.db import Database
from support_bot.handlers import relay
from support_bot.repositories.payment_repository import PaymentRepository
from support_bot.repositories.user_repository import UserRepository
from support_bot.services.context import DependencyMiddleware
from support_bot.services.conversation import ConversationRouter
from support_bot.services.payments import PaymentService
from support_bot.services.session import SessionState
from support_bot.services.subscription import SubscriptionService
from support_bot.services.yookassa import YooKassaClient


async def main() -> None:
    settings = Settings()
    logging.basicConfig(level=settings.log_level.upper())
    db = Database(settings.database_path)
    await db.connect()

    user_repo = UserRepository(db)
    payment_repo = PaymentRepository(db)

    # Forwarded user text is relayed verbatim, so no parse mode.
    bot = Bot(
        token=settings.telegram_token,
        default=DefaultBotProperties(link_preview_is_disabled=True),
    )

    gateway = YooKassaClient(
        settings.yookassa_shop_id,
        settings.yookassa_secret_key,
        return_url=settings.yookassa_return_url,
        api_url=settings.yookassa_api_url,
        currency=settings.payment_currency,
    )
    payment_service = PaymentService(gateway)
    subscription_service = SubscriptionService(
        db,
        user_repo,
        payment_repo,
        dedupe_credited_payments=settings.dedupe_credited_payments,
    )
    conversation = ConversationRouter(
        settings.telegram_admin_id,
        SessionState(settings.pending_request_ttl_seconds),
        user_repo,
        payment_service,
        subscription_service,
    )
    dp = Dispatcher()

    dp.message.middleware(DependencyMiddleware(conversation=conversation, settings=settings))
    dp.callback_query.middleware(DependencyMiddleware(conversation=conversation, settings=settings))

    dp.include_router(relay.router)

    try:
        await dp.start_polling(bot, allowed_updates=dp.resolve_used_update_types())
    finally:
        await gateway.close()
        await db.close()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logging.info("Bot stopped")
