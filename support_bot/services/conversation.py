"""Conversation router.

Every inbound event is classified by payload and sender role, then handled by
exactly one path. Handlers return outbound instructions instead of talking to
Telegram; delivery happens in the transport adapter.
"""
from __future__ import annotations

import logging
import time
from typing import Awaitable, Callable

from support_bot import texts
from support_bot.errors import GatewayError, StoreError, ValidationError
from support_bot.keyboards.admin import reply_offer_keyboard
from support_bot.keyboards.common import main_menu, payment_keyboard, phone_choice_keyboard, tariffs_keyboard
from support_bot.models.callbacks import (
    CHECK_PAYMENT,
    BuyTariff,
    CallbackAction,
    CannedRequest,
    CheckPayment,
    Malformed,
    OtherQuestion,
    ReplyTo,
    SharePhone,
    ShowTariffs,
    SkipPhone,
    Unrecognized,
    parse_callback,
    skip_phone_token,
)
from support_bot.models.events import (
    CallbackEvent,
    ClearMarkup,
    ContactEvent,
    Event,
    Outbound,
    OutboundMessage,
    Role,
    TextEvent,
)
from support_bot.models.payment import PaymentStatus
from support_bot.models.tariff import Tariff, get_tariff_by_token
from support_bot.repositories.user_repository import UserRepository
from support_bot.services.log_context import request_context
from support_bot.services.payments import PaymentService
from support_bot.services.session import ReplyTarget, SessionState
from support_bot.services.subscription import SubscriptionService

logger = logging.getLogger(__name__)

HANDLED_EVENTS = (TextEvent, ContactEvent, CallbackEvent)

STATUS_REPLIES = {
    PaymentStatus.PENDING: texts.PAYMENT_PENDING,
    PaymentStatus.WAITING_FOR_CAPTURE: texts.PAYMENT_WAITING_FOR_CAPTURE,
    PaymentStatus.CANCELED: texts.PAYMENT_CANCELED,
}

CallbackHandler = Callable[[CallbackEvent, Role, CallbackAction], Awaitable[list[Outbound]]]


class ConversationRouter:
    def __init__(
        self,
        admin_id: int,
        session: SessionState,
        user_repo: UserRepository,
        payment_service: PaymentService,
        subscription_service: SubscriptionService,
    ):
        self.admin_id = admin_id
        self.session = session
        self.user_repo = user_repo
        self.payment_service = payment_service
        self.subscription_service = subscription_service
        self._callback_handlers: dict[type, CallbackHandler] = {
            ReplyTo: self._on_reply_to,
            CheckPayment: self._on_check_payment,
            SkipPhone: self._on_skip_phone,
            SharePhone: self._on_share_phone,
            BuyTariff: self._on_buy_tariff,
            CannedRequest: self._on_canned_request,
            ShowTariffs: self._on_show_tariffs,
            OtherQuestion: self._on_other_question,
            Malformed: self._on_malformed,
            Unrecognized: self._on_unrecognized,
        }

    def role_of(self, sender_id: int) -> Role:
        return Role.ADMIN if sender_id == self.admin_id else Role.USER

    async def handle(self, event: Event) -> list[Outbound]:
        """Process one event; never raises."""
        if not isinstance(event, HANDLED_EVENTS):
            return []
        role = self.role_of(event.sender_id)
        with request_context(user_id=event.sender_id, role=role.value, event=type(event).__name__):
            async with self.session.locks.hold(event.sender_id):
                try:
                    return await self._dispatch(event, role)
                except Exception:
                    logger.exception("Failed to handle %s from %s", type(event).__name__, event.sender_id)
                    return [OutboundMessage(event.chat_id, texts.GENERIC_ERROR)]

    async def _dispatch(self, event: Event, role: Role) -> list[Outbound]:
        if isinstance(event, TextEvent):
            if role is Role.ADMIN:
                return self._handle_admin_text(event)
            return await self._handle_user_text(event)
        if isinstance(event, ContactEvent):
            if role is Role.ADMIN:
                return []
            return await self._handle_contact(event)
        action = parse_callback(event.data)
        return await self._callback_handlers[type(action)](event, role, action)

    # Text and contact paths

    def _handle_admin_text(self, event: TextEvent) -> list[Outbound]:
        target = self.session.reply_targets.get(event.sender_id)
        if target is not None:
            if event.text == texts.STOP_COMMAND:
                self.session.reply_targets.clear(event.sender_id)
                return [OutboundMessage(event.chat_id, texts.ADMIN_REPLY_EXIT)]
            return [
                OutboundMessage(target.user_id, texts.support_message(event.text)),
                OutboundMessage(event.chat_id, texts.admin_delivered(target.display)),
            ]
        if event.text == texts.START_COMMAND:
            return [OutboundMessage(event.chat_id, texts.ADMIN_WELCOME)]
        return [OutboundMessage(event.chat_id, texts.ADMIN_HINT)]

    async def _handle_user_text(self, event: TextEvent) -> list[Outbound]:
        was_waiting = self.session.awaiting_questions.clear(event.sender_id)
        if event.text == texts.START_COMMAND:
            return [self._main_menu(event.chat_id)]
        framed = texts.user_question(event.text) if was_waiting else texts.user_message(event.text)
        return await self._forward_request(event.sender_id, event.chat_id, event.username, framed)

    async def _handle_contact(self, event: ContactEvent) -> list[Outbound]:
        try:
            user = await self.user_repo.save_phone(event.sender_id, event.phone)
        except ValidationError as exc:
            logger.warning("Rejected phone number from %s: %s", event.sender_id, exc)
            return [OutboundMessage(event.chat_id, texts.CONTACT_INVALID)]
        except StoreError:
            logger.exception("Failed to save phone number for %s", event.sender_id)
            return [OutboundMessage(event.chat_id, texts.CONTACT_FAILED)]

        replies: list[Outbound] = [OutboundMessage(event.chat_id, texts.CONTACT_SAVED, remove_keyboard=True)]
        pending = self.session.pending_requests.pop(event.sender_id)
        if pending is not None:
            replies.append(
                self._to_admin(event.sender_id, pending.username, user.phone, pending.request_text)
            )
            replies.append(OutboundMessage(event.chat_id, texts.REQUEST_SENT))
        return replies

    # Callback path

    async def _on_reply_to(self, event: CallbackEvent, role: Role, action: ReplyTo) -> list[Outbound]:
        if role is not Role.ADMIN:
            logger.warning("Ignoring reply_to from non-admin %s", event.sender_id)
            return []
        target = ReplyTarget(user_id=action.user_id, username=action.username)
        self.session.reply_targets.set(event.sender_id, target)
        return [OutboundMessage(event.chat_id, texts.admin_reply_mode(target.display))]

    async def _on_check_payment(self, event: CallbackEvent, role: Role, action: CheckPayment) -> list[Outbound]:
        tariff = get_tariff_by_token(action.tariff_token)
        if tariff is None:
            logger.warning("check_payment with unknown tariff token: %s", action.tariff_token)
            return [OutboundMessage(event.chat_id, texts.PAYMENT_UNKNOWN_TARIFF)]
        return await self._reconcile_payment(event, tariff, action.payment_id)

    async def _on_skip_phone(self, event: CallbackEvent, role: Role, action: SkipPhone) -> list[Outbound]:
        pending = self.session.pending_requests.pop(event.sender_id)
        if pending is None:
            return [OutboundMessage(event.chat_id, texts.SESSION_EXPIRED)]
        return [
            self._to_admin(event.sender_id, pending.username, None, pending.request_text),
            OutboundMessage(event.chat_id, texts.REQUEST_SENT_WITHOUT_PHONE),
        ]

    async def _on_share_phone(self, event: CallbackEvent, role: Role, action: SharePhone) -> list[Outbound]:
        return [OutboundMessage(event.chat_id, texts.SHARE_PHONE_PROMPT, request_contact=True)]

    async def _on_buy_tariff(self, event: CallbackEvent, role: Role, action: BuyTariff) -> list[Outbound]:
        replies: list[Outbound] = [OutboundMessage(event.chat_id, texts.PAYMENT_CREATING)]
        try:
            link = await self.payment_service.create_payment_link(event.sender_id, action.tariff)
        except (ValidationError, GatewayError):
            logger.exception("Failed to create payment for %s, tariff %s", event.sender_id, action.tariff.code)
            replies.append(OutboundMessage(event.chat_id, texts.PAYMENT_CREATE_FAILED))
            return replies
        replies.append(OutboundMessage(event.chat_id, texts.PAYMENT_LINK_READY, buttons=payment_keyboard(link)))
        return replies

    async def _on_canned_request(self, event: CallbackEvent, role: Role, action: CannedRequest) -> list[Outbound]:
        return await self._forward_request(
            event.sender_id, event.chat_id, event.username, texts.canned_request(action.kind)
        )

    async def _on_show_tariffs(self, event: CallbackEvent, role: Role, action: ShowTariffs) -> list[Outbound]:
        return [OutboundMessage(event.chat_id, texts.TARIFFS_PROMPT, buttons=tariffs_keyboard())]

    async def _on_other_question(self, event: CallbackEvent, role: Role, action: OtherQuestion) -> list[Outbound]:
        self.session.awaiting_questions.set(event.sender_id)
        return [OutboundMessage(event.chat_id, texts.OTHER_QUESTION_PROMPT)]

    async def _on_malformed(self, event: CallbackEvent, role: Role, action: Malformed) -> list[Outbound]:
        logger.warning("Malformed callback from %s: %r (%s)", event.sender_id, action.raw, action.reason)
        if action.raw.partition(":")[0] == CHECK_PAYMENT:
            return [OutboundMessage(event.chat_id, texts.PAYMENT_CHECK_MALFORMED)]
        return [OutboundMessage(event.chat_id, texts.CALLBACK_MALFORMED)]

    async def _on_unrecognized(self, event: CallbackEvent, role: Role, action: Unrecognized) -> list[Outbound]:
        logger.debug("Ignoring callback from %s: %r", event.sender_id, action.raw)
        return []

    # Shared procedures

    async def _forward_request(
        self,
        user_id: int,
        chat_id: int,
        username: str | None,
        request_text: str,
    ) -> list[Outbound]:
        """Send a request to the admin, or park it until the user decides on a phone."""
        user = await self.user_repo.get_by_telegram_id(user_id)
        if user is None or not user.has_phone:
            self.session.pending_requests.put(user_id, request_text, username)
            skip_token = skip_phone_token(int(time.time() * 1000))
            return [OutboundMessage(chat_id, texts.PHONE_CHOICE_PROMPT, buttons=phone_choice_keyboard(skip_token))]
        return [
            self._to_admin(user_id, username, user.phone, request_text),
            OutboundMessage(chat_id, texts.REQUEST_SENT),
        ]

    async def _reconcile_payment(self, event: CallbackEvent, tariff: Tariff, payment_id: str) -> list[Outbound]:
        try:
            status = await self.payment_service.check_status(payment_id)
        except ValidationError as exc:
            logger.warning("Rejected payment id from %s: %s", event.sender_id, exc)
            return [OutboundMessage(event.chat_id, texts.PAYMENT_CHECK_MALFORMED)]
        except GatewayError:
            logger.exception("Payment status check failed for %s", event.sender_id)
            return [OutboundMessage(event.chat_id, texts.PAYMENT_GATEWAY_FAILED)]

        if status is PaymentStatus.SUCCEEDED:
            return await self._credit_payment(event, tariff, payment_id)
        if status is PaymentStatus.UNKNOWN:
            logger.warning("Unknown payment status: user_id=%s payment_id=%s", event.sender_id, payment_id)
            return [
                OutboundMessage(event.chat_id, texts.PAYMENT_UNKNOWN_STATUS),
                self._to_admin(
                    event.sender_id,
                    event.username,
                    await self._stored_phone(event.sender_id),
                    texts.admin_payment_unknown(tariff, payment_id),
                ),
            ]
        return [OutboundMessage(event.chat_id, STATUS_REPLIES[status])]

    async def _credit_payment(self, event: CallbackEvent, tariff: Tariff, payment_id: str) -> list[Outbound]:
        try:
            result = await self.subscription_service.credit_payment(event.sender_id, payment_id, tariff)
        except StoreError:
            # The charge went through; report success and leave the fix to the admin.
            logger.exception(
                "Payment succeeded but subscription was not extended: user_id=%s payment_id=%s tariff=%s",
                event.sender_id,
                payment_id,
                tariff.code,
            )
            return [
                OutboundMessage(event.chat_id, texts.PAYMENT_SUCCEEDED_STORE_FAILED),
                self._to_admin(
                    event.sender_id,
                    event.username,
                    await self._stored_phone(event.sender_id),
                    texts.admin_payment_not_credited(tariff, payment_id),
                ),
            ]

        replies: list[Outbound] = []
        if result.credited:
            replies.append(OutboundMessage(event.chat_id, texts.payment_succeeded(result.expires_at)))
            replies.append(
                self._to_admin(
                    event.sender_id,
                    event.username,
                    await self._stored_phone(event.sender_id),
                    texts.admin_payment_succeeded(tariff),
                )
            )
        else:
            replies.append(OutboundMessage(event.chat_id, texts.payment_already_credited(result.expires_at)))
        if event.message_id is not None:
            replies.append(ClearMarkup(event.chat_id, event.message_id))
        return replies

    async def _stored_phone(self, user_id: int) -> str | None:
        try:
            user = await self.user_repo.get_by_telegram_id(user_id)
        except StoreError:
            logger.warning("Phone lookup failed for %s; notifying admin without it", user_id)
            return None
        return user.phone if user and user.has_phone else None

    def _to_admin(self, user_id: int, username: str | None, phone: str | None, request_text: str) -> OutboundMessage:
        return OutboundMessage(
            self.admin_id,
            texts.admin_incoming(user_id, username, phone, request_text),
            buttons=reply_offer_keyboard(user_id, username),
        )

    def _main_menu(self, chat_id: int) -> OutboundMessage:
        return OutboundMessage(chat_id, texts.WELCOME, buttons=main_menu())
