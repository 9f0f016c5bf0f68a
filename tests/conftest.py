from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from support_bot.db import Database
from support_bot.models.payment import CreatedPayment, PaymentStatus
from support_bot.repositories.payment_repository import PaymentRepository
from support_bot.repositories.user_repository import UserRepository
from support_bot.services.conversation import ConversationRouter
from support_bot.services.payments import PaymentService
from support_bot.services.session import SessionState
from support_bot.services.subscription import SubscriptionService

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
ADMIN_ID = 1000
USER_ID = 42
PAYMENT_ID = "2d9e4b1c-000f-5000-9000-1a2b3c4d5e6f"


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


class FakeGateway:
    def __init__(self):
        self.confirmation_url = f"https://yoomoney.ru/checkout/payments/v2/contract?orderId={PAYMENT_ID}"
        self.status = PaymentStatus.PENDING
        self.create_error: Exception | None = None
        self.check_error: Exception | None = None
        self.created: list[tuple[Decimal, str]] = []
        self.checked: list[str] = []

    async def create_payment(self, amount: Decimal, description: str) -> CreatedPayment:
        self.created.append((amount, description))
        if self.create_error:
            raise self.create_error
        return CreatedPayment(
            payment_id=PAYMENT_ID,
            confirmation_url=self.confirmation_url,
            status=PaymentStatus.PENDING,
        )

    async def check_payment_status(self, payment_id: str) -> PaymentStatus:
        self.checked.append(payment_id)
        if self.check_error:
            raise self.check_error
        return self.status


@pytest.fixture
async def db(tmp_path):
    database = Database(str(tmp_path / "support_bot.sqlite3"))
    await database.connect()
    yield database
    await database.close()


@pytest.fixture
def user_repo(db):
    return UserRepository(db, now=lambda: NOW)


@pytest.fixture
def payment_repo(db):
    return PaymentRepository(db)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session(clock):
    return SessionState(pending_ttl_seconds=600, clock=clock)


@pytest.fixture
def subscription_service(db, user_repo, payment_repo):
    return SubscriptionService(db, user_repo, payment_repo)


@pytest.fixture
def conversation(session, user_repo, gateway, subscription_service):
    return ConversationRouter(
        ADMIN_ID,
        session,
        user_repo,
        PaymentService(gateway),
        subscription_service,
    )
