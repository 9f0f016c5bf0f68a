"""Process-local conversation state.

Each store is keyed by a Telegram id and owned by that id; nothing here is
persisted. Mutations never await between read and write, so they are atomic
on the event loop without a shared lock. ``KeyedLocks`` serialises whole
events per sender.
"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
import logging
import time
from typing import AsyncIterator, Callable

logger = logging.getLogger(__name__)

PENDING_REQUEST_TTL_SECONDS = 600


@dataclass(frozen=True)
class ReplyTarget:
    user_id: int
    username: str | None

    @property
    def display(self) -> str:
        return f"@{self.username}" if self.username else f"ID: {self.user_id}"


@dataclass(frozen=True)
class PendingRequest:
    request_text: str
    username: str | None
    created_at: float


class ReplyTargetStore:
    def __init__(self):
        self._targets: dict[int, ReplyTarget] = {}

    def set(self, admin_id: int, target: ReplyTarget) -> None:
        self._targets[admin_id] = target

    def get(self, admin_id: int) -> ReplyTarget | None:
        return self._targets.get(admin_id)

    def clear(self, admin_id: int) -> bool:
        return self._targets.pop(admin_id, None) is not None


class AwaitingQuestionStore:
    def __init__(self):
        self._waiting: set[int] = set()

    def set(self, user_id: int) -> None:
        self._waiting.add(user_id)

    def is_waiting(self, user_id: int) -> bool:
        return user_id in self._waiting

    def clear(self, user_id: int) -> bool:
        if user_id in self._waiting:
            self._waiting.discard(user_id)
            return True
        return False


class PendingRequestStore:
    """Deferred support requests waiting for the phone decision.

    Entries older than the TTL count as absent. They are swept on every write
    and evicted when a read runs into them.
    """

    def __init__(
        self,
        ttl_seconds: float = PENDING_REQUEST_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._requests: dict[int, PendingRequest] = {}

    def __len__(self) -> int:
        return len(self._requests)

    def _expired(self, request: PendingRequest, now: float) -> bool:
        return now - request.created_at > self.ttl_seconds

    def put(self, user_id: int, request_text: str, username: str | None) -> PendingRequest:
        request = PendingRequest(request_text=request_text, username=username, created_at=self._clock())
        self._requests[user_id] = request
        self.sweep()
        return request

    def get(self, user_id: int) -> PendingRequest | None:
        request = self._requests.get(user_id)
        if request is None:
            return None
        if self._expired(request, self._clock()):
            del self._requests[user_id]
            return None
        return request

    def pop(self, user_id: int) -> PendingRequest | None:
        request = self._requests.pop(user_id, None)
        if request is None or self._expired(request, self._clock()):
            return None
        return request

    def sweep(self) -> int:
        now = self._clock()
        expired = [user_id for user_id, request in self._requests.items() if self._expired(request, now)]
        for user_id in expired:
            del self._requests[user_id]
        if expired:
            logger.debug("Swept %s expired pending requests", len(expired))
        return len(expired)


class KeyedLocks:
    """One asyncio.Lock per key, dropped once nobody holds or waits on it."""

    def __init__(self):
        self._locks: dict[int, asyncio.Lock] = {}
        self._users: dict[int, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, key: int) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]


class SessionState:
    def __init__(
        self,
        pending_ttl_seconds: float = PENDING_REQUEST_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.reply_targets = ReplyTargetStore()
        self.awaiting_questions = AwaitingQuestionStore()
        self.pending_requests = PendingRequestStore(pending_ttl_seconds, clock)
        self.locks = KeyedLocks()
