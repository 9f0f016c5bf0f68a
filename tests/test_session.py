import asyncio

from support_bot.services.session import (
    AwaitingQuestionStore,
    KeyedLocks,
    PendingRequestStore,
    ReplyTarget,
    ReplyTargetStore,
)

from tests.conftest import FakeClock


def test_reply_target_display():
    assert ReplyTarget(42, "buyer").display == "@buyer"
    assert ReplyTarget(42, None).display == "ID: 42"


def test_reply_target_is_overwritten_not_merged():
    store = ReplyTargetStore()
    store.set(1, ReplyTarget(42, "buyer"))
    store.set(1, ReplyTarget(43, None))
    assert store.get(1) == ReplyTarget(43, None)
    assert store.clear(1) is True
    assert store.get(1) is None
    assert store.clear(1) is False


def test_awaiting_question_flag_clears_once():
    store = AwaitingQuestionStore()
    store.set(42)
    assert store.is_waiting(42)
    assert store.clear(42) is True
    assert store.clear(42) is False
    assert not store.is_waiting(42)


def test_pending_request_live_within_ttl():
    clock = FakeClock()
    store = PendingRequestStore(ttl_seconds=600, clock=clock)
    store.put(42, "Where is my order?", "buyer")
    clock.advance(600)
    request = store.get(42)
    assert request.request_text == "Where is my order?"
    assert store.pop(42).username == "buyer"
    assert store.pop(42) is None


def test_expired_pending_request_is_never_consumable():
    clock = FakeClock()
    store = PendingRequestStore(ttl_seconds=600, clock=clock)
    store.put(42, "Where is my order?", "buyer")
    clock.advance(601)
    assert store.pop(42) is None
    assert len(store) == 0


def test_expired_pending_request_is_evicted_on_read():
    clock = FakeClock()
    store = PendingRequestStore(ttl_seconds=600, clock=clock)
    store.put(42, "first", None)
    clock.advance(601)
    assert store.get(42) is None
    assert len(store) == 0


def test_put_sweeps_expired_entries_and_overwrites():
    clock = FakeClock()
    store = PendingRequestStore(ttl_seconds=600, clock=clock)
    store.put(1, "stale", None)
    store.put(2, "old", None)
    clock.advance(700)
    store.put(2, "new", None)
    assert len(store) == 1
    assert store.get(2).request_text == "new"


async def test_keyed_locks_serialize_same_key():
    locks = KeyedLocks()
    order = []

    async def worker(name: str, delay: float) -> None:
        async with locks.hold(42):
            order.append(f"{name}-start")
            await asyncio.sleep(delay)
            order.append(f"{name}-end")

    await asyncio.gather(worker("a", 0.01), worker("b", 0), worker("c", 0))

    assert order == ["a-start", "a-end", "b-start", "b-end", "c-start", "c-end"]
    assert len(locks) == 0


async def test_keyed_locks_do_not_block_other_keys():
    locks = KeyedLocks()
    released = asyncio.Event()

    async def first() -> None:
        async with locks.hold(1):
            await asyncio.wait_for(released.wait(), timeout=1)

    async def second() -> None:
        async with locks.hold(2):
            released.set()

    await asyncio.gather(first(), second())
    assert len(locks) == 0
