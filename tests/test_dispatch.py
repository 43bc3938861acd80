"""
test_dispatch.py — Tests for app/dispatch.py

Covers handler registration, exactly-once delivery across workers, retry
with backoff, dead-lettering and messages enqueued before start.

Called by: pytest
Depends on: app/dispatch.py, app/schemas/messages.py
"""

import asyncio

import pytest
from pydantic import ValidationError

from app.dispatch import DispatchQueue
from app.schemas.messages import CollectOrdersChunkMessage, SyncOrdersMessage, SyncStocksMessage


def test_dispatch_without_handler_raises():
    q = DispatchQueue(workers=1)
    with pytest.raises(LookupError):
        q.dispatch(SyncStocksMessage())
    assert q.pending() == 0


def test_chunk_message_validates_range():
    with pytest.raises(ValidationError):
        CollectOrdersChunkMessage(boutique_id=1, start_id=10, end_id=5)
    assert CollectOrdersChunkMessage(boutique_id=1, start_id=5, end_id=5).end_id == 5


@pytest.mark.asyncio
async def test_each_message_handled_once():
    q = DispatchQueue(workers=4, max_retries=0)
    seen = []

    async def handler(message):
        await asyncio.sleep(0)
        seen.append(message.boutique_id)

    q.register(SyncStocksMessage, handler)
    await q.start()
    for i in range(20):
        q.dispatch(SyncStocksMessage(boutique_id=i))
    await q.join()
    await q.stop()

    assert sorted(seen) == list(range(20))
    assert not q.running


@pytest.mark.asyncio
async def test_failing_handler_is_retried():
    q = DispatchQueue(workers=1, max_retries=3, retry_base_delay=0)
    attempts = []

    async def flaky(message):
        attempts.append(message.days)
        if len(attempts) < 3:
            raise RuntimeError("shop down")

    q.register(SyncOrdersMessage, flaky)
    await q.start()
    q.dispatch(SyncOrdersMessage(days=1))
    await q.stop(drain=True)

    assert attempts == [1, 1, 1]
    assert q.dead_letters == []


@pytest.mark.asyncio
async def test_exhausted_retries_dead_letter():
    q = DispatchQueue(workers=2, max_retries=2, retry_base_delay=0)
    calls = 0

    async def broken(message):
        nonlocal calls
        calls += 1
        raise ValueError("bad payload")

    q.register(SyncStocksMessage, broken)
    await q.start()
    message = SyncStocksMessage(boutique_id=3)
    q.dispatch(message)
    await q.stop(drain=True)

    assert calls == 3
    assert len(q.dead_letters) == 1
    letter = q.dead_letters[0]
    assert letter.message is message
    assert letter.attempts == 3
    assert letter.error == "bad payload"


@pytest.mark.asyncio
async def test_messages_enqueued_before_start_are_kept():
    q = DispatchQueue(workers=1)
    handled = []

    async def handler(message):
        handled.append(message.boutique_id)

    q.register(SyncStocksMessage, handler)
    q.dispatch(SyncStocksMessage(boutique_id=1))
    q.dispatch(SyncStocksMessage(boutique_id=2))
    assert q.pending() == 2

    await q.start()
    await q.stop(drain=True)
    assert handled == [1, 2]
