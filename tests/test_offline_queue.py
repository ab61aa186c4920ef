"""Tests for the durable outgoing-message queue."""

from __future__ import annotations

import asyncio
from datetime import datetime
from pathlib import Path

import pytest
from tenacity import wait_none

from conftest import FakeTransport, outgoing
from src.models.enums import QueueStatus
from src.models.message import Message, OutgoingMessage, QueueEntry
from src.services.errors import StorageError
from src.services.offline import DurableSendQueue
from src.services.storage import InMemoryQueueStore, SqlQueueStore


def make_queue(transport: FakeTransport, store=None, **kwargs) -> DurableSendQueue:
    return DurableSendQueue(store if store is not None else InMemoryQueueStore(), transport, wait=wait_none(), **kwargs)


class TestSend:
    async def test_online_send_delivers_directly(self) -> None:
        transport = FakeTransport()
        queue = make_queue(transport)
        outcome = await queue.send(outgoing("hi"))
        assert outcome.delivered
        assert await queue.pending() == []
        assert transport.delivered == ["hi"]

    async def test_offline_send_is_queued(self) -> None:
        transport = FakeTransport()
        queue = make_queue(transport)
        outcome = await queue.send(outgoing("later"), online=False)
        assert not outcome.delivered
        assert outcome.will_retry
        assert transport.calls == [], "nothing is attempted while offline"
        assert [e.payload.text for e in await queue.pending()] == ["later"]

    async def test_failed_send_is_queued_with_error(self) -> None:
        transport = FakeTransport(offline=True)
        queue = make_queue(transport)
        outcome = await queue.send(outgoing("lost?"))
        assert not outcome.delivered
        assert outcome.entry.last_error is not None
        assert outcome.entry.attempts == 0
        assert transport.calls == ["lost?"] * 3, "the direct send is retried before falling back to the queue"


class TestReplay:
    async def test_replay_is_fifo(self) -> None:
        transport = FakeTransport()
        queue = make_queue(transport)
        for text in ("A", "B", "C"):
            await queue.send(outgoing(text), online=False)
        report = await queue.on_connectivity_change(True)
        assert transport.delivered == ["A", "B", "C"]
        assert len(report.delivered) == 3
        assert await queue.pending() == []

    async def test_only_delivered_entries_removed(self) -> None:
        transport = FakeTransport(fail_texts={"B"})
        queue = make_queue(transport)
        for text in ("A", "B", "C"):
            await queue.send(outgoing(text), online=False)
        report = await queue.replay()
        assert transport.delivered == ["A", "C"], "a failing entry must not block the ones behind it"
        remaining = await queue.pending()
        assert [e.payload.text for e in remaining] == ["B"]
        assert remaining[0].attempts == 1
        assert report.pending == [remaining[0].id]

    async def test_each_replay_uses_send_attempts(self) -> None:
        transport = FakeTransport(fail_texts={"X"})
        queue = make_queue(transport, send_attempts=2)
        await queue.enqueue(outgoing("X"))
        await queue.replay()
        assert transport.calls == ["X", "X"]

    async def test_entry_fails_after_max_attempts(self) -> None:
        transport = FakeTransport(fail_texts={"B"})
        queue = make_queue(transport, max_attempts=2)
        await queue.enqueue(outgoing("B"))
        await queue.replay()
        report = await queue.replay()
        assert len(report.failed) == 1
        failed = await queue.failed()
        assert [e.payload.text for e in failed] == ["B"]
        assert failed[0].status is QueueStatus.FAILED
        assert await queue.pending() == []

        transport.calls.clear()
        await queue.replay()
        assert transport.calls == [], "failed entries are not replayed automatically"

    async def test_retry_and_discard(self) -> None:
        transport = FakeTransport(fail_texts={"B"})
        queue = make_queue(transport, max_attempts=1)
        entry = await queue.enqueue(outgoing("B"))
        await queue.replay()
        assert await queue.retry(entry.id)
        pending = await queue.pending()
        assert pending[0].attempts == 0
        assert not await queue.retry(entry.id), "only failed entries can be retried"

        transport.fail_texts.clear()
        await queue.replay()
        assert transport.delivered == ["B"]

        other = await queue.enqueue(outgoing("drop me"))
        assert await queue.discard(other.id)
        assert not await queue.discard(other.id)
        assert await queue.entries() == []

    async def test_offline_notification_does_nothing(self) -> None:
        transport = FakeTransport()
        queue = make_queue(transport)
        await queue.enqueue(outgoing("A"))
        assert await queue.on_connectivity_change(False) is None
        assert transport.calls == []

    async def test_concurrent_replays_deliver_once(self) -> None:
        transport = FakeTransport()
        queue = make_queue(transport)
        for text in ("A", "B", "C"):
            await queue.enqueue(outgoing(text))
        await asyncio.gather(queue.replay(), queue.replay())
        assert transport.delivered == ["A", "B", "C"]


class TestPersistence:
    async def test_queue_survives_restart(self, tmp_path: Path) -> None:
        db_path = tmp_path / "queue.db"
        store = SqlQueueStore.open(db_path)
        queue = make_queue(FakeTransport(), store)
        for text in ("A", "B", "C"):
            await queue.send(outgoing(text), online=False)
        store.close()

        reopened = SqlQueueStore.open(db_path)
        transport = FakeTransport()
        queue = make_queue(transport, reopened)
        assert [e.payload.text for e in await queue.pending()] == ["A", "B", "C"]
        await queue.replay()
        assert transport.delivered == ["A", "B", "C"]
        assert await queue.entries() == []
        reopened.close()

    async def test_failure_state_survives_restart(self, tmp_path: Path) -> None:
        db_path = tmp_path / "queue.db"
        store = SqlQueueStore.open(db_path)
        queue = make_queue(FakeTransport(fail_texts={"A"}), store, max_attempts=1)
        await queue.enqueue(outgoing("A"))
        await queue.replay()
        store.close()

        reopened = SqlQueueStore.open(db_path)
        entries = reopened.entries()
        assert entries[0].status is QueueStatus.FAILED
        assert entries[0].attempts == 1
        assert "cannot deliver" in entries[0].last_error
        reopened.close()


class TestConversationCache:
    @pytest.mark.parametrize("backend", ["memory", "sqlite"])
    async def test_cache_round_trip(self, backend: str, tmp_path: Path) -> None:
        store = InMemoryQueueStore() if backend == "memory" else SqlQueueStore.open(tmp_path / "c.db")
        queue = make_queue(FakeTransport(), store)
        await queue.cache_messages("conv-1", [Message(id="m1", text="hello"), {"id": "m2", "text": "raw"}])
        cached = await queue.cached_messages("conv-1")
        assert [m["id"] for m in cached] == ["m1", "m2"]
        assert cached[0]["text"] == "hello"
        assert await queue.cached_messages("conv-2") == []

        await queue.clear_cache()
        assert await queue.cached_messages("conv-1") == []
        store.close()


class WriteFailingStore(InMemoryQueueStore):
    """In-memory store that can be switched into refusing writes while still readable."""

    def __init__(self) -> None:
        super().__init__()
        self.broken = False

    def add(self, payload: OutgoingMessage, enqueued_at: datetime) -> QueueEntry:
        if self.broken:
            raise StorageError("disk I/O error")
        return super().add(payload, enqueued_at)

    def update(self, entry_id: int, **changes) -> None:
        if self.broken:
            raise StorageError("disk I/O error")
        super().update(entry_id, **changes)


class TestStorageFailure:
    async def test_lost_database_falls_back_to_memory(self, tmp_path: Path) -> None:
        db_path = tmp_path / "queue.db"
        store = SqlQueueStore.open(db_path)
        queue = make_queue(FakeTransport(), store)
        await queue.send(outgoing("before"), online=False)
        store.close()
        for leftover in tmp_path.glob("queue.db*"):
            leftover.unlink()

        outcome = await queue.send(outgoing("after"), online=False)

        assert outcome.will_retry, "a broken database must not lose the new message"
        assert isinstance(queue.store, InMemoryQueueStore)
        assert [e.payload.text for e in await queue.pending()] == ["after"]

    async def test_readable_entries_carried_over(self) -> None:
        store = WriteFailingStore()
        transport = FakeTransport()
        queue = make_queue(transport, store)
        first = await queue.enqueue(outgoing("A"))
        second = await queue.enqueue(outgoing("B"))
        store.broken = True

        third = await queue.enqueue(outgoing("C"))

        assert queue.store is not store
        assert [e.id for e in await queue.pending()] == [first.id, second.id, third.id]
        assert third.id > second.id, "ids keep increasing after the switch"
        await queue.replay()
        assert transport.delivered == ["A", "B", "C"]
