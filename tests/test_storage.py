"""Tests for the SQLite and in-memory queue stores."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest

from conftest import outgoing
from src.models.enums import QueueStatus
from src.services.storage import InMemoryQueueStore, SqlQueueStore, open_queue_store

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


@pytest.fixture(params=["memory", "sqlite"])
def store(request: pytest.FixtureRequest, tmp_path: Path):
    backend = InMemoryQueueStore() if request.param == "memory" else SqlQueueStore.open(tmp_path / "store.db")
    yield backend
    backend.close()


class TestQueueTable:
    def test_entries_in_insertion_order(self, store) -> None:
        ids = [store.add(outgoing(text), NOW).id for text in ("A", "B", "C")]
        assert ids == sorted(ids)
        assert [e.payload.text for e in store.entries()] == ["A", "B", "C"]

    def test_payload_and_timestamp_preserved(self, store) -> None:
        entry = store.add(outgoing("hi", conversation_id="conv-9"), NOW)
        loaded = store.get(entry.id)
        assert loaded.payload == outgoing("hi", conversation_id="conv-9")
        assert loaded.enqueued_at == NOW
        assert loaded.status is QueueStatus.PENDING

    def test_update_and_filter(self, store) -> None:
        first = store.add(outgoing("A"), NOW)
        store.add(outgoing("B"), NOW)
        store.update(first.id, status=QueueStatus.FAILED, attempts=5, last_error="boom")
        assert [e.payload.text for e in store.entries(QueueStatus.PENDING)] == ["B"]
        failed = store.entries(QueueStatus.FAILED)
        assert failed[0].attempts == 5
        assert failed[0].last_error == "boom"

    def test_remove(self, store) -> None:
        entry = store.add(outgoing("A"), NOW)
        assert store.remove(entry.id)
        assert not store.remove(entry.id)
        assert store.get(entry.id) is None

    def test_ids_not_reused_after_remove(self, store) -> None:
        first = store.add(outgoing("A"), NOW)
        store.remove(first.id)
        second = store.add(outgoing("B"), NOW)
        assert second.id > first.id


class TestCacheTable:
    def test_put_overwrites(self, store) -> None:
        store.put_cache("conv", [{"id": "1"}], NOW)
        store.put_cache("conv", [{"id": "2"}], NOW)
        assert store.get_cache("conv") == [{"id": "2"}]

    def test_clear(self, store) -> None:
        store.put_cache("conv", [{"id": "1"}], NOW)
        store.clear_cache()
        assert store.get_cache("conv") == []


class TestOpenQueueStore:
    def test_opens_sqlite(self, tmp_path: Path) -> None:
        store = open_queue_store(tmp_path / "nested" / "q.db")
        assert isinstance(store, SqlQueueStore)
        store.close()

    def test_none_path_uses_memory(self) -> None:
        assert isinstance(open_queue_store(None), InMemoryQueueStore)

    def test_unusable_path_degrades_to_memory(self, tmp_path: Path) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x")
        store = open_queue_store(blocker / "q.db")
        assert isinstance(store, InMemoryQueueStore), "an unusable database must not stop the engine"
        store.add(outgoing("still works"), NOW)
        assert len(store.entries()) == 1
