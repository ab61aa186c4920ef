"""Local stores behind the offline send queue and the message cache.

Two logical stores are kept side by side:

* ``message_queue`` -- outgoing messages keyed by an autoincrement id, so
  insertion order survives restarts;
* ``message_cache`` -- the last known messages of each conversation, keyed
  by conversation id.

:class:`SqlQueueStore` keeps both in SQLite through SQLAlchemy Core.
:class:`InMemoryQueueStore` has the same interface and is used when the
database cannot be opened, or when it breaks mid-session, so the engine
keeps working for the rest of the session.  Store faults surface as
:class:`StorageError`.

Store calls are synchronous.  Each is a single-row statement against a
local WAL-mode file, so they run directly on the event loop rather than in
a worker thread; :class:`InMemoryQueueStore` is not thread-safe either.
"""

from __future__ import annotations

import itertools
from collections import OrderedDict
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol

import orjson
import structlog
from sqlalchemy import (
    Column,
    Integer,
    MetaData,
    Table,
    Text,
    create_engine,
    delete,
    event,
    insert,
    select,
    update,
)
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from src.models.enums import QueueStatus
from src.models.message import OutgoingMessage, QueueEntry
from src.services.errors import StorageError

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

message_queue = Table(
    "message_queue",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("payload", Text, nullable=False),  # JSON
    Column("enqueued_at", Text, nullable=False),  # ISO-8601
    Column("status", Text, nullable=False, server_default=QueueStatus.PENDING.value),
    Column("attempts", Integer, nullable=False, server_default="0"),
    Column("last_error", Text),
    sqlite_autoincrement=True,
)

message_cache = Table(
    "message_cache",
    metadata,
    Column("conversation_id", Text, primary_key=True),
    Column("messages", Text, nullable=False),  # JSON array
    Column("cached_at", Text, nullable=False),
)


# ---------------------------------------------------------------------------
# Store protocol
# ---------------------------------------------------------------------------


class QueueStore(Protocol):
    def add(self, payload: OutgoingMessage, enqueued_at: datetime) -> QueueEntry: ...

    def entries(self, status: QueueStatus | None = None) -> list[QueueEntry]: ...

    def get(self, entry_id: int) -> QueueEntry | None: ...

    def update(self, entry_id: int, *, status: QueueStatus, attempts: int, last_error: str | None) -> None: ...

    def remove(self, entry_id: int) -> bool: ...

    def put_cache(self, conversation_id: str, messages: list[dict[str, Any]], cached_at: datetime) -> None: ...

    def get_cache(self, conversation_id: str) -> list[dict[str, Any]]: ...

    def clear_cache(self) -> None: ...

    def close(self) -> None: ...


# ---------------------------------------------------------------------------
# SQLite store
# ---------------------------------------------------------------------------


def create_db_engine(db_path: Path | str) -> Engine:
    """Create a SQLite engine with WAL journaling."""
    engine = create_engine(f"sqlite:///{db_path}", echo=False)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    return engine


def _row_to_entry(row: Any) -> QueueEntry:
    return QueueEntry(
        id=row.id,
        payload=OutgoingMessage.model_validate(orjson.loads(row.payload)),
        enqueued_at=datetime.fromisoformat(row.enqueued_at),
        status=QueueStatus(row.status),
        attempts=row.attempts,
        last_error=row.last_error,
    )


class SqlQueueStore:
    """Queue and cache tables in one SQLite database."""

    __slots__ = ("_engine",)

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        try:
            metadata.create_all(engine)
        except SQLAlchemyError as exc:
            raise StorageError(f"cannot initialise queue store: {exc}") from exc

    @classmethod
    def open(cls, db_path: Path | str) -> SqlQueueStore:
        path = Path(db_path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"cannot create {path.parent}: {exc}") from exc
        return cls(create_db_engine(path))

    def add(self, payload: OutgoingMessage, enqueued_at: datetime) -> QueueEntry:
        try:
            with self._engine.begin() as conn:
                result = conn.execute(
                    insert(message_queue).values(
                        payload=orjson.dumps(payload.model_dump(mode="json")).decode(),
                        enqueued_at=enqueued_at.isoformat(),
                        status=QueueStatus.PENDING.value,
                        attempts=0,
                    )
                )
                entry_id = result.inserted_primary_key[0]
        except SQLAlchemyError as exc:
            raise StorageError(f"enqueue failed: {exc}") from exc
        return QueueEntry(id=entry_id, payload=payload, enqueued_at=enqueued_at)

    def entries(self, status: QueueStatus | None = None) -> list[QueueEntry]:
        stmt = select(message_queue).order_by(message_queue.c.id)
        if status is not None:
            stmt = stmt.where(message_queue.c.status == status.value)
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(stmt).all()
        except SQLAlchemyError as exc:
            raise StorageError(f"queue read failed: {exc}") from exc
        return [_row_to_entry(row) for row in rows]

    def get(self, entry_id: int) -> QueueEntry | None:
        try:
            with self._engine.connect() as conn:
                row = conn.execute(select(message_queue).where(message_queue.c.id == entry_id)).first()
        except SQLAlchemyError as exc:
            raise StorageError(f"queue read failed: {exc}") from exc
        return _row_to_entry(row) if row is not None else None

    def update(self, entry_id: int, *, status: QueueStatus, attempts: int, last_error: str | None) -> None:
        try:
            with self._engine.begin() as conn:
                conn.execute(
                    update(message_queue)
                    .where(message_queue.c.id == entry_id)
                    .values(status=status.value, attempts=attempts, last_error=last_error)
                )
        except SQLAlchemyError as exc:
            raise StorageError(f"queue update failed: {exc}") from exc

    def remove(self, entry_id: int) -> bool:
        try:
            with self._engine.begin() as conn:
                result = conn.execute(delete(message_queue).where(message_queue.c.id == entry_id))
        except SQLAlchemyError as exc:
            raise StorageError(f"queue delete failed: {exc}") from exc
        return result.rowcount > 0

    def put_cache(self, conversation_id: str, messages: list[dict[str, Any]], cached_at: datetime) -> None:
        values = {
            "conversation_id": conversation_id,
            "messages": orjson.dumps(messages).decode(),
            "cached_at": cached_at.isoformat(),
        }
        stmt = sqlite_insert(message_cache).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[message_cache.c.conversation_id],
            set_={"messages": stmt.excluded.messages, "cached_at": stmt.excluded.cached_at},
        )
        try:
            with self._engine.begin() as conn:
                conn.execute(stmt)
        except SQLAlchemyError as exc:
            raise StorageError(f"cache write failed: {exc}") from exc

    def get_cache(self, conversation_id: str) -> list[dict[str, Any]]:
        try:
            with self._engine.connect() as conn:
                row = conn.execute(
                    select(message_cache.c.messages).where(message_cache.c.conversation_id == conversation_id)
                ).first()
        except SQLAlchemyError as exc:
            raise StorageError(f"cache read failed: {exc}") from exc
        return orjson.loads(row.messages) if row is not None else []

    def clear_cache(self) -> None:
        try:
            with self._engine.begin() as conn:
                conn.execute(delete(message_cache))
        except SQLAlchemyError as exc:
            raise StorageError(f"cache clear failed: {exc}") from exc

    def close(self) -> None:
        self._engine.dispose()


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------


class InMemoryQueueStore:
    """Process-local store with the same ordering guarantees, lost on exit."""

    __slots__ = ("_cache", "_entries", "_ids")

    def __init__(self) -> None:
        self._entries: OrderedDict[int, QueueEntry] = OrderedDict()
        self._cache: dict[str, list[dict[str, Any]]] = {}
        self._ids = itertools.count(1)

    @classmethod
    def from_entries(cls, entries: Iterable[QueueEntry]) -> InMemoryQueueStore:
        """Seed a store with entries recovered from another one, keeping their ids."""
        store = cls()
        for entry in entries:
            store._entries[entry.id] = entry.model_copy()
        store._ids = itertools.count(max(store._entries, default=0) + 1)
        return store

    def add(self, payload: OutgoingMessage, enqueued_at: datetime) -> QueueEntry:
        entry = QueueEntry(id=next(self._ids), payload=payload, enqueued_at=enqueued_at)
        self._entries[entry.id] = entry
        return entry.model_copy()

    def entries(self, status: QueueStatus | None = None) -> list[QueueEntry]:
        return [e.model_copy() for e in self._entries.values() if status is None or e.status == status]

    def get(self, entry_id: int) -> QueueEntry | None:
        entry = self._entries.get(entry_id)
        return entry.model_copy() if entry is not None else None

    def update(self, entry_id: int, *, status: QueueStatus, attempts: int, last_error: str | None) -> None:
        entry = self._entries.get(entry_id)
        if entry is not None:
            self._entries[entry_id] = entry.model_copy(
                update={"status": status, "attempts": attempts, "last_error": last_error}
            )

    def remove(self, entry_id: int) -> bool:
        return self._entries.pop(entry_id, None) is not None

    def put_cache(self, conversation_id: str, messages: list[dict[str, Any]], cached_at: datetime) -> None:
        self._cache[conversation_id] = list(messages)

    def get_cache(self, conversation_id: str) -> list[dict[str, Any]]:
        return list(self._cache.get(conversation_id, []))

    def clear_cache(self) -> None:
        self._cache.clear()

    def close(self) -> None:
        pass


def open_queue_store(db_path: Path | str | None) -> QueueStore:
    """Open the SQLite store at *db_path*, degrading to memory if that fails."""
    if db_path is None:
        return InMemoryQueueStore()
    try:
        store = SqlQueueStore.open(db_path)
    except StorageError:
        logger.warning("storage.sqlite_unavailable_using_inmemory", db_path=str(db_path), exc_info=True)
        return InMemoryQueueStore()
    logger.info("storage.sqlite_opened", db_path=str(db_path))
    return store
