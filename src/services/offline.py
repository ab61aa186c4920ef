"""Durable outgoing-message queue.

A message that cannot be delivered right away -- the device is offline or
the backend rejected it -- is stored locally and replayed, oldest first,
when connectivity returns.  The queue is the only record of messages that
are not yet confirmed as sent: an entry is removed only after the transport
accepts it.

Retry policy
------------
Each replay gives an entry up to ``send_attempts`` tries with exponential
backoff (tenacity).  If they all fail the entry stays ``pending`` and its
``attempts`` counter goes up by one.  After ``max_attempts`` failed replays
the entry is marked ``failed``: it is kept, shown to the user as "not
sent", and skipped by automatic replays until :meth:`DurableSendQueue.retry`
puts it back or :meth:`DurableSendQueue.discard` drops it.

A failing entry does not block the ones behind it; each pending entry is
attempted once per replay, in enqueue order.

If the local store breaks mid-session the queue moves to an in-memory store,
carrying over whatever entries can still be read, and keeps accepting
messages.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol, TypeVar

import structlog
from pydantic import BaseModel
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential
from tenacity.wait import wait_base

from src.models.enums import QueueStatus
from src.models.message import OutgoingMessage, QueueEntry
from src.services.errors import StorageError
from src.services.storage import InMemoryQueueStore, QueueStore

logger = structlog.get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_SEND_ATTEMPTS = 3

T = TypeVar("T")


class MessageTransport(Protocol):
    """Hands a message to the chat backend; raises on any failure."""

    async def send(self, payload: OutgoingMessage) -> None: ...


@dataclass(slots=True)
class SendOutcome:
    delivered: bool
    entry: QueueEntry | None = None

    @property
    def will_retry(self) -> bool:
        return not self.delivered and self.entry is not None


@dataclass(slots=True)
class ReplayReport:
    attempted: list[int] = field(default_factory=list)
    delivered: list[int] = field(default_factory=list)
    pending: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)


class DurableSendQueue:
    """At-least-once delivery of outgoing messages across connectivity gaps."""

    __slots__ = ("_degraded", "_lock", "_max_attempts", "_send_attempts", "_store", "_transport", "_wait")

    def __init__(
        self,
        store: QueueStore,
        transport: MessageTransport,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        send_attempts: int = DEFAULT_SEND_ATTEMPTS,
        wait: wait_base | None = None,
    ) -> None:
        self._store = store
        self._transport = transport
        self._max_attempts = max_attempts
        self._send_attempts = send_attempts
        self._wait = wait if wait is not None else wait_exponential(multiplier=0.5, min=0.5, max=4)
        self._lock = asyncio.Lock()
        self._degraded = False

    @property
    def store(self) -> QueueStore:
        return self._store

    def _with_store(self, operation: Callable[[QueueStore], T]) -> T:
        try:
            return operation(self._store)
        except StorageError as exc:
            if self._degraded:
                raise
            self._fall_back_to_memory(exc)
        return operation(self._store)

    def _fall_back_to_memory(self, exc: StorageError) -> None:
        try:
            survivors = self._store.entries()
        except StorageError:
            survivors = []
        logger.warning("queue.storage_failed_using_inmemory", error=str(exc), recovered=len(survivors))
        self._store = InMemoryQueueStore.from_entries(survivors)
        self._degraded = True

    # -- sending --------------------------------------------------------------

    async def enqueue(self, payload: OutgoingMessage) -> QueueEntry:
        entry = self._with_store(lambda store: store.add(payload, datetime.now(UTC)))
        logger.info("queue.enqueued", entry_id=entry.id, conversation_id=payload.conversation_id)
        return entry

    async def send(self, payload: OutgoingMessage, *, online: bool = True) -> SendOutcome:
        """Deliver now if possible, otherwise park the message in the queue."""
        if online:
            try:
                await self._deliver(payload)
                return SendOutcome(delivered=True)
            except Exception as exc:
                logger.warning("queue.send_failed_queueing", conversation_id=payload.conversation_id, error=str(exc))
                entry = await self.enqueue(payload)
                error = str(exc)
                self._with_store(
                    lambda store: store.update(entry.id, status=QueueStatus.PENDING, attempts=0, last_error=error)
                )
                return SendOutcome(delivered=False, entry=self._with_store(lambda store: store.get(entry.id)))
        return SendOutcome(delivered=False, entry=await self.enqueue(payload))

    async def _deliver(self, payload: OutgoingMessage) -> None:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(Exception),
            stop=stop_after_attempt(self._send_attempts),
            wait=self._wait,
            reraise=True,
        ):
            with attempt:
                await self._transport.send(payload)

    # -- replay ---------------------------------------------------------------

    async def replay(self) -> ReplayReport:
        """Attempt every pending entry once, oldest first."""
        report = ReplayReport()
        async with self._lock:
            for entry in self._with_store(lambda store: store.entries(QueueStatus.PENDING)):
                report.attempted.append(entry.id)
                try:
                    await self._deliver(entry.payload)
                except Exception as exc:
                    attempts = entry.attempts + 1
                    status = QueueStatus.FAILED if attempts >= self._max_attempts else QueueStatus.PENDING
                    error = str(exc)
                    self._with_store(
                        lambda store: store.update(entry.id, status=status, attempts=attempts, last_error=error)
                    )
                    (report.failed if status is QueueStatus.FAILED else report.pending).append(entry.id)
                    logger.warning(
                        "queue.replay_item_failed",
                        entry_id=entry.id,
                        attempts=attempts,
                        status=status.value,
                        error=error,
                    )
                    continue
                self._with_store(lambda store: store.remove(entry.id))
                report.delivered.append(entry.id)

        logger.info(
            "queue.replay_completed",
            attempted=len(report.attempted),
            delivered=len(report.delivered),
            pending=len(report.pending),
            failed=len(report.failed),
        )
        return report

    async def on_connectivity_change(self, online: bool) -> ReplayReport | None:
        if not online:
            logger.info("queue.offline")
            return None
        return await self.replay()

    # -- inspection and manual actions ---------------------------------------

    async def pending(self) -> list[QueueEntry]:
        return self._with_store(lambda store: store.entries(QueueStatus.PENDING))

    async def failed(self) -> list[QueueEntry]:
        return self._with_store(lambda store: store.entries(QueueStatus.FAILED))

    async def entries(self) -> list[QueueEntry]:
        return self._with_store(lambda store: store.entries())

    async def retry(self, entry_id: int) -> bool:
        """Put a failed entry back into automatic replay with a fresh budget."""
        entry = self._with_store(lambda store: store.get(entry_id))
        if entry is None or entry.status is not QueueStatus.FAILED:
            return False
        last_error = entry.last_error
        self._with_store(
            lambda store: store.update(entry_id, status=QueueStatus.PENDING, attempts=0, last_error=last_error)
        )
        return True

    async def discard(self, entry_id: int) -> bool:
        removed = self._with_store(lambda store: store.remove(entry_id))
        if removed:
            logger.info("queue.discarded", entry_id=entry_id)
        return removed

    # -- conversation cache ---------------------------------------------------

    async def cache_messages(self, conversation_id: str, messages: list[BaseModel | dict[str, Any]]) -> None:
        serialisable = [m.model_dump(mode="json") if isinstance(m, BaseModel) else m for m in messages]
        self._with_store(lambda store: store.put_cache(conversation_id, serialisable, datetime.now(UTC)))

    async def cached_messages(self, conversation_id: str) -> list[dict[str, Any]]:
        return self._with_store(lambda store: store.get_cache(conversation_id))

    async def clear_cache(self) -> None:
        self._with_store(lambda store: store.clear_cache())
