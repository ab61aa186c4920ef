"""Single-consumer speech queue for reading incoming messages aloud.

Utterances are spoken strictly in arrival order by one consumer task: each
one finishes before the next starts, with a fixed pause (500 ms by default)
between messages.  Overlapping speech is never produced.  Callers enqueue
without waiting; :meth:`SpeechQueue.drain` waits until everything queued
has been spoken.
"""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass
from datetime import datetime
from typing import Final

import structlog

from src.models.message import Message, SenderInfo
from src.services.clock import Scheduler
from src.services.devices import SpeechEngine

logger = structlog.get_logger(__name__)

SPEECH_PAUSE_MS: Final[int] = 500


@dataclass(frozen=True, slots=True)
class Utterance:
    text: str
    rate: float = 1.0
    volume: float = 1.0
    message_id: str | None = None


def format_utterance(
    message: Message,
    sender: SenderInfo | None = None,
    *,
    announce_sender: bool = False,
    announce_timestamp: bool = False,
) -> str:
    """Build the spoken text for *message*, with optional sender/time prefix."""
    parts: list[str] = []
    if announce_sender:
        name = sender.display_name if sender and sender.display_name else "Someone"
        parts.append(f"{name} says: ")
    if announce_timestamp:
        parts.append(f"Sent at {_spoken_time(message.created_at)}. ")
    parts.append(message.text or "")
    return "".join(parts)


def _spoken_time(moment: datetime) -> str:
    return moment.strftime("%H:%M")


class SpeechQueue:
    """FIFO of utterances drained by a single background consumer."""

    __slots__ = ("_closed", "_consumer", "_engine", "_pause_ms", "_queue", "_scheduler", "_speaking", "spoken")

    def __init__(self, engine: SpeechEngine, scheduler: Scheduler, *, pause_ms: int = SPEECH_PAUSE_MS) -> None:
        self._engine = engine
        self._scheduler = scheduler
        self._pause_ms = pause_ms
        self._queue: asyncio.Queue[Utterance] = asyncio.Queue()
        self._consumer: asyncio.Task[None] | None = None
        self._speaking = False
        self._closed = False
        self.spoken = 0

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def speaking(self) -> bool:
        return self._speaking

    def enqueue(self, utterance: Utterance) -> bool:
        """Queue *utterance*; returns ``False`` if it was empty or the queue is closed."""
        if self._closed:
            logger.warning("speech.enqueue_after_close", message_id=utterance.message_id)
            return False
        if not utterance.text.strip():
            return False

        self._queue.put_nowait(utterance)
        if self._consumer is None or self._consumer.done():
            self._consumer = asyncio.get_running_loop().create_task(self._consume())
        return True

    async def _consume(self) -> None:
        while True:
            utterance = await self._queue.get()
            try:
                self._speaking = True
                try:
                    await self._engine.speak(utterance.text, rate=utterance.rate, volume=utterance.volume)
                    self.spoken += 1
                except Exception:
                    logger.warning("speech.utterance_failed", message_id=utterance.message_id, exc_info=True)
                finally:
                    self._speaking = False
                await self._scheduler.sleep(self._pause_ms)
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        """Wait until every queued utterance has been spoken."""
        await self._queue.join()

    async def close(self) -> None:
        """Stop the consumer and drop anything not yet spoken."""
        self._closed = True
        dropped = 0
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
            dropped += 1
        if self._consumer is not None and not self._consumer.done():
            self._consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._consumer
        self._consumer = None
        if dropped:
            logger.info("speech.queue_closed", dropped=dropped)
