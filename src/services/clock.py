"""Clock and timer abstraction for the input state machines and speech queue.

All timing goes through a :class:`Scheduler` so the decoders never read the
wall clock or start raw timers themselves.  :class:`AsyncioScheduler` is
used on a live event loop; :class:`VirtualScheduler` keeps a simulated clock
that only moves when :meth:`VirtualScheduler.advance` is awaited, which
makes chord windows and silence timeouts reproducible to the millisecond.

Times and delays are in milliseconds.
"""

from __future__ import annotations

import asyncio
import itertools
import time
from collections.abc import Awaitable, Callable
from typing import Protocol

import structlog

logger = structlog.get_logger(__name__)

TimerCallback = Callable[[], Awaitable[None]]


class TimerHandle(Protocol):
    def cancel(self) -> bool | None: ...


class Scheduler(Protocol):
    def now(self) -> float: ...

    def call_later(self, delay_ms: float, callback: TimerCallback) -> TimerHandle: ...

    async def sleep(self, delay_ms: float) -> None: ...


# ---------------------------------------------------------------------------
# Event-loop scheduler
# ---------------------------------------------------------------------------


class AsyncioScheduler:
    """Runs timer callbacks as tasks on the running event loop."""

    __slots__ = ("_tasks",)

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()

    def now(self) -> float:
        return time.monotonic() * 1000.0

    def call_later(self, delay_ms: float, callback: TimerCallback) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(self._run_later(delay_ms, callback))
        # Hold a reference until the task finishes.
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def sleep(self, delay_ms: float) -> None:
        await asyncio.sleep(delay_ms / 1000.0)

    @staticmethod
    async def _run_later(delay_ms: float, callback: TimerCallback) -> None:
        await asyncio.sleep(delay_ms / 1000.0)
        try:
            await callback()
        except Exception:
            logger.exception("clock.timer_callback_failed")


# ---------------------------------------------------------------------------
# Simulated scheduler
# ---------------------------------------------------------------------------


class _VirtualTimer:
    __slots__ = ("callback", "cancelled", "due", "seq")

    def __init__(self, due: float, seq: int, callback: TimerCallback) -> None:
        self.due = due
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> bool:
        was_active = not self.cancelled
        self.cancelled = True
        return was_active


class VirtualScheduler:
    """Deterministic scheduler driven by explicit time advances.

    ``sleep`` fast-forwards the clock instead of waiting, firing any timers
    that fall due on the way.  Every requested sleep is recorded in
    :attr:`sleeps`.
    """

    __slots__ = ("_now", "_seq", "_timers", "sleeps")

    def __init__(self, start_ms: float = 0.0) -> None:
        self._now = start_ms
        self._seq = itertools.count()
        self._timers: list[_VirtualTimer] = []
        self.sleeps: list[float] = []

    def now(self) -> float:
        return self._now

    def call_later(self, delay_ms: float, callback: TimerCallback) -> _VirtualTimer:
        timer = _VirtualTimer(self._now + max(delay_ms, 0.0), next(self._seq), callback)
        self._timers.append(timer)
        return timer

    async def sleep(self, delay_ms: float) -> None:
        self.sleeps.append(delay_ms)
        await self.advance(delay_ms)

    async def advance(self, delay_ms: float) -> None:
        """Move the clock forward, running due callbacks in (due, creation) order."""
        target = self._now + delay_ms
        while True:
            due = [t for t in self._timers if not t.cancelled and t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due, t.seq))
            self._timers.remove(timer)
            self._now = max(self._now, timer.due)
            await timer.callback()
        self._now = max(self._now, target)
        self._timers = [t for t in self._timers if not t.cancelled]

    @property
    def pending(self) -> int:
        return sum(1 for t in self._timers if not t.cancelled)
