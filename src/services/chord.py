"""Braille chord decoder.

A chord is the set of dots held down together.  The first touch opens a
window on the scheduler clock; further touches raise more dots; the first
release resolves the chord.  The chord is accepted only when that first
release lands within the window (120 ms by default), so the window bounds
the slowest finger of the chord, not the fastest.

Accepted chords decode through :mod:`src.services.braille`: a mapped cell
emits a character, the all-dots cell emits a backspace, and an unmapped cell
is dropped without feedback.  Whatever the outcome, the decoder returns to
idle with a clean cell before the next chord starts.

Per-dot acknowledgments play in the background, so a slow output device
never delays the release that resolves the chord.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Final

import structlog

from src.models.input import DecodedInput
from src.services import braille
from src.services.braille import EMPTY_CELL, DotVector
from src.services.clock import Scheduler
from src.services.feedback import FeedbackSink, PendingCues

logger = structlog.get_logger(__name__)

CHORD_WINDOW_MS: Final[int] = 120


class ChordState(StrEnum):
    __slots__ = ()

    IDLE = "idle"
    COLLECTING = "collecting"


class ChordOutcome(StrEnum):
    __slots__ = ()

    CHARACTER = "character"
    BACKSPACE = "backspace"
    UNMAPPED = "unmapped"
    EXPIRED = "expired"


@dataclass(frozen=True, slots=True)
class ChordResult:
    outcome: ChordOutcome
    cell: DotVector
    elapsed_ms: float
    char: str | None = None

    @property
    def accepted(self) -> bool:
        return self.outcome in (ChordOutcome.CHARACTER, ChordOutcome.BACKSPACE)


class ChordDecoder:
    """Six-dot chord state machine (idle -> collecting -> idle)."""

    __slots__ = ("_cell", "_cues", "_feedback", "_on_input", "_scheduler", "_started_at", "_state", "_window_ms")

    def __init__(
        self,
        scheduler: Scheduler,
        feedback: FeedbackSink,
        on_input: Callable[[DecodedInput], None],
        *,
        window_ms: int = CHORD_WINDOW_MS,
    ) -> None:
        self._scheduler = scheduler
        self._feedback = feedback
        self._on_input = on_input
        self._window_ms = window_ms
        self._state = ChordState.IDLE
        self._cell = EMPTY_CELL
        self._cues = PendingCues()
        self._started_at = 0.0

    @property
    def state(self) -> ChordState:
        return self._state

    @property
    def cell(self) -> DotVector:
        return self._cell

    async def touch_start(self, index: int) -> None:
        """Register a finger landing on dot *index* (0-based)."""
        if not 0 <= index < braille.DOT_COUNT:
            raise ValueError(f"dot index must be 0..{braille.DOT_COUNT - 1}, got {index}")

        if self._state is ChordState.IDLE:
            self._state = ChordState.COLLECTING
            self._started_at = self._scheduler.now()

        if self._cell.dots[index]:
            return
        self._cell = self._cell.with_dot(index)
        self._cues.start(self._feedback.dot_pressed(index))

    async def touch_end(self) -> ChordResult | None:
        """Resolve the chord on the first release; later releases are ignored."""
        if self._state is ChordState.IDLE:
            return None

        cell = self._cell
        elapsed = self._scheduler.now() - self._started_at
        self.reset()

        if elapsed > self._window_ms:
            logger.debug("chord.expired", elapsed_ms=elapsed, key=cell.key)
            return ChordResult(ChordOutcome.EXPIRED, cell, elapsed)

        if braille.is_backspace(cell):
            await self._feedback.chord_resolved(cell)
            self._on_input(DecodedInput.backspace())
            await self._feedback.success()
            logger.debug("chord.backspace", elapsed_ms=elapsed)
            return ChordResult(ChordOutcome.BACKSPACE, cell, elapsed)

        char = braille.decode(cell)
        if char is None:
            logger.debug("chord.unmapped", key=cell.key)
            return ChordResult(ChordOutcome.UNMAPPED, cell, elapsed)

        await self._feedback.chord_resolved(cell)
        self._on_input(DecodedInput.character(char))
        await self._feedback.success()
        await self._feedback.speak_character(char)
        logger.debug("chord.accepted", key=cell.key, elapsed_ms=elapsed)
        return ChordResult(ChordOutcome.CHARACTER, cell, elapsed, char)

    async def settle_feedback(self) -> None:
        """Wait for the per-dot acknowledgments still playing."""
        await self._cues.settle()

    def reset(self) -> None:
        """Drop any half-formed chord without emitting anything."""
        self._state = ChordState.IDLE
        self._cell = EMPTY_CELL
        self._started_at = 0.0
