"""Morse tap decoder.

Each press is timed on the scheduler clock: shorter than the dot threshold
(200 ms) is a dot, anything longer a dash.  Symbols accumulate until the
pad has been silent for the commit timeout (1000 ms), at which point the
string is looked up.  A hit emits the character with a success cue and a
spoken echo; a miss plays the failure cue and is discarded.  Either way the
next character starts from an empty string.

Press and symbol acknowledgments play in the background so they never
stretch the measured press.  Space, backspace and phrase shortcuts skip
timing altogether.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

import structlog

from src.models.enums import MorseSymbol
from src.models.input import DecodedInput
from src.services import morse
from src.services.clock import Scheduler, TimerHandle
from src.services.feedback import FeedbackSink, PendingCues

logger = structlog.get_logger(__name__)

COMMIT_TIMEOUT_MS = 1000


class TapState(StrEnum):
    __slots__ = ()

    IDLE = "idle"
    PRESSED = "pressed"


class TapOutcome(StrEnum):
    __slots__ = ()

    CHARACTER = "character"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class TapCommit:
    outcome: TapOutcome
    code: str
    char: str | None = None


class TapDecoder:
    """Press-duration state machine with a silence-commit timer."""

    __slots__ = (
        "_commit_timeout_ms",
        "_cues",
        "_dot_threshold_ms",
        "_feedback",
        "_max_symbols",
        "_on_input",
        "_pressed_at",
        "_scheduler",
        "_state",
        "_symbols",
        "_timer",
    )

    def __init__(
        self,
        scheduler: Scheduler,
        feedback: FeedbackSink,
        on_input: Callable[[DecodedInput], None],
        *,
        dot_threshold_ms: int = morse.DEFAULT_DOT_THRESHOLD_MS,
        commit_timeout_ms: int = COMMIT_TIMEOUT_MS,
        max_symbols: int = morse.MAX_SYMBOLS,
    ) -> None:
        self._scheduler = scheduler
        self._feedback = feedback
        self._on_input = on_input
        self._dot_threshold_ms = dot_threshold_ms
        self._commit_timeout_ms = commit_timeout_ms
        self._max_symbols = max_symbols
        self._state = TapState.IDLE
        self._symbols: list[MorseSymbol] = []
        self._pressed_at = 0.0
        self._timer: TimerHandle | None = None
        self._cues = PendingCues()

    @property
    def state(self) -> TapState:
        return self._state

    @property
    def code(self) -> str:
        """The symbols entered so far for the current character."""
        return morse.symbols_to_code(self._symbols)

    @property
    def commit_pending(self) -> bool:
        return self._timer is not None

    # -- timed input ----------------------------------------------------------

    async def press(self) -> None:
        if self._state is TapState.PRESSED:
            return
        self._cancel_timer()
        self._state = TapState.PRESSED
        self._pressed_at = self._scheduler.now()
        self._cues.start(self._feedback.tap_pressed())

    async def release(self) -> MorseSymbol | None:
        """Classify the press that just ended and restart the silence timer."""
        if self._state is not TapState.PRESSED:
            return None

        duration = self._scheduler.now() - self._pressed_at
        self._state = TapState.IDLE
        symbol = morse.classify_press(duration, self._dot_threshold_ms)
        self._symbols.append(symbol)
        self._cues.start(self._feedback.symbol_recorded(symbol))

        if len(self._symbols) > self._max_symbols:
            logger.debug("tap.too_many_symbols", code=self.code)
            await self.commit()
        else:
            self._cancel_timer()
            self._timer = self._scheduler.call_later(self._commit_timeout_ms, self._on_silence)
        return symbol

    async def _on_silence(self) -> None:
        self._timer = None
        await self.commit()

    async def commit(self) -> TapCommit | None:
        """Look up the pending symbols now instead of waiting for silence."""
        self._cancel_timer()
        if not self._symbols:
            return None

        code = self.code
        self._symbols = []
        char = morse.decode(code)

        if char is None:
            logger.debug("tap.unknown_sequence", code=code)
            await self._feedback.failure()
            return TapCommit(TapOutcome.UNKNOWN, code)

        self._on_input(DecodedInput.character(char))
        await self._feedback.success()
        await self._feedback.speak_character(char)
        logger.debug("tap.committed", code=code, char=char)
        return TapCommit(TapOutcome.CHARACTER, code, char)

    # -- untimed input ---------------------------------------------------------

    async def space(self) -> None:
        self._on_input(DecodedInput.character(" "))

    async def backspace(self) -> None:
        self._on_input(DecodedInput.backspace())

    async def insert_phrase(self, name: str) -> str | None:
        """Emit a canned phrase (``"sos"``, ``"ok"``, ...) character by character."""
        phrase = morse.PHRASES.get(name.lower())
        if phrase is None:
            logger.warning("tap.unknown_phrase", phrase=name)
            return None
        for char in phrase:
            self._on_input(DecodedInput.character(char))
        await self._feedback.success()
        return phrase

    async def settle_feedback(self) -> None:
        """Wait for the press and symbol acknowledgments still playing."""
        await self._cues.settle()

    def reset(self) -> None:
        """Abort: cancel the pending commit and forget uncommitted symbols."""
        self._cancel_timer()
        self._symbols = []
        self._state = TapState.IDLE
        self._pressed_at = 0.0

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
