"""Multimodal acknowledgment cues for tactile input and message events.

The decoders report what happened through the :class:`FeedbackSink`
protocol; :class:`MultimodalFeedback` turns those reports into tones,
vibration and short spoken confirmations on whatever output devices the
host provides.  Device faults are logged and never reach the decoders.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Coroutine
from typing import Any, Final, Protocol

import structlog
from pydantic import BaseModel

from src.models.enums import MorseSymbol
from src.services.braille import DotVector
from src.services.clock import Scheduler
from src.services.devices import AudioCue, SpeechEngine, ToneGenerator, WaveType
from src.services.haptics import HAPTIC_PRESETS, HapticPattern, HapticPlayer

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Audio vocabulary
# ---------------------------------------------------------------------------

AUDIO_CUES: Final[dict[str, AudioCue]] = {
    "message.incoming": AudioCue(frequencies=[261.63, 329.63, 392.00], durations=[200]),
    "message.outgoing": AudioCue(frequencies=[392.00, 329.63, 261.63], durations=[200]),
    "status.sent": AudioCue(frequencies=[800, 400], durations=[50, 50], volume=0.2),
    "status.delivered": AudioCue(frequencies=[600, 600], durations=[50, 50], volume=0.2),
    "status.read": AudioCue(frequencies=[523.25, 659.25], durations=[150]),
    "status.failed": AudioCue(frequencies=[200], durations=[300], wave_type=WaveType.SAWTOOTH, volume=0.4),
    "navigation.press": AudioCue(frequencies=[200], durations=[50], volume=0.25),
    "navigation.error": AudioCue(frequencies=[100, 100, 100], durations=[50, 50, 50], wave_type=WaveType.SQUARE),
    "morse.dot": AudioCue(frequencies=[800], durations=[200]),
    "morse.dash": AudioCue(frequencies=[400], durations=[200]),
    "success": AudioCue(frequencies=[523.25, 659.25], durations=[150]),
}

# C4 through A4, one pitch per braille dot.
BRAILLE_DOT_FREQUENCIES: Final[tuple[float, ...]] = (261.63, 293.66, 329.63, 349.23, 392.00, 440.00)


def dot_tone(index: int, volume: float = 0.3) -> AudioCue:
    return AudioCue(frequencies=[BRAILLE_DOT_FREQUENCIES[index]], durations=[100], volume=volume)


def chord_tone(cell: DotVector, volume: float = 0.3) -> AudioCue | None:
    """All raised dots sounding together, or ``None`` for an empty cell."""
    frequencies = [BRAILLE_DOT_FREQUENCIES[i] for i in cell.active]
    if not frequencies:
        return None
    return AudioCue(frequencies=frequencies, durations=[200], volume=volume, chord=True)


class MultimodalCue(BaseModel):
    """A paired audio + haptic cue; the haptic half starts ``delay_ms`` later."""

    audio: AudioCue | None = None
    haptic: HapticPattern | None = None
    delay_ms: int = 0


MULTIMODAL_CUES: Final[dict[str, MultimodalCue]] = {
    "message_received": MultimodalCue(audio=AUDIO_CUES["message.incoming"], haptic=HAPTIC_PRESETS["notification"]),
    "message_sent": MultimodalCue(audio=AUDIO_CUES["status.sent"], haptic=HAPTIC_PRESETS["success"], delay_ms=50),
    "message_failed": MultimodalCue(audio=AUDIO_CUES["status.failed"], haptic=HAPTIC_PRESETS["error"]),
    "success": MultimodalCue(audio=AUDIO_CUES["success"], haptic=HAPTIC_PRESETS["success"]),
    "error": MultimodalCue(audio=AUDIO_CUES["status.failed"], haptic=HAPTIC_PRESETS["error"]),
}


# ---------------------------------------------------------------------------
# Decoder-facing protocol
# ---------------------------------------------------------------------------


class FeedbackSink(Protocol):
    """What the tactile decoders report while a character is being formed."""

    async def dot_pressed(self, index: int) -> None: ...

    async def chord_resolved(self, cell: DotVector) -> None: ...

    async def tap_pressed(self) -> None: ...

    async def symbol_recorded(self, symbol: MorseSymbol) -> None: ...

    async def success(self) -> None: ...

    async def failure(self) -> None: ...

    async def speak_character(self, char: str) -> None: ...


class PendingCues:
    """Acknowledgment cues playing in the background.

    Per-touch acknowledgments must not hold up the touch handler: a slow
    tone or vibration would otherwise eat into the chord window or the
    press timing.  Cues are started as tasks and kept referenced until
    they finish, the same way :class:`AsyncioScheduler` holds its timers.
    """

    __slots__ = ("_tasks",)

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def start(self, cue: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(cue)
        self._tasks.add(task)
        task.add_done_callback(self._finished)

    def _finished(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning("feedback.cue_failed", error=str(task.exception()))

    async def settle(self) -> None:
        """Wait until every cue started so far has finished playing."""
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)


# ---------------------------------------------------------------------------
# Device-backed implementation
# ---------------------------------------------------------------------------


class MultimodalFeedback:
    """Plays acknowledgment cues on the host's tone, vibration and speech outputs."""

    __slots__ = (
        "_audio_enabled",
        "_audio_volume",
        "_haptic_enabled",
        "_haptic_strength",
        "_haptics",
        "_scheduler",
        "_speech",
        "_tones",
    )

    def __init__(
        self,
        haptics: HapticPlayer,
        tones: ToneGenerator | None = None,
        speech: SpeechEngine | None = None,
        *,
        scheduler: Scheduler | None = None,
        haptic_strength: float = 0.8,
        audio_volume: float = 1.0,
        audio_enabled: bool = True,
        haptic_enabled: bool = True,
    ) -> None:
        self._haptics = haptics
        self._tones = tones
        self._speech = speech
        self._scheduler = scheduler
        self._haptic_strength = haptic_strength
        self._audio_volume = audio_volume
        self._audio_enabled = audio_enabled
        self._haptic_enabled = haptic_enabled

    # -- primitives -----------------------------------------------------------

    async def _guard(self, what: str, operation: Awaitable[object]) -> None:
        try:
            await operation
        except Exception:
            logger.warning("feedback.device_failed", output=what, exc_info=True)

    async def _tone(self, cue: AudioCue | None) -> None:
        if cue is None or self._tones is None or not self._audio_enabled:
            return
        await self._guard("tone", self._tones.play(cue.with_volume(self._audio_volume)))

    async def _vibrate(self, pattern: HapticPattern) -> None:
        if not self._haptic_enabled or self._haptic_strength <= 0:
            return
        await self._guard("haptic", self._haptics.play(pattern, self._haptic_strength))

    async def _delayed_vibrate(self, pattern: HapticPattern, delay_ms: int) -> None:
        if delay_ms and self._scheduler is not None:
            await self._scheduler.sleep(delay_ms)
        elif delay_ms:
            await asyncio.sleep(delay_ms / 1000.0)
        await self._vibrate(pattern)

    async def play_cue(self, cue: MultimodalCue) -> None:
        """Play the audio and haptic halves of *cue* concurrently."""
        parts: list[Awaitable[None]] = []
        if cue.audio is not None:
            parts.append(self._tone(cue.audio))
        if cue.haptic is not None:
            parts.append(self._delayed_vibrate(cue.haptic, cue.delay_ms))
        await asyncio.gather(*parts)

    # -- FeedbackSink ---------------------------------------------------------

    async def dot_pressed(self, index: int) -> None:
        await asyncio.gather(self._tone(dot_tone(index)), self._vibrate(HAPTIC_PRESETS["notification"]))

    async def chord_resolved(self, cell: DotVector) -> None:
        await self._tone(chord_tone(cell))

    async def tap_pressed(self) -> None:
        await asyncio.gather(self._tone(AUDIO_CUES["navigation.press"]), self._vibrate(HAPTIC_PRESETS["press"]))

    async def symbol_recorded(self, symbol: MorseSymbol) -> None:
        name = "dot" if symbol is MorseSymbol.DOT else "dash"
        await asyncio.gather(self._tone(AUDIO_CUES[f"morse.{name}"]), self._vibrate(HAPTIC_PRESETS[name]))

    async def success(self) -> None:
        await self.play_cue(MULTIMODAL_CUES["success"])

    async def failure(self) -> None:
        await self.play_cue(MULTIMODAL_CUES["error"])

    async def speak_character(self, char: str) -> None:
        if self._speech is None or not self._audio_enabled:
            return
        spoken = "space" if char == " " else char
        await self._guard("speech", self._speech.speak(spoken, rate=1.2, volume=0.5 * self._audio_volume))
