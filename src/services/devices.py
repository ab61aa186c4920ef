"""Output device ports and the audio cue model.

The engine never talks to hardware directly.  Hosts hand it objects that
satisfy :class:`VibrationActuator`, :class:`ToneGenerator` and
:class:`SpeechEngine`; any of them may be absent on a given device.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Protocol, runtime_checkable

import structlog
from pydantic import BaseModel, Field

logger = structlog.get_logger(__name__)


class WaveType(StrEnum):
    __slots__ = ()

    SINE = "sine"
    SQUARE = "square"
    SAWTOOTH = "sawtooth"
    TRIANGLE = "triangle"


class AudioCue(BaseModel):
    """A short synthesised tone sequence.

    Each frequency sounds for ``durations[i]`` ms (or ``durations[0]`` when
    the list is shorter).  When ``chord`` is set all frequencies sound at
    once for ``durations[0]``.  ``gap_ms`` of silence follows the cue.
    """

    frequencies: list[float]
    durations: list[int]
    wave_type: WaveType = WaveType.SINE
    volume: float = Field(default=0.3, ge=0.0, le=1.0)
    chord: bool = False
    gap_ms: int = Field(default=0, ge=0)

    def duration_of(self, index: int) -> int:
        return self.durations[index] if index < len(self.durations) else self.durations[0]

    @property
    def total_ms(self) -> int:
        if not self.frequencies:
            return self.gap_ms
        if self.chord:
            return self.durations[0] + self.gap_ms
        return sum(self.duration_of(i) for i in range(len(self.frequencies))) + self.gap_ms

    def with_volume(self, factor: float) -> AudioCue:
        return self.model_copy(update={"volume": max(0.0, min(1.0, self.volume * factor))})


@runtime_checkable
class VibrationActuator(Protocol):
    """Plays an alternating on/off millisecond sequence.

    Raises :class:`~src.services.errors.UnsupportedCapabilityError` when the
    device has no usable motor.
    """

    async def vibrate(self, sequence: list[int]) -> None: ...


@runtime_checkable
class ToneGenerator(Protocol):
    async def play(self, cue: AudioCue) -> None: ...


@runtime_checkable
class SpeechEngine(Protocol):
    """Speaks one utterance and returns once it has finished."""

    async def speak(self, text: str, *, rate: float = 1.0, volume: float = 1.0) -> None: ...


class SilentOutput:
    """Stand-in for hosts without audio output; drops tones and speech."""

    __slots__ = ()

    async def play(self, cue: AudioCue) -> None:
        logger.debug("devices.tone_dropped", frequencies=cue.frequencies)

    async def speak(self, text: str, *, rate: float = 1.0, volume: float = 1.0) -> None:
        logger.debug("devices.speech_dropped", chars=len(text))
