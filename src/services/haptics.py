"""Vibration patterns: vocabulary, text encoders and playback.

A pattern is a list of millisecond durations alternating *vibrate* and
*pause*: ``[200, 100, 200]`` means "vibrate 200 ms, pause 100 ms, vibrate
200 ms".  A trailing odd element is a final pulse with no pause after it.

Two text encoders are provided:

* :func:`text_to_haptic_pattern` -- plain word-length pulses, capped at
  6 s.
* :func:`enhanced_text_to_haptic_pattern` -- word-length pulses with
  recognisable sub-patterns for important words and a leading question
  marker, capped at 8 s.

Caps are enforced by :func:`scale_to_cap`, which shrinks every element by
the same factor so the rhythm keeps its shape.

:class:`HapticPlayer` plays a pattern on the vibration motor and, when the
device has none, replays the same timing as audible ticks.
"""

from __future__ import annotations

from typing import Final

import structlog
from pydantic import BaseModel, Field

from src.models.enums import EmotionCategory, PriorityLevel
from src.services.devices import AudioCue, ToneGenerator, VibrationActuator, WaveType
from src.services.errors import UnsupportedCapabilityError

logger = structlog.get_logger(__name__)

PLAIN_CAP_MS: Final[int] = 6000
ENHANCED_CAP_MS: Final[int] = 8000
TICK_FREQUENCY_HZ: Final[float] = 440.0


class HapticPattern(BaseModel):
    """A vibration pattern for haptic-capable devices."""

    sequence: list[int] = Field(default_factory=list)
    description: str = ""

    @property
    def total_ms(self) -> int:
        return sum(self.sequence)

    def scaled(self, strength: float) -> list[int]:
        """Durations multiplied by *strength* (0..1) and rounded."""
        return [_round_half_up(v * strength) for v in self.sequence]


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


# ---------------------------------------------------------------------------
# Pattern vocabulary
# ---------------------------------------------------------------------------

HAPTIC_PRESETS: Final[dict[str, HapticPattern]] = {
    "notification": HapticPattern(sequence=[200, 100, 200], description="Two even pulses."),
    "success": HapticPattern(sequence=[100, 50, 100, 50, 100], description="Three quick pulses."),
    "error": HapticPattern(sequence=[500, 200, 500], description="Two long heavy pulses."),
    "alert": HapticPattern(sequence=[300, 200, 300, 200, 300], description="Three strong pulses."),
    "sos": HapticPattern(
        sequence=[100, 100, 100, 300, 300, 300, 300, 100, 100, 100],
        description="SOS rhythm.",
    ),
    "press": HapticPattern(sequence=[30], description="Single tick for a key press."),
    "dot": HapticPattern(sequence=[50], description="Short tick for a morse dot."),
    "dash": HapticPattern(sequence=[150], description="Long tick for a morse dash."),
}

EMOTION_HAPTICS: Final[dict[EmotionCategory, HapticPattern]] = {
    EmotionCategory.JOY: HapticPattern(sequence=[40, 40, 60, 40, 80, 40, 100, 40, 120], description="Rising."),
    EmotionCategory.SADNESS: HapticPattern(sequence=[400, 300, 350, 300, 400, 400], description="Long and slow."),
    EmotionCategory.EXCITEMENT: HapticPattern(
        sequence=[25, 25, 25, 25, 25, 25, 50, 50, 100, 25, 25, 25, 25],
        description="Rapid bursts.",
    ),
    EmotionCategory.CALM: HapticPattern(sequence=[250, 150, 250, 150, 250, 150], description="Steady."),
    EmotionCategory.ANXIETY: HapticPattern(sequence=[80, 30, 120, 40, 90, 35, 110, 45, 95], description="Jittery."),
    EmotionCategory.ANGER: HapticPattern(sequence=[200, 50, 200, 50, 250, 50, 250], description="Strong."),
    EmotionCategory.LOVE: HapticPattern(sequence=[100, 80, 100, 300, 100, 80, 100], description="Heartbeat."),
    EmotionCategory.SURPRISE: HapticPattern(sequence=[400, 600, 80, 80, 80], description="Pause then burst."),
}

PRIORITY_HAPTICS: Final[dict[PriorityLevel, HapticPattern]] = {
    PriorityLevel.LOW: HapticPattern(sequence=[80, 250, 80], description="Two gentle taps."),
    PriorityLevel.NORMAL: HapticPattern(sequence=[100, 100, 100, 100, 150], description="Standard rhythm."),
    PriorityLevel.HIGH: HapticPattern(sequence=[150, 80, 150, 80, 200, 80, 250], description="Rising intensity."),
    PriorityLevel.URGENT: HapticPattern(
        sequence=[250, 80, 250, 80, 300, 80, 300, 80, 350],
        description="Strong and escalating.",
    ),
    PriorityLevel.EMERGENCY: HapticPattern(
        sequence=[150, 100, 150, 100, 400, 400, 400, 150, 100, 150, 100],
        description="SOS-like.",
    ),
}

CONTEXT_HAPTICS: Final[dict[str, HapticPattern]] = {
    "question": HapticPattern(sequence=[50, 50, 75, 50, 100, 50, 125, 50, 150]),
    "answer": HapticPattern(sequence=[150, 50, 125, 50, 100, 50, 75, 50, 50]),
    "greeting": HapticPattern(sequence=[100, 80, 120, 80, 140, 80, 120, 80, 100]),
    "farewell": HapticPattern(sequence=[140, 80, 120, 100, 100, 120, 80, 150, 60]),
    "agreement": HapticPattern(sequence=[100, 50, 100, 100, 200]),
    "disagreement": HapticPattern(sequence=[150, 100, 150, 200, 200]),
}

# Words that replace the generic word-length pulse with a recognisable motif.
IMPORTANT_WORDS: Final[dict[str, list[int]]] = {
    "help": PRIORITY_HAPTICS[PriorityLevel.URGENT].sequence,
    "emergency": PRIORITY_HAPTICS[PriorityLevel.EMERGENCY].sequence,
    "urgent": PRIORITY_HAPTICS[PriorityLevel.URGENT].sequence,
    "important": PRIORITY_HAPTICS[PriorityLevel.HIGH].sequence,
    "please": [80, 80, 120, 80, 80],
    "thank": [100, 80, 100, 80, 150],
    "sorry": EMOTION_HAPTICS[EmotionCategory.SADNESS].sequence[:5],
    "love": EMOTION_HAPTICS[EmotionCategory.LOVE].sequence[:7],
    "yes": CONTEXT_HAPTICS["agreement"].sequence,
    "no": CONTEXT_HAPTICS["disagreement"].sequence,
}

QUESTION_PAUSE_MS: Final[int] = 300


# ---------------------------------------------------------------------------
# Encoders
# ---------------------------------------------------------------------------


def scale_to_cap(sequence: list[int], cap_ms: int) -> list[int]:
    """Shrink *sequence* linearly so its total does not exceed *cap_ms*.

    Every element is multiplied by ``cap_ms / total`` and rounded.  If
    rounding up pushes the sum past the cap, the elements that overshot
    their exact value the most are rounded down instead, so each element
    stays within one unit of its exact scaled value.
    """
    total = sum(sequence)
    if total <= cap_ms:
        return list(sequence)

    factor = cap_ms / total
    exact = [v * factor for v in sequence]
    scaled = [_round_half_up(x) for x in exact]

    excess = sum(scaled) - cap_ms
    if excess > 0:
        overshot = sorted(
            (i for i in range(len(scaled)) if scaled[i] > exact[i]),
            key=lambda i: scaled[i] - exact[i],
            reverse=True,
        )
        for i in overshot[:excess]:
            scaled[i] -= 1
    return scaled


def _words(text: str) -> list[str]:
    return text.lower().split()


def text_to_haptic_pattern(text: str) -> HapticPattern:
    """Plain encoding: one pulse per word, longer words get longer pulses."""
    sequence: list[int] = []
    for word in _words(text):
        if len(word) <= 3:
            sequence.extend((100, 100))
        elif len(word) <= 6:
            sequence.extend((200, 100))
        else:
            sequence.extend((300, 100))
    return HapticPattern(sequence=scale_to_cap(sequence, PLAIN_CAP_MS))


def enhanced_text_to_haptic_pattern(text: str) -> HapticPattern:
    """Word encoding with motifs for important words and a question marker."""
    sequence: list[int] = []

    if text.strip().endswith("?"):
        sequence.extend(CONTEXT_HAPTICS["question"].sequence)
        sequence.append(QUESTION_PAUSE_MS)

    for word in _words(text):
        motif = IMPORTANT_WORDS.get(word)
        if motif is not None:
            sequence.extend(motif)
        elif len(word) <= 3:
            sequence.extend((80, 100))
        elif len(word) <= 6:
            sequence.extend((150, 100))
        else:
            sequence.extend((250, 100))

    return HapticPattern(sequence=scale_to_cap(sequence, ENHANCED_CAP_MS))


def audio_ticks(sequence: list[int]) -> list[AudioCue]:
    """Translate a vibration sequence into tone/silence pairs of equal timing."""
    cues: list[AudioCue] = []
    for i in range(0, len(sequence), 2):
        on = sequence[i]
        off = sequence[i + 1] if i + 1 < len(sequence) else 0
        if on == 0:
            # A zero pulse still costs its pause.
            cues.append(AudioCue(frequencies=[], durations=[0], gap_ms=off))
            continue
        cues.append(
            AudioCue(
                frequencies=[TICK_FREQUENCY_HZ],
                durations=[on],
                wave_type=WaveType.SINE,
                volume=0.3,
                gap_ms=off,
            )
        )
    return cues


# ---------------------------------------------------------------------------
# Playback
# ---------------------------------------------------------------------------


class HapticPlayer:
    """Plays patterns on the vibration motor with an audio-tick fallback.

    ``play`` returns the channel actually used: ``"vibration"``,
    ``"audio_ticks"``, or ``"none"`` when neither output exists.
    """

    __slots__ = ("_actuator", "_tones")

    def __init__(
        self,
        actuator: VibrationActuator | None = None,
        tones: ToneGenerator | None = None,
    ) -> None:
        self._actuator = actuator
        self._tones = tones

    @property
    def has_actuator(self) -> bool:
        return self._actuator is not None

    async def play(self, pattern: HapticPattern | list[int], strength: float = 1.0) -> str:
        if isinstance(pattern, list):
            pattern = HapticPattern(sequence=pattern)
        sequence = pattern.scaled(max(0.0, min(1.0, strength)))
        if not any(sequence):
            return "none"

        if self._actuator is not None:
            try:
                await self._actuator.vibrate(sequence)
                return "vibration"
            except UnsupportedCapabilityError:
                logger.debug("haptics.vibration_unsupported_using_ticks")

        if self._tones is None:
            return "none"

        for cue in audio_ticks(sequence):
            await self._tones.play(cue)
        return "audio_ticks"
