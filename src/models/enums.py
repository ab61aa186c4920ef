from __future__ import annotations

from enum import StrEnum


class AbilityProfile(StrEnum):
    """Which sensory channels a user can reliably use."""

    __slots__ = ()

    DEAF = "DEAF"
    BLIND = "BLIND"
    MUTE = "MUTE"
    DEAF_BLIND = "DEAF_BLIND"
    DEAF_MUTE = "DEAF_MUTE"
    BLIND_MUTE = "BLIND_MUTE"
    DEAF_BLIND_MUTE = "DEAF_BLIND_MUTE"

    @property
    def is_deaf(self) -> bool:
        return self.value.startswith("DEAF")


class Modality(StrEnum):
    __slots__ = ()

    TEXT = "text"
    VISUAL = "visual"
    AUDIO = "audio"
    HAPTIC = "haptic"
    BRAILLE = "braille"


class InputMethod(StrEnum):
    __slots__ = ()

    TEXT = "text"
    VOICE = "voice"
    BRAILLE_CHORD = "braille_chord"
    MORSE = "morse"
    QUICK_REPLY = "quick_reply"


class LayoutMode(StrEnum):
    __slots__ = ()

    VISUAL_FIRST = "visual-first"
    AUDIO_FIRST = "audio-first"
    HAPTIC_FIRST = "haptic-first"
    BALANCED = "balanced"


class EmotionCategory(StrEnum):
    __slots__ = ()

    JOY = "joy"
    SADNESS = "sadness"
    EXCITEMENT = "excitement"
    CALM = "calm"
    ANXIETY = "anxiety"
    ANGER = "anger"
    LOVE = "love"
    SURPRISE = "surprise"


class PriorityLevel(StrEnum):
    __slots__ = ()

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"
    EMERGENCY = "emergency"

    @classmethod
    def coerce(cls, value: str | None) -> PriorityLevel:
        """Map a free-form priority string onto a level, defaulting to ``NORMAL``."""
        if value is None:
            return cls.NORMAL
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.NORMAL


class MorseSymbol(StrEnum):
    """Morse tokens, serialised with their ASCII wire form."""

    __slots__ = ()

    DOT = "."
    DASH = "-"


class QueueStatus(StrEnum):
    __slots__ = ()

    PENDING = "pending"
    FAILED = "failed"
