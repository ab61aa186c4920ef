"""Message sentiment and the layered message vibration pattern.

:func:`classify_sentiment` scores a message against small keyword lexicons
and resolves overlaps with a fixed precedence::

    urgency (anxiety) > anger > surprise > love > excitement
        > joy vs. sadness (by count) > calm > calm (default)

Urgency wins over everything so a message such as "urgent, love you" is
felt as anxious rather than affectionate.

:func:`compose_pattern` builds the pattern a haptic-first reader feels for
an incoming message: priority motif, pause, emotion motif, pause, then the
word-by-word content pattern, scaled to fit the 8 s cap.
"""

from __future__ import annotations

from typing import Final

from src.models.enums import EmotionCategory, PriorityLevel
from src.services.haptics import (
    CONTEXT_HAPTICS,
    EMOTION_HAPTICS,
    ENHANCED_CAP_MS,
    PRIORITY_HAPTICS,
    HapticPattern,
    enhanced_text_to_haptic_pattern,
    scale_to_cap,
)

SECTION_PAUSE_MS: Final[int] = 200

# Matched as substrings of the lower-cased text.
JOY_WORDS: Final[tuple[str, ...]] = (
    "happy", "excited", "wonderful", "great", "awesome", "love", "yay", "😊", "😄", "🎉",
)
SAD_WORDS: Final[tuple[str, ...]] = ("sad", "sorry", "upset", "disappointed", "miss", "😢", "😔")
LOVE_WORDS: Final[tuple[str, ...]] = ("love", "adore", "cherish", "❤️", "💕")
EXCITEMENT_MARKERS: Final[tuple[str, ...]] = ("!!", "amazing", "incredible")
CALM_WORDS: Final[tuple[str, ...]] = ("okay", "alright", "fine", "peaceful", "relaxed")
URGENT_WORDS: Final[tuple[str, ...]] = ("urgent", "hurry", "quick", "emergency", "help")
ANGER_WORDS: Final[tuple[str, ...]] = ("angry", "mad", "furious", "annoyed", "frustrated")
SURPRISE_WORDS: Final[tuple[str, ...]] = ("wow", "omg", "what", "surprise", "shocked", "😲", "😮")

# Joy hits above this count read as excitement.
_EXCITEMENT_JOY_THRESHOLD: Final[int] = 2


def _count(text: str, lexicon: tuple[str, ...]) -> int:
    return sum(1 for word in lexicon if word in text)


def classify_sentiment(text: str) -> EmotionCategory:
    lowered = text.lower()

    joy = _count(lowered, JOY_WORDS)
    sadness = _count(lowered, SAD_WORDS)

    if _count(lowered, URGENT_WORDS):
        return EmotionCategory.ANXIETY
    if _count(lowered, ANGER_WORDS):
        return EmotionCategory.ANGER
    if _count(lowered, SURPRISE_WORDS):
        return EmotionCategory.SURPRISE
    if _count(lowered, LOVE_WORDS):
        return EmotionCategory.LOVE
    if _count(lowered, EXCITEMENT_MARKERS) or joy > _EXCITEMENT_JOY_THRESHOLD:
        return EmotionCategory.EXCITEMENT
    if joy > sadness:
        return EmotionCategory.JOY
    if sadness > joy:
        return EmotionCategory.SADNESS
    return EmotionCategory.CALM


def compose_pattern(text: str, priority: PriorityLevel | str = PriorityLevel.NORMAL) -> HapticPattern:
    """Layer priority, emotion and content into one pattern of at most 8 s."""
    level = priority if isinstance(priority, PriorityLevel) else PriorityLevel.coerce(priority)
    emotion = classify_sentiment(text)

    sequence = [
        *PRIORITY_HAPTICS[level].sequence,
        SECTION_PAUSE_MS,
        *EMOTION_HAPTICS[emotion].sequence,
        SECTION_PAUSE_MS,
        *enhanced_text_to_haptic_pattern(text).sequence,
    ]
    return HapticPattern(
        sequence=scale_to_cap(sequence, ENHANCED_CAP_MS),
        description=f"{level.value} priority, {emotion.value}",
    )


def context_pattern(text: str) -> HapticPattern | None:
    """Return a conversational cue (question, greeting, ...) for *text*, if any."""
    lowered = text.lower()
    words = set(lowered.replace("?", " ").replace("!", " ").replace(",", " ").replace(".", " ").split())

    if text.strip().endswith("?"):
        return CONTEXT_HAPTICS["question"]
    if words & {"yes", "agree"}:
        return CONTEXT_HAPTICS["agreement"]
    if words & {"no", "disagree"}:
        return CONTEXT_HAPTICS["disagreement"]
    if words & {"hello", "hi", "hey"}:
        return CONTEXT_HAPTICS["greeting"]
    if words & {"bye", "goodbye"}:
        return CONTEXT_HAPTICS["farewell"]
    return None
