"""Tests for sentiment classification and layered message patterns."""

from __future__ import annotations

import pytest

from src.models.enums import EmotionCategory, PriorityLevel
from src.services.haptics import (
    CONTEXT_HAPTICS,
    EMOTION_HAPTICS,
    ENHANCED_CAP_MS,
    PRIORITY_HAPTICS,
    enhanced_text_to_haptic_pattern,
)
from src.services.sentiment import SECTION_PAUSE_MS, classify_sentiment, compose_pattern, context_pattern


class TestClassifySentiment:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("I am so happy today", EmotionCategory.JOY),
            ("feeling sad and upset", EmotionCategory.SADNESS),
            ("I adore you", EmotionCategory.LOVE),
            ("this is amazing", EmotionCategory.EXCITEMENT),
            ("happy great awesome day", EmotionCategory.EXCITEMENT),
            ("so annoyed right now", EmotionCategory.ANGER),
            ("wow, really", EmotionCategory.SURPRISE),
            ("I'm fine", EmotionCategory.CALM),
            ("wow I love it", EmotionCategory.SURPRISE),
            ("love this!!", EmotionCategory.LOVE),
            ("amazing but sad", EmotionCategory.EXCITEMENT),
            ("fine but sad", EmotionCategory.SADNESS),
            ("", EmotionCategory.CALM),
        ],
    )
    def test_lexicon_categories(self, text: str, expected: EmotionCategory) -> None:
        assert classify_sentiment(text) is expected

    def test_urgency_beats_love(self) -> None:
        assert classify_sentiment("urgent, love you") is EmotionCategory.ANXIETY

    def test_anger_beats_surprise(self) -> None:
        assert classify_sentiment("wow I am furious") is EmotionCategory.ANGER

    def test_love_beats_joy(self) -> None:
        assert classify_sentiment("love you, happy") is EmotionCategory.LOVE

    def test_joy_sadness_tie_is_calm(self) -> None:
        assert classify_sentiment("happy but sad") is EmotionCategory.CALM

    def test_case_insensitive(self) -> None:
        assert classify_sentiment("HELP") is EmotionCategory.ANXIETY


class TestComposePattern:
    def test_layers_priority_then_emotion(self) -> None:
        pattern = compose_pattern("hi", PriorityLevel.NORMAL)
        priority = PRIORITY_HAPTICS[PriorityLevel.NORMAL].sequence
        assert pattern.sequence[: len(priority)] == priority
        assert pattern.sequence[len(priority)] == SECTION_PAUSE_MS
        assert pattern.description == "normal priority, calm"

    def test_unknown_priority_coerced_to_normal(self) -> None:
        assert compose_pattern("hi", "whenever").description.startswith("normal priority")

    def test_total_never_exceeds_cap(self) -> None:
        text = " ".join(["emergency help urgent important"] * 30)
        pattern = compose_pattern(text, PriorityLevel.EMERGENCY)
        assert pattern.total_ms <= ENHANCED_CAP_MS

    def test_long_message_shrinks_every_layer_proportionally(self) -> None:
        text = " ".join(["extraordinary"] * 200)
        layered = [
            *PRIORITY_HAPTICS[PriorityLevel.NORMAL].sequence,
            SECTION_PAUSE_MS,
            *EMOTION_HAPTICS[EmotionCategory.CALM].sequence,
            SECTION_PAUSE_MS,
            *enhanced_text_to_haptic_pattern(text).sequence,
        ]
        assert sum(layered) > ENHANCED_CAP_MS

        pattern = compose_pattern(text, PriorityLevel.NORMAL)
        factor = ENHANCED_CAP_MS / sum(layered)
        assert len(pattern.sequence) == len(layered)
        assert pattern.total_ms <= ENHANCED_CAP_MS
        for actual, original in zip(pattern.sequence, layered, strict=True):
            assert abs(actual - original * factor) <= 1, "the priority layer must shrink with the rest"

    def test_no_negative_durations(self) -> None:
        pattern = compose_pattern("please thank you, sorry?", PriorityLevel.HIGH)
        assert all(v >= 0 for v in pattern.sequence)


class TestContextPattern:
    def test_question(self) -> None:
        assert context_pattern("are you there?") is CONTEXT_HAPTICS["question"]

    def test_greeting(self) -> None:
        assert context_pattern("Hello there") is CONTEXT_HAPTICS["greeting"]

    def test_agreement_by_whole_word(self) -> None:
        assert context_pattern("yes, see you") is CONTEXT_HAPTICS["agreement"]
        assert context_pattern("yesterday was long") is None, "substrings must not trigger a cue"

    def test_none(self) -> None:
        assert context_pattern("the report is attached") is None
