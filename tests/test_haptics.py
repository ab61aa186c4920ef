"""Tests for haptic pattern encoding, capping and playback."""

from __future__ import annotations

import pytest

from conftest import FakeActuator, FakeTones
from src.models.enums import PriorityLevel
from src.services.haptics import (
    CONTEXT_HAPTICS,
    ENHANCED_CAP_MS,
    HAPTIC_PRESETS,
    IMPORTANT_WORDS,
    PLAIN_CAP_MS,
    PRIORITY_HAPTICS,
    QUESTION_PAUSE_MS,
    HapticPattern,
    HapticPlayer,
    audio_ticks,
    enhanced_text_to_haptic_pattern,
    scale_to_cap,
    text_to_haptic_pattern,
)

LONG_TEXT = " ".join(["extraordinary"] * 60)


class TestScaleToCap:
    def test_under_cap_unchanged(self) -> None:
        assert scale_to_cap([100, 50, 100], 1000) == [100, 50, 100]

    def test_cap_is_hard(self) -> None:
        scaled = scale_to_cap([3000, 3000, 3000], 8000)
        assert sum(scaled) == 8000, "half-up rounding must not push the total past the cap"

    def test_elements_stay_within_one_unit_of_exact(self) -> None:
        sequence = [250, 100, 80, 100, 150, 100] * 40
        scaled = scale_to_cap(sequence, 6000)
        factor = 6000 / sum(sequence)
        assert sum(scaled) <= 6000
        for original, value in zip(sequence, scaled, strict=True):
            assert abs(value - original * factor) <= 1, "scaling must keep each element proportional"


class TestTextEncoders:
    def test_plain_word_buckets(self) -> None:
        pattern = text_to_haptic_pattern("hi hello wonderful")
        assert pattern.sequence == [100, 100, 200, 100, 300, 100]

    def test_plain_cap(self) -> None:
        assert text_to_haptic_pattern(LONG_TEXT).total_ms <= PLAIN_CAP_MS

    def test_empty_text(self) -> None:
        assert text_to_haptic_pattern("").sequence == []

    def test_enhanced_word_buckets(self) -> None:
        assert enhanced_text_to_haptic_pattern("hi hello wonderful").sequence == [80, 100, 150, 100, 250, 100]

    def test_enhanced_important_word_motif(self) -> None:
        assert enhanced_text_to_haptic_pattern("help").sequence == IMPORTANT_WORDS["help"]
        assert IMPORTANT_WORDS["help"] == PRIORITY_HAPTICS[PriorityLevel.URGENT].sequence

    def test_enhanced_question_prefix(self) -> None:
        sequence = enhanced_text_to_haptic_pattern("you ok?").sequence
        prefix = CONTEXT_HAPTICS["question"].sequence
        assert sequence[: len(prefix)] == prefix
        assert sequence[len(prefix)] == QUESTION_PAUSE_MS

    def test_enhanced_cap(self) -> None:
        assert enhanced_text_to_haptic_pattern(LONG_TEXT).total_ms <= ENHANCED_CAP_MS


class TestAudioTicks:
    def test_tick_timing_matches_pattern(self) -> None:
        cues = audio_ticks([100, 50, 200])
        assert [(c.frequencies, c.durations, c.gap_ms) for c in cues] == [
            ([440.0], [100], 50),
            ([440.0], [200], 0),
        ]
        assert sum(c.total_ms for c in cues) == 350

    def test_zero_pulse_keeps_pause(self) -> None:
        cues = audio_ticks([0, 120, 60])
        assert cues[0].frequencies == []
        assert cues[0].total_ms == 120


class TestHapticPlayer:
    async def test_plays_on_actuator_scaled(self) -> None:
        actuator = FakeActuator()
        player = HapticPlayer(actuator)
        channel = await player.play(HapticPattern(sequence=[200, 100, 200]), strength=0.5)
        assert channel == "vibration"
        assert actuator.played == [[100, 50, 100]]

    async def test_accepts_plain_list(self) -> None:
        actuator = FakeActuator()
        await HapticPlayer(actuator).play([30])
        assert actuator.played == [[30]]

    async def test_falls_back_to_ticks_without_actuator(self) -> None:
        tones = FakeTones()
        channel = await HapticPlayer(tones=tones).play(HAPTIC_PRESETS["notification"])
        assert channel == "audio_ticks"
        assert [c.durations[0] for c in tones.played] == [200, 200]

    async def test_falls_back_when_vibration_unsupported(self) -> None:
        tones = FakeTones()
        player = HapticPlayer(FakeActuator(unsupported=True), tones)
        assert await player.play([100, 100, 100]) == "audio_ticks"
        assert len(tones.played) == 2

    async def test_no_outputs(self) -> None:
        assert await HapticPlayer().play([100]) == "none"

    @pytest.mark.parametrize("strength", [0.0, -1.0])
    async def test_zero_strength_plays_nothing(self, strength: float) -> None:
        actuator = FakeActuator()
        assert await HapticPlayer(actuator).play([100, 50, 100], strength) == "none"
        assert actuator.played == []
