"""Shared fakes for device outputs, feedback, transport and timing."""

from __future__ import annotations

import asyncio

import pytest

from src.models.enums import MorseSymbol
from src.models.input import DecodedInput
from src.models.message import OutgoingMessage
from src.services.braille import DotVector
from src.services.clock import VirtualScheduler
from src.services.devices import AudioCue
from src.services.errors import DeliveryError, UnsupportedCapabilityError


class RecordingFeedback:
    """FeedbackSink that records every call as an ``(event, arg)`` tuple."""

    def __init__(self) -> None:
        self.events: list[tuple[str, object]] = []

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    async def dot_pressed(self, index: int) -> None:
        self.events.append(("dot_pressed", index))

    async def chord_resolved(self, cell: DotVector) -> None:
        self.events.append(("chord_resolved", cell))

    async def tap_pressed(self) -> None:
        self.events.append(("tap_pressed", None))

    async def symbol_recorded(self, symbol: MorseSymbol) -> None:
        self.events.append(("symbol_recorded", symbol))

    async def success(self) -> None:
        self.events.append(("success", None))

    async def failure(self) -> None:
        self.events.append(("failure", None))

    async def speak_character(self, char: str) -> None:
        self.events.append(("speak_character", char))


class FakeActuator:
    def __init__(self, *, unsupported: bool = False) -> None:
        self.unsupported = unsupported
        self.played: list[list[int]] = []

    async def vibrate(self, sequence: list[int]) -> None:
        if self.unsupported:
            raise UnsupportedCapabilityError("no vibration motor")
        self.played.append(list(sequence))


class FakeTones:
    def __init__(self, *, broken: bool = False) -> None:
        self.broken = broken
        self.played: list[AudioCue] = []

    async def play(self, cue: AudioCue) -> None:
        if self.broken:
            raise RuntimeError("audio device lost")
        self.played.append(cue)


class SlowTones:
    """Tone generator whose playback takes the cue's full length on the scheduler clock."""

    def __init__(self, scheduler: VirtualScheduler) -> None:
        self.scheduler = scheduler
        self.played: list[AudioCue] = []

    async def play(self, cue: AudioCue) -> None:
        self.played.append(cue)
        await self.scheduler.sleep(cue.total_ms)


class FakeSpeech:
    """Speech engine recording utterances; can be told to fail or to block."""

    def __init__(self, *, fail_on: set[str] | None = None) -> None:
        self.fail_on = fail_on or set()
        self.spoken: list[tuple[str, float, float]] = []
        self.active = 0
        self.max_active = 0
        self.gate: asyncio.Event | None = None

    async def speak(self, text: str, *, rate: float = 1.0, volume: float = 1.0) -> None:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            await asyncio.sleep(0)
            if text in self.fail_on:
                raise RuntimeError(f"engine choked on {text!r}")
            self.spoken.append((text, rate, volume))
        finally:
            self.active -= 1

    @property
    def texts(self) -> list[str]:
        return [text for text, _, _ in self.spoken]


class FakeTransport:
    """MessageTransport that fails for selected message texts."""

    def __init__(self, *, fail_texts: set[str] | None = None, offline: bool = False) -> None:
        self.fail_texts = fail_texts or set()
        self.offline = offline
        self.calls: list[str] = []
        self.delivered: list[str] = []

    async def send(self, payload: OutgoingMessage) -> None:
        self.calls.append(payload.text)
        if self.offline or payload.text in self.fail_texts:
            raise DeliveryError(f"cannot deliver {payload.text!r}")
        self.delivered.append(payload.text)


def outgoing(text: str, conversation_id: str = "conv-1") -> OutgoingMessage:
    return OutgoingMessage(conversation_id=conversation_id, sender_id="user-1", text=text)


@pytest.fixture
def scheduler() -> VirtualScheduler:
    return VirtualScheduler()


@pytest.fixture
def feedback() -> RecordingFeedback:
    return RecordingFeedback()


@pytest.fixture
def inputs() -> list[DecodedInput]:
    return []
