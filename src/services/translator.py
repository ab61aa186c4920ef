"""Incoming-message translation into the receiver's output channels.

For every inbound message the receiver's ability profile is routed to a
set of required outputs, and the message fans out accordingly:

* **audio** -- read aloud through the shared :class:`SpeechQueue` when the
  receiver has auto-read on; the caller never waits for speech.
* **haptic** -- the sender's attached pattern, or one composed from the
  text and priority, capped at eight seconds and played at the receiver's
  strength.  Speech does not hold this up.
* **braille** -- the text encoded as braille cells for the display, for
  profiles that require it or receivers who turned braille on.
* a notification tone plays alongside the above for receivers who hear.

Problems on any one channel are logged and reported in the returned
:class:`TranslationOutcome`; they never stop the other channels.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from dataclasses import dataclass, field

import structlog

from src.models.enums import AbilityProfile, Modality
from src.models.message import Message, ReceiverProfile, SenderInfo
from src.services import braille
from src.services.braille import DotVector
from src.services.devices import ToneGenerator
from src.services.feedback import MULTIMODAL_CUES
from src.services.haptics import ENHANCED_CAP_MS, HapticPattern, HapticPlayer, scale_to_cap
from src.services.modality import ModalityRoute, route
from src.services.sentiment import compose_pattern
from src.services.speech import SpeechQueue, Utterance, format_utterance

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class TranslationOutcome:
    """Which channels an incoming message reached."""

    message_id: str
    route: ModalityRoute
    speech_queued: bool = False
    haptic_pattern: list[int] | None = None
    haptic_channel: str | None = None
    braille_cells: list[DotVector] = field(default_factory=list)
    notified: bool = False
    failed_channels: list[str] = field(default_factory=list)


class MessageTranslator:
    """Fans each incoming message out to the receiver's required modalities."""

    __slots__ = ("_haptics", "_speech", "_tones")

    def __init__(
        self,
        speech: SpeechQueue,
        haptics: HapticPlayer,
        tones: ToneGenerator | None = None,
    ) -> None:
        self._speech = speech
        self._haptics = haptics
        self._tones = tones

    @staticmethod
    def required_modalities(profile: AbilityProfile | str) -> frozenset[Modality]:
        return route(profile).required_outputs

    async def process_incoming(
        self,
        message: Message,
        receiver: ReceiverProfile,
        sender: SenderInfo | None = None,
    ) -> TranslationOutcome:
        modality_route = route(receiver.ability_profile)
        prefs = receiver.prefs
        device = receiver.device_prefs
        outcome = TranslationOutcome(message_id=message.id, route=modality_route)
        text = message.text or ""

        if modality_route.requires(Modality.AUDIO) and prefs.auto_read_messages and device.audio_enabled:
            spoken = format_utterance(
                message,
                sender,
                announce_sender=prefs.announce_senders,
                announce_timestamp=prefs.announce_timestamps,
            )
            outcome.speech_queued = bool(text.strip()) and self._speech.enqueue(
                Utterance(text=spoken, rate=device.tts_rate, volume=device.audio_volume, message_id=message.id)
            )

        if (modality_route.requires(Modality.BRAILLE) or prefs.braille_enabled) and text:
            outcome.braille_cells = braille.text_to_cells(text)

        concurrent: list[Awaitable[None]] = []
        if (
            modality_route.requires(Modality.HAPTIC)
            and prefs.enable_haptics
            and device.haptic_strength > 0
            and (text or message.haptics_pattern)
        ):
            pattern = self._pattern_for(message)
            outcome.haptic_pattern = pattern.sequence
            concurrent.append(self._play_haptic(pattern, device.haptic_strength, outcome))

        if modality_route.requires(Modality.AUDIO) and device.audio_enabled and self._tones is not None:
            concurrent.append(self._notify(device.audio_volume, outcome))

        await asyncio.gather(*concurrent)

        logger.info(
            "translator.message_processed",
            message_id=message.id,
            profile=modality_route.profile.value,
            speech=outcome.speech_queued,
            haptic=outcome.haptic_channel,
            braille_cells=len(outcome.braille_cells),
            failed=outcome.failed_channels or None,
        )
        return outcome

    @staticmethod
    def _pattern_for(message: Message) -> HapticPattern:
        if message.haptics_pattern:
            return HapticPattern(
                sequence=scale_to_cap(list(message.haptics_pattern), ENHANCED_CAP_MS),
                description="sender supplied",
            )
        return compose_pattern(message.text or "", message.priority)

    async def _play_haptic(self, pattern: HapticPattern, strength: float, outcome: TranslationOutcome) -> None:
        try:
            outcome.haptic_channel = await self._haptics.play(pattern, strength)
        except Exception:
            logger.warning("translator.haptic_failed", message_id=outcome.message_id, exc_info=True)
            outcome.failed_channels.append(Modality.HAPTIC.value)

    async def _notify(self, volume: float, outcome: TranslationOutcome) -> None:
        cue = MULTIMODAL_CUES["message_received"].audio
        if cue is None or self._tones is None:
            return
        try:
            await self._tones.play(cue.with_volume(volume))
            outcome.notified = True
        except Exception:
            logger.warning("translator.notification_failed", message_id=outcome.message_id, exc_info=True)
            outcome.failed_channels.append("notification")
