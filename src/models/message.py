"""Message, profile and queue models shared by the translation engine.

Inbound ``Message`` objects and ``ReceiverProfile`` preferences come from
the chat backend and settings layer; the engine only reads them.  The
``QueueEntry`` is owned by the offline queue and is the single record of a
message that has not yet been confirmed as sent.
"""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from src.models.enums import AbilityProfile, PriorityLevel, QueueStatus


class SenderInfo(BaseModel):
    """Minimal view of the sending user, used for spoken announcements."""

    id: str = ""
    display_name: str = ""


class Message(BaseModel):
    """An inbound chat message."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    conversation_id: str = ""
    sender_id: str = ""
    text: str | None = None
    modality: str = "text"
    priority: PriorityLevel = PriorityLevel.NORMAL
    # Pre-attached vibration sequence chosen by the sender, if any.
    haptics_pattern: list[int] | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("priority", mode="before")
    @classmethod
    def _coerce_priority(cls, value: object) -> PriorityLevel:
        if isinstance(value, PriorityLevel):
            return value
        return PriorityLevel.coerce(value if isinstance(value, str) else None)

    @field_validator("haptics_pattern")
    @classmethod
    def _non_negative(cls, value: list[int] | None) -> list[int] | None:
        if value is not None and any(v < 0 for v in value):
            raise ValueError("haptic durations must be non-negative")
        return value


class AbilityPrefs(BaseModel):
    """Per-user channel preferences attached to the ability profile."""

    auto_read_messages: bool = False
    enable_haptics: bool = True
    announce_senders: bool = False
    announce_timestamps: bool = False
    braille_enabled: bool = False


class DevicePrefs(BaseModel):
    """Per-device output settings."""

    haptic_strength: float = Field(default=1.0, ge=0.0, le=1.0)
    audio_enabled: bool = True
    audio_volume: float = Field(default=0.8, ge=0.0, le=1.0)
    tts_rate: float = Field(default=1.0, ge=0.5, le=2.0)


class ReceiverProfile(BaseModel):
    """The receiving user's capabilities and preferences."""

    id: str = ""
    display_name: str = ""
    ability_profile: AbilityProfile = AbilityProfile.DEAF
    prefs: AbilityPrefs = Field(default_factory=AbilityPrefs)
    device_prefs: DevicePrefs = Field(default_factory=DevicePrefs)

    @field_validator("ability_profile", mode="before")
    @classmethod
    def _parse_profile(cls, value: object) -> AbilityProfile:
        # Deferred: src.services imports this module.
        from src.services.modality import parse_profile

        return parse_profile(value)


class OutgoingMessage(BaseModel):
    """Payload of a message the local user is trying to send."""

    conversation_id: str
    sender_id: str
    text: str = ""
    modality: str = "text"
    media_url: str | None = None
    media_type: str | None = None


class QueueEntry(BaseModel):
    """A message waiting in the durable send queue."""

    id: int
    payload: OutgoingMessage
    enqueued_at: datetime
    status: QueueStatus = QueueStatus.PENDING
    attempts: int = 0
    last_error: str | None = None
