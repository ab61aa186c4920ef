from src.models.enums import (
    AbilityProfile,
    EmotionCategory,
    InputMethod,
    LayoutMode,
    Modality,
    MorseSymbol,
    PriorityLevel,
    QueueStatus,
)
from src.models.input import DecodedInput, InputKind
from src.models.message import (
    AbilityPrefs,
    DevicePrefs,
    Message,
    OutgoingMessage,
    QueueEntry,
    ReceiverProfile,
    SenderInfo,
)

__all__ = [
    "AbilityPrefs",
    "AbilityProfile",
    "DecodedInput",
    "DevicePrefs",
    "EmotionCategory",
    "InputKind",
    "InputMethod",
    "LayoutMode",
    "Message",
    "Modality",
    "MorseSymbol",
    "OutgoingMessage",
    "PriorityLevel",
    "QueueEntry",
    "QueueStatus",
    "ReceiverProfile",
    "SenderInfo",
]
