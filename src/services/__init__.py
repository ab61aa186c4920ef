"""Translation engine service layer -- tactile input, output channels, offline delivery."""

from __future__ import annotations

from src.services.braille import DotVector
from src.services.chord import ChordDecoder, ChordOutcome, ChordResult
from src.services.clock import AsyncioScheduler, Scheduler, VirtualScheduler
from src.services.errors import DeliveryError, StorageError, UnsupportedCapabilityError
from src.services.feedback import MultimodalFeedback
from src.services.haptics import HapticPattern, HapticPlayer
from src.services.modality import LayoutHints, ModalityRoute, parse_profile, route
from src.services.offline import DurableSendQueue, ReplayReport, SendOutcome
from src.services.sentiment import classify_sentiment, compose_pattern
from src.services.speech import SpeechQueue, Utterance
from src.services.storage import InMemoryQueueStore, SqlQueueStore, open_queue_store
from src.services.tap import TapCommit, TapDecoder
from src.services.transport import HttpMessageTransport
from src.services.translator import MessageTranslator, TranslationOutcome

__all__ = [
    "AsyncioScheduler",
    "ChordDecoder",
    "ChordOutcome",
    "ChordResult",
    "DeliveryError",
    "DotVector",
    "DurableSendQueue",
    "HapticPattern",
    "HapticPlayer",
    "HttpMessageTransport",
    "InMemoryQueueStore",
    "LayoutHints",
    "MessageTranslator",
    "ModalityRoute",
    "MultimodalFeedback",
    "ReplayReport",
    "Scheduler",
    "SendOutcome",
    "SpeechQueue",
    "SqlQueueStore",
    "StorageError",
    "TapCommit",
    "TapDecoder",
    "TranslationOutcome",
    "UnsupportedCapabilityError",
    "Utterance",
    "VirtualScheduler",
    "classify_sentiment",
    "compose_pattern",
    "open_queue_store",
    "parse_profile",
    "route",
]
