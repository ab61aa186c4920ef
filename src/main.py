"""Engine entry point.

Configures logging and wires the translation engine's services together
from :mod:`config.settings`.  A host application (the chat client shell)
opens the engine with :func:`lifespan`, feeds it incoming messages and
touch events, and hands it outgoing messages::

    async with lifespan(actuator=device.vibrator, tones=device.audio) as engine:
        chord = engine.chord_decoder(composer.apply)
        await engine.translator.process_incoming(message, receiver, sender)
        await engine.send_queue.send(outgoing, online=network.online)
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass

import structlog
from tenacity import wait_exponential

from config.settings import Settings, settings
from src.models.input import DecodedInput
from src.services.chord import ChordDecoder
from src.services.clock import AsyncioScheduler, Scheduler
from src.services.devices import SilentOutput, SpeechEngine, ToneGenerator, VibrationActuator
from src.services.feedback import MultimodalFeedback
from src.services.haptics import HapticPlayer
from src.services.offline import DurableSendQueue, MessageTransport
from src.services.speech import SpeechQueue
from src.services.storage import QueueStore, open_queue_store
from src.services.tap import TapDecoder
from src.services.transport import HttpMessageTransport
from src.services.translator import MessageTranslator

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Structured logging configuration
# ---------------------------------------------------------------------------


def configure_logging(config: Settings = settings) -> None:
    """Set up structlog with JSON or console rendering based on settings."""
    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if config.log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelNamesMapping()[config.log_level.upper()],
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Engine wiring
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class Engine:
    """The engine's long-lived services, sharing one scheduler and device set."""

    config: Settings
    scheduler: Scheduler
    haptics: HapticPlayer
    feedback: MultimodalFeedback
    speech: SpeechQueue
    translator: MessageTranslator
    store: QueueStore
    transport: MessageTransport
    send_queue: DurableSendQueue

    def chord_decoder(self, on_input: Callable[[DecodedInput], None]) -> ChordDecoder:
        return ChordDecoder(self.scheduler, self.feedback, on_input, window_ms=self.config.chord_window_ms)

    def tap_decoder(self, on_input: Callable[[DecodedInput], None]) -> TapDecoder:
        return TapDecoder(
            self.scheduler,
            self.feedback,
            on_input,
            dot_threshold_ms=self.config.morse_dot_threshold_ms,
            commit_timeout_ms=self.config.morse_commit_timeout_ms,
        )

    async def close(self) -> None:
        await self.speech.close()
        close_transport = getattr(self.transport, "close", None)
        if close_transport is not None:
            await close_transport()
        self.store.close()


def build_engine(
    *,
    config: Settings = settings,
    actuator: VibrationActuator | None = None,
    tones: ToneGenerator | None = None,
    speech_engine: SpeechEngine | None = None,
    transport: MessageTransport | None = None,
    scheduler: Scheduler | None = None,
    store: QueueStore | None = None,
) -> Engine:
    """Assemble an :class:`Engine`; missing devices fall back to silence."""
    scheduler = scheduler or AsyncioScheduler()
    silent = SilentOutput()
    speech_engine = speech_engine or silent

    haptics = HapticPlayer(actuator=actuator, tones=tones)
    feedback = MultimodalFeedback(haptics, tones, speech_engine, scheduler=scheduler)
    speech = SpeechQueue(speech_engine, scheduler, pause_ms=config.speech_pause_ms)
    translator = MessageTranslator(speech, haptics, tones)

    store = store if store is not None else open_queue_store(config.queue_db_path)
    transport = transport or HttpMessageTransport(config.api_base_url, timeout=config.api_timeout_s)
    send_queue = DurableSendQueue(
        store,
        transport,
        max_attempts=config.queue_max_attempts,
        send_attempts=config.queue_send_attempts,
        wait=wait_exponential(multiplier=0.5, min=config.queue_backoff_min_s, max=config.queue_backoff_max_s),
    )

    logger.info(
        "engine.built",
        env=config.env,
        haptic_actuator=actuator is not None,
        tones=tones is not None,
        speech=speech_engine is not silent,
    )
    return Engine(
        config=config,
        scheduler=scheduler,
        haptics=haptics,
        feedback=feedback,
        speech=speech,
        translator=translator,
        store=store,
        transport=transport,
        send_queue=send_queue,
    )


# ---------------------------------------------------------------------------
# Engine lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(**kwargs: object) -> AsyncIterator[Engine]:
    """Build the engine for the duration of the block and close it on exit.

    Keyword arguments are passed through to :func:`build_engine`.
    """
    configure_logging(kwargs.get("config", settings))  # type: ignore[arg-type]
    engine = build_engine(**kwargs)  # type: ignore[arg-type]
    logger.info("engine.startup", queued=len(await engine.send_queue.pending()))
    try:
        yield engine
    finally:
        await engine.close()
        logger.info("engine.shutdown")
