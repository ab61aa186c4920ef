"""Ability profile -> channel routing.

:func:`route` is the single place that decides which output channels a
reader needs, which input methods their composer offers, and how the UI
should lean.  Settings and UI code consume the returned
:class:`ModalityRoute` and must not re-derive channel logic.

The table has exactly one row per :class:`AbilityProfile`.  Raw strings are
parsed at the edge by :func:`parse_profile`; anything unrecognised falls
back to the ``DEAF`` row (text + visual), which every client can render.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Final

import structlog

from src.models.enums import AbilityProfile, InputMethod, LayoutMode, Modality

logger = structlog.get_logger(__name__)

DEFAULT_PROFILE: Final[AbilityProfile] = AbilityProfile.DEAF


@dataclass(frozen=True, slots=True)
class LayoutHints:
    layout_mode: LayoutMode = LayoutMode.BALANCED
    show_captions: bool = False
    large_text: bool = False
    high_contrast: bool = False
    simplified_layout: bool = False
    auto_play_incoming: bool = False
    auto_haptic_feedback: bool = False
    show_visual_indicators: bool = True
    show_audio_controls: bool = True


@dataclass(frozen=True, slots=True)
class ModalityRoute:
    profile: AbilityProfile
    required_outputs: frozenset[Modality]
    required_inputs: tuple[InputMethod, ...]
    layout_hints: LayoutHints = field(default_factory=LayoutHints)

    def requires(self, modality: Modality) -> bool:
        return modality in self.required_outputs


_ROUTES: Final[dict[AbilityProfile, ModalityRoute]] = {
    AbilityProfile.DEAF: ModalityRoute(
        profile=AbilityProfile.DEAF,
        required_outputs=frozenset({Modality.TEXT, Modality.VISUAL}),
        required_inputs=(InputMethod.TEXT, InputMethod.QUICK_REPLY),
        layout_hints=LayoutHints(
            layout_mode=LayoutMode.VISUAL_FIRST,
            show_captions=True,
            large_text=True,
            show_audio_controls=False,
        ),
    ),
    AbilityProfile.BLIND: ModalityRoute(
        profile=AbilityProfile.BLIND,
        required_outputs=frozenset({Modality.AUDIO, Modality.HAPTIC}),
        required_inputs=(InputMethod.VOICE,),
        layout_hints=LayoutHints(
            layout_mode=LayoutMode.AUDIO_FIRST,
            simplified_layout=True,
            auto_play_incoming=True,
            show_visual_indicators=False,
        ),
    ),
    AbilityProfile.MUTE: ModalityRoute(
        profile=AbilityProfile.MUTE,
        required_outputs=frozenset({Modality.TEXT, Modality.VISUAL, Modality.AUDIO}),
        required_inputs=(InputMethod.TEXT, InputMethod.QUICK_REPLY),
        layout_hints=LayoutHints(layout_mode=LayoutMode.VISUAL_FIRST),
    ),
    AbilityProfile.DEAF_BLIND: ModalityRoute(
        profile=AbilityProfile.DEAF_BLIND,
        required_outputs=frozenset({Modality.HAPTIC, Modality.BRAILLE}),
        required_inputs=(InputMethod.BRAILLE_CHORD, InputMethod.MORSE),
        layout_hints=LayoutHints(
            layout_mode=LayoutMode.HAPTIC_FIRST,
            high_contrast=True,
            simplified_layout=True,
            auto_haptic_feedback=True,
            show_visual_indicators=False,
            show_audio_controls=False,
        ),
    ),
    AbilityProfile.DEAF_MUTE: ModalityRoute(
        profile=AbilityProfile.DEAF_MUTE,
        required_outputs=frozenset({Modality.TEXT, Modality.VISUAL}),
        required_inputs=(InputMethod.TEXT, InputMethod.QUICK_REPLY),
        layout_hints=LayoutHints(
            layout_mode=LayoutMode.VISUAL_FIRST,
            show_captions=True,
            large_text=True,
            show_audio_controls=False,
        ),
    ),
    AbilityProfile.BLIND_MUTE: ModalityRoute(
        profile=AbilityProfile.BLIND_MUTE,
        required_outputs=frozenset({Modality.AUDIO, Modality.HAPTIC}),
        required_inputs=(InputMethod.BRAILLE_CHORD, InputMethod.MORSE),
        layout_hints=LayoutHints(
            layout_mode=LayoutMode.AUDIO_FIRST,
            simplified_layout=True,
            auto_play_incoming=True,
            show_visual_indicators=False,
        ),
    ),
    AbilityProfile.DEAF_BLIND_MUTE: ModalityRoute(
        profile=AbilityProfile.DEAF_BLIND_MUTE,
        required_outputs=frozenset({Modality.HAPTIC, Modality.BRAILLE}),
        required_inputs=(InputMethod.BRAILLE_CHORD, InputMethod.MORSE),
        layout_hints=LayoutHints(
            layout_mode=LayoutMode.HAPTIC_FIRST,
            high_contrast=True,
            simplified_layout=True,
            auto_haptic_feedback=True,
            show_visual_indicators=False,
            show_audio_controls=False,
        ),
    ),
}


def parse_profile(value: object) -> AbilityProfile:
    """Read a stored profile value, falling back to ``DEAF`` when unrecognised.

    Accepts an :class:`AbilityProfile`, its name in any case, or the stored
    ``{"profile": "...", "prefs": {...}}`` mapping.
    """
    if isinstance(value, AbilityProfile):
        return value
    if isinstance(value, Mapping):
        value = value.get("profile")
    if isinstance(value, str):
        try:
            return AbilityProfile(value.strip().upper())
        except ValueError:
            pass
    logger.warning("modality.unknown_profile", value=repr(value)[:64], fallback=DEFAULT_PROFILE.value)
    return DEFAULT_PROFILE


def route(profile: AbilityProfile | str) -> ModalityRoute:
    return _ROUTES[parse_profile(profile)]


def required_outputs(profile: AbilityProfile | str) -> frozenset[Modality]:
    return route(profile).required_outputs
