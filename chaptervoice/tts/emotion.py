"""Emotion-driven perturbation of baseline voice settings."""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Mapping

from ..models.datatypes import EmotionProfile, VoiceSettings

STYLE_CEILING = 1.0
STYLE_FLOOR = 0.2
INTENSITY_STYLE_DELTA = 0.1


def _lower(value: float, delta: float, floor: float) -> float:
    return max(floor, value - delta)


def _raise(value: float, delta: float, ceiling: float) -> float:
    return min(ceiling, value + delta)


def _angry(settings: VoiceSettings) -> VoiceSettings:
    return replace(
        settings,
        stability=_lower(settings.stability, 0.2, 0.3),
        style=_raise(settings.style, 0.3, 1.0),
    )


def _sad(settings: VoiceSettings) -> VoiceSettings:
    return replace(
        settings,
        stability=_lower(settings.stability, 0.1, 0.4),
        style=_lower(settings.style, 0.2, 0.2),
    )


def _excited(settings: VoiceSettings) -> VoiceSettings:
    return replace(
        settings,
        stability=_lower(settings.stability, 0.2, 0.3),
        style=_raise(settings.style, 0.2, 1.0),
    )


def _anxious(settings: VoiceSettings) -> VoiceSettings:
    return replace(settings, stability=_lower(settings.stability, 0.15, 0.35))


def _calm(settings: VoiceSettings) -> VoiceSettings:
    return replace(
        settings,
        stability=_raise(settings.stability, 0.1, 0.95),
        style=_lower(settings.style, 0.1, 0.3),
    )


EMOTION_ADJUSTMENTS: Mapping[str, Callable[[VoiceSettings], VoiceSettings]] = {
    "angry": _angry,
    "sad": _sad,
    "excited": _excited,
    "anxious": _anxious,
    "calm": _calm,
}


def _clamp_unit(value: float) -> float:
    return round(min(1.0, max(0.0, value)), 4)


def adjust_voice_settings(base: VoiceSettings, emotion: EmotionProfile | None) -> VoiceSettings:
    """Apply the per-emotion delta, then the intensity delta on style.

    Unrecognized emotion labels leave stability and style untouched; the
    intensity rule still applies. Results stay within `[0, 1]`.
    """

    if emotion is None:
        return base

    adjust = EMOTION_ADJUSTMENTS.get(emotion.primary_emotion.strip().lower())
    settings = adjust(base) if adjust is not None else base

    intensity = emotion.intensity.strip().lower()
    if intensity == "high":
        settings = replace(
            settings, style=_raise(settings.style, INTENSITY_STYLE_DELTA, STYLE_CEILING)
        )
    elif intensity == "low":
        settings = replace(
            settings, style=_lower(settings.style, INTENSITY_STYLE_DELTA, STYLE_FLOOR)
        )

    return replace(
        settings,
        stability=_clamp_unit(settings.stability),
        style=_clamp_unit(settings.style),
    )
