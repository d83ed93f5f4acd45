"""Shared typed data models for chaptervoice.

This package contains dataclasses used across pipeline modules to avoid
cross-module coupling and circular imports.
"""

from .datatypes import (
    NARRATOR,
    AudioSegmentArtifact,
    CharacterProfile,
    CharacterRoster,
    DialogueEmotion,
    EffectArtifact,
    EffectDescriptor,
    EmotionProfile,
    ExtractedText,
    RunSummary,
    Segment,
    StagePlan,
    VoiceAssignment,
    VoiceSettings,
)

__all__ = [
    "NARRATOR",
    "AudioSegmentArtifact",
    "CharacterProfile",
    "CharacterRoster",
    "DialogueEmotion",
    "EffectArtifact",
    "EffectDescriptor",
    "EmotionProfile",
    "ExtractedText",
    "RunSummary",
    "Segment",
    "StagePlan",
    "VoiceAssignment",
    "VoiceSettings",
]
