"""Segment-level speech synthesis.

Responsibilities:
- Synthesize one audio file per segment in ascending index order.
- Attach emotion analysis to dialogue and adjust voice settings accordingly.
- Pace provider calls with a fixed delay, strictly sequentially.
"""

from __future__ import annotations

import re
import unicodedata
from pathlib import Path
from typing import Protocol

from loguru import logger

from ..io.storage import ArtifactStore
from ..pacing import CallPacer
from ..models.datatypes import (
    AudioSegmentArtifact,
    DialogueEmotion,
    EmotionProfile,
    Segment,
    VoiceSettings,
)
from .emotion import adjust_voice_settings
from .voices import VoiceCast

SEGMENTS_DIR = Path("segments")
DEFAULT_TTS_MODEL = "eleven_turbo_v2_5"


class SpeechClient(Protocol):
    """Protocol for speech-synthesis providers."""

    def synthesize_speech(
        self,
        *,
        voice_id: str,
        text: str,
        model_id: str,
        voice_settings: VoiceSettings,
    ) -> bytes:
        """Return audio bytes for one text."""


def slugify(value: str, fallback: str = "segment") -> str:
    """Create a filesystem-safe ASCII slug."""

    normalized = unicodedata.normalize("NFKD", value)
    ascii_only = normalized.encode("ascii", "ignore").decode("ascii")
    collapsed = re.sub(r"[^a-z0-9]+", "_", ascii_only.lower().strip())
    return collapsed.strip("_") or fallback


def segment_filename(segment: Segment) -> str:
    """Return the stable audio filename for a segment."""

    return f"segment_{segment.index:04d}_{slugify(segment.speaker, 'speaker')}.mp3"


def emotion_index(emotions: list[DialogueEmotion] | None) -> dict[tuple[str, str], EmotionProfile]:
    """Index emotion records by exact `(speaker, text)`; the first record wins."""

    indexed: dict[tuple[str, str], EmotionProfile] = {}
    for record in emotions or []:
        indexed.setdefault((record.speaker, record.text), record.emotion)
    return indexed


class SegmentSynthesizer:
    """Synthesize segment audio files and return their ordered artifacts."""

    def __init__(
        self,
        client: SpeechClient,
        store: ArtifactStore,
        *,
        model_id: str = DEFAULT_TTS_MODEL,
        pacer: CallPacer | None = None,
    ) -> None:
        self.client = client
        self.store = store
        self.model_id = model_id
        self.pacer = pacer if pacer is not None else CallPacer()

    def synthesize(
        self,
        segments: list[Segment],
        emotions: list[DialogueEmotion] | None,
        cast: VoiceCast,
    ) -> list[AudioSegmentArtifact]:
        """Synthesize every segment; a provider failure aborts the whole loop."""

        emotion_by_line = emotion_index(emotions)
        ordered = sorted(segments, key=lambda item: item.index)
        artifacts: list[AudioSegmentArtifact] = []

        for position, segment in enumerate(ordered, start=1):
            logger.info(
                "Synthesizing segment {}/{} ({}, {})",
                position,
                len(ordered),
                segment.type,
                segment.speaker,
            )
            artifacts.append(self._synthesize_one(segment, emotion_by_line, cast))
            self.pacer.after_call()

        return artifacts

    def _synthesize_one(
        self,
        segment: Segment,
        emotion_by_line: dict[tuple[str, str], EmotionProfile],
        cast: VoiceCast,
    ) -> AudioSegmentArtifact:
        if segment.is_dialogue:
            emotion = emotion_by_line.get((segment.speaker, segment.text))
            if emotion is None:
                emotion = EmotionProfile.neutral()
            assignment = cast.resolve(segment.speaker)
            settings = adjust_voice_settings(assignment.settings, emotion)
        else:
            emotion = None
            assignment = cast.narrator
            settings = assignment.settings

        audio_bytes = self.client.synthesize_speech(
            voice_id=assignment.voice_id,
            text=segment.text,
            model_id=self.model_id,
            voice_settings=settings,
        )
        filename = segment_filename(segment)
        filepath = self.store.save_audio(SEGMENTS_DIR / filename, audio_bytes)
        return AudioSegmentArtifact(
            index=segment.index,
            type=segment.type,
            speaker=segment.speaker,
            text=segment.text,
            filename=filename,
            filepath=filepath,
            emotion=emotion,
        )
