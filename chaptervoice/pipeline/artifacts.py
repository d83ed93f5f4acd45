"""Checkpoint payload builders and loaders.

Responsibilities:
- Serialize stage outputs into the JSON checkpoint shapes.
- Rebuild typed stage outputs from checkpoint payloads.

Loaders return `None` for payloads whose shape does not match, so a damaged
checkpoint is treated the same as a missing one.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping

from ..models.datatypes import (
    NARRATOR,
    AudioSegmentArtifact,
    CharacterProfile,
    CharacterRoster,
    DialogueEmotion,
    EffectArtifact,
    EmotionProfile,
    Segment,
    VoiceAssignment,
    VoiceSettings,
)
from ..tts.voices import VoiceCast, narrator_assignment


def _generated_at() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _emotion_from_payload(payload: object) -> EmotionProfile | None:
    if not isinstance(payload, Mapping):
        return None
    return EmotionProfile(
        primary_emotion=str(payload.get("primary_emotion") or "neutral"),
        intensity=str(payload.get("intensity") or "medium"),
        voice_modulation=str(payload.get("voice_modulation") or "normal"),
    )


def segments_payload(segments: list[Segment]) -> dict[str, object]:
    """Serialize ordered segments; `order` mirrors `index`."""

    return {
        "segments": [
            {
                "index": segment.index,
                "order": segment.index,
                "type": segment.type,
                "text": segment.text,
                "speaker": segment.speaker,
            }
            for segment in segments
        ]
    }


def load_segments(payload: object) -> list[Segment] | None:
    """Rebuild segments sorted by index from a checkpoint payload."""

    if not isinstance(payload, Mapping) or not isinstance(payload.get("segments"), list):
        return None

    segments: list[Segment] = []
    for position, item in enumerate(payload["segments"]):
        if not isinstance(item, Mapping):
            return None
        raw_index = item.get("index", item.get("order", position))
        try:
            index = int(raw_index)
        except (TypeError, ValueError):
            return None
        segments.append(
            Segment(
                index=index,
                type=str(item.get("type") or "narration"),
                text=str(item.get("text") or ""),
                speaker=str(item.get("speaker") or NARRATOR),
            )
        )
    return sorted(segments, key=lambda segment: segment.index)


def roster_payload(roster: CharacterRoster) -> dict[str, object]:
    """Serialize characters keyed by name plus the raw dialogue listing."""

    return {
        "characters": {
            character.name: {
                "description": character.description,
                "personality": character.personality,
                "role": character.role,
            }
            for character in roster.characters
        },
        "dialogues": [dict(item) for item in roster.dialogues],
    }


def load_roster(payload: object) -> CharacterRoster | None:
    """Rebuild a character roster from a checkpoint payload."""

    if not isinstance(payload, Mapping) or not isinstance(payload.get("characters"), Mapping):
        return None

    characters = []
    for name, info in payload["characters"].items():
        details = info if isinstance(info, Mapping) else {}
        characters.append(
            CharacterProfile(
                name=str(name),
                description=str(details.get("description") or ""),
                personality=str(details.get("personality") or ""),
                role=str(details.get("role") or ""),
            )
        )
    raw_dialogues = payload.get("dialogues")
    dialogues = tuple(
        item for item in (raw_dialogues if isinstance(raw_dialogues, list) else [])
        if isinstance(item, Mapping)
    )
    return CharacterRoster(characters=tuple(characters), dialogues=dialogues)


def emotions_payload(records: list[DialogueEmotion]) -> list[dict[str, object]]:
    """Serialize dialogue emotion records."""

    return [
        {
            "speaker": record.speaker,
            "text": record.text,
            "context": record.context,
            "emotion": record.emotion.as_payload(),
        }
        for record in records
    ]


def load_emotions(payload: object) -> list[DialogueEmotion] | None:
    """Rebuild dialogue emotion records; a missing emotion object becomes neutral."""

    if not isinstance(payload, list):
        return None

    records: list[DialogueEmotion] = []
    for item in payload:
        if not isinstance(item, Mapping):
            return None
        records.append(
            DialogueEmotion(
                speaker=str(item.get("speaker") or ""),
                text=str(item.get("text") or ""),
                context=str(item.get("context") or ""),
                emotion=_emotion_from_payload(item.get("emotion")) or EmotionProfile.neutral(),
            )
        )
    return records


def voice_cast_payload(cast: VoiceCast) -> dict[str, object]:
    """Serialize a cast as a flat name-to-assignment object, aliases included."""

    return {
        name: {
            "voiceId": assignment.voice_id,
            "voiceName": assignment.voice_name,
            "settings": assignment.settings.as_payload(),
        }
        for name, assignment in cast.flattened().items()
    }


def load_voice_cast(payload: object) -> VoiceCast | None:
    """Rebuild a cast from a flat checkpoint; the narrator entry is always present."""

    if not isinstance(payload, Mapping):
        return None

    assignments: dict[str, VoiceAssignment] = {}
    for name, item in payload.items():
        if not isinstance(item, Mapping):
            return None
        voice_id = item.get("voiceId")
        if not voice_id:
            return None
        raw_settings = item.get("settings") if isinstance(item.get("settings"), Mapping) else {}
        defaults = VoiceSettings()
        try:
            settings = VoiceSettings(
                stability=float(raw_settings.get("stability", defaults.stability)),
                similarity_boost=float(
                    raw_settings.get("similarity_boost", defaults.similarity_boost)
                ),
                style=float(raw_settings.get("style", defaults.style)),
                use_speaker_boost=bool(
                    raw_settings.get("use_speaker_boost", defaults.use_speaker_boost)
                ),
            )
        except (TypeError, ValueError):
            return None
        assignments[str(name)] = VoiceAssignment(
            voice_id=str(voice_id),
            voice_name=str(item.get("voiceName") or ""),
            settings=settings,
        )
    assignments.setdefault(NARRATOR, narrator_assignment())
    return VoiceCast(assignments=assignments)


def audio_manifest_payload(artifacts: list[AudioSegmentArtifact]) -> dict[str, object]:
    """Serialize the segment audio manifest."""

    return {
        "generatedAt": _generated_at(),
        "totalSegments": len(artifacts),
        "segments": [
            {
                "index": artifact.index,
                "type": artifact.type,
                "speaker": artifact.speaker,
                "text": artifact.text,
                "emotion": artifact.emotion.as_payload() if artifact.emotion else None,
                "filename": artifact.filename,
            }
            for artifact in artifacts
        ],
    }


def load_audio_manifest(payload: object, audio_dir: Path) -> list[AudioSegmentArtifact] | None:
    """Rebuild segment artifacts from the manifest, resolving files under `audio_dir`."""

    if not isinstance(payload, Mapping) or not isinstance(payload.get("segments"), list):
        return None

    artifacts: list[AudioSegmentArtifact] = []
    for position, item in enumerate(payload["segments"]):
        if not isinstance(item, Mapping) or not item.get("filename"):
            return None
        filename = str(item["filename"])
        try:
            index = int(item.get("index", position))
        except (TypeError, ValueError):
            return None
        artifacts.append(
            AudioSegmentArtifact(
                index=index,
                type=str(item.get("type") or "narration"),
                speaker=str(item.get("speaker") or NARRATOR),
                text=str(item.get("text") or ""),
                filename=filename,
                filepath=audio_dir / filename,
                emotion=_emotion_from_payload(item.get("emotion")),
            )
        )
    return sorted(artifacts, key=lambda artifact: artifact.index)


def effects_manifest_payload(artifacts: list[EffectArtifact]) -> dict[str, object]:
    """Serialize the sound-effects manifest."""

    return {
        "generatedAt": _generated_at(),
        "totalEffects": len(artifacts),
        "effects": [
            {
                "index": artifact.index,
                "type": artifact.type,
                "description": artifact.description,
                "duration": artifact.duration,
                "afterSegment": artifact.after_segment,
                "filename": artifact.filename,
            }
            for artifact in artifacts
        ],
    }


def load_effects_manifest(payload: object, effects_dir: Path) -> list[EffectArtifact] | None:
    """Rebuild effect artifacts from the manifest, resolving files under `effects_dir`."""

    if not isinstance(payload, Mapping) or not isinstance(payload.get("effects"), list):
        return None

    artifacts: list[EffectArtifact] = []
    for position, item in enumerate(payload["effects"]):
        if not isinstance(item, Mapping) or not item.get("filename"):
            return None
        filename = str(item["filename"])
        try:
            index = int(item.get("index", position))
            after_segment = int(item.get("afterSegment", -1))
        except (TypeError, ValueError):
            return None
        artifacts.append(
            EffectArtifact(
                index=index,
                description=str(item.get("description") or ""),
                duration=str(item.get("duration") or "short"),
                after_segment=after_segment,
                filename=filename,
                filepath=effects_dir / filename,
                type=str(item.get("type") or "ambient"),
            )
        )
    return artifacts

