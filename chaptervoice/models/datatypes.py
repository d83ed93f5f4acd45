"""Core datatypes shared across chaptervoice modules.

Responsibilities:
- Represent immutable records exchanged between pipeline stages.
- Provide explicit typing for checkpoint serialization and resume.

Key types:
- `ExtractedText`, `Segment`, `EmotionProfile`, `DialogueEmotion`,
  `CharacterProfile`, `CharacterRoster`, `VoiceSettings`, `VoiceAssignment`,
  `AudioSegmentArtifact`, `EffectDescriptor`, `EffectArtifact`, `StagePlan`,
  and `RunSummary`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

NARRATOR = "Narrator"
SEGMENT_TYPES = frozenset({"narration", "dialogue"})


@dataclass(frozen=True, slots=True)
class ExtractedText:
    """Plain text extracted from the chapter source.

    Attributes:
        text: Full chapter text.
        page_count: Page count reported by the extractor (estimated for text files).
        metadata: Extractor-specific document metadata.
        source: Identifier of the strategy that produced the text.
    """

    text: str
    page_count: int
    metadata: Mapping[str, Any] = field(default_factory=dict)
    source: str = "unknown"


@dataclass(frozen=True, slots=True)
class Segment:
    """One ordered unit of audiobook text.

    Attributes:
        index: 0-based narrative position, unique within a chapter.
        type: Either `narration` or `dialogue`.
        text: Non-empty text content.
        speaker: Character name for dialogue, `Narrator` for narration.
    """

    index: int
    type: str
    text: str
    speaker: str = NARRATOR

    @property
    def is_dialogue(self) -> bool:
        """Return whether this segment is spoken by a character."""

        return self.type == "dialogue"


@dataclass(frozen=True, slots=True)
class EmotionProfile:
    """Emotion analysis for one dialogue line."""

    primary_emotion: str = "neutral"
    intensity: str = "medium"
    voice_modulation: str = "normal"

    @classmethod
    def neutral(cls) -> EmotionProfile:
        """Return the default profile used when analysis is missing or failed."""

        return cls()

    def as_payload(self) -> dict[str, str]:
        """Return the JSON shape used in checkpoints and manifests."""

        return {
            "primary_emotion": self.primary_emotion,
            "intensity": self.intensity,
            "voice_modulation": self.voice_modulation,
        }


@dataclass(frozen=True, slots=True)
class DialogueEmotion:
    """Emotion record for a dialogue line, keyed by `(speaker, text)`."""

    speaker: str
    text: str
    context: str
    emotion: EmotionProfile


@dataclass(frozen=True, slots=True)
class CharacterProfile:
    """Character metadata returned by character extraction."""

    name: str
    description: str = ""
    personality: str = ""
    role: str = ""


@dataclass(frozen=True, slots=True)
class CharacterRoster:
    """Characters and raw dialogue listing extracted from the chapter text."""

    characters: tuple[CharacterProfile, ...] = field(default_factory=tuple)
    dialogues: tuple[Mapping[str, Any], ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class VoiceSettings:
    """Speech-synthesis parameter set.

    Attributes:
        stability: Delivery stability in `[0, 1]`; lower is more expressive.
        similarity_boost: Adherence to the base voice in `[0, 1]`.
        style: Style exaggeration in `[0, 1]`.
        use_speaker_boost: Whether the provider should boost speaker similarity.
    """

    stability: float = 0.75
    similarity_boost: float = 0.75
    style: float = 0.5
    use_speaker_boost: bool = True

    def as_payload(self) -> dict[str, object]:
        """Return provider request/checkpoint representation."""

        return {
            "stability": self.stability,
            "similarity_boost": self.similarity_boost,
            "style": self.style,
            "use_speaker_boost": self.use_speaker_boost,
        }


@dataclass(frozen=True, slots=True)
class VoiceAssignment:
    """Binding of a character identity to a synthesis voice."""

    voice_id: str
    voice_name: str
    settings: VoiceSettings


@dataclass(frozen=True, slots=True)
class AudioSegmentArtifact:
    """Metadata for one synthesized segment audio file."""

    index: int
    type: str
    speaker: str
    text: str
    filename: str
    filepath: Path
    emotion: EmotionProfile | None = None


@dataclass(frozen=True, slots=True)
class EffectDescriptor:
    """Heuristically detected sound-effect opportunity.

    Attributes:
        after_segment: Index of the triggering segment (placement hint only).
        description: Effect prompt, for example `gentle rain on window`.
        duration: Duration class (`short`, `medium`, `long`).
    """

    after_segment: int
    description: str
    duration: str


@dataclass(frozen=True, slots=True)
class EffectArtifact:
    """Metadata for one synthesized effect clip."""

    index: int
    description: str
    duration: str
    after_segment: int
    filename: str
    filepath: Path
    type: str = "ambient"


@dataclass(frozen=True, slots=True)
class StagePlan:
    """Per-invocation stage selection; never persisted.

    Attributes:
        start_from: First stage allowed to execute; earlier stages are load-only.
        force: Stages recomputed even when a checkpoint exists.
        skip: Stages that only load their previous checkpoint.
    """

    start_from: int = 1
    force: frozenset[int] = field(default_factory=frozenset)
    skip: frozenset[int] = field(default_factory=frozenset)

    def is_load_only(self, stage_number: int) -> bool:
        """Return whether the stage must not execute in this run."""

        return stage_number < self.start_from or stage_number in self.skip

    def is_forced(self, stage_number: int) -> bool:
        """Return whether the stage must recompute regardless of its checkpoint."""

        return stage_number in self.force


@dataclass(frozen=True, slots=True)
class RunSummary:
    """Outcome of one orchestrator invocation.

    Attributes:
        stage_outcomes: Stage key mapped to `executed`, `cache_hit`, `loaded`,
            or `missing` (load-only stage without a checkpoint).
        character_count: Number of characters in the roster.
        segment_count: Number of text segments.
        audio_count: Number of synthesized segment files.
        effect_count: Number of synthesized effect clips.
        audiobook_path: Combined audiobook path when stage 7 produced or found it.
        mixed_audiobook_path: Effects mix path when requested and produced.
        synthesis_calls: Speech-synthesis requests issued during this run.
    """

    stage_outcomes: Mapping[str, str]
    character_count: int
    segment_count: int
    audio_count: int
    effect_count: int
    audiobook_path: Path | None = None
    mixed_audiobook_path: Path | None = None
    synthesis_calls: int = 0
