"""Fixed stage table for the chaptervoice pipeline."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class StageDefinition:
    """One pipeline stage and the checkpoint that marks it done."""

    number: int
    key: str
    checkpoint: str
    description: str


STAGES: tuple[StageDefinition, ...] = (
    StageDefinition(1, "extract", "chapter_extracted.txt", "Extract chapter text from PDF or text file"),
    StageDefinition(2, "segment", "sequential_segments.json", "Split text into ordered narration/dialogue segments"),
    StageDefinition(3, "characters", "characters_and_dialogues.json", "Extract characters and their dialogue"),
    StageDefinition(4, "emotions", "dialogues_with_emotions.json", "Analyze the emotion of every dialogue line"),
    StageDefinition(5, "voices", "voice_assignments.json", "Assign a synthesis voice to every character"),
    StageDefinition(6, "audio", "audiobook_manifest.json", "Synthesize one audio file per segment"),
    StageDefinition(7, "combine", "audiobook.mp3", "Concatenate segment audio into the audiobook"),
    StageDefinition(8, "effects", "sound_effects_manifest.json", "Detect and synthesize ambient sound effects"),
)

STAGES_BY_KEY = {stage.key: stage for stage in STAGES}


def stage(key: str) -> StageDefinition:
    """Return the stage definition for a stage key."""

    return STAGES_BY_KEY[key]
