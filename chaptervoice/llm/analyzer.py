"""Text segmentation and analysis backed by a text-generation provider.

Responsibilities:
- Split chapter text into ordered narration/dialogue segments.
- Extract the character roster used for voice assignment.
- Analyze emotion once per dialogue line, degrading to neutral on failure.
"""

from __future__ import annotations

from typing import Any, Protocol

from loguru import logger

from ..errors import ProviderError
from ..models.datatypes import (
    NARRATOR,
    SEGMENT_TYPES,
    CharacterProfile,
    CharacterRoster,
    DialogueEmotion,
    EmotionProfile,
    Segment,
)
from .openai_client import OpenAIChatClient, OpenAIProviderError
from .prompts import PromptLibrary

UNKNOWN_SPEAKER = "Unknown"


class ChatJsonClient(Protocol):
    """Protocol for strict-JSON chat clients."""

    def chat_completion_json(
        self,
        *,
        model: str,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.0,
    ) -> dict[str, Any]:
        """Return one decoded JSON object response."""


class TextAnalyzer:
    """Run the three text-generation operations used by the pipeline."""

    def __init__(
        self,
        client: ChatJsonClient | None = None,
        *,
        api_key: str | None = None,
        segment_model: str = "gpt-4o",
        character_model: str = "gpt-4o",
        emotion_model: str = "gpt-4o-mini",
        prompts: PromptLibrary | None = None,
    ) -> None:
        self.client = client if client is not None else OpenAIChatClient(api_key=api_key)
        self.segment_model = segment_model
        self.character_model = character_model
        self.emotion_model = emotion_model
        self.prompts = prompts if prompts is not None else PromptLibrary()

    def segment(self, text: str) -> list[Segment]:
        """Split chapter text into ordered narration and dialogue segments."""

        payload = self.client.chat_completion_json(
            model=self.segment_model,
            system_prompt=self.prompts.segmentation_system_prompt(),
            user_prompt=self.prompts.segmentation_prompt(text),
            temperature=0.1,
        )
        return parse_segments_payload(payload)

    def extract_characters(self, text: str) -> CharacterRoster:
        """Extract characters and their dialogue listing from chapter text."""

        payload = self.client.chat_completion_json(
            model=self.character_model,
            system_prompt=self.prompts.character_system_prompt(),
            user_prompt=self.prompts.character_prompt(text),
            temperature=0.3,
        )
        return parse_roster_payload(payload)

    def analyze_emotion(self, speaker: str, text: str, context: str = "") -> EmotionProfile:
        """Analyze one dialogue line; provider and schema failures propagate."""

        payload = self.client.chat_completion_json(
            model=self.emotion_model,
            system_prompt=self.prompts.emotion_system_prompt(),
            user_prompt=self.prompts.emotion_prompt(speaker, text, context),
            temperature=0.5,
        )
        return parse_emotion_payload(payload)

    def analyze_emotions(self, segments: list[Segment]) -> list[DialogueEmotion]:
        """Analyze every dialogue segment, one call each, never aborting on a bad call."""

        records: list[DialogueEmotion] = []
        for segment in sorted(segments, key=lambda item: item.index):
            if not segment.is_dialogue:
                continue
            context = f"Segment {segment.index} in the sequence"
            try:
                emotion = self.analyze_emotion(segment.speaker, segment.text, context)
            except ProviderError as exc:
                logger.warning(
                    "Emotion analysis failed for segment {} ({}), using neutral: {}",
                    segment.index,
                    segment.speaker,
                    exc,
                )
                emotion = EmotionProfile.neutral()
            records.append(
                DialogueEmotion(
                    speaker=segment.speaker,
                    text=segment.text,
                    context=context,
                    emotion=emotion,
                )
            )
        return records


def parse_segments_payload(payload: dict[str, Any]) -> list[Segment]:
    """Normalize a segmentation response into densely indexed segments.

    Entries are ordered by their `order` field (falling back to list position),
    empty-text entries are dropped, and indices are reassigned from 0.
    """

    raw_segments = payload.get("segments")
    if not isinstance(raw_segments, list):
        raise OpenAIProviderError(
            "Segmentation response is missing a `segments` list.", failure_kind="malformed"
        )

    ordered: list[tuple[float, int, str, str, str]] = []
    for position, item in enumerate(raw_segments):
        if not isinstance(item, dict):
            raise OpenAIProviderError(
                f"Segmentation entry {position} is not an object.", failure_kind="malformed"
            )
        segment_type = str(item.get("type", "")).strip().lower()
        if segment_type not in SEGMENT_TYPES:
            raise OpenAIProviderError(
                f"Segmentation entry {position} has unsupported type `{segment_type}`.",
                failure_kind="malformed",
            )
        text = str(item.get("text") or "").strip()
        if not text:
            continue
        if segment_type == "dialogue":
            speaker = str(item.get("speaker") or "").strip() or UNKNOWN_SPEAKER
        else:
            speaker = NARRATOR
        order = item.get("order")
        sort_key = float(order) if isinstance(order, int | float) else float(position)
        ordered.append((sort_key, position, segment_type, text, speaker))

    ordered.sort(key=lambda entry: (entry[0], entry[1]))
    return [
        Segment(index=index, type=segment_type, text=text, speaker=speaker)
        for index, (_, _, segment_type, text, speaker) in enumerate(ordered)
    ]


def parse_roster_payload(payload: dict[str, Any]) -> CharacterRoster:
    """Normalize a character extraction response into a roster."""

    raw_characters = payload.get("characters")
    if not isinstance(raw_characters, dict):
        raise OpenAIProviderError(
            "Character response is missing a `characters` object.", failure_kind="malformed"
        )

    characters: list[CharacterProfile] = []
    for name, info in raw_characters.items():
        details = info if isinstance(info, dict) else {}
        characters.append(
            CharacterProfile(
                name=str(name).strip(),
                description=str(details.get("description") or ""),
                personality=str(details.get("personality") or ""),
                role=str(details.get("role") or ""),
            )
        )

    raw_dialogues = payload.get("dialogues")
    dialogues = tuple(
        item for item in (raw_dialogues if isinstance(raw_dialogues, list) else [])
        if isinstance(item, dict)
    )
    return CharacterRoster(
        characters=tuple(character for character in characters if character.name),
        dialogues=dialogues,
    )


def parse_emotion_payload(payload: dict[str, Any]) -> EmotionProfile:
    """Normalize an emotion response; a missing primary emotion is malformed."""

    primary = str(payload.get("primary_emotion") or "").strip().lower()
    if not primary:
        raise OpenAIProviderError(
            "Emotion response is missing `primary_emotion`.", failure_kind="malformed"
        )
    intensity = str(payload.get("intensity") or "medium").strip().lower()
    modulation = str(payload.get("voice_modulation") or "normal").strip()
    return EmotionProfile(
        primary_emotion=primary,
        intensity=intensity,
        voice_modulation=modulation,
    )
