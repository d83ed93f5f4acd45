"""Unit tests for segmentation, character extraction, and emotion analysis."""

from __future__ import annotations

from typing import Any

import pytest

from chaptervoice.errors import ProviderError
from chaptervoice.llm.analyzer import TextAnalyzer, parse_segments_payload
from chaptervoice.llm.openai_client import OpenAIProviderError
from chaptervoice.llm.prompts import PromptLibrary
from chaptervoice.models.datatypes import EmotionProfile, Segment


class _ScriptedChatClient:
    """Chat client double returning queued payloads and recording calls."""

    def __init__(self, responses: list[dict[str, Any] | Exception]) -> None:
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def chat_completion_json(
        self,
        *,
        model: str,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.0,
    ) -> dict[str, Any]:
        self.calls.append(
            {
                "model": model,
                "system_prompt": system_prompt,
                "user_prompt": user_prompt,
                "temperature": temperature,
            }
        )
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def test_segment_splits_mixed_paragraph_into_three_ordered_segments() -> None:
    """A narration/dialogue/narration paragraph should yield three ordered segments."""

    client = _ScriptedChatClient(
        [
            {
                "segments": [
                    {"type": "dialogue", "text": "What do you want?", "speaker": "Baley", "order": 1},
                    {"type": "narration", "text": "Baley looked up.", "speaker": "Narrator", "order": 0},
                    {"type": "narration", "text": "he asked.", "order": 2},
                ]
            }
        ]
    )
    analyzer = TextAnalyzer(client)

    segments = analyzer.segment("Baley looked up. 'What do you want?' he asked.")

    assert segments == [
        Segment(index=0, type="narration", text="Baley looked up.", speaker="Narrator"),
        Segment(index=1, type="dialogue", text="What do you want?", speaker="Baley"),
        Segment(index=2, type="narration", text="he asked.", speaker="Narrator"),
    ]
    assert client.calls[0]["model"] == "gpt-4o"
    assert client.calls[0]["temperature"] == 0.1
    assert "Baley looked up." in client.calls[0]["user_prompt"]


def test_parse_segments_drops_empty_text_and_reindexes_densely() -> None:
    """Empty segments should be dropped and indices reassigned from zero."""

    segments = parse_segments_payload(
        {
            "segments": [
                {"type": "narration", "text": "One.", "order": 0},
                {"type": "narration", "text": "   ", "order": 1},
                {"type": "dialogue", "text": "Two.", "order": 5},
            ]
        }
    )

    assert [(segment.index, segment.text) for segment in segments] == [(0, "One."), (1, "Two.")]
    assert segments[1].speaker == "Unknown"


def test_parse_segments_without_segment_list_is_malformed() -> None:
    """A response without a `segments` list should be rejected as malformed."""

    with pytest.raises(OpenAIProviderError) as exc_info:
        parse_segments_payload({"items": []})
    assert exc_info.value.failure_kind == "malformed"


def test_parse_segments_rejects_unknown_segment_type() -> None:
    """Segment types outside narration/dialogue should be rejected."""

    with pytest.raises(OpenAIProviderError, match="unsupported type"):
        parse_segments_payload({"segments": [{"type": "effect", "text": "Boom"}]})


def test_extract_characters_builds_roster() -> None:
    """Character extraction should return typed profiles and keep dialogue listings."""

    client = _ScriptedChatClient(
        [
            {
                "characters": {
                    "Elijah Baley": {
                        "description": "Plainclothes detective",
                        "personality": "dogged",
                        "role": "protagonist",
                    },
                    "R. Daneel Olivaw": {"description": "Humaniform robot"},
                },
                "dialogues": [{"speaker": "Elijah Baley", "text": "What do you want?"}],
            }
        ]
    )
    analyzer = TextAnalyzer(client, character_model="gpt-4o")

    roster = analyzer.extract_characters("chapter text")

    assert [character.name for character in roster.characters] == [
        "Elijah Baley",
        "R. Daneel Olivaw",
    ]
    assert roster.characters[0].role == "protagonist"
    assert roster.characters[1].personality == ""
    assert len(roster.dialogues) == 1
    assert client.calls[0]["temperature"] == 0.3


def test_analyze_emotions_substitutes_neutral_for_failed_line() -> None:
    """One failing emotion call among five should leave a neutral record in its place."""

    responses: list[dict[str, Any] | Exception] = [
        {"primary_emotion": "angry", "intensity": "high", "voice_modulation": "loud"},
        {"primary_emotion": "calm", "intensity": "low", "voice_modulation": "soft"},
        ProviderError("boom", failure_kind="http_error"),
        {"primary_emotion": "sad", "intensity": "medium", "voice_modulation": "soft"},
        {"primary_emotion": "excited", "intensity": "high", "voice_modulation": "fast"},
    ]
    client = _ScriptedChatClient(responses)
    analyzer = TextAnalyzer(client)
    segments = [Segment(index=0, type="narration", text="Intro.")]
    segments += [
        Segment(index=index, type="dialogue", text=f"Line {index}", speaker="Baley")
        for index in range(1, 6)
    ]

    records = analyzer.analyze_emotions(segments)

    assert len(records) == 5
    assert len(client.calls) == 5
    assert records[2].emotion == EmotionProfile.neutral()
    assert records[0].emotion.primary_emotion == "angry"
    assert records[0].context == "Segment 1 in the sequence"
    assert all(call["model"] == "gpt-4o-mini" for call in client.calls)
    assert all(call["temperature"] == 0.5 for call in client.calls)


def test_analyze_emotion_without_primary_emotion_is_malformed() -> None:
    """A single-line analysis missing `primary_emotion` should raise."""

    analyzer = TextAnalyzer(_ScriptedChatClient([{"intensity": "high"}]))

    with pytest.raises(OpenAIProviderError, match="primary_emotion"):
        analyzer.analyze_emotion("Baley", "What?", "")


def test_prompts_mention_book_title_when_given() -> None:
    """Prompt library should name the book when a title is configured."""

    prompts = PromptLibrary(book_title="The Caves of Steel")

    assert '"The Caves of Steel"' in prompts.segmentation_prompt("text")
    assert "novel chapter" in PromptLibrary().character_prompt("text")
