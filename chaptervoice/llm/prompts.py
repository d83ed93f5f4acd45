"""Prompt template library for the text analysis stages.

Responsibilities:
- Centralize prompt construction for segmentation, character extraction,
  and per-dialogue emotion analysis.
- Spell out the JSON response schema each stage parser expects.
"""

from __future__ import annotations


class PromptLibrary:
    """Build prompt strings for supported text-generation tasks."""

    def __init__(self, book_title: str | None = None) -> None:
        self.book_title = book_title

    def _source_label(self) -> str:
        if self.book_title:
            return f'the following text from "{self.book_title}"'
        return "the following novel chapter"

    def segmentation_system_prompt(self) -> str:
        """Return system prompt for dialogue/narration segmentation."""

        return (
            "You are an expert at parsing novels for audiobook production. Your primary "
            "job is to correctly separate ALL dialogue from narration and assign each line "
            "to the appropriate character voice. Never let the narrator speak a "
            "character's dialogue."
        )

    def segmentation_prompt(self, text: str) -> str:
        """Return the sequential segmentation prompt for one chapter."""

        return (
            f"Analyze {self._source_label()} and create a sequential audiobook structure.\n"
            "CRITICAL: Extract ALL dialogue from narration and assign it to the correct "
            "character voices.\n\n"
            "Return a JSON object with:\n"
            "{\n"
            '  "segments": [\n'
            "    {\n"
            '      "type": "narration" | "dialogue",\n'
            '      "text": "the actual text content",\n'
            '      "speaker": "character name (for dialogue) or Narrator (for narration)",\n'
            '      "order": sequential_number_starting_from_0\n'
            "    }\n"
            "  ]\n"
            "}\n\n"
            "IMPORTANT RULES:\n"
            "1. SEPARATE ALL DIALOGUE: Any text in quotes should be a dialogue segment "
            "with the correct speaker.\n"
            '2. IDENTIFY SPEAKERS: Look for patterns like "Baley said", '
            '"the Commissioner replied", etc.\n'
            "3. CLEAN NARRATION: Remove all quoted dialogue from narration segments.\n"
            "4. MAINTAIN ORDER: Keep the exact sequence from the original text.\n"
            "5. SPLIT MIXED PARAGRAPHS: If a paragraph has both narration and dialogue, "
            "split them into separate segments.\n\n"
            "Example:\n"
            "Original: \"Baley looked up. 'What do you want?' he asked.\"\n"
            "Should become:\n"
            '- Segment N (narration): "Baley looked up."\n'
            '- Segment N+1 (dialogue, speaker: Baley): "What do you want?"\n'
            '- Segment N+2 (narration): "he asked."\n\n'
            f"Text:\n{text}"
        )

    def character_system_prompt(self) -> str:
        """Return system prompt for character and dialogue extraction."""

        return (
            "You are a literary analyst expert at identifying characters and extracting "
            "dialogue from fiction."
        )

    def character_prompt(self, text: str) -> str:
        """Return the character extraction prompt for one chapter."""

        return (
            f"Analyze {self._source_label()} and extract:\n"
            "1. All character names that appear in the text\n"
            "2. All dialogues with their speakers\n"
            "3. Character descriptions and personality traits\n\n"
            "Return the result in JSON format with the following structure:\n"
            "{\n"
            '  "characters": {\n'
            '    "characterName": {\n'
            '      "description": "brief description of character",\n'
            '      "personality": "personality traits",\n'
            '      "role": "their role in the story"\n'
            "    }\n"
            "  },\n"
            '  "dialogues": [\n'
            "    {\n"
            '      "speaker": "character name",\n'
            '      "text": "dialogue text",\n'
            '      "context": "brief context or scene description"\n'
            "    }\n"
            "  ]\n"
            "}\n\n"
            f"Text:\n{text}"
        )

    def emotion_system_prompt(self) -> str:
        """Return system prompt for dialogue emotion analysis."""

        return (
            "You are an expert at analyzing emotional tone and voice characteristics "
            "in dialogue."
        )

    def emotion_prompt(self, speaker: str, text: str, context: str) -> str:
        """Return the emotion analysis prompt for one dialogue line."""

        return (
            f'Analyze the emotional tone of this dialogue from "{speaker}":\n\n'
            f"Context: {context or 'N/A'}\n"
            f'Dialogue: "{text}"\n\n'
            "Return a JSON object with:\n"
            "{\n"
            '  "primary_emotion": "main emotion (e.g., angry, sad, excited, calm, '
            'anxious, curious)",\n'
            '  "intensity": "low/medium/high",\n'
            '  "voice_modulation": "suggested voice characteristics (e.g., tense, soft, '
            'loud, trembling)"\n'
            "}"
        )
