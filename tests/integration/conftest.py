"""Integration-test fixtures for deterministic provider and ffmpeg behavior."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import subprocess
from typing import Any

import pytest

from chaptervoice.llm.openai_client import OpenAIChatClient
from chaptervoice.tts.elevenlabs_client import ElevenLabsSpeechClient

SEGMENTS_RESPONSE = {
    "segments": [
        {"type": "narration", "text": "Baley looked up.", "speaker": "Narrator", "order": 0},
        {"type": "dialogue", "text": "What do you want?", "speaker": "Baley", "order": 1},
        {
            "type": "narration",
            "text": "he asked. The door opened and R. Daneel Olivaw stepped in.",
            "speaker": "Narrator",
            "order": 2,
        },
        {
            "type": "dialogue",
            "text": "I am your partner.",
            "speaker": "R. Daneel Olivaw",
            "order": 3,
        },
        {"type": "narration", "text": "said Daneel.", "speaker": "Narrator", "order": 4},
    ]
}

CHARACTERS_RESPONSE = {
    "characters": {
        "Elijah Baley": {
            "description": "Plainclothes detective",
            "personality": "stubborn",
            "role": "protagonist",
        },
        "R. Daneel Olivaw": {
            "description": "Humaniform robot",
            "personality": "calm",
            "role": "partner",
        },
    },
    "dialogues": [
        {"speaker": "Baley", "text": "What do you want?", "context": "office"},
        {"speaker": "R. Daneel Olivaw", "text": "I am your partner.", "context": "office"},
    ],
}

EMOTION_RESPONSE = {
    "primary_emotion": "anxious",
    "intensity": "high",
    "voice_modulation": "tense",
}


@dataclass
class ProviderCallLog:
    """Record of mocked provider and ffmpeg invocations for one test."""

    chat_models: list[str] = field(default_factory=list)
    speech_texts: list[str] = field(default_factory=list)
    ffmpeg_commands: list[list[str]] = field(default_factory=list)
    ffmpeg_fail_markers: tuple[str, ...] = ()

    @property
    def speech_calls(self) -> int:
        return len(self.speech_texts)


@pytest.fixture(autouse=True)
def provider_calls(monkeypatch: pytest.MonkeyPatch) -> ProviderCallLog:
    """Mock provider calls, ffmpeg, and pacing so integration runs stay offline."""

    log = ProviderCallLog()

    def _mock_chat_completion_json(self: object, **kwargs: Any) -> dict[str, Any]:
        """Return canned JSON chosen by which analysis prompt was sent."""

        _ = self
        log.chat_models.append(str(kwargs["model"]))
        system_prompt = str(kwargs["system_prompt"])
        if "parsing novels" in system_prompt:
            return SEGMENTS_RESPONSE
        if "literary analyst" in system_prompt:
            return CHARACTERS_RESPONSE
        return EMOTION_RESPONSE

    def _mock_synthesize_speech(self: object, **kwargs: Any) -> bytes:
        """Return deterministic placeholder MPEG bytes."""

        _ = self
        log.speech_texts.append(str(kwargs["text"]))
        return b"ID3" + str(kwargs["text"]).encode("utf-8")

    def _mock_run(command: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        """Pretend to be ffmpeg: fail on configured markers, else write the output file."""

        log.ffmpeg_commands.append(list(command))
        joined = " ".join(command)
        if any(marker in joined for marker in log.ffmpeg_fail_markers):
            raise subprocess.CalledProcessError(1, command, output="", stderr="Filter error")
        if "concat" in command:
            output = Path(kwargs["cwd"]) / command[-2]
        else:
            output = Path(command[-1])
        output.write_bytes(b"ID3-combined")
        return subprocess.CompletedProcess(command, 0, stdout="", stderr="")

    monkeypatch.setattr(OpenAIChatClient, "chat_completion_json", _mock_chat_completion_json)
    monkeypatch.setattr(ElevenLabsSpeechClient, "synthesize_speech", _mock_synthesize_speech)
    monkeypatch.setattr("chaptervoice.audio.merger.subprocess.run", _mock_run)
    monkeypatch.setattr("chaptervoice.pipeline.orchestrator.time.sleep", lambda _seconds: None)
    monkeypatch.setattr("chaptervoice.cli.load_dotenv", lambda *_args, **_kwargs: False)

    for name in (
        "CHAPTERVOICE_INPUT",
        "CHAPTERVOICE_OUTPUT_DIR",
        "CHAPTERVOICE_BOOK_TITLE",
        "CHAPTERVOICE_SEGMENT_MODEL",
        "CHAPTERVOICE_CHARACTER_MODEL",
        "CHAPTERVOICE_EMOTION_MODEL",
        "CHAPTERVOICE_TTS_MODEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-integration")
    monkeypatch.setenv("ELEVENLABS_API_KEY", "el-integration")
    return log
