"""Core stage execution helpers for the chaptervoice pipeline.

Responsibilities:
- Execute each stage against its collaborator and persist its checkpoint
  only after the stage succeeded.
- Map provider, extraction, and audio-tool failures to stage-aware errors.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, TypeVar

from loguru import logger

from ..audio.effects import EFFECTS_DIR, EffectSynthesizer, detect_effects
from ..audio.merger import AudioMerger
from ..config import ChapterVoiceConfig
from ..errors import AudioToolError, PipelineStageError, ProviderError
from ..io.pdf_text_extractor import PdfExtractionError, PdfTextExtractor
from ..io.storage import ArtifactStore
from ..llm.analyzer import TextAnalyzer
from ..llm.openai_client import OpenAIChatClient
from ..llm.prompts import PromptLibrary
from ..models.datatypes import (
    AudioSegmentArtifact,
    CharacterRoster,
    DialogueEmotion,
    EffectArtifact,
    Segment,
)
from ..pacing import CallPacer
from ..tts.elevenlabs_client import ElevenLabsSpeechClient
from ..tts.synthesizer import SEGMENTS_DIR, SegmentSynthesizer, SpeechClient
from ..tts.voices import VoiceCast, build_voice_cast, narrator_only_cast
from .artifacts import (
    audio_manifest_payload,
    effects_manifest_payload,
    emotions_payload,
    roster_payload,
    segments_payload,
    voice_cast_payload,
)
from .stages import stage

_Default = TypeVar("_Default")


class PipelineExecutionMixin:
    """Provide stage-level pipeline helper methods."""

    _extractor: PdfTextExtractor
    _merger: AudioMerger
    _sleeper: Callable[[float], None]
    _synthesis_calls: int

    @staticmethod
    def _provider_error_detail(exc: ProviderError) -> str:
        """Build concise detail text for provider-backed failures."""

        provider = "OpenAI" if exc.provider_name == "openai" else "ElevenLabs"
        mapping = {
            "invalid_api_key": f"Provider authentication failed for {provider} API credentials.",
            "insufficient_quota": f"Provider quota is insufficient for this {provider} request.",
            "rate_limited": f"{provider} rate limit was exceeded.",
            "invalid_model": "Provider rejected the configured model or voice for this request.",
            "timeout": "Provider request timed out before completion.",
            "transport": "Provider request failed due to a transport/network error.",
            "malformed": f"{provider} returned a response that could not be used: {exc}",
        }
        return mapping.get(exc.failure_kind, str(exc))

    @staticmethod
    def _provider_error_hint(stage_name: str, exc: ProviderError) -> str:
        """Build actionable user hints for stage-specific provider failure kinds."""

        kind = exc.failure_kind
        key_name = "OPENAI_API_KEY" if exc.provider_name == "openai" else "ELEVENLABS_API_KEY"
        if kind == "invalid_api_key":
            return f"Set a valid `{key_name}` in the environment, `.env`, or the config file."
        if kind in {"insufficient_quota", "rate_limited"}:
            return "Check provider billing/quota, then rerun; finished stages are reused."
        if kind == "invalid_model":
            stage_model_hint = {
                "segment": "Set `segment_model` to an available chat model.",
                "characters": "Set `character_model` to an available chat model.",
                "emotions": "Set `emotion_model` to an available chat model.",
                "audio": "Set `tts_model` to an available speech model.",
                "effects": "Set `tts_model` to an available speech model.",
            }
            return stage_model_hint.get(
                stage_name,
                "Use a valid model identifier for the configured provider.",
            )
        if kind == "timeout":
            return "Retry the command. If timeouts persist, verify network stability."
        if kind == "transport":
            return "Check internet/proxy connectivity and retry the command."
        if kind == "malformed":
            return f"Rerun with `--force {stage(stage_name).number}` to request a fresh response."
        return "Verify provider configuration and retry the command."

    def _provider_stage_error(self, stage_name: str, exc: ProviderError) -> PipelineStageError:
        """Convert provider exception metadata into a stage-aware pipeline error."""

        return PipelineStageError(
            stage=stage_name,
            detail=self._provider_error_detail(exc),
            hint=self._provider_error_hint(stage_name, exc),
        )

    @staticmethod
    def _require_api_key(stage_name: str, key: str | None, env_name: str) -> str:
        """Fail the stage early when its collaborator has no API key."""

        if not key:
            raise PipelineStageError(
                stage=stage_name,
                detail=f"`{env_name}` is not set; stage `{stage_name}` needs it.",
                hint=f"Set `{env_name}` in the environment, `.env`, or the config file.",
            )
        return key

    @staticmethod
    def _unpersisted(stage_name: str, upstream: str, default: _Default) -> _Default:
        """Return `default` for a stage whose input was never produced.

        Nothing is written, so the stage counts as not done and reruns once
        its `upstream` input exists.
        """

        logger.warning(
            "Stage {} has no {} input; continuing with defaults without a checkpoint",
            stage_name,
            upstream,
        )
        return default

    @staticmethod
    def _require_text(stage_name: str, text: str | None) -> str:
        if text is None or not text.strip():
            raise PipelineStageError(
                stage=stage_name,
                detail="No chapter text is available.",
                hint="Run stage 1 (do not skip it) or restore `chapter_extracted.txt`.",
            )
        return text

    def _text_analyzer(self, config: ChapterVoiceConfig, stage_name: str) -> TextAnalyzer:
        """Create the analyzer for an OpenAI-backed stage."""

        api_key = self._require_api_key(stage_name, config.openai_api_key, "OPENAI_API_KEY")
        return TextAnalyzer(
            OpenAIChatClient(api_key=api_key),
            segment_model=config.segment_model,
            character_model=config.character_model,
            emotion_model=config.emotion_model,
            prompts=PromptLibrary(book_title=config.book_title),
        )

    def _speech_client(self, config: ChapterVoiceConfig, stage_name: str) -> SpeechClient:
        """Create the speech client for an ElevenLabs-backed stage."""

        api_key = self._require_api_key(
            stage_name, config.elevenlabs_api_key, "ELEVENLABS_API_KEY"
        )
        return ElevenLabsSpeechClient(api_key=api_key)

    def _extract(self, config: ChapterVoiceConfig, store: ArtifactStore) -> str:
        """Extract chapter text from the configured input and persist it."""

        if config.input_path is None:
            raise PipelineStageError(
                stage="extract",
                detail="No input file was given and no extracted text exists.",
                hint="Pass the chapter PDF or text file as `chaptervoice run INPUT`.",
            )
        try:
            extracted = self._extractor.extract(config.input_path)
        except PdfExtractionError as exc:
            raise PipelineStageError(
                stage="extract",
                detail=f"Failed to extract text from `{config.input_path}`: {exc}",
                hint="Verify the input file exists and contains selectable text.",
            ) from exc

        store.save_text(stage("extract").checkpoint, extracted.text)
        return extracted.text

    def _segment(
        self, config: ChapterVoiceConfig, store: ArtifactStore, text: str | None
    ) -> list[Segment]:
        """Segment the chapter text and persist the ordered segments."""

        chapter_text = self._require_text("segment", text)
        analyzer = self._text_analyzer(config, "segment")
        try:
            segments = analyzer.segment(chapter_text)
        except ProviderError as exc:
            raise self._provider_stage_error("segment", exc) from exc

        store.save_json(stage("segment").checkpoint, segments_payload(segments))
        return segments

    def _extract_characters(
        self, config: ChapterVoiceConfig, store: ArtifactStore, text: str | None
    ) -> CharacterRoster:
        """Extract the character roster and persist it."""

        chapter_text = self._require_text("characters", text)
        analyzer = self._text_analyzer(config, "characters")
        try:
            roster = analyzer.extract_characters(chapter_text)
        except ProviderError as exc:
            raise self._provider_stage_error("characters", exc) from exc

        store.save_json(stage("characters").checkpoint, roster_payload(roster))
        return roster

    def _analyze_emotions(
        self,
        config: ChapterVoiceConfig,
        store: ArtifactStore,
        segments: list[Segment] | None,
    ) -> list[DialogueEmotion]:
        """Analyze every dialogue segment; per-line failures degrade to neutral."""

        if segments is None:
            return self._unpersisted("emotions", "segments", [])

        dialogue = [segment for segment in segments if segment.is_dialogue]
        if dialogue:
            records = self._text_analyzer(config, "emotions").analyze_emotions(dialogue)
        else:
            records = []

        store.save_json(stage("emotions").checkpoint, emotions_payload(records))
        return records

    def _assign_voices(self, store: ArtifactStore, roster: CharacterRoster | None) -> VoiceCast:
        """Build the voice cast from the roster and persist it in flat form."""

        if roster is None:
            return self._unpersisted("voices", "characters", narrator_only_cast())

        cast = build_voice_cast(roster.characters)
        store.save_json(stage("voices").checkpoint, voice_cast_payload(cast))
        return cast

    def _synthesize_segments(
        self,
        config: ChapterVoiceConfig,
        store: ArtifactStore,
        segments: list[Segment] | None,
        emotions: list[DialogueEmotion] | None,
        cast: VoiceCast,
    ) -> list[AudioSegmentArtifact]:
        """Synthesize every segment; the manifest is written once, after all succeed."""

        if segments is None:
            return self._unpersisted("audio", "segments", [])

        artifacts: list[AudioSegmentArtifact] = []
        if segments:
            pacer = CallPacer(delay_seconds=config.synthesis_delay_seconds, sleeper=self._sleeper)
            synthesizer = SegmentSynthesizer(
                self._speech_client(config, "audio"),
                store,
                model_id=config.tts_model,
                pacer=pacer,
            )
            try:
                artifacts = synthesizer.synthesize(segments, emotions, cast)
            except ProviderError as exc:
                raise self._provider_stage_error("audio", exc) from exc
            finally:
                self._synthesis_calls += pacer.calls

        store.save_json(stage("audio").checkpoint, audio_manifest_payload(artifacts))
        return artifacts

    def _combine(
        self,
        config: ChapterVoiceConfig,
        store: ArtifactStore,
        artifacts: list[AudioSegmentArtifact] | None,
    ) -> Path:
        """Concatenate segment audio into the audiobook file."""

        if not artifacts:
            raise PipelineStageError(
                stage="combine",
                detail="No audio segments to combine.",
                hint="Run stage 6 (or restore `audiobook_manifest.json`) before combining.",
            )
        try:
            return self._merger.combine(
                artifacts,
                store.root,
                config.audiobook_filename,
                segments_dir=SEGMENTS_DIR.as_posix(),
            )
        except AudioToolError as exc:
            raise PipelineStageError(
                stage="combine",
                detail=str(exc),
                hint="Install ffmpeg (or place it in `bin/`) and rerun with `--start-from 7`.",
            ) from exc

    def _generate_effects(
        self,
        config: ChapterVoiceConfig,
        store: ArtifactStore,
        segments: list[Segment] | None,
    ) -> list[EffectArtifact]:
        """Detect and synthesize effect clips; individual failures are skipped."""

        if segments is None:
            return self._unpersisted("effects", "segments", [])

        descriptors = detect_effects(segments)
        artifacts: list[EffectArtifact] = []
        if descriptors:
            pacer = CallPacer(delay_seconds=config.effect_delay_seconds, sleeper=self._sleeper)
            synthesizer = EffectSynthesizer(
                self._speech_client(config, "effects"),
                store,
                model_id=config.tts_model,
                pacer=pacer,
            )
            try:
                artifacts = synthesizer.synthesize(descriptors)
            finally:
                self._synthesis_calls += pacer.calls

        store.save_json(stage("effects").checkpoint, effects_manifest_payload(artifacts))
        return artifacts

    def _mix_effects(
        self,
        config: ChapterVoiceConfig,
        store: ArtifactStore,
        audiobook_path: Path,
        effects: list[EffectArtifact],
    ) -> Path:
        """Mix effect clips over the audiobook; fails only when every strategy fails."""

        try:
            return self._merger.mix_with_effects(
                audiobook_path,
                effects,
                store.path(config.mixed_audiobook_filename),
            )
        except AudioToolError as exc:
            raise PipelineStageError(
                stage="mix",
                detail=f"Mixing sound effects failed: {exc}",
                hint="Check the ffmpeg installation, or rerun without `--mix-effects`.",
            ) from exc

    @staticmethod
    def _effects_dir(store: ArtifactStore) -> Path:
        return store.path(EFFECTS_DIR)
