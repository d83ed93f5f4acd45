"""Pipeline orchestration for chaptervoice.

Responsibilities:
- Walk the fixed stage order and decide per stage whether to load, reuse,
  or execute, based on the stage plan and existing checkpoints.
- Thread each stage's output into the stages that consume it.

Key types:
- `ChapterVoicePipeline`: orchestration facade.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
import time
from typing import TypeVar

from ..audio.merger import AudioMerger
from ..config import ChapterVoiceConfig
from ..errors import PipelineStageError
from ..io.pdf_text_extractor import PdfTextExtractor
from ..io.storage import ArtifactStore
from ..models.datatypes import EffectArtifact, RunSummary, StagePlan
from ..telemetry.logger import RunLogger
from ..tts.synthesizer import SEGMENTS_DIR
from ..tts.voices import narrator_only_cast
from .artifacts import (
    load_audio_manifest,
    load_effects_manifest,
    load_emotions,
    load_roster,
    load_segments,
    load_voice_cast,
)
from .execution import PipelineExecutionMixin
from .stages import STAGES, StageDefinition, stage
from .telemetry import (
    OUTCOME_CACHE_HIT,
    OUTCOME_EXECUTED,
    OUTCOME_LOADED,
    OUTCOME_MISSING,
    PipelineTelemetryMixin,
)

_StageResult = TypeVar("_StageResult")


class ChapterVoicePipeline(PipelineTelemetryMixin, PipelineExecutionMixin):
    """Coordinate all stages for a single chaptervoice run."""

    def __init__(
        self,
        run_logger: RunLogger | None = None,
        stage_progress_callback: Callable[[str, int, int], None] | None = None,
        *,
        extractor: PdfTextExtractor | None = None,
        merger: AudioMerger | None = None,
        sleeper: Callable[[float], None] | None = None,
    ) -> None:
        """Initialize optional runtime logging, progress hooks, and collaborators."""

        self._run_logger = run_logger
        self._stage_progress_callback = stage_progress_callback
        self._extractor = extractor if extractor is not None else PdfTextExtractor()
        self._merger = merger if merger is not None else AudioMerger()
        self._sleeper = sleeper if sleeper is not None else time.sleep
        self._synthesis_calls = 0
        self._outcomes: dict[str, str] = {}

    def run(self, config: ChapterVoiceConfig, plan: StagePlan | None = None) -> RunSummary:
        """Run every stage in order under the given plan and return a summary."""

        plan = plan if plan is not None else StagePlan()
        self._validate_config(config)
        store = ArtifactStore(config.output_dir)
        self._synthesis_calls = 0
        self._outcomes = {}

        text = self._resolve(
            plan,
            store,
            stage("extract"),
            load=lambda: store.load_text(stage("extract").checkpoint),
            execute=lambda: self._extract(config, store),
        )
        segments = self._resolve(
            plan,
            store,
            stage("segment"),
            load=lambda: load_segments(store.load_json(stage("segment").checkpoint)),
            execute=lambda: self._segment(config, store, text),
        )
        roster = self._resolve(
            plan,
            store,
            stage("characters"),
            load=lambda: load_roster(store.load_json(stage("characters").checkpoint)),
            execute=lambda: self._extract_characters(config, store, text),
        )
        emotions = self._resolve(
            plan,
            store,
            stage("emotions"),
            load=lambda: load_emotions(store.load_json(stage("emotions").checkpoint)),
            execute=lambda: self._analyze_emotions(config, store, segments),
        )
        cast = self._resolve(
            plan,
            store,
            stage("voices"),
            load=lambda: load_voice_cast(store.load_json(stage("voices").checkpoint)),
            execute=lambda: self._assign_voices(store, roster),
        )
        if cast is None:
            self._on_warning("audio", "voice_cast_missing_using_narrator")
            cast = narrator_only_cast()

        audio_dir = store.path(SEGMENTS_DIR)
        artifacts = self._resolve(
            plan,
            store,
            stage("audio"),
            load=lambda: load_audio_manifest(
                store.load_json(stage("audio").checkpoint), audio_dir
            ),
            execute=lambda: self._synthesize_segments(config, store, segments, emotions, cast),
        )

        combine_stage = self._combine_stage(config)
        audiobook_path = self._resolve(
            plan,
            store,
            combine_stage,
            load=lambda: self._existing_file(store.path(combine_stage.checkpoint)),
            execute=lambda: self._combine(config, store, artifacts),
        )

        effects_dir = self._effects_dir(store)
        effects = self._resolve(
            plan,
            store,
            stage("effects"),
            load=lambda: load_effects_manifest(
                store.load_json(stage("effects").checkpoint), effects_dir
            ),
            execute=lambda: self._generate_effects(config, store, segments),
        )

        mixed_path = None
        if config.mix_effects:
            mixed_path = self._mix(config, store, audiobook_path, effects)

        return RunSummary(
            stage_outcomes=dict(self._outcomes),
            character_count=len(roster.characters) if roster is not None else 0,
            segment_count=len(segments) if segments is not None else 0,
            audio_count=len(artifacts) if artifacts is not None else 0,
            effect_count=len(effects) if effects is not None else 0,
            audiobook_path=audiobook_path,
            mixed_audiobook_path=mixed_path,
            synthesis_calls=self._synthesis_calls,
        )

    def checkpoint_status(self, config: ChapterVoiceConfig) -> list[tuple[StageDefinition, bool]]:
        """Return each stage with whether its checkpoint exists under the output dir."""

        store = ArtifactStore(config.output_dir)
        status: list[tuple[StageDefinition, bool]] = []
        for definition in STAGES:
            if definition.key == "combine":
                definition = self._combine_stage(config)
            status.append((definition, store.exists(definition.checkpoint)))
        return status

    def _resolve(
        self,
        plan: StagePlan,
        store: ArtifactStore,
        definition: StageDefinition,
        *,
        load: Callable[[], _StageResult | None],
        execute: Callable[[], _StageResult],
    ) -> _StageResult | None:
        """Apply the per-stage decision: load-only, cache hit, or execute."""

        if plan.is_load_only(definition.number):
            value = load()
            self._record_outcome(
                definition, OUTCOME_LOADED if value is not None else OUTCOME_MISSING
            )
            return value

        if not plan.is_forced(definition.number) and store.exists(definition.checkpoint):
            value = load()
            if value is not None:
                self._record_outcome(definition, OUTCOME_CACHE_HIT)
                return value
            self._on_warning(definition.key, "unreadable_checkpoint_recomputing")

        value = self._run_stage(definition.key, execute)
        self._record_outcome(definition, OUTCOME_EXECUTED)
        return value

    def _mix(
        self,
        config: ChapterVoiceConfig,
        store: ArtifactStore,
        audiobook_path: Path | None,
        effects: list[EffectArtifact] | None,
    ) -> Path | None:
        if audiobook_path is None:
            self._on_warning("mix", "audiobook_missing")
            return None
        if not effects:
            self._on_warning("mix", "no_effects")
            return None
        return self._run_stage(
            "mix", lambda: self._mix_effects(config, store, audiobook_path, effects)
        )

    @staticmethod
    def _combine_stage(config: ChapterVoiceConfig) -> StageDefinition:
        definition = stage("combine")
        return StageDefinition(
            definition.number,
            definition.key,
            config.audiobook_filename,
            definition.description,
        )

    @staticmethod
    def _existing_file(path: Path) -> Path | None:
        return path if path.is_file() else None

    def _validate_config(self, config: ChapterVoiceConfig) -> None:
        """Validate top-level configuration and map failures to stage-aware error."""

        try:
            config.validate()
        except ValueError as exc:
            raise PipelineStageError(
                stage="config",
                detail=str(exc),
                hint="Fix the configuration file or CLI options and rerun the command.",
            ) from exc
