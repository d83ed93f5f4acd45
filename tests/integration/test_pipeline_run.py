"""Pipeline integration tests for checkpoint reuse and stage selection."""

from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from chaptervoice.config import ChapterVoiceConfig
from chaptervoice.errors import PipelineStageError
from chaptervoice.models.datatypes import StagePlan
from chaptervoice.pipeline import ChapterVoicePipeline
from chaptervoice.telemetry.logger import RunLogger


def _config(chapter_text_path: Path, out_dir: Path, **overrides: object) -> ChapterVoiceConfig:
    values: dict[str, object] = {
        "input_path": chapter_text_path,
        "output_dir": out_dir,
        "openai_api_key": "sk-test",
        "elevenlabs_api_key": "el-test",
    }
    values.update(overrides)
    return ChapterVoiceConfig(**values)  # type: ignore[arg-type]


def test_full_run_writes_every_checkpoint(
    chapter_text_path: Path, tmp_path: Path, provider_calls
) -> None:
    """A first run should execute all stages and write each checkpoint."""

    out_dir = tmp_path / "out"

    summary = ChapterVoicePipeline().run(_config(chapter_text_path, out_dir))

    assert set(summary.stage_outcomes.values()) == {"executed"}
    assert list(summary.stage_outcomes) == [
        "extract",
        "segment",
        "characters",
        "emotions",
        "voices",
        "audio",
        "combine",
        "effects",
    ]
    assert summary.segment_count == 5
    assert summary.character_count == 2
    assert summary.audio_count == 5
    assert summary.effect_count == 2
    assert summary.synthesis_calls == 7
    assert summary.audiobook_path == out_dir / "audiobook.mp3"
    assert summary.mixed_audiobook_path is None

    for name in (
        "chapter_extracted.txt",
        "sequential_segments.json",
        "characters_and_dialogues.json",
        "dialogues_with_emotions.json",
        "voice_assignments.json",
        "audiobook_manifest.json",
        "audiobook.mp3",
        "segments.txt",
        "sound_effects_manifest.json",
    ):
        assert (out_dir / name).exists(), name
    assert (out_dir / "segments" / "segment_0003_r_daneel_olivaw.mp3").exists()
    assert (out_dir / "effects" / "effect_0001_ambient.mp3").exists()

    emotions = json.loads((out_dir / "dialogues_with_emotions.json").read_text(encoding="utf-8"))
    assert [record["speaker"] for record in emotions] == ["Baley", "R. Daneel Olivaw"]
    assert provider_calls.chat_models == ["gpt-4o", "gpt-4o", "gpt-4o-mini", "gpt-4o-mini"]

    voices = json.loads((out_dir / "voice_assignments.json").read_text(encoding="utf-8"))
    assert voices["Lije"] == voices["Elijah Baley"]
    assert "Narrator" in voices


def test_second_run_reuses_every_checkpoint(
    chapter_text_path: Path, tmp_path: Path, provider_calls
) -> None:
    """An unchanged rerun should issue no provider calls and report cache hits."""

    out_dir = tmp_path / "out"
    config = _config(chapter_text_path, out_dir)
    ChapterVoicePipeline().run(config)
    chat_calls = len(provider_calls.chat_models)
    speech_calls = provider_calls.speech_calls
    ffmpeg_calls = len(provider_calls.ffmpeg_commands)

    log_sink = io.StringIO()
    summary = ChapterVoicePipeline(run_logger=RunLogger(sink=log_sink)).run(config)

    assert set(summary.stage_outcomes.values()) == {"cache_hit"}
    assert summary.synthesis_calls == 0
    assert summary.audio_count == 5
    assert len(provider_calls.chat_models) == chat_calls
    assert provider_calls.speech_calls == speech_calls
    assert len(provider_calls.ffmpeg_commands) == ffmpeg_calls
    assert (
        "[phase] level=INFO stage=audio event=cache_hit artifact=audiobook_manifest.json"
        in log_sink.getvalue()
    )


def test_force_recomputes_only_the_named_stage(
    chapter_text_path: Path, tmp_path: Path, provider_calls
) -> None:
    """Forcing stage 6 should resynthesize segments without cascading downstream."""

    out_dir = tmp_path / "out"
    config = _config(chapter_text_path, out_dir)
    ChapterVoicePipeline().run(config)
    speech_calls = provider_calls.speech_calls

    summary = ChapterVoicePipeline().run(config, StagePlan(force=frozenset({6})))

    assert summary.stage_outcomes["audio"] == "executed"
    assert summary.stage_outcomes["segment"] == "cache_hit"
    assert summary.stage_outcomes["combine"] == "cache_hit"
    assert summary.stage_outcomes["effects"] == "cache_hit"
    assert summary.synthesis_calls == 5
    assert provider_calls.speech_calls == speech_calls + 5


def test_start_from_loads_earlier_stages_and_rebuilds_audiobook(
    chapter_text_path: Path, tmp_path: Path, provider_calls
) -> None:
    """Starting at stage 7 should load stages 1-6 and recombine the audiobook."""

    out_dir = tmp_path / "out"
    config = _config(chapter_text_path, out_dir)
    ChapterVoicePipeline().run(config)
    (out_dir / "audiobook.mp3").unlink()
    speech_calls = provider_calls.speech_calls

    summary = ChapterVoicePipeline().run(config, StagePlan(start_from=7))

    for key in ("extract", "segment", "characters", "emotions", "voices", "audio"):
        assert summary.stage_outcomes[key] == "loaded"
    assert summary.stage_outcomes["combine"] == "executed"
    assert summary.stage_outcomes["effects"] == "cache_hit"
    assert (out_dir / "audiobook.mp3").exists()
    assert provider_calls.speech_calls == speech_calls


def test_skip_without_checkpoint_reports_missing_and_fails_downstream(
    chapter_text_path: Path, tmp_path: Path
) -> None:
    """A skipped stage without a checkpoint leaves its consumers without input."""

    pipeline = ChapterVoicePipeline()

    with pytest.raises(PipelineStageError) as exc_info:
        pipeline.run(
            _config(chapter_text_path, tmp_path / "out"),
            StagePlan(skip=frozenset({1})),
        )

    assert exc_info.value.stage == "segment"
    assert "No chapter text" in exc_info.value.detail
    assert not (tmp_path / "out" / "chapter_extracted.txt").exists()


def test_stages_without_upstream_input_leave_no_checkpoint(
    chapter_text_path: Path, tmp_path: Path
) -> None:
    """Defaults used for a missing input must not be reused by the next run."""

    out_dir = tmp_path / "out"
    pipeline = ChapterVoicePipeline()

    with pytest.raises(PipelineStageError) as exc_info:
        pipeline.run(_config(chapter_text_path, out_dir), StagePlan(skip=frozenset({2})))

    assert exc_info.value.stage == "combine"
    assert (out_dir / "characters_and_dialogues.json").exists()
    assert not (out_dir / "dialogues_with_emotions.json").exists()
    assert not (out_dir / "audiobook_manifest.json").exists()

    summary = pipeline.run(_config(chapter_text_path, out_dir))

    assert summary.stage_outcomes["segment"] == "executed"
    assert summary.stage_outcomes["characters"] == "cache_hit"
    assert summary.stage_outcomes["emotions"] == "executed"
    assert summary.stage_outcomes["audio"] == "executed"
    assert summary.audio_count == 5
    assert summary.audiobook_path == out_dir / "audiobook.mp3"


def test_missing_roster_uses_narrator_without_persisting_cast(
    chapter_text_path: Path, tmp_path: Path
) -> None:
    """A skipped character stage should voice everyone as the narrator for this run only."""

    out_dir = tmp_path / "out"

    summary = ChapterVoicePipeline().run(
        _config(chapter_text_path, out_dir), StagePlan(skip=frozenset({3}))
    )

    assert summary.stage_outcomes["characters"] == "missing"
    assert summary.stage_outcomes["voices"] == "executed"
    assert summary.audio_count == 5
    assert not (out_dir / "voice_assignments.json").exists()


def test_missing_text_generation_key_fails_at_first_stage_needing_it(
    chapter_text_path: Path, tmp_path: Path
) -> None:
    """Extraction should succeed and segmentation should fail with a key hint."""

    out_dir = tmp_path / "out"
    config = _config(chapter_text_path, out_dir, openai_api_key=None)

    with pytest.raises(PipelineStageError) as exc_info:
        ChapterVoicePipeline().run(config)

    assert exc_info.value.stage == "segment"
    assert exc_info.value.hint is not None
    assert "OPENAI_API_KEY" in exc_info.value.hint
    assert (out_dir / "chapter_extracted.txt").exists()
    assert not (out_dir / "sequential_segments.json").exists()


def test_unreadable_checkpoint_is_recomputed(
    chapter_text_path: Path, tmp_path: Path, provider_calls
) -> None:
    """A corrupted checkpoint should be treated as missing and recomputed."""

    out_dir = tmp_path / "out"
    config = _config(chapter_text_path, out_dir)
    ChapterVoicePipeline().run(config)
    (out_dir / "sequential_segments.json").write_text("{broken", encoding="utf-8")
    chat_calls = len(provider_calls.chat_models)

    summary = ChapterVoicePipeline().run(config)

    assert summary.stage_outcomes["segment"] == "executed"
    assert summary.stage_outcomes["characters"] == "cache_hit"
    assert len(provider_calls.chat_models) == chat_calls + 1


def test_mix_effects_uses_primary_strategy(
    chapter_text_path: Path, tmp_path: Path, provider_calls
) -> None:
    """Mixing should produce the effects audiobook with the amix filter graph."""

    out_dir = tmp_path / "out"

    summary = ChapterVoicePipeline().run(_config(chapter_text_path, out_dir, mix_effects=True))

    assert summary.mixed_audiobook_path == out_dir / "audiobook_with_effects.mp3"
    assert summary.mixed_audiobook_path.exists()
    mix_command = provider_calls.ffmpeg_commands[-1]
    assert mix_command.count("-i") == 3
    assert "dropout_transition=0" in mix_command[mix_command.index("-filter_complex") + 1]


def test_mix_effects_falls_back_to_single_effect(
    chapter_text_path: Path, tmp_path: Path, provider_calls
) -> None:
    """A failing primary mix should fall back to mixing only the first effect."""

    provider_calls.ffmpeg_fail_markers = ("dropout_transition",)
    out_dir = tmp_path / "out"

    summary = ChapterVoicePipeline().run(_config(chapter_text_path, out_dir, mix_effects=True))

    assert summary.mixed_audiobook_path is not None
    assert summary.mixed_audiobook_path.exists()
    fallback_command = provider_calls.ffmpeg_commands[-1]
    assert fallback_command.count("-i") == 2
    assert str(out_dir / "effects" / "effect_0000_ambient.mp3") in fallback_command


def test_mix_failure_of_every_strategy_is_a_stage_error(
    chapter_text_path: Path, tmp_path: Path, provider_calls
) -> None:
    """When both mix strategies fail the run should report the mix stage."""

    provider_calls.ffmpeg_fail_markers = ("amix",)

    with pytest.raises(PipelineStageError) as exc_info:
        ChapterVoicePipeline().run(
            _config(chapter_text_path, tmp_path / "out", mix_effects=True)
        )

    assert exc_info.value.stage == "mix"
    assert (tmp_path / "out" / "audiobook.mp3").exists()


def test_invalid_config_fails_before_any_stage(chapter_text_path: Path, tmp_path: Path) -> None:
    """Configuration errors should surface as the `config` stage."""

    config = _config(chapter_text_path, tmp_path / "out", synthesis_delay_seconds=-1.0)

    with pytest.raises(PipelineStageError) as exc_info:
        ChapterVoicePipeline().run(config)

    assert exc_info.value.stage == "config"
    assert not (tmp_path / "out").exists()


def test_checkpoint_status_reports_existing_files(
    chapter_text_path: Path, tmp_path: Path
) -> None:
    """Status should mark each stage done once its checkpoint exists."""

    out_dir = tmp_path / "out"
    config = _config(chapter_text_path, out_dir)
    pipeline = ChapterVoicePipeline()

    assert [present for _, present in pipeline.checkpoint_status(config)] == [False] * 8
    pipeline.run(config)
    assert [present for _, present in pipeline.checkpoint_status(config)] == [True] * 8
