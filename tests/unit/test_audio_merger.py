"""Unit tests for ffmpeg-based audiobook combination and effects mixing."""

from __future__ import annotations

from pathlib import Path
import subprocess
from typing import Any

import pytest

from chaptervoice.audio.merger import (
    AudioMerger,
    amix_filter,
    concat_list_content,
    fallback_filter,
)
from chaptervoice.errors import AudioToolError
from chaptervoice.models.datatypes import AudioSegmentArtifact, EffectArtifact


class _FakeRunner:
    """Subprocess runner double that records commands and fails on demand."""

    def __init__(self, fail_markers: tuple[str, ...] = ()) -> None:
        self.fail_markers = fail_markers
        self.calls: list[tuple[list[str], dict[str, Any]]] = []

    def __call__(self, command: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        self.calls.append((command, kwargs))
        joined = " ".join(command)
        if any(marker in joined for marker in self.fail_markers):
            raise subprocess.CalledProcessError(1, command, output="", stderr="Invalid filter")
        return subprocess.CompletedProcess(command, 0, stdout="", stderr="")


def _segment(index: int, tmp_path: Path) -> AudioSegmentArtifact:
    filename = f"segment_{index:04d}_narrator.mp3"
    return AudioSegmentArtifact(
        index=index,
        type="narration",
        speaker="Narrator",
        text=f"text {index}",
        filename=filename,
        filepath=tmp_path / "segments" / filename,
    )


def _effect(index: int, tmp_path: Path) -> EffectArtifact:
    filename = f"effect_{index:04d}_ambient.mp3"
    return EffectArtifact(
        index=index,
        description="gentle rain on window",
        duration="medium",
        after_segment=index,
        filename=filename,
        filepath=tmp_path / "effects" / filename,
    )


def test_combine_writes_sorted_concat_list_and_runs_stream_copy(tmp_path: Path) -> None:
    """Combination should list files by index and run one concat invocation."""

    runner = _FakeRunner()
    merger = AudioMerger(runner=runner, ffmpeg="ffmpeg")
    artifacts = [_segment(2, tmp_path), _segment(0, tmp_path), _segment(1, tmp_path)]

    output = merger.combine(artifacts, tmp_path, "audiobook.mp3")

    assert output == tmp_path / "audiobook.mp3"
    assert (tmp_path / "segments.txt").read_text(encoding="utf-8") == (
        "file 'segments/segment_0000_narrator.mp3'\n"
        "file 'segments/segment_0001_narrator.mp3'\n"
        "file 'segments/segment_0002_narrator.mp3'\n"
    )
    command, kwargs = runner.calls[0]
    assert command == [
        "ffmpeg",
        "-f",
        "concat",
        "-safe",
        "0",
        "-i",
        "segments.txt",
        "-c",
        "copy",
        "audiobook.mp3",
        "-y",
    ]
    assert kwargs["cwd"] == str(tmp_path)
    assert kwargs["check"] is True


def test_combine_without_artifacts_raises_value_error(tmp_path: Path) -> None:
    """An empty artifact list should fail before invoking ffmpeg."""

    runner = _FakeRunner()

    with pytest.raises(ValueError, match="No audio segments"):
        AudioMerger(runner=runner, ffmpeg="ffmpeg").combine([], tmp_path, "audiobook.mp3")
    assert runner.calls == []


def test_concat_list_escapes_single_quotes() -> None:
    """Single quotes in filenames should use the concat escape form."""

    artifact = AudioSegmentArtifact(
        index=0,
        type="dialogue",
        speaker="O'Brien",
        text="Hi.",
        filename="o'brien.mp3",
        filepath=Path("o'brien.mp3"),
    )

    assert concat_list_content([artifact], "") == "file 'o'\\''brien.mp3'"


def test_amix_filter_spaces_effects_and_attenuates() -> None:
    """Each effect should be delayed by its position times ten seconds."""

    graph = amix_filter(2)

    assert "[1:a]adelay=10000|10000,volume=0.2[a1]" in graph
    assert "[2:a]adelay=20000|20000,volume=0.2[a2]" in graph
    assert graph.endswith("[a0][a1][a2]amix=inputs=3:duration=first:dropout_transition=0[out]")


def test_fallback_filter_states_base_and_effect_gains() -> None:
    """The fallback graph should pin the audiobook at full volume like the primary one."""

    assert fallback_filter() == (
        "[0:a]volume=1.0[base];[1:a]volume=0.3[fx];[base][fx]amix=inputs=2:duration=first[out]"
    )


def test_mix_uses_at_most_five_effects(tmp_path: Path) -> None:
    """The primary strategy should mix only the first five effects."""

    runner = _FakeRunner()
    merger = AudioMerger(runner=runner, ffmpeg="ffmpeg")
    effects = [_effect(index, tmp_path) for index in range(7)]

    merger.mix_with_effects(tmp_path / "audiobook.mp3", effects, tmp_path / "mixed.mp3")

    command, _ = runner.calls[0]
    assert command.count("-i") == 6
    assert "amix=inputs=6" in command[command.index("-filter_complex") + 1]
    assert command[-1] == str(tmp_path / "mixed.mp3")


def test_mix_falls_back_to_single_effect_when_amix_fails(tmp_path: Path) -> None:
    """A failing primary filter should be followed by the single-effect fallback."""

    runner = _FakeRunner(fail_markers=("dropout_transition",))
    merger = AudioMerger(runner=runner, ffmpeg="ffmpeg")
    effects = [_effect(0, tmp_path), _effect(1, tmp_path)]

    output = merger.mix_with_effects(tmp_path / "audiobook.mp3", effects, tmp_path / "mixed.mp3")

    assert output == tmp_path / "mixed.mp3"
    assert len(runner.calls) == 2
    fallback_command, _ = runner.calls[1]
    assert fallback_command.count("-i") == 2
    assert str(effects[0].filepath) in fallback_command
    assert "volume=0.3" in fallback_command[fallback_command.index("-filter_complex") + 1]


def test_mix_raises_last_failure_when_every_strategy_fails(tmp_path: Path) -> None:
    """When both strategies fail the last tool error should surface."""

    runner = _FakeRunner(fail_markers=("amix",))
    merger = AudioMerger(runner=runner, ffmpeg="ffmpeg")

    with pytest.raises(AudioToolError, match="Invalid filter") as exc_info:
        merger.mix_with_effects(
            tmp_path / "audiobook.mp3", [_effect(0, tmp_path)], tmp_path / "mixed.mp3"
        )
    assert exc_info.value.returncode == 1
    assert len(runner.calls) == 2


def test_mix_without_strategies_raises_audio_tool_error(tmp_path: Path) -> None:
    """An empty strategy list should fail explicitly instead of returning silently."""

    class _NoStrategyMerger(AudioMerger):
        def mix_strategies(self) -> list:
            return []

    runner = _FakeRunner()
    merger = _NoStrategyMerger(runner=runner, ffmpeg="ffmpeg")

    with pytest.raises(AudioToolError, match="No effects mix strategy"):
        merger.mix_with_effects(
            tmp_path / "audiobook.mp3", [_effect(0, tmp_path)], tmp_path / "mixed.mp3"
        )
    assert runner.calls == []


def test_mix_without_effects_raises_value_error(tmp_path: Path) -> None:
    """Mixing requires at least one effect clip."""

    with pytest.raises(ValueError, match="No sound effects"):
        AudioMerger(runner=_FakeRunner(), ffmpeg="ffmpeg").mix_with_effects(
            tmp_path / "audiobook.mp3", [], tmp_path / "mixed.mp3"
        )


def test_missing_ffmpeg_binary_maps_to_audio_tool_error(tmp_path: Path) -> None:
    """A missing executable should surface as an audio tool error."""

    def _runner(command: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        _ = kwargs
        raise FileNotFoundError(command[0])

    merger = AudioMerger(runner=_runner, ffmpeg="ffmpeg")

    with pytest.raises(AudioToolError, match="not available"):
        merger.combine([_segment(0, tmp_path)], tmp_path, "audiobook.mp3")
