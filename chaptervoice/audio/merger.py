"""Audio combination through the external `ffmpeg` tool.

Responsibilities:
- Concatenate segment audio files in ascending index order into one audiobook.
- Mix ambient effect clips over the combined audiobook with an ordered
  list of filter strategies, returning the first that succeeds.
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Callable, Sequence

from loguru import logger

from ..errors import AudioToolError
from ..models.datatypes import AudioSegmentArtifact, EffectArtifact
from ..parsing import normalize_optional_string
from ..runtime_tools import resolve_executable

LIST_FILENAME = "segments.txt"
MAX_MIXED_EFFECTS = 5
BASE_VOLUME = 1.0
EFFECT_VOLUME = 0.2
FALLBACK_EFFECT_VOLUME = 0.3
EFFECT_SPACING_SECONDS = 10

Runner = Callable[..., subprocess.CompletedProcess]
MixStrategy = Callable[[Path, Sequence[EffectArtifact], Path], list[str]]


def _escape_concat_path(path: str) -> str:
    """Escape one file path for ffmpeg concat list format."""

    return path.replace("'", "'\\''")


def concat_list_content(artifacts: Sequence[AudioSegmentArtifact], relative_dir: str) -> str:
    """Return the concat list body for artifacts sorted by index."""

    ordered = sorted(artifacts, key=lambda item: item.index)
    prefix = f"{relative_dir}/" if relative_dir else ""
    return "\n".join(
        f"file '{_escape_concat_path(prefix + artifact.filename)}'" for artifact in ordered
    )


def amix_filter(effect_count: int) -> str:
    """Build the primary filter graph: base plus delayed, attenuated effects."""

    chains = [f"[0:a]volume={BASE_VOLUME}[a0]"]
    labels = ["[a0]"]
    for position in range(1, effect_count + 1):
        delay_ms = position * EFFECT_SPACING_SECONDS * 1000
        chains.append(
            f"[{position}:a]adelay={delay_ms}|{delay_ms},volume={EFFECT_VOLUME}[a{position}]"
        )
        labels.append(f"[a{position}]")
    chains.append(
        f"{''.join(labels)}amix=inputs={effect_count + 1}:duration=first:dropout_transition=0[out]"
    )
    return ";".join(chains)


def fallback_filter() -> str:
    """Build the fallback filter graph: base plus the first effect only."""

    return (
        f"[0:a]volume={BASE_VOLUME}[base];"
        f"[1:a]volume={FALLBACK_EFFECT_VOLUME}[fx];"
        "[base][fx]amix=inputs=2:duration=first[out]"
    )


class AudioMerger:
    """Combine segment audio and mix effects by invoking `ffmpeg`."""

    def __init__(self, runner: Runner | None = None, ffmpeg: str | None = None) -> None:
        self._runner = runner if runner is not None else subprocess.run
        self._ffmpeg = ffmpeg

    @property
    def ffmpeg(self) -> str:
        if self._ffmpeg is None:
            self._ffmpeg = resolve_executable("ffmpeg")
        return self._ffmpeg

    def combine(
        self,
        artifacts: Sequence[AudioSegmentArtifact],
        output_dir: Path,
        output_filename: str,
        *,
        segments_dir: str = "segments",
    ) -> Path:
        """Write the concat list and run one stream-copy concatenation.

        Raises:
            ValueError: When there are no artifacts to combine.
            AudioToolError: When `ffmpeg` is missing or exits non-zero.
        """

        if not artifacts:
            raise ValueError("No audio segments to combine.")

        output_dir.mkdir(parents=True, exist_ok=True)
        list_path = output_dir / LIST_FILENAME
        list_path.write_text(concat_list_content(artifacts, segments_dir) + "\n", encoding="utf-8")

        logger.info("Combining {} audio segments into {}", len(artifacts), output_filename)
        command = [
            self.ffmpeg,
            "-f",
            "concat",
            "-safe",
            "0",
            "-i",
            LIST_FILENAME,
            "-c",
            "copy",
            output_filename,
            "-y",
        ]
        self._run(command, cwd=output_dir)
        return output_dir / output_filename

    def mix_with_effects(
        self,
        base_path: Path,
        effects: Sequence[EffectArtifact],
        output_path: Path,
    ) -> Path:
        """Mix effect clips over the audiobook, trying each strategy in order.

        Raises:
            ValueError: When there are no effects to mix.
            AudioToolError: When every strategy fails; carries the last failure.
        """

        if not effects:
            raise ValueError("No sound effects to mix.")

        failures: list[AudioToolError] = []
        for strategy in self.mix_strategies():
            command = strategy(base_path, effects, output_path)
            try:
                self._run(command)
            except AudioToolError as exc:
                logger.warning("Effects mix strategy `{}` failed: {}", strategy.__name__, exc)
                failures.append(exc)
                continue
            return output_path

        if not failures:
            raise AudioToolError("No effects mix strategy is configured.")
        raise failures[-1]

    def mix_strategies(self) -> list[MixStrategy]:
        """Return mix command builders in the order they should be tried."""

        return [self._amix_command, self._single_effect_command]

    def _amix_command(
        self,
        base_path: Path,
        effects: Sequence[EffectArtifact],
        output_path: Path,
    ) -> list[str]:
        selected = list(effects)[:MAX_MIXED_EFFECTS]
        command = [self.ffmpeg, "-y", "-i", str(base_path)]
        for effect in selected:
            command.extend(["-i", str(effect.filepath)])
        command.extend(
            ["-filter_complex", amix_filter(len(selected)), "-map", "[out]", str(output_path)]
        )
        return command

    def _single_effect_command(
        self,
        base_path: Path,
        effects: Sequence[EffectArtifact],
        output_path: Path,
    ) -> list[str]:
        return [
            self.ffmpeg,
            "-y",
            "-i",
            str(base_path),
            "-i",
            str(effects[0].filepath),
            "-filter_complex",
            fallback_filter(),
            "-map",
            "[out]",
            str(output_path),
        ]

    def _run(self, command: list[str], cwd: Path | None = None) -> None:
        try:
            self._runner(
                command,
                check=True,
                capture_output=True,
                text=True,
                cwd=str(cwd) if cwd is not None else None,
            )
        except FileNotFoundError as exc:
            raise AudioToolError("Audio tool `ffmpeg` is not available on PATH.") from exc
        except subprocess.CalledProcessError as exc:
            stderr = normalize_optional_string(exc.stderr) or "no stderr output"
            raise AudioToolError(
                f"ffmpeg exited with code {exc.returncode}: {stderr}",
                returncode=exc.returncode,
            ) from exc
