"""Command-line interface for chaptervoice.

Responsibilities:
- Expose user-facing commands for running and inspecting the pipeline.
- Convert CLI arguments, `.env`, environment, and YAML values into
  `ChapterVoiceConfig` and a `StagePlan`.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv

from .cli_rendering import (
    echo_checkpoint_status,
    echo_run_summary,
    echo_stage_outcomes,
    echo_stage_table,
    exit_with_command_error,
)
from .config import ChapterVoiceConfig, ConfigLoader
from .errors import PipelineStageError
from .models.datatypes import StagePlan
from .parsing import normalize_optional_string, parse_stage_list, parse_start_stage
from .pipeline import STAGES, ChapterVoicePipeline
from .telemetry.logger import RunLogger

# Paragraph breaks keep one stage per line in both plain and rich help output.
STAGES_EPILOG = "Stages:\n\n" + "\n\n".join(
    f"{definition.number}. {definition.description}" for definition in STAGES
)

app = typer.Typer(
    name="chaptervoice",
    no_args_is_help=True,
    help="Turn a novel chapter into a multi-voice audiobook.",
    epilog=STAGES_EPILOG,
)


class BuildProgressIndicator:
    """Render deterministic per-stage progress lines for long-running commands."""

    _SPINNER_FRAMES = "|/-\\"

    def __init__(self, command_name: str) -> None:
        """Initialize progress indicator metadata for a command invocation."""

        self._command_name = command_name

    def on_stage_start(self, stage_name: str, stage_index: int, stage_total: int) -> None:
        """Print one progress line for a stage start transition."""

        spinner = self._SPINNER_FRAMES[(stage_index - 1) % len(self._SPINNER_FRAMES)]
        typer.echo(
            f"[progress] command={self._command_name} "
            f"{spinner} {stage_index}/{stage_total} stage={stage_name}"
        )


def _load_env_config() -> ChapterVoiceConfig:
    """Load `.env` from the working directory, then build config from the environment."""

    load_dotenv(Path.cwd() / ".env")
    try:
        return ConfigLoader.from_env()
    except ValueError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Invalid environment configuration: {exc}",
            hint="Fix the `CHAPTERVOICE_*` environment variables and rerun.",
        ) from exc


def _load_yaml_config(config_path: Path, base: ChapterVoiceConfig) -> ChapterVoiceConfig:
    """Load a YAML config file over `base` and map failures to stage errors."""

    try:
        return ConfigLoader.from_yaml(config_path, base=base)
    except FileNotFoundError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Config file not found: `{config_path}`.",
            hint="Provide an existing path via `--config <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Invalid config file `{config_path}`: {exc}",
            hint="Fix config schema/values and rerun.",
        ) from exc
    except OSError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Failed to load config file `{config_path}`: {exc}",
            hint="Verify file permissions.",
        ) from exc


def _resolve_command_config(
    config_file: Path | None,
    input_path: Path | None,
    out: Path | None,
    *,
    mix_effects: bool | None = None,
    book_title: str | None = None,
) -> ChapterVoiceConfig:
    """Resolve effective config: CLI options over YAML over environment over defaults."""

    config = _load_env_config()
    if config_file is not None:
        config = _load_yaml_config(config_file, config)

    overrides: dict[str, object] = {}
    if input_path is not None:
        overrides["input_path"] = input_path
    if out is not None:
        overrides["output_dir"] = out
    if mix_effects is not None:
        overrides["mix_effects"] = mix_effects
    title = normalize_optional_string(book_title)
    if title is not None:
        overrides["book_title"] = title
    return replace(config, **overrides) if overrides else config


@app.command("run", epilog=STAGES_EPILOG)
def run_command(
    input_path: Annotated[
        Path | None,
        typer.Argument(
            help="Chapter PDF or text file. Only needed when stage 1 has to run.",
        ),
    ] = None,
    out: Annotated[
        Path | None,
        typer.Option("--out", help="Output directory (overrides config file value)."),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to YAML config file with command defaults."),
    ] = None,
    start_from: Annotated[
        str | None,
        typer.Option(
            "--start-from",
            "-s",
            help="First stage allowed to run (1-8); earlier stages only load checkpoints.",
        ),
    ] = None,
    force: Annotated[
        str | None,
        typer.Option(
            "--force",
            "-f",
            help="Comma-separated stages to recompute even when checkpoints exist, e.g. `2,6`.",
        ),
    ] = None,
    skip: Annotated[
        str | None,
        typer.Option(
            "--skip",
            "-k",
            help="Comma-separated stages that must only load their checkpoints.",
        ),
    ] = None,
    mix_effects: Annotated[
        bool | None,
        typer.Option(
            "--mix-effects/--no-mix-effects",
            help="Mix detected sound effects over the combined audiobook.",
        ),
    ] = None,
    book_title: Annotated[
        str | None,
        typer.Option("--book-title", help="Book title given to the analysis prompts."),
    ] = None,
) -> None:
    """Run the pipeline, reusing every checkpoint that already exists."""

    plan = StagePlan(
        start_from=parse_start_stage(start_from),
        force=parse_stage_list(force),
        skip=parse_stage_list(skip),
    )
    try:
        config = _resolve_command_config(
            config_file,
            input_path,
            out,
            mix_effects=mix_effects,
            book_title=book_title,
        )
        progress = BuildProgressIndicator(command_name="run")
        pipeline = ChapterVoicePipeline(
            run_logger=RunLogger(),
            stage_progress_callback=progress.on_stage_start,
        )
        summary = pipeline.run(config, plan)
    except Exception as exc:
        exit_with_command_error("run", exc)

    echo_stage_outcomes(summary)
    echo_run_summary(summary)


@app.command("stages")
def stages_command() -> None:
    """List the pipeline stages and the checkpoint each one writes."""

    echo_stage_table(STAGES)


@app.command("status")
def status_command(
    out: Annotated[
        Path | None,
        typer.Option("--out", help="Output directory to inspect."),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to YAML config file with command defaults."),
    ] = None,
) -> None:
    """Show which stage checkpoints exist in the output directory."""

    try:
        config = _resolve_command_config(config_file, None, out)
        rows = ChapterVoicePipeline().checkpoint_status(config)
    except Exception as exc:
        exit_with_command_error("status", exc)

    typer.echo(f"Output directory: {config.output_dir}")
    echo_checkpoint_status(rows)


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
