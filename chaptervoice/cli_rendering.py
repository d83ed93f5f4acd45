"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
run summaries, and checkpoint status rows.
"""

from __future__ import annotations

from typing import NoReturn

import typer

from .errors import PipelineStageError
from .models.datatypes import RunSummary
from .pipeline.stages import StageDefinition


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, PipelineStageError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def echo_run_summary(summary: RunSummary) -> None:
    """Print final counts and output paths for a pipeline run."""

    typer.echo("Audiobook generation summary:")
    typer.echo(f"  Characters: {summary.character_count}")
    typer.echo(f"  Segments: {summary.segment_count}")
    typer.echo(f"  Audio files: {summary.audio_count}")
    typer.echo(f"  Sound effects: {summary.effect_count}")
    typer.echo(f"  Synthesis calls this run: {summary.synthesis_calls}")
    typer.echo(f"Audiobook: {summary.audiobook_path or '(not written)'}")
    if summary.mixed_audiobook_path is not None:
        typer.echo(f"Audiobook with effects: {summary.mixed_audiobook_path}")


def echo_stage_outcomes(summary: RunSummary) -> None:
    """Print one `stage: outcome` row per stage in run order."""

    for stage_key, outcome in summary.stage_outcomes.items():
        typer.echo(f"  {stage_key}: {outcome}")


def echo_stage_table(stages: tuple[StageDefinition, ...] | list[StageDefinition]) -> None:
    """Print the fixed stage list with checkpoint names."""

    for definition in stages:
        typer.echo(
            f"{definition.number}. {definition.key:<11} {definition.description} "
            f"[{definition.checkpoint}]"
        )


def echo_checkpoint_status(rows: list[tuple[StageDefinition, bool]]) -> None:
    """Print which stage checkpoints exist."""

    for definition, present in rows:
        marker = "done" if present else "pending"
        typer.echo(f"{definition.number}. {definition.key:<11} {marker:<8} {definition.checkpoint}")
