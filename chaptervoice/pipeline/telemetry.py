"""Stage outcome bookkeeping and telemetry for the chaptervoice pipeline.

Every stage ends in exactly one outcome: `executed`, `cache_hit`, `loaded`,
or `missing`. The mixin records it for the run summary and mirrors it to the
progress callback and the run logger.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

from ..telemetry.logger import RunLogger
from .stages import STAGES, STAGES_BY_KEY, StageDefinition

_StageResult = TypeVar("_StageResult")

OUTCOME_EXECUTED = "executed"
OUTCOME_CACHE_HIT = "cache_hit"
OUTCOME_LOADED = "loaded"
OUTCOME_MISSING = "missing"


class PipelineTelemetryMixin:
    """Record stage outcomes and emit progress and structured log events."""

    _run_logger: RunLogger | None
    _stage_progress_callback: Callable[[str, int, int], None] | None
    _outcomes: dict[str, str]

    def _record_outcome(self, definition: StageDefinition, outcome: str) -> None:
        """Store the stage outcome; non-executed outcomes are logged here."""

        self._outcomes[definition.key] = outcome
        if self._run_logger is None:
            return
        if outcome == OUTCOME_CACHE_HIT:
            self._run_logger.log_cache_hit(definition.key, definition.checkpoint)
        elif outcome in {OUTCOME_LOADED, OUTCOME_MISSING}:
            self._run_logger.log_stage_skipped(definition.key, loaded=outcome == OUTCOME_LOADED)

    def _on_warning(self, stage_name: str, reason: str) -> None:
        if self._run_logger is not None:
            self._run_logger.log_warning(stage_name, reason)

    def _run_stage(
        self,
        stage_name: str,
        action: Callable[[], _StageResult],
    ) -> _StageResult:
        """Run one stage body between start and complete/failure events.

        Steps outside the stage table (the effects mix) are logged but do not
        advance the progress callback.
        """

        definition = STAGES_BY_KEY.get(stage_name)
        if definition is not None and self._stage_progress_callback is not None:
            self._stage_progress_callback(stage_name, definition.number, len(STAGES))
        if self._run_logger is not None:
            self._run_logger.log_stage_start(stage_name)

        try:
            result = action()
        except Exception as exc:
            if self._run_logger is not None:
                self._run_logger.log_stage_failure(stage_name, type(exc).__name__)
            raise

        if self._run_logger is not None:
            self._run_logger.log_stage_complete(stage_name)
        return result
