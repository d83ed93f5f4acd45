"""Structured run logging on top of `loguru`.

Every pipeline event becomes one line of the form
`[phase] level=<LEVEL> stage=<key> event=<name> key=value ...`, with context
keys sorted and values reduced to shell-safe tokens so runs diff cleanly.
"""

from __future__ import annotations

import re
import sys
from typing import TextIO

from loguru import logger as _loguru_logger

_UNSAFE_TOKEN_CHARS = re.compile(r"[^\w\-.:/]")


def _token(value: object) -> str:
    raw = str(value).strip()
    return _UNSAFE_TOKEN_CHARS.sub("_", raw) if raw else "none"


class RunLogger:
    """Write one `[phase]` line per pipeline event to a single loguru sink."""

    def __init__(self, sink: TextIO | None = None, *, level: str = "INFO") -> None:
        """Replace loguru handlers with one plain-message sink (stdout by default)."""

        self._sink = sink if sink is not None else sys.stdout
        _loguru_logger.remove()
        _loguru_logger.add(self._sink, format="{message}", level=level, colorize=False)

    def event(self, stage: str, event: str, *, level: str = "INFO", **context: object) -> None:
        """Emit one structured line for `event` in `stage`."""

        parts = [f"[phase] level={level} stage={stage} event={event}"]
        parts.extend(f"{key}={_token(context[key])}" for key in sorted(context))
        _loguru_logger.log(level, " ".join(parts))

    def log_stage_start(self, stage: str) -> None:
        self.event(stage, "start")

    def log_stage_complete(self, stage: str, **context: object) -> None:
        self.event(stage, "complete", **context)

    def log_cache_hit(self, stage: str, artifact: str) -> None:
        """Record a stage satisfied by its existing checkpoint."""

        self.event(stage, "cache_hit", artifact=artifact)

    def log_stage_skipped(self, stage: str, *, loaded: bool) -> None:
        """Record a load-only stage and whether its checkpoint was found."""

        self.event(stage, "skipped", loaded=str(loaded).lower())

    def log_warning(self, stage: str, reason: str) -> None:
        self.event(stage, "warning", level="WARNING", reason=reason)

    def log_stage_failure(self, stage: str, error_type: str) -> None:
        """Record a failed stage by exception type only, never its message."""

        self.event(stage, "failure", level="ERROR", error_type=error_type)
