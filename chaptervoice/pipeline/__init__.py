"""chaptervoice pipeline package.

This package contains orchestration and helper modules for stage execution,
checkpoint persistence, and stage telemetry.
"""

from .orchestrator import ChapterVoicePipeline
from .stages import STAGES, StageDefinition

__all__ = ["ChapterVoicePipeline", "STAGES", "StageDefinition"]
