"""Top-level package for chaptervoice.

This package turns a single novel chapter (PDF or plain text) into a
multi-voice audiobook through a fixed, checkpointed stage pipeline. The main
orchestration entry point is `ChapterVoicePipeline`.
"""

from .pipeline import ChapterVoicePipeline

__all__ = ["ChapterVoicePipeline", "__version__"]

__version__ = "0.1.0"
