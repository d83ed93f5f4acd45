"""Input/output stage components for chaptervoice.

This package contains chapter text extraction and checkpoint artifact storage
used by the pipeline.
"""

from .pdf_text_extractor import PdfExtractionError, PdfTextExtractor
from .storage import ArtifactStore

__all__ = ["PdfTextExtractor", "PdfExtractionError", "ArtifactStore"]
