"""Chapter text extraction with ordered fallback strategies.

Responsibilities:
- Read plain-text chapters directly.
- Extract text from PDFs by trying `pdftotext`, `pymupdf`, then `pypdf`,
  returning the first strategy that produces non-empty text.
"""

from __future__ import annotations

import math
import subprocess
from pathlib import Path
from typing import Protocol

import pymupdf
from loguru import logger
from pypdf import PdfReader

from ..models.datatypes import ExtractedText
from ..runtime_tools import resolve_executable

_ESTIMATED_CHARS_PER_PAGE = 2000


class PdfExtractionError(RuntimeError):
    """Raised when text extraction from the chapter source cannot be completed."""


class ExtractionStrategy(Protocol):
    """Protocol for one interchangeable PDF text extraction implementation."""

    name: str

    def extract(self, pdf_path: Path) -> ExtractedText:
        """Extract text, raising `PdfExtractionError` on failure."""


class PdftotextStrategy:
    """Extract text with the poppler `pdftotext` command."""

    name = "pdftotext"

    def extract(self, pdf_path: Path) -> ExtractedText:
        command = [resolve_executable("pdftotext"), "-enc", "UTF-8", str(pdf_path), "-"]
        try:
            result = subprocess.run(
                command,
                check=False,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as exc:
            raise PdfExtractionError(
                "The `pdftotext` command is required but was not found."
            ) from exc

        if result.returncode != 0:
            details = result.stderr.strip() or "unknown error"
            raise PdfExtractionError(f"pdftotext failed for {pdf_path}: {details}")

        pages = [page.strip() for page in result.stdout.split("\f")]
        pages = [page for page in pages if page]
        return ExtractedText(
            text="\n\n".join(pages),
            page_count=len(pages),
            metadata={},
            source=self.name,
        )


class PyMuPdfStrategy:
    """Extract text with PyMuPDF."""

    name = "pymupdf"

    def extract(self, pdf_path: Path) -> ExtractedText:
        try:
            with pymupdf.open(str(pdf_path)) as document:
                pages = [page.get_text().strip() for page in document]
                metadata = dict(document.metadata or {})
        except Exception as exc:
            raise PdfExtractionError(f"pymupdf failed for {pdf_path}: {exc}") from exc
        return ExtractedText(
            text="\n\n".join(pages),
            page_count=len(pages),
            metadata={key: value for key, value in metadata.items() if value},
            source=self.name,
        )


class PypdfStrategy:
    """Extract text with `pypdf`."""

    name = "pypdf"

    def extract(self, pdf_path: Path) -> ExtractedText:
        try:
            reader = PdfReader(str(pdf_path))
            pages = [
                (page.extract_text() or "").replace("\f", "\n").strip()
                for page in reader.pages
            ]
            metadata = {
                str(key).lstrip("/"): str(value)
                for key, value in (reader.metadata or {}).items()
            }
        except Exception as exc:
            raise PdfExtractionError(f"pypdf failed for {pdf_path}: {exc}") from exc
        return ExtractedText(
            text="\n\n".join(pages),
            page_count=len(pages),
            metadata=metadata,
            source=self.name,
        )


def default_strategies() -> list[ExtractionStrategy]:
    """Return PDF strategies in fixed fallback order."""

    return [PdftotextStrategy(), PyMuPdfStrategy(), PypdfStrategy()]


class PdfTextExtractor:
    """Extractor for chapter sources: plain-text files or text-based PDFs."""

    def __init__(self, strategies: list[ExtractionStrategy] | None = None) -> None:
        self.strategies = strategies if strategies is not None else default_strategies()

    def extract(self, source_path: Path) -> ExtractedText:
        """Extract chapter text from a `.txt` or `.pdf` source."""

        if not source_path.exists():
            raise PdfExtractionError(f"Input file not found: {source_path}")

        if source_path.suffix.lower() != ".pdf":
            return self._read_text_file(source_path)

        failures: list[str] = []
        for strategy in self.strategies:
            try:
                extracted = strategy.extract(source_path)
            except PdfExtractionError as exc:
                logger.info("{} extraction failed, trying next strategy: {}", strategy.name, exc)
                failures.append(f"{strategy.name}: {exc}")
                continue
            if not extracted.text.strip():
                failures.append(f"{strategy.name}: no extractable text")
                continue
            return extracted

        raise PdfExtractionError(
            f"No extractable text found in {source_path}. "
            + "; ".join(failures)
        )

    @staticmethod
    def _read_text_file(source_path: Path) -> ExtractedText:
        try:
            text = source_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise PdfExtractionError(f"Could not read text file {source_path}: {exc}") from exc
        if not text.strip():
            raise PdfExtractionError(f"Text file is empty: {source_path}")
        return ExtractedText(
            text=text,
            page_count=max(1, math.ceil(len(text) / _ESTIMATED_CHARS_PER_PAGE)),
            metadata={"source": "text file"},
            source="text",
        )
