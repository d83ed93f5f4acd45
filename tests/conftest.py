"""Shared pytest fixtures for the full chaptervoice test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

CHAPTER_TEXT = (
    "Baley looked up. 'What do you want?' he asked. "
    "The door opened and R. Daneel Olivaw stepped in. "
    "'I am your partner,' said Daneel."
)


@pytest.fixture
def chapter_text_path(tmp_path: Path) -> Path:
    """Write a short plain-text chapter and return its path."""

    path = tmp_path / "chapter.txt"
    path.write_text(CHAPTER_TEXT, encoding="utf-8")
    return path
