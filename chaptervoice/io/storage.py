"""Checkpoint artifact storage.

Responsibilities:
- Provide filesystem storage for text, JSON, and audio artifacts under one output root.
- Treat unreadable checkpoints as absent so that callers recompute instead of aborting.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from loguru import logger


class ArtifactStore:
    """Filesystem-backed checkpoint store rooted at the pipeline output directory."""

    def __init__(self, root: Path) -> None:
        """Initialize the store with a root output directory."""

        self.root = root

    def path(self, relative_path: Path | str) -> Path:
        """Return the absolute-or-rooted path for an artifact name."""

        return self.root / relative_path

    def save_text(self, relative_path: Path | str, content: str) -> Path:
        """Save text content and return final path."""

        path = self.path(relative_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    def save_json(self, relative_path: Path | str, payload: Any) -> Path:
        """Save JSON-serializable payload and return final path."""

        path = self.path(relative_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(payload, ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
        return path

    def save_audio(self, relative_path: Path | str, data: bytes) -> Path:
        """Save audio bytes and return final path."""

        path = self.path(relative_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path

    def load_text(self, relative_path: Path | str) -> str | None:
        """Load text content, returning `None` when the file is missing or unreadable."""

        path = self.path(relative_path)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Could not read checkpoint {}: {}", path, exc)
            return None

    def load_json(self, relative_path: Path | str) -> Any | None:
        """Load a JSON checkpoint, returning `None` when missing, unreadable, or malformed."""

        raw = self.load_text(relative_path)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Checkpoint {} is not valid JSON: {}", self.path(relative_path), exc)
            return None

    def exists(self, relative_path: Path | str) -> bool:
        """Return whether the given artifact exists."""

        return self.path(relative_path).exists()
