"""Locate the external command-line tools the pipeline shells out to.

`ffmpeg` combines and mixes audio; `pdftotext` is the first PDF extraction
strategy. An explicit environment override wins, then a copy shipped with the
application, then `PATH`.
"""

from __future__ import annotations

import os
from pathlib import Path
import shutil
import sys
from typing import Mapping

from .parsing import normalize_optional_string

TOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "ffmpeg": "CHAPTERVOICE_FFMPEG",
    "pdftotext": "CHAPTERVOICE_PDFTOTEXT",
}


def resolve_executable(command_name: str, env: Mapping[str, str] | None = None) -> str:
    """Return the executable path to run for `command_name`.

    Lookup order:
    1. `CHAPTERVOICE_FFMPEG` / `CHAPTERVOICE_PDFTOTEXT` when set.
    2. `bin/<tool>` then `<tool>` under the application root (`.exe` on Windows builds).
    3. System `PATH`.
    4. The bare name, so `subprocess` raises its own missing-binary error.
    """

    name = command_name.strip()
    if not name:
        return command_name

    env_map: Mapping[str, str] = os.environ if env is None else env
    env_key = TOOL_ENV_OVERRIDES.get(name)
    if env_key is not None:
        override = normalize_optional_string(env_map.get(env_key))
        if override is not None:
            return override

    root = application_root()
    variants = (name,) if name.lower().endswith(".exe") else (name, f"{name}.exe")
    for folder in (root / "bin", root):
        for variant in variants:
            candidate = folder / variant
            if candidate.is_file():
                return str(candidate)

    return shutil.which(name) or name


def application_root() -> Path:
    """Return the frozen executable's folder, or the directory above the package."""

    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[1]
