"""Unit tests for external tool resolution used by extraction and audio merging."""

from __future__ import annotations

from pathlib import Path

from pytest import MonkeyPatch

from chaptervoice import runtime_tools
from chaptervoice.audio.merger import AudioMerger


def test_resolve_executable_prefers_bundled_bin_over_path(
    monkeypatch: MonkeyPatch,
    tmp_path: Path,
) -> None:
    """A bundled `bin/ffmpeg` should win over PATH discovery."""

    bundled_tool = tmp_path / "bin" / "ffmpeg"
    bundled_tool.parent.mkdir(parents=True)
    bundled_tool.write_text("stub", encoding="utf-8")
    monkeypatch.setattr(runtime_tools, "application_root", lambda: tmp_path)
    monkeypatch.setattr(runtime_tools.shutil, "which", lambda _: "/usr/bin/ffmpeg")

    assert runtime_tools.resolve_executable("ffmpeg", env={}) == str(bundled_tool)


def test_environment_override_wins_over_bundled_copy(
    monkeypatch: MonkeyPatch,
    tmp_path: Path,
) -> None:
    """An explicit tool override should be returned verbatim."""

    (tmp_path / "ffmpeg").write_text("stub", encoding="utf-8")
    monkeypatch.setattr(runtime_tools, "application_root", lambda: tmp_path)

    resolved = runtime_tools.resolve_executable(
        "ffmpeg", env={"CHAPTERVOICE_FFMPEG": " /opt/ffmpeg-6/bin/ffmpeg "}
    )

    assert resolved == "/opt/ffmpeg-6/bin/ffmpeg"


def test_resolve_executable_returns_raw_name_when_nothing_found(
    monkeypatch: MonkeyPatch,
    tmp_path: Path,
) -> None:
    """Unresolvable tools should fall through so subprocess raises natively."""

    monkeypatch.setattr(runtime_tools, "application_root", lambda: tmp_path)
    monkeypatch.setattr(runtime_tools.shutil, "which", lambda _: None)

    assert runtime_tools.resolve_executable(" pdftotext ", env={}) == "pdftotext"


def test_audio_merger_resolves_ffmpeg_lazily(monkeypatch: MonkeyPatch) -> None:
    """The merger should look up ffmpeg on first use and then reuse it."""

    lookups: list[str] = []

    def _resolve(name: str) -> str:
        lookups.append(name)
        return "/opt/tools/ffmpeg"

    monkeypatch.setattr("chaptervoice.audio.merger.resolve_executable", _resolve)
    merger = AudioMerger(runner=lambda *_args, **_kwargs: None)

    assert lookups == []
    assert merger.ffmpeg == "/opt/tools/ffmpeg"
    assert merger.ffmpeg == "/opt/tools/ffmpeg"
    assert lookups == ["ffmpeg"]
