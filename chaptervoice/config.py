"""Configuration model and loaders for chaptervoice.

Responsibilities:
- Define runtime configuration as a typed dataclass.
- Provide loader entry points for file- and environment-based configuration.

Key types:
- `ChapterVoiceConfig`: normalized runtime settings for a pipeline run.
- `ConfigLoader`: static construction helpers for `ChapterVoiceConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from .parsing import normalize_optional_string, parse_permissive_boolean


DEFAULT_SEGMENT_MODEL = "gpt-4o"
DEFAULT_CHARACTER_MODEL = "gpt-4o"
DEFAULT_EMOTION_MODEL = "gpt-4o-mini"
DEFAULT_TTS_MODEL = "eleven_turbo_v2_5"
DEFAULT_OUTPUT_DIR = Path("output")


@dataclass(frozen=True, slots=True)
class ChapterVoiceConfig:
    """Runtime configuration for one pipeline run.

    Attributes:
        input_path: Chapter source (PDF or plain text); only needed when
            the extract stage executes.
        output_dir: Directory holding every checkpoint and audio file.
        book_title: Optional title used to give the analysis prompts context.
        segment_model: Chat model for segmentation.
        character_model: Chat model for character extraction.
        emotion_model: Chat model for per-line emotion analysis.
        tts_model: Speech-synthesis model identifier.
        synthesis_delay_seconds: Fixed pause after every segment synthesis call.
        effect_delay_seconds: Fixed pause after every effect synthesis call.
        openai_api_key: Key for the text-generation service.
        elevenlabs_api_key: Key for the speech-synthesis service.
        audiobook_filename: Combined audiobook filename inside `output_dir`.
        mixed_audiobook_filename: Effects mix filename inside `output_dir`.
        mix_effects: Whether to mix effect clips over the combined audiobook.
    """

    input_path: Path | None = None
    output_dir: Path = DEFAULT_OUTPUT_DIR
    book_title: str | None = None
    segment_model: str = DEFAULT_SEGMENT_MODEL
    character_model: str = DEFAULT_CHARACTER_MODEL
    emotion_model: str = DEFAULT_EMOTION_MODEL
    tts_model: str = DEFAULT_TTS_MODEL
    synthesis_delay_seconds: float = 0.5
    effect_delay_seconds: float = 1.0
    openai_api_key: str | None = None
    elevenlabs_api_key: str | None = None
    audiobook_filename: str = "audiobook.mp3"
    mixed_audiobook_filename: str = "audiobook_with_effects.mp3"
    mix_effects: bool = False

    def validate(self) -> None:
        """Validate runtime configuration values before pipeline execution."""

        self._require_non_empty(self.segment_model, "segment_model")
        self._require_non_empty(self.character_model, "character_model")
        self._require_non_empty(self.emotion_model, "emotion_model")
        self._require_non_empty(self.tts_model, "tts_model")
        self._require_filename(self.audiobook_filename, "audiobook_filename")
        self._require_filename(self.mixed_audiobook_filename, "mixed_audiobook_filename")
        if self.audiobook_filename == self.mixed_audiobook_filename:
            raise ValueError("`mixed_audiobook_filename` must differ from `audiobook_filename`.")
        if self.synthesis_delay_seconds < 0:
            raise ValueError("`synthesis_delay_seconds` must not be negative.")
        if self.effect_delay_seconds < 0:
            raise ValueError("`effect_delay_seconds` must not be negative.")

    @staticmethod
    def _require_non_empty(value: str, field_name: str) -> None:
        if not value.strip():
            raise ValueError(f"`{field_name}` must be a non-empty string.")

    @staticmethod
    def _require_filename(value: str, field_name: str) -> None:
        ChapterVoiceConfig._require_non_empty(value, field_name)
        if Path(value).name != value:
            raise ValueError(f"`{field_name}` must be a bare filename, got `{value}`.")


class ConfigLoader:
    """Factory methods for creating `ChapterVoiceConfig` from external sources."""

    _PATH_KEYS = ("input_path", "output_dir")
    _STRING_KEYS = (
        "book_title",
        "segment_model",
        "character_model",
        "emotion_model",
        "tts_model",
        "openai_api_key",
        "elevenlabs_api_key",
        "audiobook_filename",
        "mixed_audiobook_filename",
    )
    _DELAY_KEYS = ("synthesis_delay_seconds", "effect_delay_seconds")
    _BOOLEAN_KEYS = ("mix_effects",)
    _SUPPORTED_YAML_KEYS = frozenset(_PATH_KEYS + _STRING_KEYS + _DELAY_KEYS + _BOOLEAN_KEYS)

    _ENV_KEYS: Mapping[str, str] = {
        "CHAPTERVOICE_INPUT": "input_path",
        "CHAPTERVOICE_OUTPUT_DIR": "output_dir",
        "CHAPTERVOICE_BOOK_TITLE": "book_title",
        "CHAPTERVOICE_SEGMENT_MODEL": "segment_model",
        "CHAPTERVOICE_CHARACTER_MODEL": "character_model",
        "CHAPTERVOICE_EMOTION_MODEL": "emotion_model",
        "CHAPTERVOICE_TTS_MODEL": "tts_model",
        "OPENAI_API_KEY": "openai_api_key",
        "ELEVENLABS_API_KEY": "elevenlabs_api_key",
    }

    @staticmethod
    def from_yaml(path: Path, base: ChapterVoiceConfig | None = None) -> ChapterVoiceConfig:
        """Create a validated config from a YAML file.

        Keys present in the file override `base` (environment-derived values,
        typically); absent keys keep the base value.
        """

        path_text = path.read_text(encoding="utf-8")
        payload = ConfigLoader._parse_yaml_payload(path_text, path)

        return ConfigLoader._build_config_from_mapping(
            payload, source_label=f"YAML `{path}`", base=base
        )

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> ChapterVoiceConfig:
        """Create a validated config from environment variables.

        Unset or blank variables fall back to dataclass defaults.
        """

        env_map: Mapping[str, str] = os.environ if env is None else env

        values: dict[str, Any] = {}
        for env_key, field_name in ConfigLoader._ENV_KEYS.items():
            value = normalize_optional_string(env_map.get(env_key))
            if value is None:
                continue
            values[field_name] = Path(value) if field_name in ConfigLoader._PATH_KEYS else value

        config = ChapterVoiceConfig(**values)
        config.validate()
        return config

    @staticmethod
    def _parse_yaml_payload(raw_text: str, path: Path) -> Mapping[str, Any]:
        """Parse YAML text and enforce a mapping root payload."""

        try:
            payload = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            raise ValueError(f"YAML config `{path}` could not be parsed: {exc}") from exc

        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"YAML config `{path}` must contain a top-level mapping/object.")
        return payload

    @staticmethod
    def _build_config_from_mapping(
        payload: Mapping[str, Any],
        source_label: str,
        base: ChapterVoiceConfig | None = None,
    ) -> ChapterVoiceConfig:
        """Build a validated config from a normalized mapping payload."""

        ConfigLoader._validate_yaml_keys(payload, source_label)

        values: dict[str, Any] = {}
        for key in ConfigLoader._PATH_KEYS:
            value = ConfigLoader._optional_non_empty_string(payload, key)
            if value is not None:
                values[key] = Path(value)
        for key in ConfigLoader._STRING_KEYS:
            value = ConfigLoader._optional_non_empty_string(payload, key)
            if value is not None:
                values[key] = value
        for key in ConfigLoader._DELAY_KEYS:
            if key in payload:
                values[key] = ConfigLoader._non_negative_float(payload, key, source_label)
        for key in ConfigLoader._BOOLEAN_KEYS:
            if key in payload:
                values[key] = ConfigLoader._boolean(payload, key, source_label)

        config = replace(base, **values) if base is not None else ChapterVoiceConfig(**values)
        config.validate()
        return config

    @staticmethod
    def _validate_yaml_keys(payload: Mapping[str, Any], source_label: str) -> None:
        """Reject keys the config model does not know."""

        unknown = sorted(str(key) for key in set(payload).difference(ConfigLoader._SUPPORTED_YAML_KEYS))
        if unknown:
            key_list = ", ".join(unknown)
            raise ValueError(f"{source_label} includes unsupported key(s): {key_list}.")

    @staticmethod
    def _optional_non_empty_string(payload: Mapping[str, Any], key: str) -> str | None:
        """Read an optional string field and normalize blank values to `None`."""

        if key not in payload:
            return None
        return normalize_optional_string(payload[key])

    @staticmethod
    def _non_negative_float(payload: Mapping[str, Any], key: str, source_label: str) -> float:
        """Read and validate a non-negative number field."""

        raw_value = payload[key]
        if isinstance(raw_value, bool):
            raise ValueError(f"{source_label} field `{key}` must be a non-negative number.")
        try:
            parsed = float(raw_value)
        except (TypeError, ValueError) as exc:
            raise ValueError(
                f"{source_label} field `{key}` must be a non-negative number."
            ) from exc
        if parsed < 0:
            raise ValueError(f"{source_label} field `{key}` must be a non-negative number.")
        return parsed

    @staticmethod
    def _boolean(payload: Mapping[str, Any], key: str, source_label: str) -> bool:
        """Read and validate a boolean field from a payload."""

        parsed = parse_permissive_boolean(payload[key])
        if parsed is None:
            raise ValueError(
                f"{source_label} field `{key}` must be a boolean value "
                "(`true`/`false`, `1`/`0`, `yes`/`no`)."
            )
        return parsed
