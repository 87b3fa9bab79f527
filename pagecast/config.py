"""Configuration model and loaders for Pagecast.

Responsibilities:
- Define runtime configuration as a typed, validated dataclass.
- Load configuration from YAML files and `PAGECAST_*` environment variables.
- Apply deterministic precedence: CLI option > environment > YAML > defaults.

Key types:
- `PagecastConfig`: normalized runtime settings for pipeline runs.
- `ConfigLoader`: static construction helpers for `PagecastConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
import os
from pathlib import Path
from typing import Any, Callable, Mapping

import yaml

from .parsing import (
    normalize_optional_string,
    parse_non_negative_float,
    parse_positive_float,
    parse_positive_int,
)


@dataclass(frozen=True, slots=True)
class PagecastConfig:
    """Runtime configuration for Pagecast.

    Attributes:
        data_dir: Root directory holding the ledger and entry containers.
        tts_base_url: Base URL of the OpenAI-compatible speech endpoint.
        tts_api_key: Bearer token sent to the speech endpoint.
        tts_model: Speech model identifier.
        tts_voice: Speech voice identifier.
        tts_timeout_seconds: Per-attempt speech request timeout.
        tts_max_attempts: Speech attempts per segment before it is marked failed.
        tts_retry_backoff_seconds: Base of the exponential retry backoff.
        tts_max_input_chars: Hard cut applied to segment text before synthesis.
        fetch_timeout_seconds: Timeout for fetching remote pages.
        paragraph_silence_seconds: Baseline pause between segments.
        heading_silence_before_seconds: Minimum pause before a heading.
        heading_silence_after_seconds: Minimum pause after a heading.
        audio_sample_rate: Output sample rate in Hz.
        audio_channels: Output channel count.
        ffmpeg_path: ffmpeg executable name or path.
    """

    data_dir: Path = Path("data")
    tts_base_url: str = "http://localhost:5173/api/v1"
    tts_api_key: str = "no-key"
    tts_model: str = "model_q8f16"
    tts_voice: str = "af_heart"
    tts_timeout_seconds: float = 900.0
    tts_max_attempts: int = 3
    tts_retry_backoff_seconds: float = 2.0
    tts_max_input_chars: int = 4000
    fetch_timeout_seconds: float = 30.0
    paragraph_silence_seconds: float = 0.2
    heading_silence_before_seconds: float = 0.5
    heading_silence_after_seconds: float = 0.5
    audio_sample_rate: int = 22050
    audio_channels: int = 1
    ffmpeg_path: str = "ffmpeg"

    def validate(self) -> None:
        """Validate configuration values before pipeline construction."""

        for name in ("tts_base_url", "tts_api_key", "tts_model", "tts_voice", "ffmpeg_path"):
            if normalize_optional_string(getattr(self, name)) is None:
                raise ValueError(f"`{name}` must be a non-empty string.")
        if not self.tts_base_url.startswith(("http://", "https://")):
            raise ValueError("`tts_base_url` must start with `http://` or `https://`.")
        for name in (
            "tts_timeout_seconds",
            "fetch_timeout_seconds",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"`{name}` must be a positive number.")
        for name in (
            "tts_max_attempts",
            "tts_max_input_chars",
            "audio_sample_rate",
            "audio_channels",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"`{name}` must be a positive integer.")
        for name in (
            "tts_retry_backoff_seconds",
            "paragraph_silence_seconds",
            "heading_silence_before_seconds",
            "heading_silence_after_seconds",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"`{name}` must be a non-negative number.")
        if self.audio_channels > 2:
            raise ValueError("`audio_channels` must be 1 (mono) or 2 (stereo).")


def _parse_string(value: object, field_name: str) -> str:
    normalized = normalize_optional_string(value)
    if normalized is None:
        raise ValueError(f"`{field_name}` must be a non-empty string.")
    return normalized


def _parse_path(value: object, field_name: str) -> Path:
    return Path(_parse_string(value, field_name))


_FIELD_PARSERS: dict[str, Callable[[object, str], Any]] = {
    "data_dir": _parse_path,
    "tts_base_url": _parse_string,
    "tts_api_key": _parse_string,
    "tts_model": _parse_string,
    "tts_voice": _parse_string,
    "tts_timeout_seconds": parse_positive_float,
    "tts_max_attempts": parse_positive_int,
    "tts_retry_backoff_seconds": parse_non_negative_float,
    "tts_max_input_chars": parse_positive_int,
    "fetch_timeout_seconds": parse_positive_float,
    "paragraph_silence_seconds": parse_non_negative_float,
    "heading_silence_before_seconds": parse_non_negative_float,
    "heading_silence_after_seconds": parse_non_negative_float,
    "audio_sample_rate": parse_positive_int,
    "audio_channels": parse_positive_int,
    "ffmpeg_path": _parse_string,
}


class ConfigLoader:
    """Factory methods for creating `PagecastConfig` from external sources."""

    _SUPPORTED_YAML_KEYS = frozenset(field.name for field in fields(PagecastConfig))
    _ENV_KEYS: dict[str, str] = {
        "PAGECAST_DATA_DIR": "data_dir",
        "PAGECAST_TTS_BASE_URL": "tts_base_url",
        "PAGECAST_TTS_API_KEY": "tts_api_key",
        "PAGECAST_TTS_MODEL": "tts_model",
        "PAGECAST_TTS_VOICE": "tts_voice",
        "PAGECAST_TTS_TIMEOUT_SECONDS": "tts_timeout_seconds",
        "PAGECAST_TTS_MAX_ATTEMPTS": "tts_max_attempts",
        "PAGECAST_TTS_RETRY_BACKOFF_SECONDS": "tts_retry_backoff_seconds",
        "PAGECAST_TTS_MAX_INPUT_CHARS": "tts_max_input_chars",
        "PAGECAST_FETCH_TIMEOUT_SECONDS": "fetch_timeout_seconds",
        "PAGECAST_AUDIO_SILENCE_DURATION": "paragraph_silence_seconds",
        "PAGECAST_AUDIO_TITLE_SILENCE_BEFORE": "heading_silence_before_seconds",
        "PAGECAST_AUDIO_TITLE_SILENCE_AFTER": "heading_silence_after_seconds",
        "PAGECAST_AUDIO_SAMPLE_RATE": "audio_sample_rate",
        "PAGECAST_AUDIO_CHANNELS": "audio_channels",
        "PAGECAST_FFMPEG": "ffmpeg_path",
    }

    @staticmethod
    def from_yaml(path: Path, base: PagecastConfig | None = None) -> PagecastConfig:
        """Create a validated config from a YAML file layered over `base`."""

        payload = ConfigLoader._parse_yaml_payload(path.read_text(encoding="utf-8"), path)
        source_label = f"YAML `{path}`"
        unknown = sorted(set(payload).difference(ConfigLoader._SUPPORTED_YAML_KEYS))
        if unknown:
            raise ValueError(f"{source_label} includes unsupported key(s): {', '.join(unknown)}.")

        values = {
            key: ConfigLoader._parse_field(key, raw_value, source_label)
            for key, raw_value in payload.items()
            if raw_value is not None
        }
        config = replace(base or PagecastConfig(), **values)
        config.validate()
        return config

    @staticmethod
    def from_env(
        env: Mapping[str, str] | None = None,
        base: PagecastConfig | None = None,
    ) -> PagecastConfig:
        """Create a validated config from `PAGECAST_*` variables layered over `base`.

        Blank variables are ignored so an exported-but-empty value keeps the
        lower-precedence setting.
        """

        env_map: Mapping[str, str] = os.environ if env is None else env
        values: dict[str, Any] = {}
        for env_key, field_name in ConfigLoader._ENV_KEYS.items():
            raw_value = normalize_optional_string(env_map.get(env_key))
            if raw_value is None:
                continue
            values[field_name] = ConfigLoader._parse_field(
                field_name, raw_value, f"Environment variable `{env_key}`"
            )
        config = replace(base or PagecastConfig(), **values)
        config.validate()
        return config

    @staticmethod
    def resolve(
        *,
        config_path: Path | None = None,
        env: Mapping[str, str] | None = None,
        overrides: Mapping[str, object] | None = None,
    ) -> PagecastConfig:
        """Resolve runtime config with CLI > environment > YAML > defaults precedence."""

        config = PagecastConfig()
        if config_path is not None:
            config = ConfigLoader.from_yaml(config_path, base=config)
        config = ConfigLoader.from_env(env, base=config)
        if overrides:
            values = {
                key: ConfigLoader._parse_field(key, value, "CLI option")
                for key, value in overrides.items()
                if value is not None
            }
            config = replace(config, **values)
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
    def _parse_field(field_name: str, raw_value: object, source_label: str) -> Any:
        parser = _FIELD_PARSERS.get(field_name)
        if parser is None:
            raise ValueError(f"{source_label} refers to unknown setting `{field_name}`.")
        try:
            return parser(raw_value, field_name)
        except ValueError as exc:
            raise ValueError(f"{source_label}: {exc}") from exc
