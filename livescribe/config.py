"""Runtime configuration loaded from ``LIVESCRIBE_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = "LIVESCRIBE_"


class Settings(BaseSettings):
    """Application wide settings loaded from environment variables."""

    sample_rate: int = 16_000
    language: Optional[str] = None

    # Segmentation
    silence_ms: int = 700
    max_segment_ms: int = 25_000
    pre_roll_ms: int = 250
    vad_rms_threshold: float = 0.015

    readiness_grace_ms: float = 1.0

    stats_path: Path = Field(default_factory=lambda: Path("runtime_stats.json"))
    stats_retention_hours: int = 24 * 45

    streaming_backend: str = "dummy"
    sync_backend: str = "dummy"
    postprocess_backend: str = "dummy"

    openai_api_key: Optional[str] = Field(default=None, json_schema_extra={"secret": True})
    openai_transcription_model: str = "gpt-4o-mini-transcribe"
    openai_postprocess_model: str = "gpt-4o-mini"

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        case_sensitive=False,
    )

    @property
    def readiness_grace_seconds(self) -> float:
        return max(self.readiness_grace_ms, 0.0) / 1000.0


_settings: Optional[Settings] = None
_ENV_PATH = Path(".env")


@dataclass
class EnvironmentSetting:
    """One overridable setting as shown by ``livescribe settings``."""

    field: str
    env_name: str
    value: Any
    default: Any
    annotation: Any
    secret: bool = False

    @property
    def overridden(self) -> bool:
        return self.value != self.default


class EnvironmentSettingError(RuntimeError):
    """Raised when a setting cannot be updated or reset."""


def env_name_for(field: str) -> str:
    return f"{ENV_PREFIX}{field}".upper()


def _default_for(field: str) -> Any:
    info = Settings.model_fields[field]
    if info.default_factory is not None:
        return info.default_factory()
    return info.default


def _is_secret(field: str) -> bool:
    extra = Settings.model_fields[field].json_schema_extra
    return isinstance(extra, dict) and bool(extra.get("secret"))


def _read_env_lines() -> List[str]:
    if not _ENV_PATH.exists():
        return []
    return _ENV_PATH.read_text().splitlines()


def _write_env_override(env_name: str, value: Optional[str]) -> None:
    """Set or drop ``env_name`` in the ``.env`` file, keeping other lines."""

    lines: List[str] = []
    replaced = False
    for line in _read_env_lines():
        key = line.split("=", 1)[0].strip() if "=" in line and not line.lstrip().startswith("#") else None
        if key != env_name:
            lines.append(line)
            continue
        replaced = True
        if value is not None:
            lines.append(f"{env_name}={value}")
    if value is not None and not replaced:
        lines.append(f"{env_name}={value}")

    if lines:
        _ENV_PATH.write_text("\n".join(lines) + "\n")
    elif _ENV_PATH.exists():
        _ENV_PATH.unlink()


def list_environment_settings(settings: Optional[Settings] = None) -> Iterator[EnvironmentSetting]:
    """Yield every setting with its current value and default."""

    settings = settings or get_settings()
    for name, info in Settings.model_fields.items():
        yield EnvironmentSetting(
            field=name,
            env_name=env_name_for(name),
            value=getattr(settings, name),
            default=_default_for(name),
            annotation=info.annotation,
            secret=_is_secret(name),
        )


def _reload_with(field: str, raw_value: Optional[str]) -> Settings:
    if field not in Settings.model_fields:
        raise EnvironmentSettingError(f"Unknown setting: {field}")

    env_name = env_name_for(field)
    snapshot: Dict[str, Optional[str]] = {env_name: os.environ.get(env_name)}
    if raw_value is None:
        os.environ.pop(env_name, None)
    else:
        os.environ[env_name] = raw_value

    try:
        reloaded = Settings()
    except ValidationError as exc:
        for key, previous in snapshot.items():
            if previous is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = previous
        raise EnvironmentSettingError(str(exc)) from exc

    global _settings
    _settings = reloaded
    _write_env_override(env_name, raw_value)
    return reloaded


def update_environment_setting(field: str, raw_value: str) -> Settings:
    """Override ``field``, persist it to ``.env`` and reload settings."""

    return _reload_with(field, raw_value)


def clear_environment_setting(field: str) -> Settings:
    """Drop the override for ``field`` and reload settings."""

    return _reload_with(field, None)


def get_settings() -> Settings:
    """Return a singleton instance of the application settings."""

    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


__all__ = [
    "ENV_PREFIX",
    "EnvironmentSetting",
    "EnvironmentSettingError",
    "Settings",
    "clear_environment_setting",
    "env_name_for",
    "get_settings",
    "list_environment_settings",
    "update_environment_setting",
]
