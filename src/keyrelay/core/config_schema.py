"""Pydantic models for config validation.

Opt-in schema validation for ``Config.config_data``.  Call
``Config.validated()`` to obtain a typed, validated ``KeyRelayConfig``
instance.  Existing dict-based access continues to work unchanged.

This covers keyrelay's own config file only; the host settings file that
carries ``apiKeyRotation`` is deliberately left unvalidated.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from keyrelay.backends.modes import AuthMode
from keyrelay.core.settings import SettingScope


class PathsConfig(BaseModel):
    """File-system paths used by the application."""

    data_dir: Path
    oauth_client_secrets: Path | None = None
    oauth_token: Path | None = None

    @field_validator("data_dir", "oauth_client_secrets", "oauth_token", mode="before")
    @classmethod
    def _expand_user(cls, v: Any) -> Any:
        if isinstance(v, str):
            return Path(v).expanduser()
        if isinstance(v, Path):
            return v.expanduser()
        return v


class LoggingConfig(BaseModel):
    """Log sink settings passed to ``setup_logging``."""

    level: str = "WARNING"
    file: str | None = None

    @field_validator("level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level {v!r}")
        return level


class BackendConfig(BaseModel):
    """Which generation backend to build, and its transport knobs."""

    mode: AuthMode = AuthMode.OPENAI_COMPATIBLE
    model: str = ""
    timeout: int = 60
    num_retries: int = 0


class SettingsConfig(BaseModel):
    """Where rotation state is written back."""

    scope: SettingScope = SettingScope.USER


class KeyRelayConfig(BaseModel):
    """Root configuration model.

    Uses ``extra="allow"`` so consumers can bolt on custom sections
    without touching this schema.
    """

    model_config = ConfigDict(extra="allow")

    paths: PathsConfig = PathsConfig(data_dir=Path("~/.keyrelay"))
    logging: LoggingConfig = LoggingConfig()
    backend: BackendConfig = BackendConfig()
    settings: SettingsConfig = SettingsConfig()
