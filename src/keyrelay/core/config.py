"""
keyrelay's own configuration (not the host settings that carry the key pool).

Three layers, later ones winning:

    built-in defaults  <  config file (YAML or JSON)  <  KEYRELAY_SECTION__KEY env vars

Usage:
    config = Config(config_file="~/.keyrelay/config.yaml")

    config.get("backend.mode")       # "openai"
    config.get("settings.scope")     # where rotation state is written back
    config.validated().backend.mode  # AuthMode.OPENAI_COMPATIBLE
"""

import json
import os
from collections.abc import Mapping
from typing import Any

import yaml

from .config_schema import KeyRelayConfig
from .exceptions import ConfigurationError
from .types import ConfigDict

_DEFAULT_ENV_PREFIX = "KEYRELAY_"
_DEFAULT_DATA_DIR = os.path.join("~", ".keyrelay")
_NESTING = "__"


def _defaults(data_dir: str) -> ConfigDict:
    return {
        "paths": {
            "data_dir": data_dir,
            "oauth_client_secrets": os.path.join(data_dir, "oauth_client.json"),
            "oauth_token": os.path.join(data_dir, "oauth_token.pickle"),
        },
        "logging": {"level": "WARNING", "file": None},
        "backend": {"mode": "openai", "model": "", "timeout": 60, "num_retries": 0},
        "settings": {"scope": "user"},
    }


def _merge_into(target: ConfigDict, source: Mapping[str, Any]) -> None:
    for key, value in source.items():
        if isinstance(value, Mapping) and isinstance(target.get(key), dict):
            _merge_into(target[key], value)
        else:
            target[key] = value


def _read_file(path: str) -> ConfigDict:
    """Parse a YAML or JSON config file.  Other extensions contribute nothing."""
    ext = os.path.splitext(path)[1].lower()
    try:
        with open(path) as f:
            if ext in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            elif ext == ".json":
                data = json.load(f)
            else:
                return {}
    except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Could not load config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping at the top level")
    return data


def _env_overrides(prefix: str, environ: Mapping[str, str]) -> ConfigDict:
    """Turn ``PREFIX_BACKEND__MODE=x`` into ``{"backend": {"mode": "x"}}``.

    Names without a ``__`` separator (``KEYRELAY_SYSTEM_SETTINGS_PATH``) are
    plain environment settings, not config sections, and are skipped.
    """
    overrides: ConfigDict = {}
    if not prefix:
        return overrides
    for name, value in environ.items():
        if not name.startswith(prefix):
            continue
        parts = name[len(prefix) :].lower().split(_NESTING)
        if len(parts) < 2:
            continue
        node = overrides
        for part in parts[:-1]:
            node = node.setdefault(part, {})
        node[parts[-1]] = value
    return overrides


class Config:
    """
    Merged view over defaults, a config file and environment overrides.

    Env vars use a double underscore for nesting:
    KEYRELAY_BACKEND__MODE=vertex-ai -> config["backend"]["mode"] = "vertex-ai"
    """

    def __init__(
        self,
        config_file: str | None = None,
        env_prefix: str = _DEFAULT_ENV_PREFIX,
        data_dir: str | None = None,
        defaults: ConfigDict | None = None,
    ):
        """
        Args:
            config_file: YAML or JSON file.  A missing file is not an error.
            env_prefix: Prefix for environment overrides; empty disables them.
            data_dir: Where the OAuth client and token live.  Defaults to ~/.keyrelay.
            defaults: Extra defaults layered over the built-in ones.

        Raises:
            ConfigurationError: The config file exists but cannot be parsed.
        """
        self.config_file = os.path.expanduser(config_file) if config_file else None
        self.env_prefix = env_prefix or ""
        self.data_dir = os.path.expanduser(data_dir or _DEFAULT_DATA_DIR)
        self.config_data: ConfigDict = _defaults(self.data_dir)

        if defaults:
            _merge_into(self.config_data, defaults)
        if self.config_file and os.path.exists(self.config_file):
            _merge_into(self.config_data, _read_file(self.config_file))
        _merge_into(self.config_data, _env_overrides(self.env_prefix, os.environ))

    def get(self, key_path: str, default: Any = None) -> Any:
        """Look up a dot-separated path such as ``"backend.mode"``."""
        node: Any = self.config_data
        for part in key_path.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key_path: str, value: Any) -> None:
        *parents, leaf = key_path.split(".")
        node = self.config_data
        for part in parents:
            node = node.setdefault(part, {})
        node[leaf] = value

    def validated(self) -> KeyRelayConfig:
        """Return the merged config as a typed model.

        Raises:
            pydantic.ValidationError: If a section has the wrong shape.
        """
        return KeyRelayConfig.model_validate(self.config_data)

