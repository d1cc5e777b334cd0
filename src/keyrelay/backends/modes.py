"""
Authentication modes and their backend configurations.

Each mode maps to exactly one frozen config dataclass; ``BackendConfig`` is
their union.  :func:`resolve_backend_config` is a pure function of the mode
plus the credential material found in the environment, and fails fast with
:class:`~keyrelay.core.exceptions.ConfigurationError` when that material is
missing.

Environment variables read per mode:

    oauth-personal / cloud-shell   (none; OAuth runs when the backend is used)
    vertex-ai                      GOOGLE_API_KEY, or GOOGLE_CLOUD_PROJECT + GOOGLE_CLOUD_LOCATION
    gemini-api-key                 GEMINI_API_KEY
    openai                         CEREBRAS_API_KEY or OPENAI_API_KEY,
                                   CEREBRAS_MODEL / OPENAI_MODEL,
                                   CEREBRAS_BASE_URL / OPENAI_BASE_URL
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

from keyrelay.core.exceptions import ConfigurationError

DEFAULT_MODEL = "gpt-oss-120b"
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
DEFAULT_OPENAI_BASE_URL = "https://api.cerebras.ai/v1"
DEFAULT_TIMEOUT = 60


class AuthMode(str, Enum):
    """How the generation backend authenticates.  Values match stored settings."""

    INTERACTIVE_SESSION = "oauth-personal"
    CLOUD_SHELL = "cloud-shell"
    MANAGED_CLOUD = "vertex-ai"
    DIRECT_PROVIDER_KEY = "gemini-api-key"
    OPENAI_COMPATIBLE = "openai"


@dataclass(frozen=True)
class InteractiveSessionConfig:
    model: str
    cloud_shell: bool = False
    timeout: int = DEFAULT_TIMEOUT


@dataclass(frozen=True)
class ManagedCloudConfig:
    model: str
    api_key: str | None = field(default=None, repr=False)
    project: str | None = None
    location: str | None = None
    timeout: int = DEFAULT_TIMEOUT


@dataclass(frozen=True)
class DirectKeyConfig:
    model: str
    api_key: str = field(repr=False)
    timeout: int = DEFAULT_TIMEOUT


@dataclass(frozen=True)
class OpenAICompatibleConfig:
    model: str
    api_key: str = field(repr=False)
    base_url: str = DEFAULT_OPENAI_BASE_URL
    timeout: int = DEFAULT_TIMEOUT
    num_retries: int = 0


BackendConfig = InteractiveSessionConfig | ManagedCloudConfig | DirectKeyConfig | OpenAICompatibleConfig


def _first(env: Mapping[str, str], *names: str) -> str | None:
    for name in names:
        value = env.get(name)
        if value:
            return value
    return None


def fallback_credential_for(mode: AuthMode | str, env: Mapping[str, str] | None = None) -> str | None:
    """The environment credential a rotation manager should treat as its fallback."""
    env = os.environ if env is None else env
    mode = AuthMode(mode)
    if mode is AuthMode.OPENAI_COMPATIBLE:
        return _first(env, "CEREBRAS_API_KEY", "OPENAI_API_KEY")
    if mode is AuthMode.DIRECT_PROVIDER_KEY:
        return _first(env, "GEMINI_API_KEY")
    if mode is AuthMode.MANAGED_CLOUD:
        return _first(env, "GOOGLE_API_KEY")
    return None


def resolve_backend_config(
    mode: AuthMode | str,
    env: Mapping[str, str] | None = None,
    model: str | None = None,
    timeout: int = DEFAULT_TIMEOUT,
    num_retries: int = 0,
) -> BackendConfig:
    """Build the config variant for *mode*.

    Raises:
        ConfigurationError: Unknown mode, or the mode's credentials are missing.
    """
    env = os.environ if env is None else env
    try:
        mode = AuthMode(mode)
    except ValueError:
        raise ConfigurationError(f"Unsupported auth mode: {mode!r}") from None

    if mode in (AuthMode.INTERACTIVE_SESSION, AuthMode.CLOUD_SHELL):
        return InteractiveSessionConfig(
            model=model or DEFAULT_GEMINI_MODEL,
            cloud_shell=mode is AuthMode.CLOUD_SHELL,
            timeout=timeout,
        )

    if mode is AuthMode.MANAGED_CLOUD:
        api_key = _first(env, "GOOGLE_API_KEY")
        project = _first(env, "GOOGLE_CLOUD_PROJECT")
        location = _first(env, "GOOGLE_CLOUD_LOCATION")
        if not api_key and not (project and location):
            raise ConfigurationError(
                "Vertex AI requires GOOGLE_API_KEY, or both GOOGLE_CLOUD_PROJECT and GOOGLE_CLOUD_LOCATION"
            )
        return ManagedCloudConfig(
            model=model or DEFAULT_GEMINI_MODEL,
            api_key=api_key,
            project=project,
            location=location,
            timeout=timeout,
        )

    if mode is AuthMode.DIRECT_PROVIDER_KEY:
        api_key = _first(env, "GEMINI_API_KEY")
        if not api_key:
            raise ConfigurationError("Gemini API key is required (set GEMINI_API_KEY)")
        return DirectKeyConfig(model=model or DEFAULT_GEMINI_MODEL, api_key=api_key, timeout=timeout)

    api_key = _first(env, "CEREBRAS_API_KEY", "OPENAI_API_KEY")
    if not api_key:
        raise ConfigurationError("Cerebras API key is required (set CEREBRAS_API_KEY or OPENAI_API_KEY)")
    return OpenAICompatibleConfig(
        model=model or _first(env, "CEREBRAS_MODEL", "OPENAI_MODEL") or DEFAULT_MODEL,
        api_key=api_key,
        base_url=_first(env, "CEREBRAS_BASE_URL", "OPENAI_BASE_URL") or DEFAULT_OPENAI_BASE_URL,
        timeout=timeout,
        num_retries=num_retries,
    )
