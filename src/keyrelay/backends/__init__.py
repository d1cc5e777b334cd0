"""Generation backends, one per authentication mode, and the selector that picks one."""

from .base import GenerationBackend
from .cloud import ManagedCloudBackend
from .direct import DirectKeyBackend
from .modes import (
    DEFAULT_MODEL,
    AuthMode,
    BackendConfig,
    DirectKeyConfig,
    InteractiveSessionConfig,
    ManagedCloudConfig,
    OpenAICompatibleConfig,
    fallback_credential_for,
    resolve_backend_config,
)
from .openai_compatible import OpenAICompatibleBackend
from .selector import create_backend, create_backend_for_mode
from .session import InteractiveSessionBackend

__all__ = [
    "DEFAULT_MODEL",
    "AuthMode",
    "BackendConfig",
    "DirectKeyBackend",
    "DirectKeyConfig",
    "GenerationBackend",
    "InteractiveSessionBackend",
    "InteractiveSessionConfig",
    "ManagedCloudBackend",
    "ManagedCloudConfig",
    "OpenAICompatibleBackend",
    "OpenAICompatibleConfig",
    "create_backend",
    "create_backend_for_mode",
    "fallback_credential_for",
    "resolve_backend_config",
]
