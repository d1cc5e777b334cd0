"""Backend selection: one config variant in, one backend out."""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from typing import Any

from loguru import logger

from keyrelay.core.auth import GoogleOAuth
from keyrelay.core.exceptions import ConfigurationError
from keyrelay.core.settings import ROTATION_SETTINGS_KEY
from keyrelay.core.types import SaveCallback
from keyrelay.rotation import CredentialRotationManager, RotationSettings

from .base import GenerationBackend
from .cloud import ManagedCloudBackend
from .direct import DirectKeyBackend
from .modes import (
    AuthMode,
    BackendConfig,
    DirectKeyConfig,
    InteractiveSessionConfig,
    ManagedCloudConfig,
    OpenAICompatibleConfig,
    resolve_backend_config,
)
from .openai_compatible import OpenAICompatibleBackend
from .session import InteractiveSessionBackend


def _write_back(settings: MutableMapping[str, Any]) -> SaveCallback:
    """Default save hook: keep the caller's settings mapping current."""

    async def _save(snapshot: dict[str, Any]) -> None:
        settings[ROTATION_SETTINGS_KEY] = snapshot
        logger.debug("API key rotation settings updated")

    return _save


async def create_backend(
    config: BackendConfig,
    settings: MutableMapping[str, Any] | None = None,
    on_settings_update: SaveCallback | None = None,
    oauth: GoogleOAuth | None = None,
) -> GenerationBackend:
    """Build the backend for *config*.

    For the OpenAI-compatible variant, a non-empty ``apiKeyRotation.apiKeys``
    in *settings* binds a :class:`CredentialRotationManager` whose fallback is
    the config's own key.  With no explicit *on_settings_update*, rotation
    state is written back into *settings*.

    Raises:
        ConfigurationError: The config variant is unknown or lacks its key.
    """
    if isinstance(config, InteractiveSessionConfig):
        return InteractiveSessionBackend(config, oauth=oauth)

    if isinstance(config, ManagedCloudConfig):
        return ManagedCloudBackend(config)

    if isinstance(config, DirectKeyConfig):
        if not config.api_key:
            raise ConfigurationError("Gemini API key is required (set GEMINI_API_KEY)")
        return DirectKeyBackend(config)

    if isinstance(config, OpenAICompatibleConfig):
        if not config.api_key:
            raise ConfigurationError("Cerebras API key is required (set CEREBRAS_API_KEY or OPENAI_API_KEY)")

        rotation = None
        raw = (settings or {}).get(ROTATION_SETTINGS_KEY)
        if isinstance(raw, Mapping) and RotationSettings.from_dict(raw).api_keys:
            if on_settings_update is None and settings is not None:
                on_settings_update = _write_back(settings)
            rotation = await CredentialRotationManager.create(
                raw,
                fallback_credential=config.api_key,
                on_settings_update=on_settings_update,
            )
            logger.debug(f"API key rotation enabled across {len(rotation.available_credentials())} key(s)")
        return OpenAICompatibleBackend(config, rotation=rotation)

    raise ConfigurationError(f"Unsupported backend config: {type(config).__name__}")


async def create_backend_for_mode(
    mode: AuthMode | str,
    env: Mapping[str, str] | None = None,
    settings: MutableMapping[str, Any] | None = None,
    model: str | None = None,
    **kwargs: Any,
) -> GenerationBackend:
    """Resolve the config for *mode* from the environment, then build it."""
    config = resolve_backend_config(mode, env=env, model=model)
    return await create_backend(config, settings=settings, **kwargs)
