"""
OpenAI-compatible backend (Cerebras, OpenAI, or any compatible endpoint).

With a rotation manager bound, every attempt asks the manager for the current
key, reports success, and hands failures to ``on_failure``; a rate-limited
request is retried with the rotated key, at most once per available key.
Without one, the backend uses the single key from its config and rotation
does not exist for it.
"""

from __future__ import annotations

from typing import Any

from loguru import logger

from keyrelay.core.exceptions import BackendError
from keyrelay.rotation import CredentialRotationManager, mask_credential

from .base import import_litellm, qualify_model
from .modes import AuthMode, OpenAICompatibleConfig


class OpenAICompatibleBackend:
    mode = AuthMode.OPENAI_COMPATIBLE

    def __init__(self, config: OpenAICompatibleConfig, rotation: CredentialRotationManager | None = None):
        self.config = config
        self.rotation = rotation

    def _completion_kwargs(self, api_key: str, messages: list[dict[str, Any]], extra: dict[str, Any]) -> dict:
        kwargs: dict[str, Any] = {
            "model": qualify_model(self.config.model, "openai"),
            "messages": messages,
            "api_key": api_key,
            "api_base": self.config.base_url,
            "timeout": self.config.timeout,
            "num_retries": self.config.num_retries,
        }
        kwargs.update(extra)
        return kwargs

    async def generate(self, messages: list[dict[str, Any]], **kwargs: Any) -> Any:
        litellm = import_litellm()

        if self.rotation is None:
            api_key = self.config.api_key
        else:
            api_key = await self.rotation.current_credential() or self.config.api_key
        if not api_key:
            raise BackendError("No API key available for the OpenAI-compatible backend")

        if self.rotation is None:
            return await litellm.acompletion(**self._completion_kwargs(api_key, messages, kwargs))

        attempts = max(1, len(self.rotation.available_credentials()))
        for attempt in range(1, attempts + 1):
            try:
                response = await litellm.acompletion(**self._completion_kwargs(api_key, messages, kwargs))
            except Exception as e:
                next_key = await self.rotation.on_failure(e, failed_credential=api_key)
                if attempt >= attempts or not next_key or next_key == api_key:
                    raise
                logger.warning(
                    f"Request with {mask_credential(api_key)} failed ({type(e).__name__}), "
                    f"retrying with {mask_credential(next_key)}"
                )
                api_key = next_key
                continue

            await self.rotation.record_success()
            return response
