"""Gemini API-key backend."""

from __future__ import annotations

from typing import Any

from .base import import_litellm, qualify_model
from .modes import AuthMode, DirectKeyConfig


class DirectKeyBackend:
    mode = AuthMode.DIRECT_PROVIDER_KEY

    def __init__(self, config: DirectKeyConfig):
        self.config = config

    async def generate(self, messages: list[dict[str, Any]], **kwargs: Any) -> Any:
        litellm = import_litellm()
        return await litellm.acompletion(
            model=qualify_model(self.config.model, "gemini"),
            messages=messages,
            api_key=self.config.api_key,
            timeout=self.config.timeout,
            **kwargs,
        )
