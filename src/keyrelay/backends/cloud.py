"""Vertex AI backend (API key or project/location with ambient Google credentials)."""

from __future__ import annotations

from typing import Any

from .base import import_litellm, qualify_model
from .modes import AuthMode, ManagedCloudConfig


class ManagedCloudBackend:
    mode = AuthMode.MANAGED_CLOUD

    def __init__(self, config: ManagedCloudConfig):
        self.config = config

    def _auth_kwargs(self) -> dict[str, Any]:
        if self.config.project and self.config.location:
            return {"vertex_project": self.config.project, "vertex_location": self.config.location}
        return {"api_key": self.config.api_key}

    async def generate(self, messages: list[dict[str, Any]], **kwargs: Any) -> Any:
        litellm = import_litellm()
        return await litellm.acompletion(
            model=qualify_model(self.config.model, "vertex_ai"),
            messages=messages,
            timeout=self.config.timeout,
            **self._auth_kwargs(),
            **kwargs,
        )
