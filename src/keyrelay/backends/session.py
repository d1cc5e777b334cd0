"""Interactive-session backend: a logged-in Google account instead of an API key.

Outside Cloud Shell the token comes from :class:`~keyrelay.core.auth.GoogleOAuth`
(browser consent on first use).  Inside Cloud Shell the ambient application
default credentials are used.
"""

from __future__ import annotations

import asyncio
from typing import Any

from keyrelay.core.auth import CLOUD_PLATFORM_SCOPE, GoogleOAuth
from keyrelay.core.exceptions import AuthenticationError

from .base import import_litellm, qualify_model
from .modes import AuthMode, InteractiveSessionConfig


def _ambient_token() -> str:
    try:
        import google.auth
        from google.auth.transport.requests import Request
    except ImportError:
        raise ImportError("Install with: pip install keyrelay[google]")

    creds, _ = google.auth.default(scopes=CLOUD_PLATFORM_SCOPE)
    if not creds.valid:
        creds.refresh(Request())
    return creds.token


class InteractiveSessionBackend:
    def __init__(self, config: InteractiveSessionConfig, oauth: GoogleOAuth | None = None):
        self.config = config
        self.oauth = oauth
        self.mode = AuthMode.CLOUD_SHELL if config.cloud_shell else AuthMode.INTERACTIVE_SESSION

    def _token(self) -> str:
        if self.config.cloud_shell:
            return _ambient_token()
        if self.oauth is None:
            raise AuthenticationError("No OAuth client configured for interactive login")
        return self.oauth.access_token()

    async def generate(self, messages: list[dict[str, Any]], **kwargs: Any) -> Any:
        litellm = import_litellm()
        # OAuth refresh and the consent flow block
        token = await asyncio.to_thread(self._token)
        return await litellm.acompletion(
            model=qualify_model(self.config.model, "gemini"),
            messages=messages,
            timeout=self.config.timeout,
            extra_headers={"Authorization": f"Bearer {token}"},
            **kwargs,
        )
