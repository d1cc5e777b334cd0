"""Google OAuth 2.0 login for the interactive-session backend.

Handles the browser consent flow the first time, then reuses and refreshes a
cached token.  The token cache is a pickle file and must
only ever hold trusted local data.

Requires ``keyrelay[google]``.
"""

from __future__ import annotations

import pickle
from pathlib import Path

from loguru import logger

from keyrelay.core.exceptions import AuthenticationError

CLOUD_PLATFORM_SCOPE = ["https://www.googleapis.com/auth/cloud-platform"]


class GoogleOAuth:
    """Interactive OAuth 2.0 flow with token persistence.

    Args:
        credentials_path: Path to the OAuth client-secrets JSON
            (downloaded from Google Cloud Console).
        token_path: Path to store/load the cached refresh token.
        scopes: OAuth scopes.  Defaults to cloud-platform.
    """

    def __init__(
        self,
        credentials_path: str | Path,
        token_path: str | Path,
        scopes: list[str] | None = None,
    ):
        self.credentials_path = Path(credentials_path).expanduser()
        self.token_path = Path(token_path).expanduser()
        self.scopes = scopes or list(CLOUD_PLATFORM_SCOPE)

    def authenticate(self):
        """Return valid ``google.oauth2.credentials.Credentials``.

        Loads the cached token if available, refreshes it if expired, or
        starts the browser flow.

        Raises:
            AuthenticationError: No usable token and the flow cannot run.
        """
        try:
            from google.auth.transport.requests import Request
            from google_auth_oauthlib.flow import InstalledAppFlow
        except ImportError:
            raise ImportError("Install with: pip install keyrelay[google]")

        creds = None

        if self.token_path.exists():
            try:
                with open(self.token_path, "rb") as f:
                    creds = pickle.load(f)
                logger.debug(f"Loaded OAuth token from {self.token_path}")
            except Exception as e:
                logger.warning(f"Failed to load OAuth token: {e}")

        if creds and creds.valid:
            return creds

        if creds and creds.expired and creds.refresh_token:
            logger.info("Refreshing expired OAuth token")
            try:
                creds.refresh(Request())
            except Exception as e:
                logger.error(f"Token refresh failed: {e}")
                creds = None

        if not creds:
            if not self.credentials_path.exists():
                raise AuthenticationError(
                    f"OAuth client secrets not found: {self.credentials_path}\n"
                    "Download from Google Cloud Console -> APIs & Services -> Credentials."
                )
            try:
                flow = InstalledAppFlow.from_client_secrets_file(str(self.credentials_path), self.scopes)
                logger.info("Starting OAuth flow -- complete authentication in browser")
                creds = flow.run_local_server(port=0)
            except Exception as e:
                raise AuthenticationError(f"OAuth flow failed: {e}") from e

        self._save(creds)
        return creds

    def _save(self, creds) -> None:
        try:
            self.token_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.token_path, "wb") as f:
                pickle.dump(creds, f)
            logger.debug(f"OAuth token saved to {self.token_path}")
        except Exception as e:
            logger.warning(f"Failed to save OAuth token: {e}")

    def access_token(self) -> str:
        """Bearer token for the current session."""
        return self.authenticate().token
