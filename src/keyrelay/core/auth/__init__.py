"""Google OAuth for the interactive-session backend.

Behind ``keyrelay[google]`` — imports of the Google libraries happen lazily
and fail with a helpful message if they aren't installed.
"""

from .google_oauth import CLOUD_PLATFORM_SCOPE, GoogleOAuth

__all__ = [
    "CLOUD_PLATFORM_SCOPE",
    "GoogleOAuth",
]
