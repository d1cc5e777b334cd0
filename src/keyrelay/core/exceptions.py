"""
keyrelay exception hierarchy.

All keyrelay exceptions inherit from KeyRelayError, making it easy for consumers
to catch library-level errors while still distinguishing specific failure modes.

Pool and rotation problems are never raised; they come back as
:class:`keyrelay.rotation.outcomes.Outcome` values.
"""


class KeyRelayError(Exception):
    """Base exception class for all keyrelay errors."""


class ConfigurationError(KeyRelayError):
    """Raised when a backend cannot be built for the chosen auth mode."""


class SettingsError(KeyRelayError):
    """Raised when a settings file cannot be read or written."""


class AuthenticationError(KeyRelayError):
    """Raised for authentication errors."""


class APIError(KeyRelayError):
    """Raised for API communication errors."""


class BackendError(APIError):
    """Raised when a generation backend cannot complete a request."""
