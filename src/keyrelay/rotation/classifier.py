"""Rate-limit detection from arbitrary failure values.

Providers and transports surface rate limits in many shapes (typed
exceptions, HTTP errors, plain strings), so this is a substring heuristic over
the failure's text rather than a status-code check.  False positives and
negatives are accepted in exchange for working across providers.  Swap the
``classifier`` argument of the rotation manager to change the policy.
"""

from typing import Any

RATE_LIMIT_MARKERS: tuple[str, ...] = (
    "rate limit",
    "quota exceeded",
    "too many requests",
    "429",
    # Cerebras reports exhausted daily quotas with these
    "daily limit",
    "usage limit",
)


def is_rate_limit_error(error: Any) -> bool:
    """Return True if *error* looks like a provider rate-limit signal."""
    if not error:
        return False
    try:
        message = str(error).lower()
    except Exception:
        return False
    return any(marker in message for marker in RATE_LIMIT_MARKERS)
