"""
Credential pool: the user-managed list plus an optional fallback.

The fallback comes from the environment.  It is logically first in rotation,
is never format-checked, never persisted, and cannot be removed through the
pool.  Every index the rest of the package uses refers to the *effective*
list returned by :meth:`CredentialPool.available`.
"""

from __future__ import annotations

from typing import Any

from .outcomes import Outcome, OutcomeKind
from .usage import mask_credential

RECOGNIZED_PREFIXES: tuple[str, ...] = (
    "csk-",  # Cerebras
    "sk-",  # OpenAI
    "api-",  # generic
)
MIN_CREDENTIAL_LENGTH = 20

_PREVIEW_MARKERS = ("...", "…")


def validate_credential(candidate: Any) -> bool:
    """Static shape check for user-supplied credentials."""
    if not candidate or not isinstance(candidate, str):
        return False
    return len(candidate) >= MIN_CREDENTIAL_LENGTH and candidate.startswith(RECOGNIZED_PREFIXES)


def _strip_preview_marker(reference: str) -> str:
    reference = reference.strip()
    for marker in _PREVIEW_MARKERS:
        if reference.startswith(marker):
            return reference[len(marker) :]
    return reference


class CredentialPool:
    """Ordered credentials with the environment fallback prepended."""

    def __init__(self, credentials: list[str] | None = None, fallback: str | None = None):
        self._credentials: list[str] = list(credentials or [])
        self.fallback = fallback or None

    @property
    def credentials(self) -> list[str]:
        """The stored (persistable) pool, excluding the fallback."""
        return list(self._credentials)

    def _fallback_prepended(self) -> bool:
        return self.fallback is not None and self.fallback not in self._credentials

    def available(self) -> list[str]:
        """The effective list: fallback first unless it is already pooled."""
        if self._fallback_prepended():
            return [self.fallback, *self._credentials]
        return list(self._credentials)

    def __len__(self) -> int:
        return len(self.available())

    def add(self, candidate: str) -> Outcome:
        if not validate_credential(candidate):
            return Outcome(
                OutcomeKind.INVALID_FORMAT,
                "Invalid API key format. Keys must be at least "
                f"{MIN_CREDENTIAL_LENGTH} characters and start with one of: {', '.join(RECOGNIZED_PREFIXES)}",
            )
        if candidate in self.available():
            return Outcome(OutcomeKind.ALREADY_EXISTS, "API key already exists in rotation.")

        self._credentials.append(candidate)
        return Outcome(
            OutcomeKind.OK,
            f"Added API key {mask_credential(candidate)} (pool size: {len(self._credentials)})",
            credential=candidate,
            index=len(self.available()) - 1,
        )

    def find(self, reference: str) -> str | None:
        """Match *reference* against pooled credentials, exact first then by suffix."""
        needle = _strip_preview_marker(reference or "")
        if not needle:
            return None
        candidates = [c for c in self._credentials if c != self.fallback]
        if needle in candidates:
            return needle
        for credential in candidates:
            if credential.endswith(needle):
                return credential
        return None

    def remove(self, reference: str) -> Outcome:
        """Remove by exact value or trailing characters (e.g. a ``...abcd`` preview)."""
        match = self.find(reference)
        if match is None:
            return Outcome(OutcomeKind.NOT_FOUND, f'API key matching "{(reference or "").strip()}" not found.')

        effective_index = self.available().index(match)
        self._credentials.remove(match)
        return Outcome(
            OutcomeKind.OK,
            f"Removed API key {mask_credential(match)} (remaining: {len(self._credentials)})",
            credential=match,
            index=effective_index,
        )
