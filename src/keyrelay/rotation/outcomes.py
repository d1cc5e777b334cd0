"""Structured results for pool and rotation operations.

Pool mutations and manual rotation never raise.  They return an
:class:`Outcome` so a presentation layer can render the result without
inspecting manager internals.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class OutcomeKind(str, Enum):
    OK = "ok"
    INVALID_FORMAT = "invalid_format"
    ALREADY_EXISTS = "already_exists"
    NOT_FOUND = "not_found"
    INSUFFICIENT_CREDENTIALS = "insufficient_credentials"


# Kinds that are informational no-ops rather than user errors
_INFORMATIONAL = {OutcomeKind.OK, OutcomeKind.ALREADY_EXISTS}


@dataclass(frozen=True)
class Outcome:
    """Result of a pool mutation or rotation.

    ``credential`` carries the credential the caller should now use (for
    rotation) or the one that was added/removed.  ``index`` is the
    effective-list position touched by the operation, when there is one.
    """

    kind: OutcomeKind
    message: str
    credential: str | None = None
    index: int | None = None

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.OK

    @property
    def is_error(self) -> bool:
        return self.kind not in _INFORMATIONAL
