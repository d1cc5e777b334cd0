"""
Per-credential daily request counters.

Records are keyed by :func:`credential_id`, the last eight characters of the
credential.  That is an obfuscation for display and bookkeeping, not a hash:
two credentials sharing a suffix share a record.  The format is kept because
existing settings files and status output already use it.

Days are UTC calendar days (``YYYY-MM-DD``).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from loguru import logger

_ID_LENGTH = 8
_PREVIEW_LENGTH = 4


def _today() -> str:
    """Current usage day as an ISO date string."""
    return datetime.now(timezone.utc).date().isoformat()


def credential_id(credential: str) -> str:
    """Privacy-preserving identifier used to key usage records."""
    return credential[-_ID_LENGTH:]


def mask_credential(credential: str | None) -> str:
    """Human-facing preview: ``...`` plus the last four characters."""
    if not credential:
        return "none"
    return f"...{credential[-_PREVIEW_LENGTH:]}"


@dataclass
class UsageRecord:
    date: str
    requests: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date, "requests": self.requests}

    @classmethod
    def from_dict(cls, data: Any) -> UsageRecord | None:
        """Parse a persisted record, returning None for anything malformed."""
        if not isinstance(data, dict):
            return None
        date = data.get("date")
        requests = data.get("requests", 0)
        if not isinstance(date, str) or isinstance(requests, bool) or not isinstance(requests, int):
            return None
        return cls(date=date, requests=max(0, requests))


class UsageTracker:
    """Daily request counts per credential identifier."""

    def __init__(self, records: dict[str, UsageRecord] | None = None):
        self._records: dict[str, UsageRecord] = dict(records or {})

    @classmethod
    def from_dict(cls, data: Any) -> UsageTracker:
        records: dict[str, UsageRecord] = {}
        if isinstance(data, dict):
            for key, raw in data.items():
                record = UsageRecord.from_dict(raw)
                if isinstance(key, str) and record is not None:
                    records[key] = record
                else:
                    logger.debug(f"Dropping malformed usage record for key ...{str(key)[-4:]}")
        return cls(records)

    def track(self, credential: str) -> UsageRecord:
        """Add one request to today's count for *credential*."""
        today = _today()
        key = credential_id(credential)
        record = self._records.get(key)
        if record is None or record.date != today:
            record = UsageRecord(date=today)
            self._records[key] = record
        record.requests += 1
        return record

    def get(self, credential: str) -> UsageRecord | None:
        return self._records.get(credential_id(credential))

    def has_stale(self) -> bool:
        """True if any record is from a day other than today."""
        today = _today()
        return any(record.date != today for record in self._records.values())

    def clear(self) -> None:
        self._records.clear()

    def records(self) -> dict[str, UsageRecord]:
        return {key: UsageRecord(record.date, record.requests) for key, record in self._records.items()}

    def snapshot(self) -> dict[str, dict[str, Any]]:
        return {key: record.to_dict() for key, record in self._records.items()}

    def __len__(self) -> int:
        return len(self._records)
