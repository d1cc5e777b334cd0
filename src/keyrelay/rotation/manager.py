"""
Credential rotation manager — the public face of the rotation package.

Composes the pool, usage tracker, rotation policy and rate-limit classifier,
and persists every state change through an injected async callback.

Persisted shape (stored by the host under ``apiKeyRotation``)::

    apiKeys: [csk-..., sk-...]
    currentKeyIndex: 0
    autoRotateOnRateLimit: true
    resetRotationDaily: true
    dailyUsageTracking:
      abcd1234: {date: "2026-10-19", requests: 12}

Build a fresh manager per session from the stored settings rather than
caching one across sessions; the pointer is only meaningful against the list
it was read with.

Usage::

    manager = await CredentialRotationManager.create(
        settings.get("apiKeyRotation", {}),
        fallback_credential=os.environ.get("CEREBRAS_API_KEY"),
        on_settings_update=store.rotation_callback(),
    )
    key = await manager.current_credential()
    try:
        ...  # issue request with key
        await manager.record_success()
    except Exception as e:
        key = await manager.on_failure(e, failed_credential=key)
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from keyrelay.core.types import SaveCallback

from .classifier import is_rate_limit_error
from .outcomes import Outcome
from .policy import RotationPolicy
from .pool import CredentialPool, validate_credential
from .usage import UsageRecord, UsageTracker, mask_credential

# attribute name -> persisted key
_PERSISTED_KEYS = {
    "api_keys": "apiKeys",
    "current_index": "currentKeyIndex",
    "auto_rotate": "autoRotateOnRateLimit",
    "reset_daily": "resetRotationDaily",
    "daily_usage": "dailyUsageTracking",
}


def _as_bool(value: Any, default: bool) -> bool:
    return value if isinstance(value, bool) else default


def _as_index(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return 0
    return value


@dataclass
class RotationSettings:
    """In-memory form of the persisted ``apiKeyRotation`` mapping."""

    api_keys: list[str] = field(default_factory=list)
    current_index: int = 0
    auto_rotate: bool = True
    reset_daily: bool = True
    daily_usage: dict[str, UsageRecord] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> RotationSettings:
        """Parse leniently; settings files may be hand-edited."""
        data = data or {}
        raw_keys = data.get(_PERSISTED_KEYS["api_keys"]) or []
        api_keys: list[str] = []
        if isinstance(raw_keys, list):
            for key in raw_keys:
                if isinstance(key, str) and key and key not in api_keys:
                    api_keys.append(key)

        return cls(
            api_keys=api_keys,
            current_index=_as_index(data.get(_PERSISTED_KEYS["current_index"], 0)),
            auto_rotate=_as_bool(data.get(_PERSISTED_KEYS["auto_rotate"]), True),
            reset_daily=_as_bool(data.get(_PERSISTED_KEYS["reset_daily"]), True),
            daily_usage=UsageTracker.from_dict(data.get(_PERSISTED_KEYS["daily_usage"])).records(),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            _PERSISTED_KEYS["api_keys"]: list(self.api_keys),
            _PERSISTED_KEYS["current_index"]: self.current_index,
            _PERSISTED_KEYS["auto_rotate"]: self.auto_rotate,
            _PERSISTED_KEYS["reset_daily"]: self.reset_daily,
            _PERSISTED_KEYS["daily_usage"]: {k: r.to_dict() for k, r in self.daily_usage.items()},
        }


@dataclass(frozen=True)
class RotationStatus:
    """Read-only snapshot for reporting.  Never holds a full secret."""

    total_keys: int
    current_index: int
    current_key_preview: str
    auto_rotate_enabled: bool
    daily_usage: dict[str, dict[str, Any]]


class CredentialRotationManager:
    """Selects the active credential and rotates on rate limits.

    All mutations run under one ``asyncio.Lock`` so that two requests failing
    in the same tick cannot both advance the pointer off the same credential,
    even though the save callback suspends between them.

    Save-callback failures are logged and swallowed: the in-memory state has
    already moved on and stays authoritative for the rest of the session.
    """

    validate_credential = staticmethod(validate_credential)
    is_rate_limit_error = staticmethod(is_rate_limit_error)

    def __init__(
        self,
        settings: Mapping[str, Any] | RotationSettings | None = None,
        fallback_credential: str | None = None,
        on_settings_update: SaveCallback | None = None,
        classifier: Callable[[Any], bool] = is_rate_limit_error,
    ):
        parsed = settings if isinstance(settings, RotationSettings) else RotationSettings.from_dict(settings)
        self._fallback = fallback_credential or None
        self._on_settings_update = on_settings_update
        self._classifier = classifier
        self._lock = asyncio.Lock()
        self._dirty = False
        self._apply(parsed)

        # Constructors cannot await; flush() writes the reset back.
        if self._policy.apply_daily_reset():
            self._dirty = True

    @classmethod
    async def create(cls, *args: Any, **kwargs: Any) -> CredentialRotationManager:
        """Construct and persist any repair made during construction."""
        manager = cls(*args, **kwargs)
        await manager.flush()
        return manager

    def _apply(self, settings: RotationSettings) -> None:
        self.auto_rotate = settings.auto_rotate
        self._pool = CredentialPool(settings.api_keys, self._fallback)
        self._tracker = UsageTracker(settings.daily_usage)
        self._policy = RotationPolicy(
            self._pool,
            self._tracker,
            index=settings.current_index,
            reset_daily=settings.reset_daily,
        )

    # ------------------------------------------------------------------
    # State views
    # ------------------------------------------------------------------

    @property
    def fallback_credential(self) -> str | None:
        return self._fallback

    @property
    def settings(self) -> RotationSettings:
        return RotationSettings(
            api_keys=self._pool.credentials,
            current_index=self._policy.index,
            auto_rotate=self.auto_rotate,
            reset_daily=self._policy.reset_daily,
            daily_usage=self._tracker.records(),
        )

    def to_dict(self) -> dict[str, Any]:
        return self.settings.to_dict()

    def available_credentials(self) -> list[str]:
        return self._pool.available()

    def status(self) -> RotationStatus:
        keys = self._pool.available()
        index = self._policy.index if self._policy.index < len(keys) else 0
        return RotationStatus(
            total_keys=len(keys),
            current_index=index,
            current_key_preview=mask_credential(self._policy.peek()),
            auto_rotate_enabled=self.auto_rotate,
            daily_usage=self._tracker.snapshot(),
        )

    # ------------------------------------------------------------------
    # Selection and rotation
    # ------------------------------------------------------------------

    async def current_credential(self) -> str | None:
        async with self._lock:
            credential, clamped = self._policy.current()
            if clamped:
                await self._persist()
            return credential

    async def on_failure(self, error: Any, failed_credential: str | None = None) -> str | None:
        """Handle a failed request; return the credential to use next.

        Args:
            error: Whatever the transport raised or returned.
            failed_credential: The credential the failed request used.  When
                another caller already rotated past it, or a new day reset
                the pointer, no second rotation happens.
        """
        async with self._lock:
            if not self.auto_rotate or not self._classifier(error):
                current, clamped = self._policy.current()
                if clamped:
                    await self._persist()
                return current

            logger.info("Rate limit detected, attempting to rotate API key...")
            hit = failed_credential or self._policy.peek()
            # A new day moves the pointer back to the first key before we compare.
            self._policy.apply_daily_reset()
            current, _ = self._policy.current()
            if hit:
                self._track(hit, is_rate_limit_hit=True)

            if hit is not None and hit != current:
                logger.debug(f"{mask_credential(hit)} is no longer current; keeping {mask_credential(current)}")
                await self._persist()
                return current

            outcome = self._policy.rotate()
            await self._persist()
            return outcome.credential

    async def rotate_to_next(self) -> Outcome:
        async with self._lock:
            outcome = self._policy.rotate()
            if outcome.ok:
                await self._persist()
            return outcome

    # ------------------------------------------------------------------
    # Usage
    # ------------------------------------------------------------------

    def _track(self, credential: str, *, is_rate_limit_hit: bool) -> None:
        self._policy.apply_daily_reset()
        record = self._tracker.track(credential)
        if is_rate_limit_hit:
            logger.info(
                f"Rate limit hit for key ending in {mask_credential(credential)} ({record.requests} requests today)"
            )

    async def track_usage(self, credential: str, is_rate_limit_hit: bool = False) -> None:
        """Count one request against *credential*.  Never raises."""
        if not credential:
            return
        async with self._lock:
            self._track(credential, is_rate_limit_hit=is_rate_limit_hit)
            await self._persist()

    async def record_success(self) -> None:
        """Count a successful request against the current credential."""
        async with self._lock:
            credential, _ = self._policy.current()
            if credential:
                self._track(credential, is_rate_limit_hit=False)
            await self._persist()

    # ------------------------------------------------------------------
    # Pool mutation
    # ------------------------------------------------------------------

    async def add_credential(self, candidate: str) -> Outcome:
        if isinstance(candidate, str):
            candidate = candidate.strip()
        async with self._lock:
            outcome = self._pool.add(candidate)
            if outcome.ok:
                logger.info(outcome.message)
                await self._persist()
            return outcome

    async def remove_credential(self, reference: str) -> Outcome:
        async with self._lock:
            outcome = self._pool.remove(reference)
            if outcome.ok:
                self._policy.on_removed(outcome.index)
                logger.info(outcome.message)
                await self._persist()
            return outcome

    async def update_settings(self, partial: Mapping[str, Any]) -> None:
        """Merge *partial* (persisted key names) into the live state and save."""
        async with self._lock:
            merged = self.to_dict()
            merged.update(partial)
            self._apply(RotationSettings.from_dict(merged))
            await self._persist()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def flush(self) -> None:
        """Persist state changed outside an async operation (e.g. construction)."""
        async with self._lock:
            if self._dirty:
                await self._persist()

    async def _persist(self) -> None:
        self._dirty = False
        if self._on_settings_update is None:
            return
        try:
            await self._on_settings_update(self.to_dict())
        except Exception as e:
            logger.error(f"Failed to save rotation settings: {e}")
