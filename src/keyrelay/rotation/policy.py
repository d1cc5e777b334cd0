"""Round-robin pointer over the effective credential list."""

from __future__ import annotations

from loguru import logger

from .outcomes import Outcome, OutcomeKind
from .pool import CredentialPool
from .usage import UsageTracker, mask_credential


class RotationPolicy:
    """Pointer into ``pool.available()`` with round-robin and daily-reset rules.

    Rotation is blind: usage counts are informational and never cause a
    credential to be skipped.
    """

    def __init__(
        self,
        pool: CredentialPool,
        tracker: UsageTracker,
        index: int = 0,
        reset_daily: bool = True,
    ):
        self.pool = pool
        self.tracker = tracker
        self.index = max(0, index)
        self.reset_daily = reset_daily

    def peek(self) -> str | None:
        """Current credential without clamping the pointer."""
        keys = self.pool.available()
        if not keys:
            return self.pool.fallback
        if self.index >= len(keys):
            return keys[0]
        return keys[self.index]

    def current(self) -> tuple[str | None, bool]:
        """Return ``(credential, clamped)``.

        The pointer and the list can disagree after a hand-edited settings
        file; an out-of-range pointer is reset to 0 and *clamped* is True so
        the caller persists the repair.
        """
        keys = self.pool.available()
        if not keys:
            return self.pool.fallback, False
        if self.index >= len(keys):
            logger.debug(f"Rotation index {self.index} out of range for {len(keys)} key(s); resetting to 0")
            self.index = 0
            return keys[0], True
        return keys[self.index], False

    def rotate(self) -> Outcome:
        keys = self.pool.available()
        if len(keys) <= 1:
            current = self.peek()
            logger.warning("Cannot rotate: only one API key available")
            return Outcome(
                OutcomeKind.INSUFFICIENT_CREDENTIALS,
                "Need at least 2 API keys to rotate.",
                credential=current,
                index=self.index,
            )

        self.current()
        self.index = (self.index + 1) % len(keys)
        new_key = keys[self.index]
        logger.info(f"Rotated to API key {self.index + 1} of {len(keys)} ({mask_credential(new_key)})")
        return Outcome(
            OutcomeKind.OK,
            f"Rotated to API key {mask_credential(new_key)} ({self.index + 1} of {len(keys)})",
            credential=new_key,
            index=self.index,
        )

    def apply_daily_reset(self) -> bool:
        """Clear usage and point back at the first key when a new day starts."""
        if not self.reset_daily or not self.tracker.has_stale():
            return False
        logger.info("Resetting daily usage tracking for new day")
        self.tracker.clear()
        self.index = 0
        return True

    def on_removed(self, index: int) -> None:
        """Keep the pointer on the same logical credential after a removal."""
        if index <= self.index:
            self.index = max(0, self.index - 1)
