"""
Credential rotation: pool, usage tracking, round-robin policy, rate-limit
detection, and the manager that ties them together.
"""

from .classifier import RATE_LIMIT_MARKERS, is_rate_limit_error
from .manager import CredentialRotationManager, RotationSettings, RotationStatus
from .outcomes import Outcome, OutcomeKind
from .policy import RotationPolicy
from .pool import RECOGNIZED_PREFIXES, CredentialPool, validate_credential
from .usage import UsageRecord, UsageTracker, credential_id, mask_credential

__all__ = [
    "RATE_LIMIT_MARKERS",
    "RECOGNIZED_PREFIXES",
    "CredentialPool",
    "CredentialRotationManager",
    "Outcome",
    "OutcomeKind",
    "RotationPolicy",
    "RotationSettings",
    "RotationStatus",
    "UsageRecord",
    "UsageTracker",
    "credential_id",
    "is_rate_limit_error",
    "mask_credential",
    "validate_credential",
]
