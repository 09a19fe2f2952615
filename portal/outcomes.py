"""Verification outcome classification.

Several distinct internal states collapse onto one wire response. The
distinction survives only in logs and security events.
"""

from datetime import datetime
from enum import Enum

from portal.types import LoginCode


class VerificationOutcome(Enum):
    """Internal result of a verification attempt."""

    USER_NOT_FOUND = "user_not_found"
    CODE_NOT_FOUND = "code_not_found"
    CODE_EXPIRED = "code_expired"
    CODE_CONSUMED = "code_consumed"
    SUCCESS = "success"

    @property
    def is_success(self) -> bool:
        return self is VerificationOutcome.SUCCESS


def classify_failure(candidate: LoginCode | None, now: datetime) -> VerificationOutcome:
    """Explain why an atomic consume matched nothing.

    Args:
        candidate: Newest row for the user with the submitted code, in any state.
        now: The instant the consume was attempted.
    """
    if candidate is None:
        return VerificationOutcome.CODE_NOT_FOUND
    if candidate.verified:
        return VerificationOutcome.CODE_CONSUMED
    if candidate.expires_at <= now:
        return VerificationOutcome.CODE_EXPIRED
    # Row became valid-looking after the consume lost a race; treat as used.
    return VerificationOutcome.CODE_CONSUMED
