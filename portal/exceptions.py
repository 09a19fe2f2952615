"""Typed exceptions for client portal login failures."""

from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from portal.outcomes import VerificationOutcome


class PortalAuthError(Exception):
    """Base class for client portal login errors."""


class ValidationFailedError(PortalAuthError):
    """Request is missing a required field. Safe to show to the caller."""


class InvalidCodeError(PortalAuthError):
    """
    Code is wrong, expired, already used, or the email is unknown.

    Every verification failure raises this one type so the wire response
    never reveals which case occurred. The outcome is kept for audit logging.
    """

    def __init__(
        self,
        outcome: "VerificationOutcome | None" = None,
        user_id: UUID | None = None,
    ):
        self.outcome = outcome
        self.user_id = user_id
        super().__init__("Invalid or expired code")


class RateLimitedError(PortalAuthError):
    """Too many attempts. Client should wait before retrying."""

    def __init__(self, retry_after_seconds: int):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(f"Rate limited. Retry after {retry_after_seconds} seconds.")


class CodeCreationError(PortalAuthError):
    """Login code could not be persisted. Infrastructure fault."""


class CodeDeliveryError(PortalAuthError):
    """
    Login code was stored but the email could not be sent.

    Surfaced to the caller: without the email the user has no way to log in.
    """
