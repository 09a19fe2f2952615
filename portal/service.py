"""Portal login service - orchestrates the one-time code flow."""

import logging
from typing import Callable

import psycopg2
import redis

from portal.config import PortalConfig
from portal.exceptions import (
    CodeDeliveryError,
    InvalidCodeError,
    RateLimitedError,
    ValidationFailedError,
)
from portal.issuer import CodeIssuer, normalize_email
from portal.rate_limiter import RateLimiter
from portal.security_logger import SecurityEvent, SecurityLogger
from portal.types import ClientSession, CodeRequestResult
from portal.verifier import CodeVerifier

logger = logging.getLogger(__name__)

ACKNOWLEDGMENT = "Om kontot finns skickas en kod till din e-post"


class PortalAuthService:
    """Orchestrates passwordless login for the client portal.

    Handles:
    - Code requests (with enumeration protection)
    - Code verification and session materialization
    - Throttling and the security audit trail
    """

    def __init__(
        self,
        config: PortalConfig,
        issuer: CodeIssuer,
        verifier: CodeVerifier,
        rate_limiter: RateLimiter,
        security_logger: SecurityLogger,
    ):
        self._config = config
        self._issuer = issuer
        self._verifier = verifier
        self._rate_limiter = rate_limiter
        self._security_logger = security_logger

    def _audit(self, event: SecurityEvent, **fields) -> None:
        """Record a security event. An audit outage never changes the response."""
        try:
            self._security_logger.log(event, **fields)
        except psycopg2.Error:
            logger.exception(f"Could not record security event {event.value}")

    def _throttle(
        self,
        check: Callable[[], None],
        email: str,
        ip_address: str | None,
        user_agent: str | None,
    ) -> None:
        try:
            check()
        except RateLimitedError as e:
            self._audit(
                SecurityEvent.RATE_LIMITED,
                email=email,
                ip_address=ip_address,
                user_agent=user_agent,
                details={"retry_after_seconds": e.retry_after_seconds},
            )
            raise

    def request_code(
        self,
        email: str | None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> CodeRequestResult:
        """Request a login code for email.

        Flow:
        1. Validate and normalize email
        2. Throttle by IP and email (before lookup, same for every email)
        3. Issue code if the account exists
        4. Log security event
        5. Return the same acknowledgment either way

        Raises:
            ValidationFailedError: If email is missing.
            RateLimitedError: If throttled.
            CodeCreationError: If the code could not be stored.
            CodeDeliveryError: If the email could not be sent.
        """
        if not email or not email.strip():
            raise ValidationFailedError("Email is required")
        email = normalize_email(email)

        self._throttle(
            lambda: self._rate_limiter.check_request(email, ip_address),
            email, ip_address, user_agent,
        )

        try:
            issued = self._issuer.issue(email)
        except CodeDeliveryError:
            self._audit(
                SecurityEvent.CODE_DELIVERY_FAILED,
                email=email,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            raise

        if issued is None:
            self._audit(
                SecurityEvent.CODE_REQUEST_UNKNOWN_EMAIL,
                email=email,
                ip_address=ip_address,
                user_agent=user_agent,
            )
        else:
            self._audit(
                SecurityEvent.CODE_SENT,
                email=issued.user.email,
                user_id=issued.user.id,
                ip_address=ip_address,
                user_agent=user_agent,
                details={"login_code_id": str(issued.login_code.id)},
            )

        return CodeRequestResult(accepted=True, message=ACKNOWLEDGMENT)

    def verify_code(
        self,
        email: str | None,
        code: str | None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> ClientSession:
        """Verify a login code and return the client session.

        Raises:
            ValidationFailedError: If email or code is missing.
            RateLimitedError: If throttled.
            InvalidCodeError: If the pair does not authenticate, for any reason.
        """
        if not email or not email.strip() or not code:
            raise ValidationFailedError("Email and code are required")
        email = normalize_email(email)

        self._throttle(
            lambda: self._rate_limiter.check_verify(email),
            email, ip_address, user_agent,
        )

        try:
            session = self._verifier.verify(email, code)
        except InvalidCodeError as e:
            self._audit(
                SecurityEvent.CODE_VERIFICATION_FAILED,
                email=email,
                user_id=e.user_id,
                ip_address=ip_address,
                user_agent=user_agent,
                details={"reason": e.outcome.value if e.outcome else "unknown"},
            )
            raise

        # The code is already consumed; failing here would strand the user.
        try:
            self._rate_limiter.reset(email)
        except redis.RedisError:
            logger.exception("Could not reset throttle counters after login")

        self._audit(
            SecurityEvent.CODE_VERIFIED,
            email=session.user.email,
            user_id=session.user.id,
            ip_address=ip_address,
            user_agent=user_agent,
            details={"login_code_id": session.id},
        )
        return session
