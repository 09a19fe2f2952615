"""One-time login code issuance."""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

import psycopg2

from clients.email_client import EmailGatewayError
from portal.config import PortalConfig
from portal.database import PortalDatabase
from portal.exceptions import CodeCreationError, CodeDeliveryError
from portal.notifier import LoginCodeNotifier
from portal.types import ClientUser, LoginCode
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

CODE_DIGITS = 6


def generate_code(digits: int = CODE_DIGITS) -> str:
    """Uniformly random, zero-padded numeric code from the OS CSPRNG."""
    return f"{secrets.randbelow(10 ** digits):0{digits}d}"


def normalize_email(email: str) -> str:
    return email.strip().lower()


@dataclass
class IssuedCode:
    """A code that was stored and emailed."""

    user: ClientUser
    login_code: LoginCode


class CodeIssuer:
    """Creates login codes for known client users and emails them.

    Unknown emails produce no row and no email. Callers are responsible for
    giving both cases the same external response.
    """

    def __init__(
        self,
        config: PortalConfig,
        portal_db: PortalDatabase,
        notifier: LoginCodeNotifier,
        clock: Callable[[], datetime] = now_utc,
        code_generator: Callable[[], str] = generate_code,
    ):
        self._config = config
        self._portal_db = portal_db
        self._notifier = notifier
        self._clock = clock
        self._code_generator = code_generator

    def issue(self, email: str) -> IssuedCode | None:
        """Issue a login code for the account behind `email`.

        Returns:
            IssuedCode, or None if no client user has this email.

        Raises:
            CodeCreationError: If the user lookup or code insert fails.
            CodeDeliveryError: If the code was stored but the email failed.
        """
        email = normalize_email(email)

        try:
            user = self._portal_db.get_user_by_email(email)
        except psycopg2.Error as e:
            logger.error(f"Client user lookup failed: {e}")
            raise CodeCreationError("Could not look up client user") from e

        if user is None:
            logger.info("Login code requested for unknown email")
            return None

        now = self._clock()
        try:
            login_code = self._portal_db.create_login_code(
                user_id=user.id,
                code=self._code_generator(),
                created_at=now,
                expires_at=now + timedelta(minutes=self._config.code_expiry_minutes),
            )
        except psycopg2.Error as e:
            logger.error(f"Login code insert failed for user {user.id}: {e}")
            raise CodeCreationError("Could not create login code") from e

        try:
            self._notifier.send_code(user, login_code.otp_code)
        except EmailGatewayError as e:
            logger.error(f"Login code {login_code.id} stored but email failed: {e}")
            raise CodeDeliveryError("Could not send login code email") from e

        logger.info(f"Login code {login_code.id} issued for user {user.id}")
        return IssuedCode(user=user, login_code=login_code)
