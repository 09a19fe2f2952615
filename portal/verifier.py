"""Login code verification."""

import logging
from datetime import datetime
from typing import Callable

import psycopg2

from portal.config import PortalConfig
from portal.database import PortalDatabase
from portal.exceptions import InvalidCodeError
from portal.issuer import normalize_email
from portal.outcomes import VerificationOutcome, classify_failure
from portal.session import build_session
from portal.types import ClientSession, ClientUser, Company
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class CodeVerifier:
    """Authenticates an (email, code) pair and mints a client session.

    Any valid, unconsumed code of the user is accepted, not only the newest;
    among several matching rows the most recently created one is consumed.
    """

    def __init__(
        self,
        config: PortalConfig,
        portal_db: PortalDatabase,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._config = config
        self._portal_db = portal_db
        self._clock = clock

    def verify(self, email: str, code: str) -> ClientSession:
        """Consume a matching login code and return the session payload.

        Raises:
            InvalidCodeError: For every failure, with the internal outcome attached.
            psycopg2.Error: If the database is unreachable during lookup or consume.
        """
        user = self._portal_db.get_user_by_email(normalize_email(email))
        if user is None:
            logger.info("Verification for unknown email")
            raise InvalidCodeError(VerificationOutcome.USER_NOT_FOUND)

        now = self._clock()
        login_code = self._portal_db.consume_login_code(user.id, code, now)

        if login_code is None:
            outcome = classify_failure(self._portal_db.find_latest_login_code(user.id, code), now)
            logger.info(f"Verification failed for user {user.id}: {outcome.value}")
            raise InvalidCodeError(outcome, user_id=user.id)

        self._record_login(user, now)
        session = build_session(
            login_code,
            user,
            self._find_company(user),
            self._config.unknown_company_name,
        )
        logger.info(f"Login code {login_code.id} consumed by user {user.id}")
        return session

    def _record_login(self, user: ClientUser, now: datetime) -> None:
        # The code is already consumed; failing here would strand the user.
        try:
            self._portal_db.update_last_login(user.id, now)
        except psycopg2.Error:
            logger.exception(f"Could not update last_login_at for user {user.id}")

    def _find_company(self, user: ClientUser) -> Company | None:
        try:
            company = self._portal_db.get_company(user.company_id)
        except psycopg2.Error:
            logger.exception(f"Company lookup failed for {user.company_id}")
            return None
        if company is None:
            logger.warning(f"Company {user.company_id} not found for user {user.id}")
        return company
