"""Database operations for client portal login.

Tables: client_users, client_sessions (login codes), companies.
Accessed with the service role before any client identity is established.
"""

from datetime import datetime
from typing import Any, Dict
from uuid import UUID

from clients.postgres_client import PostgresClient
from portal.types import ClientUser, Company, LoginCode
from utils.timezone import now_utc

_LOGIN_CODE_COLUMNS = "id, client_user_id, otp_code, created_at, expires_at, verified"


def _uuid(value: Any) -> UUID:
    return UUID(value) if isinstance(value, str) else value


def _login_code_from_row(row: Dict[str, Any]) -> LoginCode:
    return LoginCode(
        id=_uuid(row["id"]),
        client_user_id=_uuid(row["client_user_id"]),
        otp_code=row["otp_code"],
        created_at=row["created_at"],
        expires_at=row["expires_at"],
        verified=row["verified"],
    )


class PortalDatabase:
    """Database operations for client portal login."""

    def __init__(self, postgres: PostgresClient):
        self._db = postgres

    def get_user_by_email(self, email: str) -> ClientUser | None:
        """Find client user by email (case-insensitive)."""
        row = self._db.execute_single(
            """SELECT id, email, name, company_id, last_login_at
               FROM client_users WHERE lower(email) = lower(%s)""",
            (email,),
        )
        if row is None:
            return None
        return ClientUser(
            id=_uuid(row["id"]),
            email=row["email"],
            name=row["name"],
            company_id=_uuid(row["company_id"]),
            last_login_at=row["last_login_at"],
        )

    def create_login_code(
        self,
        user_id: UUID,
        code: str,
        created_at: datetime,
        expires_at: datetime,
    ) -> LoginCode:
        """Insert a fresh, unconsumed login code. Earlier codes stay valid."""
        rows = self._db.execute_returning(
            f"""INSERT INTO client_sessions (client_user_id, otp_code, created_at, expires_at, verified)
                VALUES (%s, %s, %s, %s, false)
                RETURNING {_LOGIN_CODE_COLUMNS}""",
            (user_id, code, created_at, expires_at),
        )
        return _login_code_from_row(rows[0])

    def consume_login_code(self, user_id: UUID, code: str, now: datetime) -> LoginCode | None:
        """Atomically mark the newest matching valid code as consumed.

        One statement selects and flips the row. A row locked by a concurrent
        verification is skipped, and the outer predicate re-checks
        `verified = false`, so a code is consumed at most once.

        Returns:
            The consumed code, or None if nothing matched.
        """
        rows = self._db.execute_returning(
            f"""UPDATE client_sessions
                SET verified = true, verified_at = %s
                WHERE id = (
                    SELECT id FROM client_sessions
                    WHERE client_user_id = %s
                      AND otp_code = %s
                      AND verified = false
                      AND expires_at > %s
                    ORDER BY created_at DESC
                    LIMIT 1
                    FOR UPDATE SKIP LOCKED
                )
                AND verified = false
                AND expires_at > %s
                RETURNING {_LOGIN_CODE_COLUMNS}""",
            (now, user_id, code, now, now),
        )
        if not rows:
            return None
        return _login_code_from_row(rows[0])

    def find_latest_login_code(self, user_id: UUID, code: str) -> LoginCode | None:
        """Newest row with this code in any state. Used to explain failures."""
        row = self._db.execute_single(
            f"""SELECT {_LOGIN_CODE_COLUMNS}
                FROM client_sessions
                WHERE client_user_id = %s AND otp_code = %s
                ORDER BY created_at DESC
                LIMIT 1""",
            (user_id, code),
        )
        if row is None:
            return None
        return _login_code_from_row(row)

    def update_last_login(self, user_id: UUID, at: datetime | None = None) -> None:
        """Update last_login_at (defaults to now)."""
        self._db.execute_returning(
            "UPDATE client_users SET last_login_at = %s WHERE id = %s RETURNING id",
            (at or now_utc(), user_id),
        )

    def get_company(self, company_id: UUID) -> Company | None:
        """Find company by ID."""
        row = self._db.execute_single(
            "SELECT id, name FROM companies WHERE id = %s",
            (company_id,),
        )
        if row is None:
            return None
        return Company(id=_uuid(row["id"]), name=row["name"])
