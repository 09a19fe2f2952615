"""Security event logging for the portal login audit trail.

Rows in security_events are never updated. Internal verification outcomes
that the wire response hides are recorded in `details`. Old rows are moved
out to JSON lines files by `rotate_logs`.
"""

import json
import logging
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Any
from uuid import UUID

from psycopg2.extras import Json

from clients.postgres_client import PostgresClient
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class SecurityEvent(Enum):
    """Portal login security event types."""

    CODE_SENT = "code_sent"
    CODE_DELIVERY_FAILED = "code_delivery_failed"
    CODE_REQUEST_UNKNOWN_EMAIL = "code_request_unknown_email"
    CODE_VERIFIED = "code_verified"
    CODE_VERIFICATION_FAILED = "code_verification_failed"
    RATE_LIMITED = "rate_limited"


_EVENT_COLUMNS = "id, event_type, email, user_id, ip_address, user_agent, details, created_at"


def _archive_record(row: dict[str, Any]) -> dict[str, Any]:
    """JSON-safe copy of an event row."""
    return {
        "id": str(row["id"]),
        "event_type": row["event_type"],
        "email": row["email"],
        "user_id": str(row["user_id"]) if row["user_id"] else None,
        "ip_address": str(row["ip_address"]) if row["ip_address"] else None,
        "user_agent": row["user_agent"],
        "details": row["details"],
        "created_at": row["created_at"].isoformat(),
    }


class SecurityLogger:
    """Writes and reads the login audit trail."""

    def __init__(self, postgres: PostgresClient):
        self._db = postgres

    def log(
        self,
        event: SecurityEvent,
        email: str | None = None,
        user_id: UUID | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Record an event in security_events and the application log.

        Raises:
            psycopg2.Error: If the insert fails.
        """
        logger.info(
            f"security event {event.value}"
            + (f" user_id={user_id}" if user_id else "")
            + (f" details={details}" if details else "")
        )
        self._db.execute_returning(
            """INSERT INTO security_events
               (event_type, email, user_id, ip_address, user_agent, details, created_at)
               VALUES (%s, %s, %s, %s, %s, %s, %s)
               RETURNING id""",
            (
                event.value,
                email,
                str(user_id) if user_id else None,
                ip_address,
                user_agent,
                Json(details) if details else None,
                now_utc(),
            ),
        )

    def get_recent_events(
        self,
        email: str | None = None,
        user_id: UUID | None = None,
        event_type: SecurityEvent | None = None,
        limit: int = 100,
    ) -> list[dict]:
        """Newest events first, narrowed by any filters given."""
        filters = {
            "email": email.lower() if email else None,
            "user_id": str(user_id) if user_id else None,
            "event_type": event_type.value if event_type else None,
        }
        active = {column: value for column, value in filters.items() if value is not None}
        where = " AND ".join(f"{column} = %s" for column in active) or "1=1"

        return self._db.execute(
            f"""SELECT {_EVENT_COLUMNS}
                FROM security_events
                WHERE {where}
                ORDER BY created_at DESC
                LIMIT %s""",
            (*active.values(), limit),
        )

    def rotate_logs(self, older_than_days: int, output_path: Path) -> int:
        """Append events older than the cutoff to `output_path`, then delete them.

        Only the rows that were written out are deleted.

        Returns:
            Number of events archived
        """
        cutoff = now_utc() - timedelta(days=older_than_days)
        rows = self._db.execute(
            f"""SELECT {_EVENT_COLUMNS}
                FROM security_events
                WHERE created_at < %s
                ORDER BY created_at ASC""",
            (cutoff,),
        )
        if not rows:
            return 0

        with Path(output_path).open("a", encoding="utf-8") as archive:
            archive.writelines(json.dumps(_archive_record(row)) + "\n" for row in rows)

        self._db.execute_returning(
            "DELETE FROM security_events WHERE id = ANY(%s) RETURNING id",
            ([row["id"] for row in rows],),
        )
        logger.info(f"Archived {len(rows)} security events older than {cutoff:%Y-%m-%d} to {output_path}")
        return len(rows)
