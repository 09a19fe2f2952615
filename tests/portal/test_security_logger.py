"""Tests for SecurityLogger - audit trail for login events."""

import json
from datetime import timedelta
from unittest.mock import Mock
from uuid import uuid4

import pytest
from psycopg2.extras import Json

from clients.postgres_client import PostgresClient
from portal.security_logger import SecurityEvent, SecurityLogger
from utils.timezone import now_utc


@pytest.fixture
def postgres():
    return Mock(spec=PostgresClient)


@pytest.fixture
def security_logger(postgres):
    return SecurityLogger(postgres)


class TestLog:
    """Event insertion."""

    def test_inserts_event(self, security_logger, postgres):
        user_id = uuid4()

        security_logger.log(
            SecurityEvent.CODE_VERIFICATION_FAILED,
            email="anna@bolag.se",
            user_id=user_id,
            ip_address="10.0.0.1",
            user_agent="pytest",
            details={"reason": "code_expired"},
        )

        query, params = postgres.execute_returning.call_args.args
        assert "INSERT INTO security_events" in query
        assert params[:5] == ("code_verification_failed", "anna@bolag.se", str(user_id), "10.0.0.1", "pytest")
        assert isinstance(params[5], Json)
        assert params[5].adapted == {"reason": "code_expired"}

    def test_optional_fields_are_null(self, security_logger, postgres):
        security_logger.log(SecurityEvent.CODE_REQUEST_UNKNOWN_EMAIL, email="x@y.se")

        _, params = postgres.execute_returning.call_args.args
        assert params[2:6] == (None, None, None, None)

    def test_also_writes_application_log(self, security_logger, caplog):
        with caplog.at_level("INFO", logger="portal.security_logger"):
            security_logger.log(SecurityEvent.CODE_SENT, details={"login_code_id": "abc"})

        assert "code_sent" in caplog.text
        assert "abc" in caplog.text


class TestGetRecentEvents:
    """Filtered queries."""

    def test_no_filters(self, security_logger, postgres):
        postgres.execute.return_value = []

        security_logger.get_recent_events()

        query, params = postgres.execute.call_args.args
        assert "WHERE 1=1" in query
        assert params == (100,)

    def test_all_filters(self, security_logger, postgres):
        user_id = uuid4()

        security_logger.get_recent_events(
            email="Anna@Bolag.se",
            user_id=user_id,
            event_type=SecurityEvent.RATE_LIMITED,
            limit=5,
        )

        query, params = postgres.execute.call_args.args
        assert "email = %s AND user_id = %s AND event_type = %s" in query
        assert params == ("anna@bolag.se", str(user_id), "rate_limited", 5)


class TestRotateLogs:
    """Archive and delete old events."""

    def test_nothing_to_rotate(self, security_logger, postgres, tmp_path):
        postgres.execute.return_value = []

        assert security_logger.rotate_logs(30, tmp_path / "archive.jsonl") == 0
        postgres.execute_returning.assert_not_called()
        assert not (tmp_path / "archive.jsonl").exists()

    def test_archives_then_deletes(self, security_logger, postgres, tmp_path):
        created = now_utc() - timedelta(days=40)
        event_id = uuid4()
        postgres.execute.return_value = [
            {
                "id": event_id,
                "event_type": "code_sent",
                "email": "anna@bolag.se",
                "user_id": None,
                "ip_address": "10.0.0.1",
                "user_agent": None,
                "details": {"login_code_id": "abc"},
                "created_at": created,
            }
        ]
        archive = tmp_path / "archive.jsonl"

        assert security_logger.rotate_logs(30, archive) == 1

        record = json.loads(archive.read_text().strip())
        assert record["id"] == str(event_id)
        assert record["details"] == {"login_code_id": "abc"}
        assert record["created_at"] == created.isoformat()

        query, params = postgres.execute_returning.call_args.args
        assert query.startswith("DELETE FROM security_events")
        assert "id = ANY(%s)" in query
        assert params == ([event_id],)
