"""Shared test fixtures for the client portal login test suite."""

import threading
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import Mock
from uuid import UUID, uuid4

import hvac.exceptions
import psycopg2
import pytest
import requests
from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

# Reset vault client singleton to pick up env vars
import clients.vault_client as vault_module
vault_module._vault_client_instance = None
vault_module._secret_cache.clear()

from clients.email_client import EmailGatewayClient
from clients.valkey_client import ValkeyClient
from portal.config import PortalConfig
from portal.database import PortalDatabase
from portal.issuer import CodeIssuer
from portal.notifier import LoginCodeNotifier
from portal.rate_limiter import RateLimiter
from portal.security_logger import SecurityLogger
from portal.service import PortalAuthService
from portal.types import ClientUser, Company, LoginCode
from portal.verifier import CodeVerifier
from utils.request_context import clear_request_id
from utils.timezone import now_utc


# =============================================================================
# TEST DATA CONSTANTS
# =============================================================================

COMPANY_ID = UUID("00000000-0000-0000-0000-0000000000c1")
COMPANY_NAME = "Bolaget AB"

ANNA_ID = UUID("00000000-0000-0000-0000-000000000001")
ANNA_EMAIL = "anna@bolag.se"
ANNA_NAME = "Anna"


# =============================================================================
# IN-MEMORY COLLABORATORS
# =============================================================================


class FrozenClock:
    """Controllable clock for expiry tests."""

    def __init__(self, start: datetime | None = None):
        self.now = start or now_utc()

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakePortalDatabase(PortalDatabase):
    """In-memory stand-in for the portal tables.

    `consume_login_code` selects and flips a row under one lock, mirroring the
    single conditional UPDATE of the real implementation.
    """

    def __init__(self):
        self.users: dict[UUID, ClientUser] = {}
        self.companies: dict[UUID, Company] = {}
        self.codes: list[LoginCode] = []
        self.fail_insert = False
        self.fail_company_lookup = False
        self.consume_barrier: threading.Barrier | None = None
        self._lock = threading.Lock()

    # --- fixture helpers ---

    def add_company(self, name: str, company_id: UUID | None = None) -> Company:
        company = Company(id=company_id or uuid4(), name=name)
        self.companies[company.id] = company
        return company

    def add_user(
        self,
        email: str,
        name: str,
        company_id: UUID,
        user_id: UUID | None = None,
    ) -> ClientUser:
        user = ClientUser(id=user_id or uuid4(), email=email, name=name, company_id=company_id)
        self.users[user.id] = user
        return user

    def add_code(
        self,
        user_id: UUID,
        code: str,
        created_at: datetime,
        expires_at: datetime,
        verified: bool = False,
    ) -> LoginCode:
        login_code = LoginCode(
            id=uuid4(),
            client_user_id=user_id,
            otp_code=code,
            created_at=created_at,
            expires_at=expires_at,
            verified=verified,
        )
        self.codes.append(login_code)
        return login_code

    def codes_for(self, user_id: UUID) -> list[LoginCode]:
        return [c for c in self.codes if c.client_user_id == user_id]

    # --- PortalDatabase interface ---

    def get_user_by_email(self, email: str) -> ClientUser | None:
        for user in self.users.values():
            if user.email.lower() == email.lower():
                return user
        return None

    def create_login_code(self, user_id, code, created_at, expires_at) -> LoginCode:
        if self.fail_insert:
            raise psycopg2.OperationalError("connection refused")
        return self.add_code(user_id, code, created_at, expires_at)

    def consume_login_code(self, user_id, code, now) -> LoginCode | None:
        if self.consume_barrier is not None:
            self.consume_barrier.wait(timeout=5)
        with self._lock:
            candidates = [
                c for c in self.codes
                if c.client_user_id == user_id
                and c.otp_code == code
                and not c.verified
                and c.expires_at > now
            ]
            if not candidates:
                return None
            newest = max(candidates, key=lambda c: c.created_at)
            newest.verified = True
            return newest.model_copy()

    def find_latest_login_code(self, user_id, code) -> LoginCode | None:
        matches = [c for c in self.codes if c.client_user_id == user_id and c.otp_code == code]
        if not matches:
            return None
        return max(matches, key=lambda c: c.created_at).model_copy()

    def update_last_login(self, user_id, at=None) -> None:
        user = self.users[user_id]
        self.users[user_id] = user.model_copy(update={"last_login_at": at or now_utc()})

    def get_company(self, company_id) -> Company | None:
        if self.fail_company_lookup:
            raise psycopg2.OperationalError("connection refused")
        return self.companies.get(company_id)


class FakeValkey(ValkeyClient):
    """Dict-backed counters with TTL bookkeeping (no real expiry)."""

    def __init__(self):
        self.values: dict[str, int] = {}
        self.ttls: dict[str, int] = {}

    def ping(self) -> bool:
        return True

    def get(self, key: str) -> str | None:
        value = self.values.get(key)
        return None if value is None else str(value)

    def delete(self, key: str) -> bool:
        self.ttls.pop(key, None)
        return self.values.pop(key, None) is not None

    def ttl(self, key: str) -> int:
        if key not in self.values:
            return -2
        return self.ttls.get(key, -1)

    def hit(self, key: str, window_seconds: int) -> int:
        self.values[key] = self.values.get(key, 0) + 1
        self.ttls[key] = window_seconds
        return self.values[key]

    def close(self) -> None:
        pass


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

SCHEMA_PATH = Path(__file__).parent.parent / "schema.sql"


@pytest.fixture(scope="session")
def db():
    """Session-scoped PostgresClient with the portal schema loaded.

    Skips when no database is configured in Vault or it cannot be reached.
    """
    from clients.postgres_client import PostgresClient
    from clients.vault_client import VaultError, get_database_url

    try:
        database_url = get_database_url()
    except (ValueError, KeyError, VaultError, hvac.exceptions.VaultError, requests.RequestException) as e:
        pytest.skip(f"No test database configured: {e}")

    try:
        client = PostgresClient(database_url)
        client.execute(SCHEMA_PATH.read_text())
    except psycopg2.OperationalError as e:
        pytest.skip(f"Test database unreachable: {e}")

    yield client
    client.close()


@pytest.fixture
def clean_db(db):
    """Empty portal tables before each database test."""
    db.execute("TRUNCATE client_sessions, client_users, companies, security_events CASCADE")
    yield db


# =============================================================================
# CONTEXT FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_request_context():
    """Ensure clean request context before and after each test."""
    clear_request_id()
    yield
    clear_request_id()


# =============================================================================
# COLLABORATOR FIXTURES
# =============================================================================


@pytest.fixture
def config():
    """Portal config with low throttle limits for faster tests."""
    return PortalConfig(
        code_expiry_minutes=15,
        request_attempts_per_email=3,
        request_attempts_per_ip=10,
        verify_attempts_per_email=5,
        rate_limit_window_minutes=5,
    )


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def portal_db():
    return FakePortalDatabase()


@pytest.fixture
def company(portal_db):
    return portal_db.add_company(COMPANY_NAME, company_id=COMPANY_ID)


@pytest.fixture
def anna(portal_db, company):
    """The happy-path client user."""
    return portal_db.add_user(ANNA_EMAIL, ANNA_NAME, company.id, user_id=ANNA_ID)


@pytest.fixture
def valkey():
    return FakeValkey()


@pytest.fixture
def mock_email_client():
    """Mock email client - no actual emails sent in tests."""
    mock = Mock(spec=EmailGatewayClient)
    mock.send_email.return_value = None
    return mock


@pytest.fixture
def mock_security_logger():
    return Mock(spec=SecurityLogger)


@pytest.fixture
def rate_limiter(valkey, config):
    return RateLimiter(valkey, config)


@pytest.fixture
def issuer(config, portal_db, mock_email_client, clock):
    return CodeIssuer(config, portal_db, LoginCodeNotifier(mock_email_client, config), clock=clock)


@pytest.fixture
def verifier(config, portal_db, clock):
    return CodeVerifier(config, portal_db, clock=clock)


@pytest.fixture
def portal_service(config, issuer, verifier, rate_limiter, mock_security_logger):
    """PortalAuthService over in-memory collaborators, mocked email and audit log."""
    return PortalAuthService(
        config=config,
        issuer=issuer,
        verifier=verifier,
        rate_limiter=rate_limiter,
        security_logger=mock_security_logger,
    )
