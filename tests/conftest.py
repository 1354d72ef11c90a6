"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock for token lifetimes
- A recording email sender that captures links
- Token and authentication services over in-memory adapters
- A PostgreSQL pool for integration and adversarial tests
"""

import re
from collections.abc import Generator
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from src.adapters.repository.memory import InMemoryAccountRepository, InMemoryPendingRegistrationStore
from src.adapters.repository.postgres import run_migrations
from src.config.settings import get_settings
from src.domain.authentication import AuthenticationService
from src.domain.tokens import TokenService

TEST_SECRET = "test-signing-secret-that-is-at-least-32-bytes-long"
TEST_BCRYPT_COST = 4  # bcrypt minimum; keeps the suite fast

_LINK_PATTERN = re.compile(r"https?://\S+")


class FakeClock:
    """Wall clock for TokenService that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeMonotonic:
    """Monotonic clock for the in-memory pending store."""

    def __init__(self) -> None:
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


@dataclass
class SentEmail:
    to: str
    subject: str
    body: str

    @property
    def link(self) -> str:
        match = _LINK_PATTERN.search(self.body)
        assert match, f"no link in email body: {self.body!r}"
        return match.group(0)

    def query_param(self, name: str) -> str:
        return parse_qs(urlparse(self.link).query)[name][0]


@dataclass
class RecordingEmailSender:
    """EmailSender that keeps every message in memory."""

    sent: list[SentEmail] = field(default_factory=list)

    def send(self, to: str, subject: str, body: str) -> None:
        self.sent.append(SentEmail(to, subject, body))

    @property
    def last(self) -> SentEmail:
        assert self.sent, "no email was sent"
        return self.sent[-1]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def monotonic() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture
def token_service(clock: FakeClock) -> TokenService:
    return TokenService(
        secret_key=TEST_SECRET,
        issuer="gameshelf-test",
        audience="gameshelf-test-users",
        session_expiry_minutes=60,
        email_token_expiry_minutes=15,
        password_reset_expiry_minutes=1440,
        clock_skew_seconds=300,
        clock=clock,
    )


@pytest.fixture
def accounts() -> InMemoryAccountRepository:
    return InMemoryAccountRepository()


@pytest.fixture
def pending_store(monotonic: FakeMonotonic) -> InMemoryPendingRegistrationStore:
    return InMemoryPendingRegistrationStore(clock=monotonic)


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def auth_service(
    accounts: InMemoryAccountRepository,
    pending_store: InMemoryPendingRegistrationStore,
    token_service: TokenService,
    email_sender: RecordingEmailSender,
) -> AuthenticationService:
    """Authentication service wired to in-memory adapters."""
    return AuthenticationService(
        accounts=accounts,
        pending_store=pending_store,
        tokens=token_service,
        email_sender=email_sender,
        confirm_email_url="http://testserver/v1/confirm-email",
        reset_password_url="http://testserver/v1/reset-password",
        pending_ttl_seconds=900,
        bcrypt_cost=TEST_BCRYPT_COST,
    )


@pytest.fixture(scope="session")
def pool() -> Generator[ConnectionPool, None, None]:
    """
    Connection pool against DATABASE_URL with migrations applied.

    Tests that need it are skipped when PostgreSQL is not reachable.
    """
    settings = get_settings()
    pool = ConnectionPool(conninfo=settings.database_url, min_size=1, max_size=10, open=False)
    try:
        pool.open(wait=True, timeout=3)
    except PoolTimeout:
        pool.close()
        pytest.skip(f"PostgreSQL not reachable at {settings.database_url}")
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def clean_database(pool: ConnectionPool) -> Generator[ConnectionPool, None, None]:
    """Empty both tables before a test."""
    with pool.connection() as conn:
        conn.execute("DELETE FROM pending_registrations")
        conn.execute("DELETE FROM accounts")
        conn.commit()
    yield pool
