"""
PostgreSQL repository adapters - Implement AccountRepository and PendingRegistrationStore.

This module provides the PostgreSQL implementations of the domain's
storage ports using psycopg3 with raw SQL.

Integrity Design
----------------
1. **Email uniqueness**: accounts.email carries a UNIQUE constraint.
   create() uses INSERT ... ON CONFLICT DO NOTHING RETURNING, so the
   database decides the winner of concurrent confirmations and the loser
   gets DuplicateAccount. Pre-checks in the domain are a fast path only.

2. **Pending expiry**: pending_registrations.expires_at is computed and
   compared with database time (NOW()), so expiry is consistent across
   service instances regardless of their clocks. Expired rows are never
   returned by get() and are swept lazily on put().

3. **Constant-time credential check**: verify_credential() delegates to
   bcrypt.checkpw(), which is constant-time.
"""

import logging
import uuid
from pathlib import Path

from psycopg_pool import ConnectionPool

from src.domain.exceptions import DuplicateAccount
from src.domain.passwords import verify_password
from src.domain.ports import Account, PendingRegistration

logger = logging.getLogger(__name__)


def _row_to_account(row: tuple) -> Account:
    return Account(
        id=str(row[0]),
        email=row[1],
        credential_hash=row[2],
        email_confirmed=row[3],
    )


class PostgresAccountRepository:
    """
    Implements AccountRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def find_by_email(self, email: str) -> Account | None:
        sql = """
            SELECT id, email, credential_hash, email_confirmed
            FROM accounts
            WHERE email = %s
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (email,))
            row = cursor.fetchone()
        return _row_to_account(row) if row is not None else None

    def create(self, email: str, credential_hash: str, confirmed: bool = False) -> Account:
        """
        Insert an account. The confirmed flag is written by the same
        statement, so a confirmed account is never visible unconfirmed.

        The UNIQUE constraint on email is the source of truth: when the
        insert conflicts, RETURNING yields no row.

        Raises:
            DuplicateAccount: If the email is already taken
        """
        sql = """
            INSERT INTO accounts (id, email, credential_hash, email_confirmed, created_at, updated_at)
            VALUES (%s, %s, %s, %s, NOW(), NOW())
            ON CONFLICT (email) DO NOTHING
            RETURNING id, email, credential_hash, email_confirmed
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (uuid.uuid4(), email, credential_hash, confirmed))
            row = cursor.fetchone()
            conn.commit()

        if row is None:
            raise DuplicateAccount(email)
        return _row_to_account(row)

    def set_confirmed(self, account_id: str) -> None:
        sql = """
            UPDATE accounts
            SET email_confirmed = TRUE, updated_at = NOW()
            WHERE id = %s::uuid
        """
        with self._pool.connection() as conn:
            conn.execute(sql, (account_id,))
            conn.commit()

    def update_credential(self, account_id: str, credential_hash: str) -> None:
        sql = """
            UPDATE accounts
            SET credential_hash = %s, updated_at = NOW()
            WHERE id = %s::uuid
        """
        with self._pool.connection() as conn:
            conn.execute(sql, (credential_hash, account_id))
            conn.commit()

    def verify_credential(self, account: Account, password: str) -> bool:
        return verify_password(password, account.credential_hash)


class PostgresPendingRegistrationStore:
    """
    Implements PendingRegistrationStore protocol via psycopg3.

    Pending registrations survive restarts and are visible to every
    service instance sharing the database.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def put(self, token: str, registration: PendingRegistration, ttl_seconds: int) -> None:
        sql = """
            INSERT INTO pending_registrations (token, email, password_hash, created_at, expires_at)
            VALUES (%s, %s, %s, %s, NOW() + %s * INTERVAL '1 second')
            ON CONFLICT (token) DO UPDATE
            SET email = EXCLUDED.email,
                password_hash = EXCLUDED.password_hash,
                created_at = EXCLUDED.created_at,
                expires_at = EXCLUDED.expires_at
        """
        with self._pool.connection() as conn:
            conn.execute(
                sql,
                (
                    token,
                    registration.email,
                    registration.password_hash,
                    registration.created_at,
                    ttl_seconds,
                ),
            )
            conn.commit()

        self.purge_expired()

    def get(self, token: str) -> PendingRegistration | None:
        sql = """
            SELECT token, email, password_hash, created_at
            FROM pending_registrations
            WHERE token = %s AND expires_at > NOW()
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (token,))
            row = cursor.fetchone()

        if row is None:
            return None
        return PendingRegistration(
            token=row[0], email=row[1], password_hash=row[2], created_at=row[3]
        )

    def remove(self, token: str) -> None:
        with self._pool.connection() as conn:
            conn.execute("DELETE FROM pending_registrations WHERE token = %s", (token,))
            conn.commit()

    def purge_expired(self) -> int:
        """Delete expired rows. Returns how many were removed."""
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("DELETE FROM pending_registrations WHERE expires_at <= NOW()")
            conn.commit()
            removed = cursor.rowcount

        if removed:
            logger.debug("Purged %d expired pending registration(s)", removed)
        return removed


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info("Running %d migration(s)", len(sql_files))

    for sql_file in sql_files:
        logger.info("Executing migration: %s", sql_file.name)
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info("Migration complete: %s", sql_file.name)
        except Exception as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
