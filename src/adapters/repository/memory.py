"""
In-memory adapters - Implement AccountRepository and PendingRegistrationStore.

Process-local storage for development and tests. Everything is lost on
restart, and nothing is shared between service instances; use the
PostgreSQL adapters for deployments.

Both classes guard their state with a single lock, so every operation is
linearizable per key: a get() racing a remove() or an expiry observes
either the whole entry or nothing.
"""

import threading
import time
import uuid
from collections.abc import Callable
from dataclasses import replace

from src.domain.exceptions import DuplicateAccount
from src.domain.passwords import verify_password
from src.domain.ports import Account, PendingRegistration


class InMemoryPendingRegistrationStore:
    """
    Implements PendingRegistrationStore protocol with a TTL-aware dict.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Expiry uses a monotonic clock so wall-clock jumps cannot revive or
    kill entries early.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[PendingRegistration, float]] = {}

    def put(self, token: str, registration: PendingRegistration, ttl_seconds: int) -> None:
        expires_at = self._clock() + ttl_seconds
        with self._lock:
            self._entries[token] = (registration, expires_at)

    def get(self, token: str) -> PendingRegistration | None:
        with self._lock:
            entry = self._entries.get(token)
            if entry is None:
                return None
            registration, expires_at = entry
            if self._clock() >= expires_at:
                # Expired entries are unreadable; drop them on sight
                del self._entries[token]
                return None
            return registration

    def remove(self, token: str) -> None:
        with self._lock:
            self._entries.pop(token, None)

    def purge_expired(self) -> int:
        """Drop all expired entries. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [token for token, (_, exp) in self._entries.items() if now >= exp]
            for token in expired:
                del self._entries[token]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class InMemoryAccountRepository:
    """
    Implements AccountRepository protocol with dicts keyed by id and email.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Email uniqueness is checked and claimed under the same lock, the
    in-memory equivalent of a UNIQUE constraint.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_id: dict[str, Account] = {}
        self._id_by_email: dict[str, str] = {}

    def find_by_email(self, email: str) -> Account | None:
        with self._lock:
            account_id = self._id_by_email.get(email)
            return self._by_id.get(account_id) if account_id else None

    def create(self, email: str, credential_hash: str, confirmed: bool = False) -> Account:
        with self._lock:
            if email in self._id_by_email:
                raise DuplicateAccount(email)
            account = Account(
                id=str(uuid.uuid4()),
                email=email,
                credential_hash=credential_hash,
                email_confirmed=confirmed,
            )
            self._by_id[account.id] = account
            self._id_by_email[email] = account.id
            return account

    def set_confirmed(self, account_id: str) -> None:
        with self._lock:
            account = self._by_id.get(account_id)
            if account is not None:
                self._by_id[account_id] = replace(account, email_confirmed=True)

    def update_credential(self, account_id: str, credential_hash: str) -> None:
        with self._lock:
            account = self._by_id.get(account_id)
            if account is not None:
                self._by_id[account_id] = replace(account, credential_hash=credential_hash)

    def verify_credential(self, account: Account, password: str) -> bool:
        return verify_password(password, account.credential_hash)

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_id)
