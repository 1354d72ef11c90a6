"""
Unit tests for the in-memory storage adapters.

Tests verify TTL enforcement, idempotent removal, email uniqueness
and thread safety.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import bcrypt
import pytest

from src.adapters.repository.memory import InMemoryAccountRepository, InMemoryPendingRegistrationStore
from src.domain.exceptions import DuplicateAccount
from src.domain.ports import PendingRegistration


def pending(token: str, email: str = "player@example.com") -> PendingRegistration:
    return PendingRegistration(
        token=token,
        email=email,
        password_hash="$2b$04$hash",
        created_at=datetime.now(timezone.utc),
    )


class TestInMemoryPendingRegistrationStore:
    """Tests for the TTL-aware pending store."""

    def test_put_then_get(self, pending_store: InMemoryPendingRegistrationStore) -> None:
        entry = pending("tok")
        pending_store.put("tok", entry, 900)
        assert pending_store.get("tok") == entry

    def test_get_is_non_mutating(self, pending_store: InMemoryPendingRegistrationStore) -> None:
        pending_store.put("tok", pending("tok"), 900)
        pending_store.get("tok")
        assert pending_store.get("tok") is not None

    def test_missing_token(self, pending_store: InMemoryPendingRegistrationStore) -> None:
        assert pending_store.get("nope") is None

    def test_visible_until_ttl(self, pending_store: InMemoryPendingRegistrationStore, monotonic) -> None:
        pending_store.put("tok", pending("tok"), 900)
        monotonic.advance(899.9)
        assert pending_store.get("tok") is not None

    def test_unreadable_after_ttl(self, pending_store: InMemoryPendingRegistrationStore, monotonic) -> None:
        pending_store.put("tok", pending("tok"), 900)
        monotonic.advance(900)
        assert pending_store.get("tok") is None
        assert len(pending_store) == 0

    def test_remove_is_idempotent(self, pending_store: InMemoryPendingRegistrationStore) -> None:
        pending_store.put("tok", pending("tok"), 900)
        pending_store.remove("tok")
        pending_store.remove("tok")
        pending_store.remove("never-existed")
        assert pending_store.get("tok") is None

    def test_purge_expired(self, pending_store: InMemoryPendingRegistrationStore, monotonic) -> None:
        pending_store.put("old", pending("old"), 60)
        pending_store.put("new", pending("new"), 900)
        monotonic.advance(61)

        assert pending_store.purge_expired() == 1
        assert pending_store.get("new") is not None
        assert len(pending_store) == 1

    def test_concurrent_get_and_remove_never_tear(self) -> None:
        """Readers see the whole entry or nothing while it is being removed."""
        store = InMemoryPendingRegistrationStore()
        entry = pending("tok")
        store.put("tok", entry, 900)
        observed: list[PendingRegistration | None] = []
        lock = threading.Lock()

        def reader() -> None:
            for _ in range(200):
                value = store.get("tok")
                with lock:
                    observed.append(value)

        with ThreadPoolExecutor(max_workers=5) as executor:
            futures = [executor.submit(reader) for _ in range(4)]
            futures.append(executor.submit(store.remove, "tok"))
            for f in futures:
                f.result()

        assert all(value is None or value == entry for value in observed)
        assert store.get("tok") is None


class TestInMemoryAccountRepository:
    """Tests for the in-memory account repository."""

    def test_create_and_find(self, accounts: InMemoryAccountRepository) -> None:
        created = accounts.create("player@example.com", "$2b$04$hash")
        found = accounts.find_by_email("player@example.com")

        assert found == created
        assert found.email_confirmed is False

    def test_find_missing(self, accounts: InMemoryAccountRepository) -> None:
        assert accounts.find_by_email("ghost@example.com") is None

    def test_duplicate_email_rejected(self, accounts: InMemoryAccountRepository) -> None:
        accounts.create("player@example.com", "$2b$04$hash")
        with pytest.raises(DuplicateAccount):
            accounts.create("player@example.com", "$2b$04$other")

    def test_ids_are_unique(self, accounts: InMemoryAccountRepository) -> None:
        a = accounts.create("a@example.com", "h")
        b = accounts.create("b@example.com", "h")
        assert a.id != b.id

    def test_create_confirmed_is_confirmed_on_first_read(
        self, accounts: InMemoryAccountRepository
    ) -> None:
        created = accounts.create("player@example.com", "$2b$04$hash", confirmed=True)

        assert created.email_confirmed is True
        assert accounts.find_by_email("player@example.com").email_confirmed is True

    def test_set_confirmed(self, accounts: InMemoryAccountRepository) -> None:
        account = accounts.create("player@example.com", "$2b$04$hash")
        accounts.set_confirmed(account.id)
        assert accounts.find_by_email("player@example.com").email_confirmed is True

    def test_update_credential(self, accounts: InMemoryAccountRepository) -> None:
        account = accounts.create("player@example.com", "$2b$04$old")
        accounts.update_credential(account.id, "$2b$04$new")
        assert accounts.find_by_email("player@example.com").credential_hash == "$2b$04$new"

    def test_verify_credential(self, accounts: InMemoryAccountRepository) -> None:
        hashed = bcrypt.hashpw(b"secret123", bcrypt.gensalt(4)).decode()
        account = accounts.create("player@example.com", hashed)

        assert accounts.verify_credential(account, "secret123") is True
        assert accounts.verify_credential(account, "wrong") is False

    def test_concurrent_create_exactly_one_succeeds(self, accounts: InMemoryAccountRepository) -> None:
        results: list[bool] = []
        lock = threading.Lock()

        def attempt() -> None:
            try:
                accounts.create("race@example.com", "h")
                ok = True
            except DuplicateAccount:
                ok = False
            with lock:
                results.append(ok)

        with ThreadPoolExecutor(max_workers=10) as executor:
            for f in [executor.submit(attempt) for _ in range(10)]:
                f.result()

        assert results.count(True) == 1
        assert len(accounts) == 1
