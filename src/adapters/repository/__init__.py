"""Repository adapters - Database and in-memory implementations."""

from .memory import InMemoryAccountRepository, InMemoryPendingRegistrationStore
from .postgres import PostgresAccountRepository, PostgresPendingRegistrationStore, run_migrations

__all__ = [
    "InMemoryAccountRepository",
    "InMemoryPendingRegistrationStore",
    "PostgresAccountRepository",
    "PostgresPendingRegistrationStore",
    "run_migrations",
]
