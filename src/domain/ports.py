"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure, along with the records that cross them.
Adapters implement these protocols.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol


@dataclass(frozen=True)
class Account:
    """
    Confirmed user identity.

    Email is stored normalized (stripped, lowercase) and is unique.
    credential_hash is a bcrypt hash, never the raw password.
    """

    id: str
    email: str
    credential_hash: str
    email_confirmed: bool = False


@dataclass(frozen=True)
class PendingRegistration:
    """Registration awaiting email confirmation, keyed by its token."""

    token: str
    email: str
    password_hash: str
    created_at: datetime


class AccountRepository(Protocol):
    """Port interface for durable account storage."""

    def find_by_email(self, email: str) -> Account | None:
        """Return the account for a normalized email, or None."""
        ...

    def create(self, email: str, credential_hash: str, confirmed: bool = False) -> Account:
        """
        Create an account, confirmed or not, in one atomic step.

        An account created with confirmed=True is never observable in
        the unconfirmed state.

        Email uniqueness must be enforced by the store itself, not by a
        prior find_by_email call.

        Raises:
            DuplicateAccount: If an account already exists for this email
        """
        ...

    def set_confirmed(self, account_id: str) -> None:
        """Mark the account's email as confirmed."""
        ...

    def update_credential(self, account_id: str, credential_hash: str) -> None:
        """Replace the account's credential hash."""
        ...

    def verify_credential(self, account: Account, password: str) -> bool:
        """Check a plaintext password against the account's credential hash."""
        ...


class PendingRegistrationStore(Protocol):
    """
    Port interface for the short-lived registration staging area.

    Expiry is enforced by the store: get() never returns an entry whose
    TTL has elapsed.
    """

    def put(self, token: str, registration: PendingRegistration, ttl_seconds: int) -> None:
        """Store a registration under token for ttl_seconds."""
        ...

    def get(self, token: str) -> PendingRegistration | None:
        """Non-mutating lookup. Returns None if absent or expired."""
        ...

    def remove(self, token: str) -> None:
        """Delete the entry. Idempotent."""
        ...


class EmailSender(Protocol):
    """Port interface for email delivery."""

    def send(self, to: str, subject: str, body: str) -> None:
        """
        Deliver a plain-text message.

        Raises:
            TransportError: If the message could not be handed off
        """
        ...
