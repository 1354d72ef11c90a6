"""
Authentication domain service - registration, login and password reset.

This module contains the core business logic for account lifecycle,
orchestrating the pending-registration store, the token service and
the account repository.

Registration State Machine
==========================

States per registration attempt:
- REQUESTED: register() called, input validated
- PENDING_CONFIRMATION: entry stored under a random token, link emailed
- CONFIRMED: terminal, account created already confirmed
- EXPIRED: terminal, implicit once the store TTL elapses

Transitions:
    REQUESTED -> PENDING_CONFIRMATION   (register succeeds)
    PENDING_CONFIRMATION -> CONFIRMED   (confirm_email with the token)
    PENDING_CONFIRMATION -> EXPIRED     (TTL elapses, enforced by the store)

No account exists until confirm_email succeeds, and an account created
by this workflow is always confirmed.

Note: The existence checks in register() and confirm_email() are a fast
path only. Email uniqueness is guaranteed by AccountRepository.create().
"""

import logging
import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlencode

from .exceptions import (
    AccountNotFound,
    BadCredentials,
    BadToken,
    DuplicateAccount,
    EmailNotConfirmed,
    InvalidOrExpiredLink,
    InvalidRequest,
    TokenError,
    TransportError,
    ValidationError,
)
from .passwords import MAX_PASSWORD_BYTES, hash_password
from .ports import Account, AccountRepository, EmailSender, PendingRegistration, PendingRegistrationStore
from .tokens import TokenPurpose, TokenService

logger = logging.getLogger(__name__)

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6


@dataclass
class AuthenticationService:
    """
    Domain service for account authentication.

    Link URLs point at the public confirm-email and reset-password
    endpoints. Tokens are appended as query parameters.
    """

    accounts: AccountRepository
    pending_store: PendingRegistrationStore
    tokens: TokenService
    email_sender: EmailSender
    confirm_email_url: str
    reset_password_url: str
    pending_ttl_seconds: int = 900
    bcrypt_cost: int = 10

    def register(self, email: str, password: str) -> str:
        """
        Stage a registration and email a confirmation link.

        No account is created here. The password is hashed before it is
        staged.

        Args:
            email: User's email address (will be normalized)
            password: User's password

        Returns:
            Normalized email address

        Raises:
            ValidationError: Malformed email or weak password
            DuplicateAccount: An account already exists for this email
            TransportError: The confirmation email could not be sent
        """
        normalized_email = self._normalize_email(email)
        self._validate_email(normalized_email)
        self._validate_password(password)

        if self.accounts.find_by_email(normalized_email) is not None:
            raise DuplicateAccount(normalized_email)

        token = self._generate_confirmation_token()
        registration = PendingRegistration(
            token=token,
            email=normalized_email,
            password_hash=hash_password(password, rounds=self.bcrypt_cost),
            created_at=datetime.now(timezone.utc),
        )
        self.pending_store.put(token, registration, self.pending_ttl_seconds)

        link = f"{self.confirm_email_url}?{urlencode({'token': token})}"
        try:
            self.email_sender.send(
                normalized_email,
                "Confirm your gameshelf account",
                f"Please click this link to confirm your account:\n\n{link}",
            )
        except TransportError:
            # A link nobody received cannot be confirmed
            self.pending_store.remove(token)
            raise

        return normalized_email

    def confirm_email(self, token: str) -> Account:
        """
        Create and confirm the account staged under token.

        The pending entry is removed once the account exists, and also
        when creation loses a race to another confirmation, since such an
        entry can never succeed.

        Raises:
            InvalidOrExpiredLink: Token unknown, consumed or expired
            DuplicateAccount: An account for the email already exists
        """
        registration = self.pending_store.get(token) if token else None
        if registration is None:
            raise InvalidOrExpiredLink("Invalid or expired confirmation link")

        if self.accounts.find_by_email(registration.email) is not None:
            self.pending_store.remove(token)
            raise DuplicateAccount(registration.email)

        try:
            account = self.accounts.create(
                registration.email, registration.password_hash, confirmed=True
            )
        except DuplicateAccount:
            self.pending_store.remove(token)
            raise

        self.pending_store.remove(token)
        logger.info("Account created and confirmed: %s", account.id)
        return account

    def login(self, email: str, password: str) -> str:
        """
        Check credentials and issue a session token.

        The three failures are distinguishable to the caller.

        Raises:
            AccountNotFound: No account for the email
            EmailNotConfirmed: Account exists but is unconfirmed
            BadCredentials: Password does not match
        """
        account = self.accounts.find_by_email(self._normalize_email(email))
        if account is None:
            raise AccountNotFound(email)

        if not account.email_confirmed:
            raise EmailNotConfirmed(account.email)

        # Accepted passwords never exceed bcrypt's 72 bytes; a longer one
        # would otherwise match on its truncated prefix
        too_long = len(password.encode("utf-8")) > MAX_PASSWORD_BYTES
        if too_long or not self.accounts.verify_credential(account, password):
            raise BadCredentials(account.email)

        return self.tokens.issue_session(account)

    def forgot_password(self, email: str) -> None:
        """
        Email a password-reset link if the account exists.

        Returns nothing either way, so callers cannot tell whether the
        email is registered. Delivery failures are logged, not raised,
        for the same reason.
        """
        normalized_email = self._normalize_email(email)
        account = self.accounts.find_by_email(normalized_email)
        if account is None:
            return

        token = self.tokens.issue_password_reset(account)
        link = f"{self.reset_password_url}?{urlencode({'token': token, 'email': account.email})}"
        try:
            self.email_sender.send(
                account.email,
                "Reset your gameshelf password",
                f"Click here to reset your password:\n\n{link}",
            )
        except TransportError:
            logger.exception("Password reset email could not be sent for account %s", account.id)

    def reset_password(self, email: str, token: str, new_password: str) -> None:
        """
        Replace the account's credential using a reset token.

        The token is single use: replacing the credential changes the
        stamp every outstanding reset token was bound to.

        Raises:
            InvalidRequest: No account for the email
            BadToken: Token wrong, expired, for another purpose or consumed
            ValidationError: New password does not meet the policy
        """
        account = self.accounts.find_by_email(self._normalize_email(email))
        if account is None:
            raise InvalidRequest("Invalid request")

        try:
            self.tokens.verify_password_reset(token, account)
        except TokenError as e:
            raise BadToken("Invalid token") from e

        self._validate_password(new_password)
        self.accounts.update_credential(
            account.id, hash_password(new_password, rounds=self.bcrypt_cost)
        )
        logger.info("Password reset for account %s", account.id)

    def authenticate(self, session_token: str) -> dict[str, Any]:
        """
        Verify a bearer session token and return its claims.

        Raises:
            BadToken: Any verification failure
        """
        try:
            return self.tokens.verify(session_token, TokenPurpose.SESSION)
        except TokenError as e:
            raise BadToken("Invalid token") from e

    def _normalize_email(self, email: str) -> str:
        """
        Normalize email address for consistent storage and lookup.

        Applies: strip whitespace + lowercase
        """
        return email.strip().lower()

    def _validate_email(self, email: str) -> None:
        if not _EMAIL_PATTERN.match(email):
            raise ValidationError("Invalid email address")

    def _validate_password(self, password: str) -> None:
        """Minimum length of 6, at most 72 UTF-8 bytes, with at least one digit."""
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        if not any(ch.isdigit() for ch in password):
            raise ValidationError("Password must contain a digit")

    def _generate_confirmation_token(self) -> str:
        """
        Generate an unguessable confirmation token.

        Uses secrets module for cryptographic randomness (256 bits).
        """
        return secrets.token_urlsafe(32)
