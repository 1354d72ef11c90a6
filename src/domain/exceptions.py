"""
Domain exceptions - Semantic error types for account authentication.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
The API layer maps each of them to an HTTP status.
"""


class AuthenticationError(Exception):
    """Base class for authentication domain errors."""

    pass


class ValidationError(AuthenticationError):
    """Malformed email or a password that does not meet the policy."""

    pass


class DuplicateAccount(AuthenticationError):
    """An account already exists for this email."""

    pass


class InvalidOrExpiredLink(AuthenticationError):
    """Confirmation token is unknown, already consumed or past its TTL."""

    pass


class AccountNotFound(AuthenticationError):
    """No account matches the email."""

    pass


class EmailNotConfirmed(AuthenticationError):
    """Account exists but its email has not been confirmed."""

    pass


class BadCredentials(AuthenticationError):
    """Password does not match the stored credential."""

    pass


class InvalidRequest(AuthenticationError):
    """Password reset requested for an email with no account."""

    pass


class BadToken(AuthenticationError):
    """A token failed verification at the workflow boundary."""

    pass


class TransportError(AuthenticationError):
    """The email collaborator failed to deliver a message."""

    pass


class TokenError(AuthenticationError):
    """Base class for token verification failures."""

    pass


class InvalidSignature(TokenError):
    """Signature does not match the signing secret."""

    pass


class TokenExpired(TokenError):
    """Token expiry has passed (beyond any clock-skew tolerance)."""

    pass


class MalformedToken(TokenError):
    """Token cannot be decoded or lacks required claims."""

    pass


class PurposeMismatch(TokenError):
    """Token was minted for a different purpose."""

    pass


class StaleToken(TokenError):
    """Reset token no longer matches the account's credential state."""

    pass
