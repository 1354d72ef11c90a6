"""
Domain layer - Pure business logic with zero web framework imports.

This package contains the core business logic for account registration,
login and password reset. It defines its own port interfaces for
infrastructure abstraction, ensuring true hexagonal architecture decoupling.
"""

from .authentication import AuthenticationService
from .exceptions import (
    AccountNotFound,
    AuthenticationError,
    BadCredentials,
    BadToken,
    DuplicateAccount,
    EmailNotConfirmed,
    InvalidOrExpiredLink,
    InvalidRequest,
    InvalidSignature,
    MalformedToken,
    PurposeMismatch,
    StaleToken,
    TokenError,
    TokenExpired,
    TransportError,
    ValidationError,
)
from .ports import (
    Account,
    AccountRepository,
    EmailSender,
    PendingRegistration,
    PendingRegistrationStore,
)
from .tokens import TokenPurpose, TokenService

__all__ = [
    "Account",
    "AccountNotFound",
    "AccountRepository",
    "AuthenticationError",
    "AuthenticationService",
    "BadCredentials",
    "BadToken",
    "DuplicateAccount",
    "EmailNotConfirmed",
    "EmailSender",
    "InvalidOrExpiredLink",
    "InvalidRequest",
    "InvalidSignature",
    "MalformedToken",
    "PendingRegistration",
    "PendingRegistrationStore",
    "PurposeMismatch",
    "StaleToken",
    "TokenError",
    "TokenExpired",
    "TokenPurpose",
    "TokenService",
    "TransportError",
    "ValidationError",
]
