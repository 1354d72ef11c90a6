"""
Token issuer/verifier - signed, time-bounded JWTs.

Three kinds of token are issued, each carrying an explicit `purpose`
claim that verification checks, so a token minted for one flow is never
accepted by another:

- SESSION: returned by login, presented as a bearer credential.
- EMAIL_VERIFICATION: email-only claim, short lived.
- PASSWORD_RESET: bound to the account's current credential hash through
  a `stamp` claim; any credential change invalidates every outstanding
  reset token for that account.

The service is stateless. Its inputs are the injected signing secret,
the claims and the clock, so it can be shared across threads freely.
"""

import hashlib
import hmac
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

import jwt

from .exceptions import (
    InvalidSignature,
    MalformedToken,
    PurposeMismatch,
    StaleToken,
    TokenExpired,
)
from .ports import Account


class TokenPurpose(str, Enum):
    """What a token authorizes."""

    SESSION = "session"
    EMAIL_VERIFICATION = "email_verification"
    PASSWORD_RESET = "password_reset"


_COMMON_CLAIMS = ["exp", "iss", "purpose"]

_PURPOSE_CLAIMS = {
    TokenPurpose.SESSION: ("sub", "email", "jti", "aud"),
    TokenPurpose.EMAIL_VERIFICATION: ("email",),
    TokenPurpose.PASSWORD_RESET: ("sub", "email", "jti", "stamp"),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TokenService:
    """
    Issues and verifies HMAC-SHA256 signed JWTs.

    Expiry is checked against the injected clock rather than PyJWT's
    wall-clock check, so lifetimes are testable. Clock-skew tolerance
    applies to session tokens only.
    """

    secret_key: str
    issuer: str
    audience: str
    session_expiry_minutes: int = 60
    email_token_expiry_minutes: int = 15
    password_reset_expiry_minutes: int = 1440
    clock_skew_seconds: int = 300
    algorithm: str = "HS256"
    clock: Callable[[], datetime] = field(default=_utcnow)

    def issue_session(self, account: Account) -> str:
        """Issue a login session token with a fresh jti."""
        claims = {
            "sub": account.id,
            "email": account.email,
            "jti": uuid.uuid4().hex,
            "aud": self.audience,
        }
        return self._encode(
            TokenPurpose.SESSION, claims, timedelta(minutes=self.session_expiry_minutes)
        )

    def issue_email_verification(self, email: str) -> str:
        """Issue a short-lived token carrying only the email."""
        return self._encode(
            TokenPurpose.EMAIL_VERIFICATION,
            {"email": email},
            timedelta(minutes=self.email_token_expiry_minutes),
        )

    def issue_password_reset(self, account: Account) -> str:
        """Issue a reset token bound to the account's current credential."""
        claims = {
            "sub": account.id,
            "email": account.email,
            "jti": uuid.uuid4().hex,
            "stamp": self._credential_stamp(account),
        }
        return self._encode(
            TokenPurpose.PASSWORD_RESET,
            claims,
            timedelta(minutes=self.password_reset_expiry_minutes),
        )

    def verify(
        self, token: str, purpose: TokenPurpose, check_expiry: bool = True
    ) -> dict[str, Any]:
        """
        Verify a token for the given purpose and return its claims.

        The signature is checked before anything else, so a forged token
        fails with InvalidSignature whether or not it has expired.

        Raises:
            InvalidSignature: Signature does not match the secret
            MalformedToken: Undecodable, wrong issuer/audience or missing claims
            PurposeMismatch: Token was issued for another purpose
            TokenExpired: Expiry (plus skew for sessions) has passed
        """
        if not token or not isinstance(token, str):
            raise MalformedToken("empty token")

        try:
            claims = jwt.decode(
                token.strip(),
                self.secret_key,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "verify_aud": False,
                    "require": _COMMON_CLAIMS,
                },
            )
        except jwt.InvalidSignatureError as e:
            raise InvalidSignature(str(e)) from e
        except jwt.PyJWTError as e:
            raise MalformedToken(str(e)) from e

        if claims["purpose"] != purpose.value:
            raise PurposeMismatch(f"expected {purpose.value}, got {claims['purpose']}")

        missing = [name for name in _PURPOSE_CLAIMS[purpose] if claims.get(name) is None]
        if missing:
            raise MalformedToken(f"missing claims: {', '.join(missing)}")

        if purpose is TokenPurpose.SESSION and claims["aud"] != self.audience:
            raise MalformedToken("invalid audience")

        if check_expiry:
            self._check_expiry(claims, purpose)

        return claims

    def verify_password_reset(self, token: str, account: Account) -> dict[str, Any]:
        """
        Verify a reset token against the account it is presented for.

        Raises:
            TokenError: Any verify() failure, or StaleToken when the token
                belongs to another account or the credential has changed
                since issuance
        """
        claims = self.verify(token, TokenPurpose.PASSWORD_RESET)

        if claims["sub"] != account.id or claims["email"] != account.email:
            raise StaleToken("token was issued for another account")

        expected = self._credential_stamp(account)
        if not hmac.compare_digest(str(claims["stamp"]), expected):
            raise StaleToken("credential has changed since the token was issued")

        return claims

    def _encode(
        self, purpose: TokenPurpose, claims: dict[str, Any], lifetime: timedelta
    ) -> str:
        now = self.clock()
        payload = {
            **claims,
            "purpose": purpose.value,
            "iss": self.issuer,
            "iat": int(now.timestamp()),
            "exp": int((now + lifetime).timestamp()),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def _check_expiry(self, claims: dict[str, Any], purpose: TokenPurpose) -> None:
        exp = claims["exp"]
        if not isinstance(exp, (int, float)):
            raise MalformedToken("exp claim must be a number")

        leeway = self.clock_skew_seconds if purpose is TokenPurpose.SESSION else 0
        expires_at = datetime.fromtimestamp(exp, tz=timezone.utc) + timedelta(seconds=leeway)
        if self.clock() >= expires_at:
            raise TokenExpired("token has expired")

    def _credential_stamp(self, account: Account) -> str:
        digest = hmac.new(
            self.secret_key.encode(), account.credential_hash.encode(), hashlib.sha256
        )
        return digest.hexdigest()[:32]
