"""
Password hashing helpers shared by the domain service and repository adapters.

bcrypt only considers the first 72 bytes of a password. Registration and
reset reject longer passwords, so no two accepted passwords can collide
on the truncated prefix.
"""

import bcrypt

MAX_PASSWORD_BYTES = 72


def _pwd_bytes(password: str, max_len: int = MAX_PASSWORD_BYTES) -> bytes:
    return password.encode("utf-8")[:max_len]


def hash_password(password: str, rounds: int = 10) -> str:
    """Hash password using bcrypt with the given cost factor."""
    return bcrypt.hashpw(_pwd_bytes(password), bcrypt.gensalt(rounds=rounds)).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time password check against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(_pwd_bytes(password), password_hash.encode())
    except ValueError:
        # Stored value is not a bcrypt hash
        return False
