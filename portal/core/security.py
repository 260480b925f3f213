"""Password hashing and session token helpers."""

import secrets

import bcrypt

from portal.core.config import settings

SESSION_TOKEN_BYTES = 32


def hash_password(password: str, rounds: int | None = None) -> str:
    """Hash a password using bcrypt."""
    pwd_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS)
    hashed = bcrypt.hashpw(pwd_bytes, salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    pwd_bytes = plain_password.encode("utf-8")
    hashed_bytes = hashed_password.encode("utf-8")
    try:
        return bcrypt.checkpw(pwd_bytes, hashed_bytes)
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def generate_session_token() -> str:
    """Generate an opaque 256-bit session token, hex encoded."""
    return secrets.token_hex(SESSION_TOKEN_BYTES)
