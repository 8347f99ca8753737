"""Authentication utilities for password hashing and session token management."""

from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from .config import Settings

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


# ==================== Password Hashing ====================

def hash_password(password: str) -> str:
    """Hash a plain text password using bcrypt for secure storage."""
    password_bytes = password.encode('utf-8')[:BCRYPT_MAX_BYTES]
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password_bytes, salt)
    # Return as string for database storage
    return hashed.decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain text password against a hashed password."""
    password_bytes = plain_password.encode('utf-8')[:BCRYPT_MAX_BYTES]
    hashed_bytes = hashed_password.encode('utf-8')
    try:
        return bcrypt.checkpw(password_bytes, hashed_bytes)
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


# ==================== Session Tokens ====================

def create_session_token(
    settings: Settings,
    user_id: int,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed session token for a user. Defaults to the configured session lifetime."""
    now = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(days=settings.SESSION_TTL_DAYS)

    to_encode = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_session_token(settings: Settings, token: str) -> dict | None:
    """Decode and verify a session token. Returns payload dict if valid, None if invalid or expired."""
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
