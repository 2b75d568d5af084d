"""Tokens, password hashing and shared-secret checks."""
import hmac
from datetime import datetime, timedelta
from typing import Any

import bcrypt
from jose import JWTError, jwt

from accessguard.config import get_settings

settings = get_settings()

# JWT settings
ALGORITHM = "HS256"
# Lifetime of the set-your-password link in the welcome email
CLAIM_TOKEN_EXPIRE_DAYS = 30


def create_access_token(subject: int | str, expires_delta: timedelta | None = None) -> str:
    """Create JWT access token."""
    expire = datetime.utcnow() + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"sub": str(subject), "exp": expire, "type": "access"}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def create_claim_token(user_id: int) -> str:
    """Token proving control of the mailbox of an account opened by checkout."""
    expire = datetime.utcnow() + timedelta(days=CLAIM_TOKEN_EXPIRE_DAYS)
    to_encode = {"sub": str(user_id), "exp": expire, "type": "claim"}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def claim_token_user_id(token: str | None) -> int | None:
    """User a valid claim token was issued for, else None."""
    if not token:
        return None
    payload = decode_token(token)
    if payload.get("type") != "claim":
        return None
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        return None


def decode_token(token: str) -> dict[str, Any]:
    """Decode and validate JWT token; empty dict when invalid."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return {}


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Verify a password against a bcrypt hash."""
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            hashed_password.encode("utf-8"),
        )
    except ValueError:
        return False


def get_password_hash(password: str) -> str:
    """Hash a password with bcrypt."""
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_bearer_secret(authorization: str | None, secret: str | None) -> bool:
    """Constant-time check of an `Authorization: Bearer <secret>` header.

    An unset secret never matches.
    """
    if not secret or not authorization:
        return False
    return hmac.compare_digest(
        authorization.encode("utf-8"),
        f"Bearer {secret}".encode("utf-8"),
    )
