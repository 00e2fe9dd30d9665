"""Password hashing and single-use credential tokens.

Only the SHA-256 digest of a setup/reset token is ever persisted; the raw
token travels to the merchant through the notification dispatcher.
"""

import hashlib
import secrets
from datetime import datetime, timedelta

from passlib.context import CryptContext

from onboarding.domain.mixins import ensure_utc, utcnow

MIN_PASSWORD_LENGTH = 6

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    return pwd_context.verify(password, password_hash)


def generate_token() -> str:
    """Return a URL-safe random token (64 hex chars)."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def token_expiry(ttl: timedelta, now: datetime | None = None) -> datetime:
    return (now or utcnow()) + ttl


def is_expired(expires_at: datetime | None, now: datetime | None = None) -> bool:
    """A token without an expiry is treated as expired."""
    if expires_at is None:
        return True
    return ensure_utc(expires_at) <= (now or utcnow())
