# budget_tracker/core/security.py
from __future__ import annotations

from datetime import datetime, timezone

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


# -------------------------
# Password hashing
# -------------------------
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    # A corrupt or unknown hash format is a failed check, not a server error.
    try:
        return pwd_context.verify(password, password_hash)
    except (ValueError, TypeError):
        return False


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
