from __future__ import annotations

import secrets
from datetime import datetime, timedelta

VERIFICATION_CODE_TTL = timedelta(minutes=10)

_CODE_MIN = 100000
_CODE_MAX = 999999


def generate_code() -> str:
    """Uniformly random 6-digit code in 100000..999999."""
    return str(_CODE_MIN + secrets.randbelow(_CODE_MAX - _CODE_MIN + 1))


def code_expiry(issued_at: datetime) -> datetime:
    return issued_at + VERIFICATION_CODE_TTL
