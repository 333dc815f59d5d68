# budget_tracker/auth/tokens.py
"""
Signed bearer tokens.

Tokens are HS256 JWTs binding a subject (the account email) to an issue time
and an expiry. Nothing is stored server side: a token is valid exactly when
its signature verifies against the configured secret, it has not expired, and
its subject is the one the caller expects.
"""
from __future__ import annotations

import base64
import binascii
import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Callable

from jose import JWTError, jwk, jwt

from budget_tracker.core.errors import TokenDecodingError
from budget_tracker.core.security import now_utc

if TYPE_CHECKING:
    from budget_tracker.core.config import Settings

logger = logging.getLogger(__name__)

_RESERVED_CLAIMS = ("sub", "iat", "exp")


def decode_secret(secret_b64: str) -> bytes:
    """Decode the base64 signing secret. Raises RuntimeError if unusable."""
    if not secret_b64 or not secret_b64.strip():
        raise RuntimeError("JWT_SECRET must be set (auth is required).")
    try:
        key = base64.b64decode(secret_b64.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise RuntimeError("JWT_SECRET must be base64-encoded") from e
    if not key:
        raise RuntimeError("JWT_SECRET decodes to an empty key")
    return key


class TokenService:
    def __init__(
        self,
        secret_b64: str,
        ttl: timedelta,
        *,
        algorithm: str = "HS256",
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        # exp is a whole-second claim; anything shorter could be born expired.
        if ttl < timedelta(seconds=1):
            raise RuntimeError("Token lifetime must be at least one second")
        # Wrap once so jose never has to guess what kind of key raw bytes are.
        self._key = jwk.construct(decode_secret(secret_b64), algorithm)
        self._ttl = ttl
        self._algorithm = algorithm
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> TokenService:
        return cls(
            settings.JWT_SECRET,
            timedelta(milliseconds=settings.JWT_EXPIRATION_MS),
            algorithm=settings.JWT_ALGORITHM,
            **kwargs,
        )

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def get_ttl(self) -> timedelta:
        return self._ttl

    @property
    def expires_in_ms(self) -> int:
        return int(self._ttl.total_seconds() * 1000)

    def issue(self, subject: str, extra_claims: dict[str, Any] | None = None) -> str:
        """
        Sign a token for ``subject``. Extra claims are embedded as-is, but can
        never override ``sub``, ``iat`` or ``exp``.
        """
        now = self._clock()
        expires_at = now + self._ttl

        payload: dict[str, Any] = {
            k: v for k, v in (extra_claims or {}).items() if k not in _RESERVED_CLAIMS
        }
        payload.update(
            {
                "sub": subject,
                "iat": int(now.timestamp()),
                "exp": int(expires_at.timestamp()),
            }
        )
        return jwt.encode(payload, self._key, algorithm=self._algorithm)

    def _decode(self, token: str) -> dict[str, Any]:
        # Expiry is checked against our own clock, not jose's.
        return jwt.decode(
            token,
            self._key,
            algorithms=[self._algorithm],
            options={"verify_exp": False},
        )

    def extract_claims(self, token: str) -> dict[str, Any]:
        """Verify the signature and return all claims. Does not check expiry."""
        try:
            return self._decode(token)
        except JWTError as e:
            raise TokenDecodingError("Invalid token.") from e

    def extract_subject(self, token: str) -> str:
        """Verify the signature and return ``sub``. Does not check expiry."""
        claims = self.extract_claims(token)
        subject = claims.get("sub")
        if not subject or not isinstance(subject, str):
            raise TokenDecodingError("Token missing subject.")
        return subject

    def is_expired(self, claims: dict[str, Any]) -> bool:
        exp = claims.get("exp")
        if not isinstance(exp, (int, float)):
            return True
        return exp <= self._clock().timestamp()

    def validate(self, token: str, expected_subject: str) -> bool:
        try:
            claims = self._decode(token)
        except JWTError:
            logger.info("Rejected token: signature or format invalid")
            return False

        if claims.get("sub") != expected_subject:
            return False
        return not self.is_expired(claims)
