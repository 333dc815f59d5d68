# budget_tracker/auth/identity.py
"""
Canonical authenticated identity model.

The ``User`` row is a plain data entity. What the request layer needs to know
about "who is calling" is derived from it by ``to_identity`` and carried on
``request.state.identity`` for the rest of the request.

The Identity object is INTERNAL ONLY and should not be returned directly
to clients.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from budget_tracker.models.user import User


@dataclass(frozen=True)
class Identity:
    """
    Representation of an authenticated (or unauthenticated) caller.

    Attributes:
        subject: Token subject, i.e. the account email. ``None`` if unauthenticated.
        authorities: Granted authorities. Accounts currently carry none.
        enabled: Whether the backing account has completed verification.
        user_id: Internal account id as a string.
        is_authenticated: True once the request filter has validated a token
                          for this subject.
    """

    subject: str | None = None
    authorities: tuple[str, ...] = ()
    enabled: bool = False
    user_id: str | None = None
    is_authenticated: bool = False

    @classmethod
    def unauthenticated(cls) -> Identity:
        return cls()

    def authenticated(self) -> Identity:
        """Return a copy marked as authenticated."""
        return Identity(
            subject=self.subject,
            authorities=self.authorities,
            enabled=self.enabled,
            user_id=self.user_id,
            is_authenticated=True,
        )

    def to_debug_dict(self) -> dict[str, Any]:
        return {
            "subject": self.subject,
            "authorities": list(self.authorities),
            "enabled": self.enabled,
            "user_id": self.user_id,
            "is_authenticated": self.is_authenticated,
        }


def to_identity(user: User) -> Identity:
    """Map an account to the identity the token is checked against (not yet authenticated)."""
    return Identity(
        subject=user.email,
        authorities=(),
        enabled=bool(user.enabled),
        user_id=str(user.id) if user.id is not None else None,
        is_authenticated=False,
    )
