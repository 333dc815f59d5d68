# budget_tracker/services/users.py
"""
User persistence.

``UserRepository`` is the only component that writes ``users`` rows. It owns
the created/updated timestamps and turns unique-email violations into
``DuplicateEmailError``.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional, Protocol

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from budget_tracker.core.errors import DuplicateEmailError
from budget_tracker.core.security import now_utc
from budget_tracker.models.user import User

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class UserStore(Protocol):
    def find_by_email(self, email: str) -> Optional[User]:
        ...

    def find_by_verification_code(self, code: str) -> Optional[User]:
        ...

    def save(self, user: User) -> User:
        ...


class UserRepository:
    def __init__(self, db: Session, *, clock: Callable[[], datetime] = now_utc) -> None:
        self.db = db
        self._clock = clock

    def find_by_email(self, email: str) -> Optional[User]:
        """Look up a user by email address."""
        return self.db.query(User).filter(User.email == normalize_email(email)).first()

    def find_by_verification_code(self, code: str) -> Optional[User]:
        if not code:
            return None
        return self.db.query(User).filter(User.verification_code == code).first()

    def find_all(self) -> list[User]:
        return self.db.query(User).order_by(User.id).all()

    def save(self, user: User) -> User:
        """
        Insert or update ``user`` and commit.

        Raises:
            DuplicateEmailError: if another account already owns the email.
        """
        now = self._clock()
        if user.created_at is None:
            user.created_at = now
        user.updated_at = now

        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.info("Rejected save for duplicate email=%s", user.email)
            raise DuplicateEmailError() from e

        self.db.refresh(user)
        return user
