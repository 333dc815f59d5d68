# budget_tracker/services/authentication.py
"""
Registration, login and email verification.

Account states:
    Unregistered -> PendingVerification (register)
    PendingVerification -> PendingVerification (resend: new code, new expiry)
    PendingVerification -> Verified (verify with the current code before it expires)

There is no way back from Verified. Login is refused until the account is
verified.

Verification email is sent *before* the account row is written, so a failed
send leaves nothing persisted and the caller gets ``EmailDeliveryError``.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from budget_tracker.auth.verification_codes import VERIFICATION_CODE_TTL, code_expiry, generate_code
from budget_tracker.core.errors import (
    AccountNotVerifiedError,
    AlreadyVerifiedError,
    CodeExpiredError,
    DuplicateEmailError,
    EmailDeliveryError,
    InvalidCodeError,
    InvalidCredentialsError,
    NotFoundError,
)
from budget_tracker.core.security import as_utc, hash_password, now_utc, verify_password
from budget_tracker.models.user import User
from budget_tracker.services.email import EmailSender
from budget_tracker.services.users import UserStore, normalize_email

logger = logging.getLogger(__name__)

VERIFICATION_EMAIL_SUBJECT = "Account Verification"


def build_verification_email(code: str) -> str:
    minutes = int(VERIFICATION_CODE_TTL.total_seconds() // 60)
    return "\n".join(
        [
            f"Your verification code is {code}.",
            "",
            f"The code expires in {minutes} minutes.",
            "",
            "If you did not create this account, you can ignore this email.",
        ]
    )


class AuthenticationService:
    def __init__(
        self,
        users: UserStore,
        email_sender: EmailSender,
        *,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self.users = users
        self.email_sender = email_sender
        self._clock = clock

    # -----------------------------
    # Operations
    # -----------------------------
    def register(self, first_name: str, last_name: str, email: str, password: str) -> User:
        email = normalize_email(email)
        if self.users.find_by_email(email) is not None:
            raise DuplicateEmailError()

        user = User(
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            email=email,
            password_hash=hash_password(password),
            enabled=False,
        )
        self._assign_new_code(user)

        self._send_verification_email(user)
        user = self.users.save(user)
        logger.info("Registered user id=%s email=%s (pending verification)", user.id, email)
        return user

    def login(self, email: str, password: str) -> User:
        user = self._require_user(email)

        if not user.enabled:
            raise AccountNotVerifiedError()

        if not verify_password(password, user.password_hash):
            logger.info("Login failed: bad credentials for id=%s", user.id)
            raise InvalidCredentialsError()

        logger.info("Login: id=%s", user.id)
        return user

    def verify(self, email: str, verification_code: str) -> None:
        user = self._require_user(email)

        expires_at = user.verification_expiration
        if expires_at is not None and self._clock() > as_utc(expires_at):
            raise CodeExpiredError()

        if user.verification_code is None or user.verification_code != verification_code:
            raise InvalidCodeError()

        user.enabled = True
        user.verification_code = None
        user.verification_expiration = None
        self.users.save(user)
        logger.info("Verified user id=%s", user.id)

    def resend_verification_code(self, email: str) -> None:
        user = self._require_user(email)

        if user.enabled:
            raise AlreadyVerifiedError()

        self._assign_new_code(user)
        self._send_verification_email(user)
        self.users.save(user)
        logger.info("Resent verification code to user id=%s", user.id)

    # -----------------------------
    # Helpers
    # -----------------------------
    def _require_user(self, email: str) -> User:
        user = self.users.find_by_email(normalize_email(email))
        if user is None:
            raise NotFoundError()
        return user

    def _assign_new_code(self, user: User) -> None:
        user.verification_code = generate_code()
        user.verification_expiration = code_expiry(self._clock())

    def _send_verification_email(self, user: User) -> None:
        body = build_verification_email(user.verification_code)
        try:
            self.email_sender.send(user.email, VERIFICATION_EMAIL_SUBJECT, body)
        except EmailDeliveryError:
            raise
        except Exception as e:  # noqa: BLE001
            logger.exception("Verification email to %s failed", user.email)
            raise EmailDeliveryError(f"Failed to send verification email: {e}") from e
