# budget_tracker/core/errors.py
"""
Error taxonomy for the authentication workflow and token handling.

Every error carries a client-safe ``message``, an HTTP ``status_code`` and a
machine-readable ``error`` code. Routes either let these propagate to the
app-level handler (which renders them via ``error_response``) or translate
them explicitly.
"""
from __future__ import annotations

from fastapi.responses import JSONResponse


class AuthError(Exception):
    status_code: int = 400
    error: str = "AUTH_ERROR"
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(AuthError):
    status_code = 404
    error = "NOT_FOUND"
    default_message = "User not found."


class DuplicateEmailError(AuthError):
    status_code = 409
    error = "DUPLICATE_EMAIL"
    default_message = "Email already registered."


class AccountNotVerifiedError(AuthError):
    status_code = 403
    error = "ACCOUNT_NOT_VERIFIED"
    default_message = "Please verify your account."


class InvalidCredentialsError(AuthError):
    status_code = 401
    error = "INVALID_CREDENTIALS"
    default_message = "Invalid email or password."


class CodeExpiredError(AuthError):
    status_code = 400
    error = "CODE_EXPIRED"
    default_message = "Verification code has expired."


class InvalidCodeError(AuthError):
    status_code = 400
    error = "INVALID_CODE"
    default_message = "Invalid verification code."


class AlreadyVerifiedError(AuthError):
    status_code = 400
    error = "ALREADY_VERIFIED"
    default_message = "Account is already verified."


class EmailDeliveryError(AuthError):
    """
    Raised when an email could not be handed to the provider.
    Message should be safe to surface to clients in dev.
    """

    status_code = 500
    error = "EMAIL_DELIVERY_FAILED"
    default_message = "Failed to send email."


class EmailNotConfiguredError(EmailDeliveryError):
    default_message = "Email delivery is not configured."


class TokenDecodingError(AuthError):
    status_code = 401
    error = "INVALID_TOKEN"
    default_message = "Invalid token."


def error_response(exc: AuthError) -> JSONResponse:
    """Render an ``AuthError`` in the standard ``{"error", "message"}`` shape."""
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error, "message": exc.message},
        headers=headers,
    )
