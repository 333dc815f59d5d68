# budget_tracker/dependencies/auth.py
from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from budget_tracker.auth.identity import Identity
from budget_tracker.auth.tokens import TokenService
from budget_tracker.core.database import get_db
from budget_tracker.models.user import User
from budget_tracker.services.authentication import AuthenticationService
from budget_tracker.services.email import ConfiguredEmailSender, EmailSender
from budget_tracker.services.users import UserRepository


def _unauthorized(detail: str = "Authentication required") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_email_sender() -> EmailSender:
    return ConfiguredEmailSender()


def get_user_repository(db: Session = Depends(get_db)) -> UserRepository:
    return UserRepository(db)


def get_auth_service(
    users: UserRepository = Depends(get_user_repository),
    email_sender: EmailSender = Depends(get_email_sender),
) -> AuthenticationService:
    return AuthenticationService(users, email_sender)


def get_current_identity(request: Request) -> Identity:
    """Identity established by the authentication middleware for this request."""
    return getattr(request.state, "identity", None) or Identity.unauthenticated()


def get_current_user(
    request: Request,
    identity: Identity = Depends(get_current_identity),
) -> User:
    """
    Requires an authenticated caller.
    Returns:
      - User SQLAlchemy model loaded by the authentication middleware
    """
    user = getattr(request.state, "user", None)
    if not identity.is_authenticated or user is None:
        raise _unauthorized()
    return user
