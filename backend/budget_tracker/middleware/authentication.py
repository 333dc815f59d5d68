from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from sqlalchemy.orm import Session

from budget_tracker.auth.identity import Identity, to_identity
from budget_tracker.auth.tokens import TokenService
from budget_tracker.core.errors import TokenDecodingError, error_response
from budget_tracker.services.users import UserRepository

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith(BEARER_PREFIX):
        return None
    return auth_header[len(BEARER_PREFIX):].strip()


def _authenticate(request: Request, token: str, subject: str) -> None:
    token_service: TokenService = request.app.state.token_service

    db: Session = request.app.state.session_factory()
    try:
        user = UserRepository(db).find_by_email(subject)
        if user is None:
            logger.info("Token subject has no account; request stays unauthenticated")
            return

        identity = to_identity(user)
        if not identity.enabled:
            logger.info("Token for disabled account id=%s; request stays unauthenticated", user.id)
            return

        if not token_service.validate(token, identity.subject):
            logger.info("Expired or mismatched token for id=%s", user.id)
            return

        request.state.user = user
        request.state.identity = identity.authenticated()
    finally:
        db.close()


def register_authentication_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def authentication_middleware(request: Request, call_next):
        """
        Establish who is calling, without deciding whether they may.

        A missing or non-Bearer Authorization header passes through
        unauthenticated. A token whose signature or format is bad ends the
        request with 401. A well-formed token authenticates the request when
        its subject maps to an enabled account and it has not expired;
        otherwise the request continues unauthenticated. Routes that require a
        caller enforce it through ``get_current_user``.
        """
        request.state.identity = Identity.unauthenticated()
        request.state.user = None

        token = _bearer_token(request)
        if token is None:
            return await call_next(request)

        try:
            subject = request.app.state.token_service.extract_subject(token)
        except TokenDecodingError as exc:
            logger.warning("Rejected bearer token: %s", exc.message)
            return error_response(exc)

        if subject and not request.state.identity.is_authenticated:
            _authenticate(request, token, subject)

        return await call_next(request)
