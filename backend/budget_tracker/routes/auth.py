# budget_tracker/routes/auth.py
from __future__ import annotations

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from pydantic import EmailStr

from budget_tracker.auth.tokens import TokenService
from budget_tracker.core.errors import AuthError
from budget_tracker.dependencies.auth import get_auth_service, get_token_service
from budget_tracker.models.user import User
from budget_tracker.schemas.auth import LoginIn, LoginOut, MessageOut, RegisterIn, ResendVerifyIn, VerifyIn
from budget_tracker.schemas.user import UserOut
from budget_tracker.services.authentication import AuthenticationService

router = APIRouter(prefix="/v1/auth", tags=["auth"])


@router.post("/register", response_model=UserOut)
def register(payload: RegisterIn, auth: AuthenticationService = Depends(get_auth_service)) -> User:
    return auth.register(
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
        password=payload.password,
    )


@router.post("/login", response_model=LoginOut)
def login(
    payload: LoginIn,
    auth: AuthenticationService = Depends(get_auth_service),
    tokens: TokenService = Depends(get_token_service),
):
    user = auth.login(email=payload.email, password=payload.password)
    return LoginOut(token=tokens.issue(user.email), expires_in=tokens.expires_in_ms)


@router.post("/verify", response_model=MessageOut)
def verify(payload: VerifyIn, auth: AuthenticationService = Depends(get_auth_service)):
    try:
        auth.verify(email=payload.email, verification_code=payload.verification_code)
    except AuthError as e:
        raise HTTPException(status_code=400, detail=e.message)
    return {"message": "Account verified successfully."}


@router.post("/resend-verification", response_model=MessageOut)
def resend_verification(
    email: EmailStr | None = Query(default=None),
    payload: ResendVerifyIn | None = Body(default=None),
    auth: AuthenticationService = Depends(get_auth_service),
):
    target = email or (payload.email if payload else None)
    if not target:
        raise HTTPException(status_code=400, detail="Email is required")

    try:
        auth.resend_verification_code(target)
    except AuthError as e:
        raise HTTPException(status_code=400, detail=e.message)
    return {"message": "Verification code sent."}
