from __future__ import annotations

from fastapi import APIRouter, Depends

from budget_tracker.dependencies.auth import get_current_user, get_user_repository
from budget_tracker.models.user import User
from budget_tracker.schemas.user import UserOut
from budget_tracker.services.users import UserRepository

router = APIRouter(prefix="/v1/users", tags=["users"])


@router.get("/me", response_model=UserOut)
def get_me(user: User = Depends(get_current_user)) -> User:
    return user


# TODO: restrict listing to an admin authority once accounts carry roles.
@router.get("/", response_model=list[UserOut])
def list_users(
    _: User = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repository),
) -> list[User]:
    return users.find_all()
