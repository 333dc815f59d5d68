from __future__ import annotations

from datetime import datetime

from pydantic import ConfigDict

from budget_tracker.schemas.auth import CamelModel


class UserOut(CamelModel):
    # Never includes the password hash or the pending verification code.
    id: int
    first_name: str
    last_name: str
    email: str
    enabled: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
