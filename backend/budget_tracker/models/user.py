# budget_tracker/models/user.py
from sqlalchemy import Boolean, Column, DateTime, Integer, String

from budget_tracker.core.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)

    # False until the emailed verification code is confirmed.
    enabled = Column(Boolean, nullable=False, default=False, server_default="false")

    # Both set while verification is pending, both NULL afterwards.
    verification_code = Column(String(6), nullable=True)
    verification_expiration = Column(DateTime(timezone=True), nullable=True)

    # Assigned by UserRepository.save, not by the database.
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
