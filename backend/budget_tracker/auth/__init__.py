# budget_tracker/auth/__init__.py
"""
Authentication building blocks.

This package contains:
- identity.py: authenticated identity model and the account -> identity mapping
- tokens.py: signed bearer token issuance and validation
- verification_codes.py: short-lived numeric email verification codes
"""
from budget_tracker.auth.identity import Identity, to_identity
from budget_tracker.auth.tokens import TokenService

__all__ = ["Identity", "TokenService", "to_identity"]
