# tests/test_authentication_middleware.py
"""
Request authentication filter.

The filter only establishes identity. Rejecting unauthenticated callers is
left to ``get_current_user``, so the two failure modes are distinguishable:
  - INVALID_TOKEN: the filter refused an undecodable token and stopped the request
  - UNAUTHORIZED: the request reached a protected route without an identity
"""
from __future__ import annotations

import base64
from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from budget_tracker.auth.tokens import TokenService
from budget_tracker.models.user import User

from conftest import TEST_JWT_SECRET, FakeClock


def test_no_header_passes_through_to_public_routes(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}


def test_no_header_on_protected_route_is_unauthorized(client):
    res = client.get("/v1/users/me")
    assert res.status_code == 401
    assert res.json()["error"] == "UNAUTHORIZED"
    assert res.headers.get("www-authenticate") == "Bearer"


def test_non_bearer_header_is_ignored(client, users):
    res = client.get("/v1/users/me", headers={"Authorization": "Basic amFuZTpwdzEyMw=="})
    assert res.status_code == 401
    assert res.json()["error"] == "UNAUTHORIZED"

    # Lowercase scheme is not the "Bearer " prefix either.
    res2 = client.get("/health", headers={"Authorization": "bearer whatever"})
    assert res2.status_code == 200


def test_valid_token_authenticates(client, users, auth_headers):
    res = client.get("/v1/users/me", headers=auth_headers("jane@example.com"))
    assert res.status_code == 200
    assert res.json()["email"] == "jane@example.com"


def test_garbage_token_stops_the_request(client):
    res = client.get("/health", headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 401
    assert res.json() == {"error": "INVALID_TOKEN", "message": "Invalid token."}


def test_token_signed_with_other_secret_is_rejected(client, users):
    other = base64.b64encode(b"someone-elses-signing-key-000000000000").decode()
    token = TokenService(other, timedelta(hours=1)).issue("jane@example.com")

    res = client.get("/v1/users/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401
    assert res.json()["error"] == "INVALID_TOKEN"


def test_expired_token_leaves_request_unauthenticated(client, users):
    issued_long_ago = FakeClock(datetime.now(timezone.utc) - timedelta(hours=2))
    token = TokenService(TEST_JWT_SECRET, timedelta(hours=1), clock=issued_long_ago).issue("jane@example.com")

    res = client.get("/v1/users/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401
    assert res.json()["error"] == "UNAUTHORIZED"

    # Public routes still work with an expired (but well-formed) token.
    assert client.get("/health", headers={"Authorization": f"Bearer {token}"}).status_code == 200


def test_token_for_unknown_account_is_unauthenticated(client, auth_headers):
    res = client.get("/v1/users/me", headers=auth_headers("ghost@example.com"))
    assert res.status_code == 401
    assert res.json()["error"] == "UNAUTHORIZED"


def test_token_for_disabled_account_is_unauthenticated(client, users, auth_headers):
    _, pending = users
    res = client.get("/v1/users/me", headers=auth_headers(pending.email))
    assert res.status_code == 401
    assert res.json()["error"] == "UNAUTHORIZED"


def test_list_users_requires_authentication(client, users, auth_headers):
    assert client.get("/v1/users/").status_code == 401

    res = client.get("/v1/users/", headers=auth_headers("jane@example.com"))
    assert res.status_code == 200
    emails = [u["email"] for u in res.json()]
    assert emails == ["jane@example.com", "pending@example.com"]
    assert all("verificationCode" not in u for u in res.json())


def test_identity_is_per_request(app, users, auth_headers):
    with TestClient(app) as http:
        assert http.get("/v1/users/me", headers=auth_headers("jane@example.com")).status_code == 200
        # Next request on the same client carries no header and must not inherit the identity.
        assert http.get("/v1/users/me").status_code == 401


def test_deleted_account_token_stops_working(client, users, auth_headers, db_session: Session):
    verified, _ = users
    headers = auth_headers(verified.email)
    assert client.get("/v1/users/me", headers=headers).status_code == 200

    db_session.delete(db_session.get(User, verified.id))
    db_session.commit()

    assert client.get("/v1/users/me", headers=headers).status_code == 401
