"""Auth API tests.

Learn: Tests cover:
1. Registration + duplicate prevention + input validation
2. Login → token (body and cookie)
3. The protected /auth/whoami endpoint with good and bad tokens
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from taskmanager.auth.jwt import token_service

STRONG_PASSWORD = "Strong1!pw"


def unique_email(prefix: str = "user") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}@example.com"


# ═══════════════════════════════════════════════════════════
# Registration
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_user(client):
    """Register a new user account."""
    email = unique_email("reg")
    r = await client.post("/auth/register", json={"email": email, "password": STRONG_PASSWORD})
    assert r.status_code == 201
    user = r.json()
    assert user["email"] == email
    assert "id" in user
    assert "created_at" in user
    assert "password" not in user
    assert "password_hash" not in user


@pytest.mark.asyncio
async def test_register_duplicate_email(client):
    """Can't register with the same email twice."""
    body = {"email": unique_email("dup"), "password": STRONG_PASSWORD}

    r1 = await client.post("/auth/register", json=body)
    assert r1.status_code == 201

    r2 = await client.post("/auth/register", json=body)
    assert r2.status_code == 400
    assert r2.json()["error"] == "user with such email already exists"


@pytest.mark.asyncio
@pytest.mark.parametrize("password", ["short", "alllowercase1!", "NoDigits!!", "NoSpecial11"])
async def test_register_weak_password(client, password):
    r = await client.post("/auth/register", json={"email": unique_email(), "password": password})
    assert r.status_code == 400
    assert "password" in r.json()["error"]


@pytest.mark.asyncio
async def test_register_invalid_email(client):
    r = await client.post("/auth/register", json={"email": "not-an-email", "password": STRONG_PASSWORD})
    assert r.status_code == 400
    assert "email" in r.json()["error"]


@pytest.mark.asyncio
async def test_register_missing_field(client):
    r = await client.post("/auth/register", json={"email": unique_email()})
    assert r.status_code == 400
    assert "error" in r.json()


@pytest.mark.asyncio
async def test_register_malformed_body(client):
    r = await client.post(
        "/auth/register",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert r.status_code == 400


# ═══════════════════════════════════════════════════════════
# Login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_login_returns_token(client):
    """Login returns a token that verifies to the user's email."""
    email = unique_email("login")
    await client.post("/auth/register", json={"email": email, "password": STRONG_PASSWORD})

    r = await client.post("/auth/login", json={"email": email, "password": STRONG_PASSWORD})
    assert r.status_code == 200
    token = r.json()["token"]
    assert token_service.verify(token) == email
    assert r.cookies.get("auth_token") == token


@pytest.mark.asyncio
async def test_login_wrong_password(client):
    email = unique_email("wrong")
    await client.post("/auth/register", json={"email": email, "password": STRONG_PASSWORD})

    r = await client.post("/auth/login", json={"email": email, "password": "Wrong1!pw"})
    assert r.status_code == 401
    assert r.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_login_unknown_email(client):
    """Unknown email looks exactly like a wrong password."""
    r = await client.post("/auth/login", json={"email": unique_email("ghost"), "password": STRONG_PASSWORD})
    assert r.status_code == 401
    assert r.json()["error"] == "invalid credentials"


# ═══════════════════════════════════════════════════════════
# whoami
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_whoami_with_token(client, make_user):
    user = await make_user()
    r = await client.get("/auth/whoami", headers=user["headers"])
    assert r.status_code == 200
    assert r.json()["email"] == user["email"]
    assert r.json()["id"] == user["id"]


@pytest.mark.asyncio
async def test_whoami_without_token(client):
    r = await client.get("/auth/whoami")
    assert r.status_code == 401


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "header",
    ["Bearer garbage", "Bearer", "Basic dXNlcjpwYXNz", "Bearer a b"],
)
async def test_whoami_bad_header(client, header):
    r = await client.get("/auth/whoami", headers={"Authorization": header})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_whoami_expired_token(client, make_user):
    user = await make_user()
    expired = token_service.issue_with_expiry(
        user["email"], datetime.now(timezone.utc) - timedelta(minutes=1)
    )
    r = await client.get("/auth/whoami", headers={"Authorization": f"Bearer {expired}"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_whoami_token_for_unknown_user(client):
    """A validly signed token for an email with no account is rejected."""
    token = token_service.issue(unique_email("nobody"))
    r = await client.get("/auth/whoami", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
