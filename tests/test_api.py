"""HTTP tests — the FastAPI routers over a real context."""

from __future__ import annotations

import httpx
import pytest
import pytest_asyncio

from conftest import PASSWORD

from authcore.main import create_app
from authcore.models.otp import OtpPurpose


@pytest_asyncio.fixture
async def client(ctx):
    app = create_app(context=ctx)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def _register(client: httpx.AsyncClient, n: int) -> dict:
    resp = await client.post(
        "/auth/register",
        json={
            "full_name": f"User {n}",
            "email": f"user{n}@example.com",
            "phone_number": f"+6281200000{n:03d}",
            "password": PASSWORD,
        },
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def _auth(body: dict) -> dict:
    return {"Authorization": f"Bearer {body['tokens']['access_token']}"}


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_register_and_login(client):
    body = await _register(client, 1)
    assert body["user"]["email"] == "user1@example.com"
    assert "password" not in body["user"]
    assert body["tokens"]["token_type"] == "Bearer"

    resp = await client.post(
        "/auth/login", json={"identifier": "user1@example.com", "password": PASSWORD}
    )
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_error_body_shape(client):
    resp = await client.post(
        "/auth/login", json={"identifier": "nobody@example.com", "password": PASSWORD}
    )
    assert resp.status_code == 401
    assert resp.json() == {"error": "InvalidCredentialsError", "message": "Invalid credentials"}


@pytest.mark.asyncio
async def test_weak_password_details(client):
    resp = await client.post(
        "/auth/register",
        json={
            "full_name": "Weak",
            "email": "weak@example.com",
            "phone_number": "+628120000777",
            "password": "alllowercase1",
        },
    )
    assert resp.status_code == 422
    detail = resp.json()["details"][0]
    assert detail["field"] == "password"
    assert detail["type"] == "INSUFFICIENT_COMPLEXITY"


@pytest.mark.asyncio
async def test_missing_bearer_token(client):
    resp = await client.get("/users/me")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_profile_and_privilege_gate(client):
    await _register(client, 1)
    member = await _register(client, 2)

    resp = await client.get("/users/me", headers=_auth(member))
    assert resp.status_code == 200
    assert resp.json()["roles"] == ["USER"]

    resp = await client.get("/roles", headers=_auth(member))
    assert resp.status_code == 403
    assert resp.json()["details"] == [{"missing_privileges": ["role:read"]}]


@pytest.mark.asyncio
async def test_super_admin_manages_roles(client):
    admin = await _register(client, 1)
    headers = _auth(admin)

    resp = await client.post("/roles", json={"name": "AUDITOR"}, headers=headers)
    assert resp.status_code == 201
    role = resp.json()
    assert role["role_type"] == "CUSTOM"

    resp = await client.get(f"/roles/{role['id']}", headers=headers)
    assert resp.json()["user_count"] == 0

    resp = await client.get("/roles", params={"search": "USER"}, headers=headers)
    user_role = next(r for r in resp.json()["items"] if r["name"] == "USER")
    resp = await client.delete(f"/roles/{user_role['id']}", headers=headers)
    assert resp.status_code == 403

    resp = await client.delete(f"/roles/{role['id']}", headers=headers)
    assert resp.status_code == 204


@pytest.mark.asyncio
async def test_check_endpoint(client):
    member = await _register(client, 1)
    resp = await client.post(
        "/roles/check", json={"actions": ["profile:read", "user:delete"]}, headers=_auth(member)
    )
    assert resp.json() == {"granted": True}


@pytest.mark.asyncio
async def test_logout_then_refresh_is_rejected(client):
    body = await _register(client, 1)
    refresh_token = body["tokens"]["refresh_token"]

    resp = await client.post(
        "/auth/logout", json={"refresh_token": refresh_token}, headers=_auth(body)
    )
    assert resp.status_code == 200

    resp = await client.post("/auth/refresh", json={"refresh_token": refresh_token})
    assert resp.status_code == 401
    assert resp.json()["error"] == "RevokedTokenError"


@pytest.mark.asyncio
async def test_otp_request_does_not_reveal_accounts(client):
    resp = await client.post(
        "/auth/otp", json={"identifier": "ghost@example.com", "purpose": "PASSWORD_RESET"}
    )
    assert resp.status_code == 202


@pytest.mark.asyncio
async def test_verify_email(client, notifier):
    body = await _register(client, 1)
    code = notifier.last_code("user1@example.com", OtpPurpose.REGISTRATION)
    resp = await client.post(
        "/auth/verify", json={"code": code, "channel": "EMAIL"}, headers=_auth(body)
    )
    assert resp.status_code == 200
    assert resp.json()["verification_status"] == "PARTIALLY_VERIFIED"
