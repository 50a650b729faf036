from __future__ import annotations

import uuid
from datetime import timedelta

import pytest
from fastapi import HTTPException
from sqlalchemy import select

from mutual_help.db import get_sessionmaker
from mutual_help.deps import get_current_token
from mutual_help.models import ResetPasswordToken, Token, utcnow

from conftest import auth_headers, login


async def _reset_token_of(user_id: str) -> ResetPasswordToken:
    Session = get_sessionmaker()
    async with Session() as session:
        res = await session.execute(
            select(ResetPasswordToken)
            .where(ResetPasswordToken.user_id == uuid.UUID(user_id))
            .order_by(ResetPasswordToken.created_at.desc())
        )
        return res.scalars().first()


@pytest.mark.anyio
async def test_register_login_and_self(client, user_a):
    r = await client.get("/api/users/self", headers=auth_headers(user_a.token))
    assert r.status_code == 200, r.text
    me = r.json()
    assert me["id"] == user_a.id
    assert me["email"] == user_a.email
    assert me["user_type"] == "standard"
    assert "password_hash" not in me

    token = await login(client, user_a.email, user_a.password)
    assert token


@pytest.mark.anyio
async def test_register_duplicate_email_conflict(client, user_a):
    payload = {"firstname": "Other", "lastname": "Person", "email": user_a.email.upper(), "password": "whatever_123"}
    r = await client.post("/api/users/register", json=payload)
    assert r.status_code == 409, r.text


@pytest.mark.anyio
async def test_login_wrong_password(client, user_a):
    r = await client.post("/api/users/login", json={"email": user_a.email, "password": "nope_nope"})
    assert r.status_code == 401, r.text


@pytest.mark.anyio
async def test_protected_endpoint_requires_token(client):
    r = await client.get("/api/users/self")
    assert r.status_code == 401

    r = await client.get("/api/users/self", headers=auth_headers("not-a-jwt"))
    assert r.status_code == 401


@pytest.mark.anyio
async def test_login_keeps_at_most_two_tokens(client, user_a):
    # user_a already holds the token issued by /register
    second = await login(client, user_a.email, user_a.password)
    third = await login(client, user_a.email, user_a.password)

    # the oldest one was dropped
    r = await client.get("/api/users/self", headers=auth_headers(user_a.token))
    assert r.status_code == 401
    for token in (second, third):
        r = await client.get("/api/users/self", headers=auth_headers(token))
        assert r.status_code == 200, r.text

    Session = get_sessionmaker()
    async with Session() as session:
        res = await session.execute(select(Token).where(Token.user_id == uuid.UUID(user_a.id)))
        assert len(res.scalars().all()) == 2


@pytest.mark.anyio
async def test_logout_revokes_only_presented_token(client, user_a):
    other = await login(client, user_a.email, user_a.password)

    r = await client.delete("/api/users/logout", headers=auth_headers(user_a.token))
    assert r.status_code == 204, r.text

    r = await client.get("/api/users/self", headers=auth_headers(user_a.token))
    assert r.status_code == 401
    r = await client.get("/api/users/self", headers=auth_headers(other))
    assert r.status_code == 200


@pytest.mark.anyio
async def test_logout_all(client, user_a):
    other = await login(client, user_a.email, user_a.password)

    r = await client.delete("/api/users/logout/all", headers=auth_headers(other))
    assert r.status_code == 204, r.text

    for token in (user_a.token, other):
        r = await client.get("/api/users/self", headers=auth_headers(token))
        assert r.status_code == 401


@pytest.mark.anyio
async def test_current_token_without_credentials_is_401(user_a):
    with pytest.raises(HTTPException) as exc:
        await get_current_token(creds=None, user=user_a)
    assert exc.value.status_code == 401


@pytest.mark.anyio
async def test_edit_profile(auth_client_a, user_b):
    r = await auth_client_a.put(
        "/api/users/edit",
        json={"firstname": "Alicia", "lastname": "Martin", "email": user_b.email},
    )
    assert r.status_code == 409, r.text

    r = await auth_client_a.put(
        "/api/users/edit",
        json={"firstname": "Alicia", "lastname": "Martin", "email": "Alicia.Martin@Example.com"},
    )
    assert r.status_code == 200, r.text
    assert r.json()["firstname"] == "Alicia"
    assert r.json()["email"] == "alicia.martin@example.com"


@pytest.mark.anyio
async def test_change_password(client, auth_client_a, user_a):
    r = await auth_client_a.put(
        "/api/users/change/password",
        json={"old_password": "wrong_password", "new_password": "brand_new_123"},
    )
    assert r.status_code == 400, r.text

    r = await auth_client_a.put(
        "/api/users/change/password",
        json={"old_password": user_a.password, "new_password": "brand_new_123"},
    )
    assert r.status_code == 202, r.text

    r = await client.post("/api/users/login", json={"email": user_a.email, "password": user_a.password})
    assert r.status_code == 401
    await login(client, user_a.email, "brand_new_123")


@pytest.mark.anyio
async def test_reset_password_flow(client, user_a):
    r = await client.post("/api/users/resetPassword", json={"email": "nobody@example.com"})
    assert r.status_code == 404

    r = await client.post("/api/users/resetPassword", json={"email": user_a.email})
    assert r.status_code == 202, r.text

    reset = await _reset_token_of(user_a.id)
    assert reset is not None

    r = await client.post("/api/users/confirmResetToken", json={"token": reset.token})
    assert r.status_code == 200, r.text
    assert r.json() == {"is_valid": True}

    r = await client.post("/api/users/updatePassword", json={"token": reset.token, "password": "after_reset_1"})
    assert r.status_code == 202, r.text

    # single use, and every login token is gone
    r = await client.post("/api/users/confirmResetToken", json={"token": reset.token})
    assert r.json() == {"is_valid": False}
    r = await client.get("/api/users/self", headers=auth_headers(user_a.token))
    assert r.status_code == 401

    await login(client, user_a.email, "after_reset_1")


@pytest.mark.anyio
async def test_expired_reset_token_is_deleted(client, user_a):
    r = await client.post("/api/users/resetPassword", json={"email": user_a.email})
    assert r.status_code == 202, r.text
    reset = await _reset_token_of(user_a.id)

    Session = get_sessionmaker()
    async with Session() as session:
        row = await session.get(ResetPasswordToken, reset.id)
        row.created_at = utcnow() - timedelta(hours=2)
        await session.commit()

    r = await client.post("/api/users/updatePassword", json={"token": reset.token, "password": "too_late_123"})
    assert r.status_code == 404

    assert await _reset_token_of(user_a.id) is None


@pytest.mark.anyio
async def test_admin_endpoints(client, admin_client, auth_client_a, user_a):
    r = await auth_client_a.get("/api/users/all")
    assert r.status_code == 403
    r = await auth_client_a.get("/api/users/access")
    assert r.status_code == 403

    r = await admin_client.get("/api/users/access")
    assert r.status_code == 200, r.text
    assert r.json()["user_type"] == "admin"

    r = await admin_client.get("/api/users/all")
    assert r.status_code == 200, r.text
    assert user_a.id in {u["id"] for u in r.json()}

    r = await admin_client.put(f"/api/users/{user_a.id}/type", json={"user_type": "restricted"})
    assert r.status_code == 200, r.text
    assert r.json()["user_type"] == "restricted"

    # restricted users keep their account but cannot publish
    r = await auth_client_a.get("/api/users/self")
    assert r.status_code == 200
    r = await auth_client_a.post("/api/countries", json={"country": "Belgique"})
    assert r.status_code == 403


@pytest.mark.anyio
async def test_delete_user_self_and_forbidden_for_others(client, auth_client_a, auth_client_b, user_a, user_b):
    r = await auth_client_b.delete(f"/api/users/delete/user/{user_a.id}")
    assert r.status_code == 403

    r = await auth_client_a.delete(f"/api/users/delete/user/{user_a.id}")
    assert r.status_code == 204, r.text

    r = await client.post("/api/users/login", json={"email": user_a.email, "password": user_a.password})
    assert r.status_code == 401
    r = await client.get("/api/users/self", headers=auth_headers(user_a.token))
    assert r.status_code == 401
