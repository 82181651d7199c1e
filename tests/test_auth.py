"""
Auth hardening: HttpOnly cookies, role-bearing tokens and guard behaviour.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import (create_access_token, create_refresh_token,
                               decode_access_token, get_password_hash,
                               hash_credential, verify_credential)
from app.models.user import User


@pytest.mark.asyncio
async def test_auth_cookies_httponly(async_client: AsyncClient, db_session: AsyncSession):
    """Login sets HttpOnly cookies and returns the caller's role."""
    email = "cookie@test.com"
    password = "password123"
    user = User(email=email, hashed_password=get_password_hash(password), is_active=True, role="manager")
    db_session.add(user)
    await db_session.commit()

    response = await async_client.post(
        "/api/v1/auth/login", data={"username": email, "password": password}
    )
    assert response.status_code == 200
    assert response.json()["role"] == "manager"

    assert "access_token" in response.cookies
    assert "refresh_token" in response.cookies

    # Validating the raw Set-Cookie header is more robust than the cookie jar
    set_cookie = response.headers.get("set-cookie")
    assert "HttpOnly" in set_cookie
    assert "SameSite=lax" in set_cookie

    payload = decode_access_token(response.json()["access_token"])
    assert payload["sub"] == str(user.id)
    assert payload["role"] == "manager"


@pytest.mark.asyncio
async def test_login_wrong_password(async_client: AsyncClient, db_session: AsyncSession):
    db_session.add(User(email="wrong@test.com", hashed_password=get_password_hash("right-one"), role="admin"))
    await db_session.commit()

    response = await async_client.post(
        "/api/v1/auth/login", data={"username": "wrong@test.com", "password": "nope"}
    )
    assert response.status_code == 401
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_refresh_rotates_tokens(async_client: AsyncClient, db_session: AsyncSession):
    user = User(email="refresh@test.com", hashed_password="x", role="employee")
    db_session.add(user)
    await db_session.commit()

    response = await async_client.post(
        "/api/v1/auth/refresh", json={"refresh_token": create_refresh_token(user.id)}
    )
    assert response.status_code == 200
    assert response.json()["role"] == "employee"


@pytest.mark.asyncio
async def test_access_token_is_not_a_refresh_token(async_client: AsyncClient):
    response = await async_client.post(
        "/api/v1/auth/refresh", json={"refresh_token": create_access_token(1)}
    )
    assert response.status_code == 401


def test_credential_hashing():
    hashed = hash_credential("fp-credential-xyz")
    assert hashed != "fp-credential-xyz"
    assert verify_credential("fp-credential-xyz", hashed)
    assert not verify_credential("fp-credential-abc", hashed)
    assert not verify_credential("fp-credential-xyz", None)
    assert not verify_credential("fp-credential-xyz", "not-a-bcrypt-hash")
