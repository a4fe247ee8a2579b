"""
User endpoint tests: registration, login, the current user and account
updates, including duplicate handling and token authentication.
"""
import pytest
from httpx import AsyncClient

from helpers import PASSWORD, auth, register


@pytest.mark.asyncio
async def test_register_returns_user_with_token(async_client: AsyncClient):
    resp = await async_client.post("/api/users", json={"user": {
        "username": "jakejake",
        "email": "jake@mail.com",
        "password": PASSWORD,
    }})
    assert resp.status_code == 201
    user = resp.json()["user"]
    assert user["username"] == "jakejake"
    assert user["email"] == "jake@mail.com"
    assert user["bio"] is None
    assert user["image"] is None
    assert user["token"]
    assert "password" not in user


@pytest.mark.asyncio
async def test_register_duplicate_username_returns_409(async_client: AsyncClient):
    await register(async_client, "jakejake", "jake@mail.com")
    resp = await async_client.post("/api/users", json={"user": {
        "username": "jakejake",
        "email": "other@mail.com",
        "password": PASSWORD,
    }})
    assert resp.status_code == 409
    assert resp.json() == {"errors": {"body": ["A user with this username already exists."]}}


@pytest.mark.asyncio
async def test_register_duplicate_email_returns_409(async_client: AsyncClient):
    await register(async_client, "jakejake", "jake@mail.com")
    resp = await async_client.post("/api/users", json={"user": {
        "username": "another",
        "email": "jake@mail.com",
        "password": PASSWORD,
    }})
    assert resp.status_code == 409
    assert resp.json()["errors"]["body"] == ["A user with this email address already exists."]


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [
    {"username": "jakejake", "email": "not-an-email", "password": PASSWORD},
    {"username": "jake", "email": "jake@mail.com", "password": PASSWORD},
    {"username": "jakejake", "email": "jake@mail.com", "password": "short"},
    {"email": "jake@mail.com", "password": PASSWORD},
])
async def test_register_validation_errors(async_client: AsyncClient, payload: dict):
    resp = await async_client.post("/api/users", json={"user": payload})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_login(async_client: AsyncClient):
    await register(async_client, "jakejake", "jake@mail.com")
    resp = await async_client.post("/api/users/login", json={"user": {
        "email": "jake@mail.com",
        "password": PASSWORD,
    }})
    assert resp.status_code == 200
    assert resp.json()["user"]["username"] == "jakejake"
    assert resp.json()["user"]["token"]


@pytest.mark.asyncio
@pytest.mark.parametrize("email, password", [
    ("jake@mail.com", "wrong-password"),
    ("nobody@mail.com", PASSWORD),
])
async def test_login_rejects_bad_credentials(async_client: AsyncClient, email: str, password: str):
    await register(async_client, "jakejake", "jake@mail.com")
    resp = await async_client.post("/api/users/login", json={"user": {"email": email, "password": password}})
    assert resp.status_code == 401
    assert resp.json()["errors"]["body"] == ["Invalid email or password."]


@pytest.mark.asyncio
async def test_current_user_echoes_token(async_client: AsyncClient):
    user = await register(async_client, "jakejake")
    resp = await async_client.get("/api/user", headers=auth(user))
    assert resp.status_code == 200
    assert resp.json()["user"]["username"] == "jakejake"
    assert resp.json()["user"]["token"] == user["token"]


@pytest.mark.asyncio
@pytest.mark.parametrize("headers", [
    {},
    {"Authorization": "Bearer abc"},
    {"Authorization": "Token not-a-jwt"},
])
async def test_current_user_requires_valid_token(async_client: AsyncClient, headers: dict):
    resp = await async_client.get("/api/user", headers=headers)
    assert resp.status_code == 401
    assert resp.headers["www-authenticate"] == "Token"


@pytest.mark.asyncio
async def test_update_user(async_client: AsyncClient):
    user = await register(async_client, "jakejake", "jake@mail.com")
    resp = await async_client.put("/api/user", headers=auth(user), json={"user": {
        "bio": "I work at statefarm",
        "image": "https://i.imgur.com/jake.jpg",
    }})
    assert resp.status_code == 200
    updated = resp.json()["user"]
    assert updated["bio"] == "I work at statefarm"
    assert updated["image"] == "https://i.imgur.com/jake.jpg"
    assert updated["email"] == "jake@mail.com"

    # The cached user was dropped, so the next request sees the new row.
    resp = await async_client.get("/api/user", headers=auth(user))
    assert resp.json()["user"]["bio"] == "I work at statefarm"


@pytest.mark.asyncio
async def test_update_email_and_password(async_client: AsyncClient):
    user = await register(async_client, "jakejake", "jake@mail.com")
    resp = await async_client.put("/api/user", headers=auth(user), json={"user": {
        "email": "jake2@mail.com",
        "password": "new-password",
    }})
    assert resp.status_code == 200
    new_token = resp.json()["user"]["token"]

    login = await async_client.post("/api/users/login", json={"user": {
        "email": "jake2@mail.com",
        "password": "new-password",
    }})
    assert login.status_code == 200

    # Tokens are bound to the email they were issued for.
    assert (await async_client.get("/api/user", headers=auth(user))).status_code == 401
    resp = await async_client.get("/api/user", headers={"Authorization": f"Token {new_token}"})
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_update_to_taken_username_returns_409(async_client: AsyncClient):
    await register(async_client, "taken_name")
    user = await register(async_client, "jakejake")
    resp = await async_client.put("/api/user", headers=auth(user), json={"user": {"username": "taken_name"}})
    assert resp.status_code == 409
