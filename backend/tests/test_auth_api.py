"""Tests for registration, login, logout and /me."""

from datetime import datetime, timedelta, timezone

import jwt
from sqlalchemy import select

from app.core.config import settings
from app.models.user import User
from app.modules.auth.policy import Principal
from conftest import API


async def register(client, email="jane@example.com", password="s3cret-pass", name="Jane Doe"):
    return await client.post(
        f"{API}/register",
        json={"name": name, "email": email, "password": password},
    )


class TestRegister:
    async def test_creates_user_without_exposing_hash(self, client, seed):
        response = await register(client)

        assert response.status_code == 201
        user = response.json()["data"]["user"]
        assert user["email"] == "jane@example.com"
        assert user["role"] == "USER"
        assert "hashed_password" not in user
        assert "password" not in user
        assert await seed.count(User) == 1

    async def test_stores_bcrypt_hash_not_plaintext(self, client, session_factory):
        await register(client, password="s3cret-pass")

        async with session_factory() as session:
            result = await session.execute(select(User))
            user = result.scalar_one()

        assert user.hashed_password != "s3cret-pass"
        assert user.hashed_password.startswith("$2b$10$")

    async def test_duplicate_email_conflicts_and_keeps_first(self, client, session_factory):
        await register(client, name="First User")
        response = await register(client, name="Second User", password="another-pass")

        assert response.status_code == 400
        assert response.json()["error"] == "Email already in use"

        async with session_factory() as session:
            users = (await session.execute(select(User))).scalars().all()
        assert len(users) == 1
        assert users[0].name == "First User"

    async def test_field_level_validation(self, client):
        response = await client.post(
            f"{API}/register",
            json={"name": "J", "email": "not-an-email", "password": "short"},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Invalid request data"
        assert set(body["details"]) == {"name", "email", "password"}


class TestLogin:
    async def test_sets_http_only_cookie(self, client, customer):
        response = await client.post(
            f"{API}/login",
            json={"email": "user@example.com", "password": "user12345"},
        )

        assert response.status_code == 200
        assert response.json()["data"]["user"]["id"] == customer.id
        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith("auth_token=")
        assert "HttpOnly" in set_cookie
        assert "Max-Age=604800" in set_cookie

    async def test_wrong_password_does_not_leak_field(self, client, customer):
        wrong_password = await client.post(
            f"{API}/login",
            json={"email": "user@example.com", "password": "nope-nope"},
        )
        unknown_email = await client.post(
            f"{API}/login",
            json={"email": "ghost@example.com", "password": "user12345"},
        )

        assert wrong_password.status_code == 401
        assert unknown_email.status_code == 401
        assert wrong_password.json() == unknown_email.json()
        assert wrong_password.json() == {"error": "Invalid email or password"}
        assert "set-cookie" not in wrong_password.headers

    async def test_login_then_me(self, client, customer):
        await client.post(
            f"{API}/login",
            json={"email": "user@example.com", "password": "user12345"},
        )
        response = await client.get(f"{API}/me")

        assert response.status_code == 200
        assert response.json()["data"]["email"] == "user@example.com"


class TestMe:
    async def test_requires_token(self, client):
        response = await client.get(f"{API}/me")
        assert response.status_code == 401

    async def test_invalid_token(self, client):
        client.cookies.set("auth_token", "not-a-jwt")
        response = await client.get(f"{API}/me")
        assert response.status_code == 401

    async def test_expired_token(self, client, customer):
        issued = datetime.now(timezone.utc) - timedelta(days=8)
        claims = Principal(id=customer.id, email=customer.email, role=customer.role).to_claims()
        token = jwt.encode(
            {**claims, "iat": issued, "exp": issued + timedelta(days=7)},
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )
        client.cookies.set("auth_token", token)

        response = await client.get(f"{API}/me")

        assert response.status_code == 401

    async def test_profile(self, customer_client, customer):
        response = await customer_client.get(f"{API}/me")

        data = response.json()["data"]
        assert data["id"] == customer.id
        assert data["name"] == "Regular User"
        assert data["role"] == "USER"


class TestLogout:
    async def test_clears_cookie(self, client, customer):
        await client.post(
            f"{API}/login",
            json={"email": "user@example.com", "password": "user12345"},
        )
        response = await client.post(f"{API}/logout")

        assert response.status_code == 200
        assert 'auth_token=""' in response.headers["set-cookie"]
        assert (await client.get(f"{API}/me")).status_code == 401
