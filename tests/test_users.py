"""Tests for user registration and profile management."""

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tests.conftest import TEST_PASSWORD, auth_headers
from vatofotsy_api.auth.passwords import verify_password
from vatofotsy_api.errors import (
    EmailAlreadyRegistered,
    IncorrectPassword,
    PasswordTooLong,
    UserNotFound,
)
from vatofotsy_api.models import User
from vatofotsy_api.services import users as user_service


class TestUserService:
    async def test_create_user_hashes_password(self, async_session: AsyncSession):
        user = await user_service.create_user(
            async_session, "New@Example.com", TEST_PASSWORD, "New", "User"
        )

        assert user.email == "new@example.com"
        assert user.password_hash != TEST_PASSWORD
        assert verify_password(TEST_PASSWORD, user.password_hash)
        assert user.is_verified is True
        assert user.is_active is True

    async def test_create_user_rejects_password_over_72_bytes(
        self, async_session: AsyncSession
    ):
        # 72 characters but 90 bytes once encoded
        with pytest.raises(PasswordTooLong):
            await user_service.create_user(
                async_session, "wide@example.com", "Aé1!" * 18, "Wide", "User"
            )

        result = await async_session.execute(
            select(User).where(User.email == "wide@example.com")
        )
        assert result.scalar_one_or_none() is None

    async def test_duplicate_email(self, async_session: AsyncSession, make_user):
        await make_user(email="dup@example.com")
        with pytest.raises(EmailAlreadyRegistered):
            await user_service.create_user(
                async_session, "DUP@example.com", TEST_PASSWORD, "Other", "User"
            )

    async def test_email_unique_at_storage_layer(self, async_session: AsyncSession):
        async_session.add_all(
            [
                User(email="same@example.com", password_hash="x", first_name="A", last_name="B"),
                User(email="same@example.com", password_hash="y", first_name="C", last_name="D"),
            ]
        )
        with pytest.raises(IntegrityError):
            await async_session.commit()
        await async_session.rollback()

    async def test_get_unknown_user(self, async_session: AsyncSession):
        with pytest.raises(UserNotFound):
            await user_service.get_user(async_session, "missing")

    async def test_update_profile_only_touches_given_fields(
        self, async_session: AsyncSession, make_user
    ):
        user = await make_user(first_name="Ada", last_name="Lovelace")

        updated = await user_service.update_profile(
            async_session, user.id, user_service.UserProfilePatch(first_name="Augusta")
        )

        assert updated.first_name == "Augusta"
        assert updated.last_name == "Lovelace"

    async def test_change_password(self, async_session: AsyncSession, make_user):
        user = await make_user()

        await user_service.change_password(
            async_session, user.id, TEST_PASSWORD, "Another456?"
        )

        refreshed = await user_service.get_user(async_session, user.id)
        assert verify_password("Another456?", refreshed.password_hash)

    async def test_change_password_wrong_old(
        self, async_session: AsyncSession, make_user
    ):
        user = await make_user()
        with pytest.raises(IncorrectPassword):
            await user_service.change_password(
                async_session, user.id, "Wrong123!", "Another456?"
            )

    async def test_set_verified(self, async_session: AsyncSession, make_user):
        user = await make_user()
        user = await user_service.set_verified(async_session, user.id, False)
        assert user.is_verified is False


class TestUserRoutes:
    async def test_register(self, client: AsyncClient, async_session: AsyncSession):
        response = await client.post(
            "/api/v1/users",
            json={
                "email": "reg@example.com",
                "password": TEST_PASSWORD,
                "first_name": "Reg",
                "last_name": "Istered",
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "reg@example.com"
        assert "password" not in data
        assert "password_hash" not in data

        result = await async_session.execute(
            select(User).where(User.email == "reg@example.com")
        )
        assert result.scalar_one().first_name == "Reg"

    async def test_register_with_multibyte_password(self, client: AsyncClient):
        password = "Pässwörd1!"
        response = await client.post(
            "/api/v1/users",
            json={
                "email": "umlaut@example.com",
                "password": password,
                "first_name": "Um",
                "last_name": "Laut",
            },
        )
        assert response.status_code == 201

        login = await client.post(
            "/api/v1/auth/login",
            json={"email": "umlaut@example.com", "password": password},
        )
        assert login.status_code == 200

    async def test_register_twice_conflicts(self, client: AsyncClient):
        body = {
            "email": "twice@example.com",
            "password": TEST_PASSWORD,
            "first_name": "Two",
            "last_name": "Times",
        }
        first = await client.post("/api/v1/users", json=body)
        second = await client.post("/api/v1/users", json=body)

        assert first.status_code == 201
        assert second.status_code == 409
        assert second.json()["detail"] == "User with this email already exists"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"email": "not-an-email"},
            {"password": "short"},
            {"first_name": ""},
            {"last_name": "x" * 51},
            {"password": "Aé1!" * 18},
        ],
    )
    async def test_register_validation(self, client: AsyncClient, overrides):
        body = {
            "email": "valid@example.com",
            "password": TEST_PASSWORD,
            "first_name": "Valid",
            "last_name": "User",
            **overrides,
        }
        response = await client.post("/api/v1/users", json=body)
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_profile(self, client: AsyncClient, make_user):
        user = await make_user(first_name="Pro", last_name="File")

        response = await client.get("/api/v1/users/profile", headers=auth_headers(user))

        assert response.status_code == 200
        assert response.json()["id"] == user.id

    async def test_update_profile(self, client: AsyncClient, make_user):
        user = await make_user(first_name="Old", last_name="Name")

        response = await client.put(
            "/api/v1/users/profile",
            json={"last_name": "Surname"},
            headers=auth_headers(user),
        )

        assert response.status_code == 200
        assert response.json()["first_name"] == "Old"
        assert response.json()["last_name"] == "Surname"

    async def test_change_password_requires_strength(
        self, client: AsyncClient, make_user
    ):
        user = await make_user()

        weak = await client.put(
            "/api/v1/users/profile/password",
            json={"old_password": TEST_PASSWORD, "new_password": "alllowercase"},
            headers=auth_headers(user),
        )
        assert weak.status_code == 400

        too_wide = await client.put(
            "/api/v1/users/profile/password",
            json={"old_password": TEST_PASSWORD, "new_password": "Aé1!" * 18},
            headers=auth_headers(user),
        )
        assert too_wide.status_code == 400
        assert too_wide.json()["code"] == "VALIDATION_ERROR"

        wrong_old = await client.put(
            "/api/v1/users/profile/password",
            json={"old_password": "Wrong123!", "new_password": "Strong456?"},
            headers=auth_headers(user),
        )
        assert wrong_old.status_code == 400
        assert wrong_old.json()["code"] == "INCORRECT_PASSWORD"

        ok = await client.put(
            "/api/v1/users/profile/password",
            json={"old_password": TEST_PASSWORD, "new_password": "Strong456?"},
            headers=auth_headers(user),
        )
        assert ok.status_code == 204

        login = await client.post(
            "/api/v1/auth/login",
            json={"email": user.email, "password": "Strong456?"},
        )
        assert login.status_code == 200

    async def test_get_user_by_id(self, client: AsyncClient, make_user):
        viewer = await make_user()
        other = await make_user(first_name="Other")

        found = await client.get(f"/api/v1/users/{other.id}", headers=auth_headers(viewer))
        missing = await client.get("/api/v1/users/nope", headers=auth_headers(viewer))

        assert found.json()["first_name"] == "Other"
        assert missing.status_code == 404
