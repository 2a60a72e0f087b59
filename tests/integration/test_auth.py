"""
Integration tests for authentication, approval and profile endpoints.
"""

from datetime import timedelta

import pytest

from mentemerecedora.security import create_media_token
from mentemerecedora.storage.models import UserStatus
from tests.conftest import TEST_PASSWORD, make_user, token_for

pytestmark = pytest.mark.asyncio


class TestRegistration:
    """Tests for POST /api/auth/register."""

    async def test_register_creates_pending_account(self, client):
        response = await client.post("/api/auth/register", json={
            "name": "Carla",
            "email": "Carla@Example.com",
            "password": "segredo123",
        })

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["status"] == "pending"
        assert body["data"]["email"] == "carla@example.com"

    async def test_pending_account_cannot_login(self, client):
        await client.post("/api/auth/register", json={
            "name": "Carla", "email": "carla@example.com", "password": "segredo123",
        })

        response = await client.post("/api/auth/login", json={
            "email": "carla@example.com", "password": "segredo123",
        })

        assert response.status_code == 403
        assert response.json()["success"] is False
        assert response.json()["code"] == "FORBIDDEN"

    async def test_duplicate_email(self, client, user):
        response = await client.post("/api/auth/register", json={
            "name": "Outra Ana", "email": user.email, "password": "segredo123",
        })

        assert response.status_code == 400
        assert response.json()["code"] == "DUPLICATE"

    @pytest.mark.parametrize("payload", [
        {"name": "Carla", "email": "carla@example.com"},
        {"name": "Carla", "email": "not-an-email", "password": "segredo123"},
        {"name": "Carla", "email": "carla@example.com", "password": "123"},
    ])
    async def test_invalid_payload(self, client, payload):
        response = await client.post("/api/auth/register", json=payload)

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"


class TestLogin:
    """Tests for POST /api/auth/login and /api/auth/token."""

    async def test_login_approved(self, client, user):
        response = await client.post("/api/auth/login", json={
            "email": user.email, "password": TEST_PASSWORD,
        })

        assert response.status_code == 200
        body = response.json()
        assert body["token"]
        assert body["user"]["id"] == user.id
        assert "hashed_password" not in body["user"]

    async def test_wrong_password(self, client, user):
        response = await client.post("/api/auth/login", json={
            "email": user.email, "password": "errada",
        })
        assert response.status_code == 401

    async def test_unknown_email(self, client):
        response = await client.post("/api/auth/login", json={
            "email": "ninguem@example.com", "password": "x",
        })
        assert response.status_code == 401

    async def test_missing_field(self, client):
        response = await client.post("/api/auth/login", json={"email": "ana@example.com"})
        assert response.status_code == 400

    async def test_deactivated_account(self, client, services):
        make_user(services, email="off@example.com", status=UserStatus.DEACTIVATED)

        response = await client.post("/api/auth/login", json={
            "email": "off@example.com", "password": TEST_PASSWORD,
        })
        assert response.status_code == 403

    async def test_oauth2_token_form(self, client, user):
        response = await client.post("/api/auth/token", data={
            "username": user.email, "password": TEST_PASSWORD,
        })

        assert response.status_code == 200
        assert response.json()["token_type"] == "bearer"

        me = await client.get(
            "/api/auth/me",
            headers={"Authorization": f"Bearer {response.json()['access_token']}"},
        )
        assert me.json()["data"]["email"] == user.email


class TestTokens:
    """Tests for bearer token validation."""

    async def test_me(self, client, user, user_headers):
        response = await client.get("/api/auth/me", headers=user_headers)

        assert response.status_code == 200
        assert response.json()["data"]["id"] == user.id

    async def test_missing_token(self, client):
        response = await client.get("/api/auth/me")
        assert response.status_code == 401

    async def test_expired_token(self, client, services, user):
        token = token_for(services, user, expires=timedelta(seconds=-1))

        response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    async def test_malformed_token(self, client):
        response = await client.get("/api/auth/me", headers={"Authorization": "Bearer abc.def"})
        assert response.status_code == 401

    async def test_media_token_is_not_an_access_token(self, client, services):
        token = create_media_token("praticas/audio/x.mp3", services.settings.jwt_secret)

        response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    async def test_token_of_deleted_user(self, client, services, user, user_headers):
        services.user_repository.delete(user.id)

        response = await client.get("/api/auth/me", headers=user_headers)
        assert response.status_code == 401

    async def test_deactivated_after_login(self, client, services, user, user_headers):
        services.user_repository.set_status(user.id, UserStatus.DEACTIVATED)

        response = await client.get("/api/auth/me", headers=user_headers)
        assert response.status_code == 403

    async def test_logout(self, client, user_headers):
        response = await client.get("/api/auth/logout", headers=user_headers)
        assert response.status_code == 200
        assert response.json()["success"] is True


class TestAccountChanges:
    """Tests for details, password change and password reset."""

    async def test_update_details(self, client, user_headers):
        response = await client.put("/api/auth/updatedetails", headers=user_headers, json={
            "name": "Ana Maria", "bio": "Em transformação",
        })

        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Ana Maria"
        assert response.json()["data"]["bio"] == "Em transformação"

    async def test_update_details_email_taken(self, client, user_headers, other_user):
        response = await client.put("/api/auth/updatedetails", headers=user_headers, json={
            "email": other_user.email,
        })
        assert response.status_code == 400

    async def test_update_password(self, client, user, user_headers):
        response = await client.put("/api/auth/updatepassword", headers=user_headers, json={
            "current_password": TEST_PASSWORD, "new_password": "novasenha1",
        })
        assert response.status_code == 200
        assert response.json()["token"]

        login = await client.post("/api/auth/login", json={
            "email": user.email, "password": "novasenha1",
        })
        assert login.status_code == 200

    async def test_update_password_wrong_current(self, client, user_headers):
        response = await client.put("/api/auth/updatepassword", headers=user_headers, json={
            "current_password": "errada", "new_password": "novasenha1",
        })
        assert response.status_code == 401

    async def test_forgot_and_reset_password(self, client, user):
        forgot = await client.post("/api/auth/forgotpassword", json={"email": user.email})

        assert forgot.status_code == 200
        reset_token = forgot.json()["data"]["reset_token"]

        reset = await client.put(f"/api/auth/resetpassword/{reset_token}", json={"password": "outrasenha"})
        assert reset.status_code == 200
        assert reset.json()["user"]["email"] == user.email

        # Tokens are single use
        again = await client.put(f"/api/auth/resetpassword/{reset_token}", json={"password": "outrasenha"})
        assert again.status_code == 400

        login = await client.post("/api/auth/login", json={"email": user.email, "password": "outrasenha"})
        assert login.status_code == 200

    async def test_forgot_password_unknown_email(self, client):
        response = await client.post("/api/auth/forgotpassword", json={"email": "ninguem@example.com"})
        assert response.status_code == 404

    async def test_reset_with_invalid_token(self, client):
        response = await client.put("/api/auth/resetpassword/invalido", json={"password": "outrasenha"})
        assert response.status_code == 400


class TestApproval:
    """Tests for the admin approval gate."""

    async def test_non_admin_cannot_approve(self, client, services, user_headers):
        pending = make_user(services, email="nova@example.com", status=UserStatus.PENDING)

        response = await client.put(f"/api/admin/users/{pending.id}/approve", headers=user_headers)
        assert response.status_code == 403

    async def test_admin_approval_enables_login(self, client, services, admin_headers):
        pending = make_user(services, email="nova@example.com", status=UserStatus.PENDING)

        response = await client.put(f"/api/admin/users/{pending.id}/approve", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "approved"

        login = await client.post("/api/auth/login", json={
            "email": "nova@example.com", "password": TEST_PASSWORD,
        })
        assert login.status_code == 200


class TestProfile:
    """Tests for /api/perfil."""

    async def test_update_profile(self, client, user_headers):
        response = await client.put("/api/perfil", headers=user_headers, json={"bio": "Nova bio"})

        assert response.status_code == 200
        assert response.json()["data"]["bio"] == "Nova bio"

    async def test_upload_photo_replaces_previous(self, client, services, user_headers):
        first = await client.put(
            "/api/perfil/foto",
            headers=user_headers,
            files={"file": ("eu.png", b"\x89PNG-1", "image/png")},
        )
        assert first.status_code == 200
        first_image = first.json()["data"]["profile_image"]
        assert first.json()["data"]["profile_image_url"] == f"/api/proxy/media/{first_image}"

        second = await client.put(
            "/api/perfil/foto",
            headers=user_headers,
            files={"file": ("eu2.png", b"\x89PNG-2", "image/png")},
        )
        assert second.status_code == 200
        assert services.media_store.resolve(first_image) is None
        assert services.media_store.resolve(second.json()["data"]["profile_image"]) is not None

    async def test_upload_rejects_non_image(self, client, user_headers):
        response = await client.put(
            "/api/perfil/foto",
            headers=user_headers,
            files={"file": ("notas.txt", b"texto", "text/plain")},
        )
        assert response.status_code == 400
