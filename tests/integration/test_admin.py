"""
Integration tests for the admin back-office.
"""

import pytest

from mentemerecedora.assistant.service import MASKED_API_KEY
from mentemerecedora.storage.models import UserStatus
from tests.conftest import make_user

pytestmark = pytest.mark.asyncio


class TestAccess:

    async def test_regular_user_forbidden(self, client, user_headers):
        response = await client.get("/api/admin/users", headers=user_headers)
        assert response.status_code == 403

    async def test_anonymous_unauthorized(self, client):
        response = await client.get("/api/admin/stats")
        assert response.status_code == 401


class TestUserManagement:
    """Tests for /api/admin/users."""

    async def test_list_and_filter(self, client, services, admin_headers, user):
        make_user(services, name="Pendente", email="p@example.com", status=UserStatus.PENDING)

        everyone = await client.get("/api/admin/users", headers=admin_headers)
        assert everyone.json()["total"] == 3

        pending = await client.get("/api/admin/users?status=pending", headers=admin_headers)
        assert [u["email"] for u in pending.json()["data"]] == ["p@example.com"]

        queue = await client.get("/api/admin/users/pending", headers=admin_headers)
        assert queue.json()["count"] == 1

    async def test_check_email(self, client, admin_headers, user):
        taken = await client.get(f"/api/admin/users/check-email?email={user.email}", headers=admin_headers)
        assert taken.json()["data"] == {"email": user.email, "exists": True}

        own = await client.get(
            f"/api/admin/users/check-email?email={user.email}&exclude_id={user.id}",
            headers=admin_headers,
        )
        assert own.json()["data"]["exists"] is False

    async def test_create_user_approved_by_default(self, client, admin_headers):
        response = await client.post("/api/admin/users", headers=admin_headers, json={
            "name": "Direta", "email": "direta@example.com", "password": "segredo123",
        })

        assert response.status_code == 201
        assert response.json()["data"]["status"] == "approved"
        assert response.json()["data"]["role"] == "user"

        login = await client.post("/api/auth/login", json={
            "email": "direta@example.com", "password": "segredo123",
        })
        assert login.status_code == 200

    async def test_create_duplicate(self, client, admin_headers, user):
        response = await client.post("/api/admin/users", headers=admin_headers, json={
            "name": "Dup", "email": user.email, "password": "segredo123",
        })
        assert response.status_code == 400

    async def test_update_user(self, client, admin_headers, user):
        response = await client.put(f"/api/admin/users/{user.id}", headers=admin_headers, json={
            "name": "Ana Atualizada", "role": "admin", "password": "trocada123",
        })

        data = response.json()["data"]
        assert data["name"] == "Ana Atualizada"
        assert data["role"] == "admin"

        login = await client.post("/api/auth/login", json={"email": user.email, "password": "trocada123"})
        assert login.status_code == 200

    async def test_update_duplicate_email(self, client, admin_headers, user, other_user):
        response = await client.put(f"/api/admin/users/{user.id}", headers=admin_headers, json={
            "email": other_user.email,
        })
        assert response.status_code == 400

    async def test_cannot_demote_or_deactivate_self(self, client, admin, admin_headers):
        demote = await client.put(f"/api/admin/users/{admin.id}", headers=admin_headers, json={"role": "user"})
        assert demote.status_code == 403

        deactivate = await client.put(f"/api/admin/users/{admin.id}/deactivate", headers=admin_headers)
        assert deactivate.status_code == 403

        delete = await client.delete(f"/api/admin/users/{admin.id}", headers=admin_headers)
        assert delete.status_code == 403

    async def test_admin_can_rename_self(self, client, admin, admin_headers):
        response = await client.put(f"/api/admin/users/{admin.id}", headers=admin_headers, json={"name": "Chefe"})
        assert response.status_code == 200

    async def test_deactivate_blocks_access(self, client, admin_headers, user, user_headers):
        response = await client.put(f"/api/admin/users/{user.id}/deactivate", headers=admin_headers)
        assert response.json()["data"]["status"] == "deactivated"

        me = await client.get("/api/auth/me", headers=user_headers)
        assert me.status_code == 403

    async def test_delete_user_removes_records(
        self, client, services, admin_headers, user, user_headers, diary_entry_data,
    ):
        await client.post("/api/diario", headers=user_headers, json=diary_entry_data)

        response = await client.delete(f"/api/admin/users/{user.id}", headers=admin_headers)
        assert response.status_code == 200
        assert services.user_repository.get(user.id) is None
        assert services.diary_repository.count(user.id) == 0

    async def test_delete_user_removes_media(self, client, services, admin_headers, user, user_headers):
        photo = await client.put(
            "/api/perfil/foto", headers=user_headers, files={"file": ("eu.png", b"\x89PNG-1", "image/png")},
        )
        profile_image = photo.json()["data"]["profile_image"]

        quadro = await client.post("/api/manifestacao", headers=user_headers, json={"tipo": "quadro", "title": "Sonhos"})
        uploaded = await client.post(
            f"/api/manifestacao/{quadro.json()['data']['id']}/imagem",
            headers=user_headers,
            files={"file": ("visao.png", b"\x89PNG\r\n\x1a\nimagem", "image/png")},
        )
        board_image = uploaded.json()["data"]["images"][0]["path"].removeprefix("/api/proxy/media/")
        assert services.media_store.resolve(profile_image) is not None
        assert services.media_store.resolve(board_image) is not None

        response = await client.delete(f"/api/admin/users/{user.id}", headers=admin_headers)

        assert response.status_code == 200
        assert services.media_store.resolve(profile_image) is None
        assert services.media_store.resolve(board_image) is None

    async def test_unknown_user(self, client, admin_headers):
        for method in ("get", "delete"):
            response = await getattr(client, method)("/api/admin/users/nao-existe", headers=admin_headers)
            assert response.status_code == 404

        approve = await client.put("/api/admin/users/nao-existe/approve", headers=admin_headers)
        assert approve.status_code == 404


class TestOverview:
    """Tests for stats and the activity feed."""

    async def test_stats(self, client, services, admin_headers, user_headers, diary_entry_data):
        make_user(services, email="p@example.com", status=UserStatus.PENDING)
        await client.post("/api/diario", headers=user_headers, json=diary_entry_data)
        await client.post("/api/luz-ia/chat", headers=user_headers, json={"question": "Olá"})

        stats = (await client.get("/api/admin/stats", headers=admin_headers)).json()["data"]

        assert stats["total_users"] == 3
        assert stats["pending_users"] == 1
        assert stats["diary_entries"] == 1
        assert stats["luzia_interactions"] == 2
        assert stats["users_by_status"]["approved"] == 2

    async def test_recent_activities(self, client, admin_headers, user, user_headers, diary_entry_data):
        await client.post("/api/diario", headers=user_headers, json=diary_entry_data)
        await client.post("/api/manifestacao", headers=user_headers, json={"tipo": "quadro", "title": "Sonhos"})

        response = await client.get("/api/admin/recent-activities", headers=admin_headers)
        activities = response.json()["data"]

        types = {a["type"] for a in activities}
        assert {"usuario", "diario", "manifestacao"} <= types
        diary = next(a for a in activities if a["type"] == "diario")
        assert diary["description"] == f"{user.name} escreveu no Diário Quântico"


class TestLuzIAAdministration:
    """Tests for prompts, settings, knowledge base and metrics."""

    async def test_prompts(self, client, admin_headers):
        listed = await client.get("/api/admin/luzia/prompts", headers=admin_headers)
        assert {p["name"] for p in listed.json()["data"]} >= {"default", "financeiro"}

        updated = await client.put(
            "/api/admin/luzia/prompts/financeiro",
            headers=admin_headers,
            json={"template": "Fale de prosperidade: {question}\n{context}"},
        )
        assert updated.status_code == 200

        listed = await client.get("/api/admin/luzia/prompts", headers=admin_headers)
        templates = {p["name"]: p["template"] for p in listed.json()["data"]}
        assert templates["financeiro"].startswith("Fale de prosperidade")

    async def test_blank_prompt_rejected(self, client, admin_headers):
        response = await client.put(
            "/api/admin/luzia/prompts/financeiro", headers=admin_headers, json={"template": "   "},
        )
        assert response.status_code == 400

    async def test_settings_mask_api_key(self, client, services, admin_headers):
        payload = {
            "model": "gpt-4o",
            "max_tokens": 1500,
            "temperature": 0.5,
            "personality_level": "suave",
            "api_key": "sk-secret",
        }
        response = await client.put("/api/admin/luzia/settings", headers=admin_headers, json=payload)

        data = response.json()["data"]
        assert data["model"] == "gpt-4o"
        assert data["api_key"] == MASKED_API_KEY
        assert services.assistant.settings.api_key == "sk-secret"

        # Sending the mask back keeps the stored key
        await client.put(
            "/api/admin/luzia/settings", headers=admin_headers, json={**payload, "api_key": MASKED_API_KEY},
        )
        assert services.assistant.settings.api_key == "sk-secret"

        fetched = await client.get("/api/admin/luzia/settings", headers=admin_headers)
        assert fetched.json()["data"]["api_key"] == MASKED_API_KEY

    @pytest.mark.parametrize("override", [
        {"personality_level": "furioso"},
        {"temperature": 3},
        {"max_tokens": 0},
    ])
    async def test_invalid_settings(self, client, admin_headers, override):
        payload = {"model": "gpt-4o", "max_tokens": 1500, "temperature": 0.5, "personality_level": "suave"}

        response = await client.put(
            "/api/admin/luzia/settings", headers=admin_headers, json={**payload, **override},
        )
        assert response.status_code == 400

    async def test_knowledge_base_lifecycle(self, client, admin_headers):
        initial = (await client.get("/api/admin/luzia/knowledgebase", headers=admin_headers)).json()["data"]
        assert initial["files"] == []
        assert initial["using_fallback"] is True

        uploaded = await client.post(
            "/api/admin/luzia/knowledgebase",
            headers=admin_headers,
            files={"file": ("aula1.txt", "A gratidão abre caminhos.".encode("utf-8"), "text/plain")},
        )
        assert uploaded.status_code == 201
        name = uploaded.json()["data"]["name"]
        assert uploaded.json()["data"]["chunks"] == 1

        listed = (await client.get("/api/admin/luzia/knowledgebase", headers=admin_headers)).json()["data"]
        assert [f["name"] for f in listed["files"]] == [name]
        assert listed["using_fallback"] is False

        removed = await client.delete(f"/api/admin/luzia/knowledgebase/{name}", headers=admin_headers)
        assert removed.status_code == 200

        missing = await client.delete(f"/api/admin/luzia/knowledgebase/{name}", headers=admin_headers)
        assert missing.status_code == 404

        reset = await client.post("/api/admin/luzia/knowledgebase/reset", headers=admin_headers)
        assert reset.json()["data"]["using_fallback"] is True

    async def test_knowledge_base_rejects_pdf(self, client, admin_headers):
        response = await client.post(
            "/api/admin/luzia/knowledgebase",
            headers=admin_headers,
            files={"file": ("slides.pdf", b"%PDF", "application/pdf")},
        )
        assert response.status_code == 400

    async def test_conversations_and_metrics(self, client, admin_headers, user, user_headers):
        empty = (await client.get("/api/admin/luzia/metrics", headers=admin_headers)).json()["data"]
        assert empty["average_messages"] == 0
        assert [t["count"] for t in empty["top_topics"]] == [0, 0, 0]

        await client.post(
            "/api/luz-ia/chat",
            headers=user_headers,
            json={"question": "Como meditar melhor todos os dias?", "prompt_type": "meditacao"},
        )

        conversations = (await client.get("/api/admin/luzia/conversations", headers=admin_headers)).json()["data"]
        assert conversations[0]["user"] == user.name
        assert conversations[0]["messages"] == 2
        assert conversations[0]["topic"] == "meditacao"
        assert conversations[0]["preview"].startswith("Como meditar")

        metrics = (await client.get("/api/admin/luzia/metrics", headers=admin_headers)).json()["data"]
        assert metrics["total_conversations"] == 1
        assert metrics["total_messages"] == 2
        assert metrics["average_messages"] == 2
        assert metrics["top_users"] == [{"user_id": user.id, "name": user.name, "conversations": 1}]
        assert metrics["top_topics"] == [{"topic": "meditacao", "count": 2}]
