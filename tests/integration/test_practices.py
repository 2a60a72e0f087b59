"""
Integration tests for guided practices and the media proxy.
"""

from urllib.parse import parse_qs, urlparse

import pytest

pytestmark = pytest.mark.asyncio

MP3 = ("meditacao.mp3", b"ID3" + b"\x00" * 64, "audio/mpeg")


@pytest.fixture
async def practice(client, admin_headers, practice_data):
    response = await client.post("/api/praticas", headers=admin_headers, json=practice_data)
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture
async def practice_with_audio(client, admin_headers, practice):
    response = await client.put(
        f"/api/praticas/{practice['id']}/audio", headers=admin_headers, files={"file": MP3},
    )
    assert response.status_code == 200, response.text
    return response.json()["data"]


class TestCatalogue:
    """Tests for listing and reading practices."""

    async def test_admin_creates_practice(self, practice):
        assert practice["category"] == "alpha"
        assert practice["active"] is True
        assert practice["has_audio"] is False

    async def test_user_cannot_create(self, client, user_headers, practice_data):
        response = await client.post("/api/praticas", headers=user_headers, json=practice_data)
        assert response.status_code == 403

    async def test_list_with_filters(self, client, admin_headers, user_headers, practice):
        await client.post("/api/praticas", headers=admin_headers, json={
            "title": "Escada da Abundância", "description": "Visualização", "category": "escada",
        })

        everything = await client.get("/api/praticas?categoria=todas", headers=user_headers)
        assert everything.json()["total"] == 2

        alpha = await client.get("/api/praticas?categoria=alpha", headers=user_headers)
        assert [p["id"] for p in alpha.json()["data"]] == [practice["id"]]

        featured = await client.get("/api/praticas?destaque=true", headers=user_headers)
        assert featured.json()["total"] == 1

        found = await client.get("/api/praticas?search=escada", headers=user_headers)
        assert found.json()["data"][0]["title"] == "Escada da Abundância"

    async def test_inactive_hidden_from_users(self, client, admin_headers, user_headers, practice):
        toggled = await client.put(f"/api/praticas/{practice['id']}/toggle", headers=admin_headers)
        assert toggled.json()["data"]["active"] is False

        listed = await client.get("/api/praticas", headers=user_headers)
        assert listed.json()["total"] == 0

        direct = await client.get(f"/api/praticas/{practice['id']}", headers=user_headers)
        assert direct.status_code == 403

        # "all" is ignored for regular users
        forced = await client.get("/api/praticas?all=true", headers=user_headers)
        assert forced.json()["total"] == 0

        admin_view = await client.get("/api/praticas?all=true", headers=admin_headers)
        assert admin_view.json()["total"] == 1

    async def test_update_and_delete(self, client, admin_headers, user_headers, practice):
        updated = await client.put(
            f"/api/praticas/{practice['id']}", headers=admin_headers, json={"duration": 600},
        )
        assert updated.json()["data"]["duration"] == 600
        assert updated.json()["data"]["title"] == practice["title"]

        deleted = await client.delete(f"/api/praticas/{practice['id']}", headers=admin_headers)
        assert deleted.status_code == 200

        missing = await client.get(f"/api/praticas/{practice['id']}", headers=user_headers)
        assert missing.status_code == 404

    async def test_cover_upload(self, client, admin_headers, practice):
        response = await client.put(
            f"/api/praticas/{practice['id']}/imagem",
            headers=admin_headers,
            files={"file": ("capa.jpg", b"\xff\xd8\xffjpeg", "image/jpeg")},
        )
        data = response.json()["data"]
        assert data["cover_image"].startswith("praticas/imagens/")
        assert data["cover_image_url"] == f"/api/proxy/media/{data['cover_image']}"

    async def test_audio_upload_rejects_images(self, client, admin_headers, practice):
        response = await client.put(
            f"/api/praticas/{practice['id']}/audio",
            headers=admin_headers,
            files={"file": ("capa.jpg", b"\xff\xd8\xff", "image/jpeg")},
        )
        assert response.status_code == 400


class TestUserInteractions:
    """Tests for favorites, completion, history and stats."""

    async def test_toggle_favorite(self, client, user_headers, practice):
        first = await client.post(f"/api/praticas/{practice['id']}/favoritar", headers=user_headers)
        assert first.json()["data"] == {"practice_id": practice["id"], "favorite": True}

        listed = await client.get("/api/praticas", headers=user_headers)
        assert listed.json()["data"][0]["favorite"] is True

        second = await client.post(f"/api/praticas/{practice['id']}/favoritar", headers=user_headers)
        assert second.json()["data"]["favorite"] is False

    async def test_favorites_are_per_user(self, client, user_headers, other_headers, practice):
        await client.post(f"/api/praticas/{practice['id']}/favoritar", headers=user_headers)

        theirs = await client.get(f"/api/praticas/{practice['id']}", headers=other_headers)
        assert theirs.json()["data"]["favorite"] is False

    async def test_complete_uses_practice_duration(self, client, user_headers, practice):
        response = await client.post(f"/api/praticas/{practice['id']}/concluir", headers=user_headers)

        record = response.json()["data"]
        assert record["event"] == "completion"
        assert record["duration"] == 900
        assert record["practice_title"] == practice["title"]

        detail = await client.get(f"/api/praticas/{practice['id']}", headers=user_headers)
        assert detail.json()["data"]["completed"] is True

    async def test_complete_with_duration(self, client, user_headers, practice):
        response = await client.post(
            f"/api/praticas/{practice['id']}/concluir", headers=user_headers, json={"duration": 300},
        )
        assert response.json()["data"]["duration"] == 300

    async def test_history_and_stats(self, client, user_headers, practice):
        await client.post(f"/api/praticas/{practice['id']}/concluir", headers=user_headers)
        await client.post(f"/api/praticas/{practice['id']}/concluir", headers=user_headers, json={"duration": 60})

        history = await client.get("/api/praticas/historico", headers=user_headers)
        assert history.json()["total"] == 2

        stats = (await client.get("/api/praticas/stats", headers=user_headers)).json()["data"]
        assert stats["total_practices"] == 2
        assert stats["categories"]["alpha"]["total"] == 2
        assert stats["categories"]["alpha"]["total_duration"] == 960
        assert stats["streak"] == 1
        assert stats["first_practice"] is not None

    async def test_empty_stats(self, client, user_headers):
        stats = (await client.get("/api/praticas/stats", headers=user_headers)).json()["data"]
        assert stats == {
            "categories": {},
            "total_practices": 0,
            "first_practice": None,
            "last_practice": None,
            "streak": 0,
        }


class TestAudioAccess:
    """Tests for signed audio URLs served by the media proxy."""

    async def test_audio_url_without_audio(self, client, user_headers, practice):
        response = await client.get(f"/api/praticas/{practice['id']}/audio-url", headers=user_headers)
        assert response.status_code == 404

    async def test_signed_url_streams_audio(self, client, user_headers, practice_with_audio):
        assert practice_with_audio["has_audio"] is True

        response = await client.get(
            f"/api/praticas/{practice_with_audio['id']}/audio-url", headers=user_headers,
        )
        data = response.json()["data"]
        assert data["expires_in"] > 0

        audio = await client.get(data["url"])
        assert audio.status_code == 200
        assert audio.headers["content-type"] == "audio/mpeg"
        assert audio.content.startswith(b"ID3")

    async def test_audio_url_records_start(self, client, user_headers, practice_with_audio):
        await client.get(f"/api/praticas/{practice_with_audio['id']}/audio-url", headers=user_headers)

        history = await client.get("/api/praticas/historico", headers=user_headers)
        assert history.json()["data"][0]["event"] == "start"

        # Starting is not completing
        stats = (await client.get("/api/praticas/stats", headers=user_headers)).json()["data"]
        assert stats["total_practices"] == 0

    async def test_audio_requires_token(self, client, user_headers, practice_with_audio):
        response = await client.get(
            f"/api/praticas/{practice_with_audio['id']}/audio-url", headers=user_headers,
        )
        path = urlparse(response.json()["data"]["url"]).path

        unsigned = await client.get(path)
        assert unsigned.status_code == 401

        forged = await client.get(f"{path}?token=forjado")
        assert forged.status_code == 401

    async def test_token_bound_to_object(self, client, admin_headers, user_headers, practice_data, practice_with_audio):
        other = await client.post("/api/praticas", headers=admin_headers, json={**practice_data, "title": "Outra"})
        other_audio = await client.put(
            f"/api/praticas/{other.json()['data']['id']}/audio", headers=admin_headers, files={"file": MP3},
        )
        assert other_audio.status_code == 200

        first = await client.get(f"/api/praticas/{practice_with_audio['id']}/audio-url", headers=user_headers)
        second = await client.get(f"/api/praticas/{other_audio.json()['data']['id']}/audio-url", headers=user_headers)

        token = parse_qs(urlparse(first.json()["data"]["url"]).query)["token"][0]
        other_path = urlparse(second.json()["data"]["url"]).path

        response = await client.get(f"{other_path}?token={token}")
        assert response.status_code == 401
