"""
Integration tests for the Diário Quântico endpoints.
"""

from datetime import date, timedelta

import pytest

pytestmark = pytest.mark.asyncio


async def create_entry(client, headers, data, **overrides):
    response = await client.post("/api/diario", headers=headers, json={**data, **overrides})
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestDiaryCrud:
    """Tests for diary entry CRUD."""

    async def test_create_entry_owned_by_caller(self, client, user, user_headers, diary_entry_data):
        entry = await create_entry(client, user_headers, diary_entry_data)

        assert entry["user_id"] == user.id
        assert entry["date"] == "2024-05-10"
        assert entry["emotional_rating"] == 4

    async def test_create_defaults_to_today(self, client, user_headers, diary_entry_data):
        data = {k: v for k, v in diary_entry_data.items() if k != "date"}
        entry = await create_entry(client, user_headers, data)

        assert entry["date"] == date.today().isoformat()

    async def test_datetime_date_truncated(self, client, user_headers, diary_entry_data):
        entry = await create_entry(client, user_headers, diary_entry_data, date="2024-05-11T22:15:00Z")
        assert entry["date"] == "2024-05-11"

    async def test_one_entry_per_day(self, client, user_headers, diary_entry_data):
        await create_entry(client, user_headers, diary_entry_data)

        response = await client.post("/api/diario", headers=user_headers, json=diary_entry_data)
        assert response.status_code == 400

    async def test_same_day_for_different_users(
        self, client, user_headers, other_headers, diary_entry_data,
    ):
        await create_entry(client, user_headers, diary_entry_data)
        await create_entry(client, other_headers, diary_entry_data)

    async def test_missing_required_field(self, client, user_headers, diary_entry_data):
        data = {k: v for k, v in diary_entry_data.items() if k != "small_wins"}

        response = await client.post("/api/diario", headers=user_headers, json=data)
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_list_only_own_entries(self, client, user_headers, other_headers, diary_entry_data):
        await create_entry(client, user_headers, diary_entry_data)
        await create_entry(client, user_headers, diary_entry_data, date="2024-05-12")
        await create_entry(client, other_headers, diary_entry_data)

        response = await client.get("/api/diario", headers=user_headers)

        body = response.json()
        assert body["total"] == 2
        assert [e["date"] for e in body["data"]] == ["2024-05-12", "2024-05-10"]
        assert body["pagination"]["page"] == 1

    async def test_get_by_date(self, client, user_headers, diary_entry_data):
        entry = await create_entry(client, user_headers, diary_entry_data)

        response = await client.get("/api/diario/data/2024-05-10", headers=user_headers)
        assert response.json()["data"]["id"] == entry["id"]

        missing = await client.get("/api/diario/data/2024-05-11", headers=user_headers)
        assert missing.status_code == 404

    async def test_update_entry(self, client, user_headers, diary_entry_data):
        entry = await create_entry(client, user_headers, diary_entry_data)

        response = await client.put(f"/api/diario/{entry['id']}", headers=user_headers, json={
            "emotional_rating": 5, "insights": "Percebi minha força",
        })

        assert response.status_code == 200
        assert response.json()["data"]["emotional_rating"] == 5
        assert response.json()["data"]["small_wins"] == diary_entry_data["small_wins"]

    async def test_update_to_taken_date(self, client, user_headers, diary_entry_data):
        first = await create_entry(client, user_headers, diary_entry_data)
        await create_entry(client, user_headers, diary_entry_data, date="2024-05-12")

        response = await client.put(f"/api/diario/{first['id']}", headers=user_headers, json={
            "date": "2024-05-12",
        })
        assert response.status_code == 400

    async def test_delete_entry(self, client, user_headers, diary_entry_data):
        entry = await create_entry(client, user_headers, diary_entry_data)

        response = await client.delete(f"/api/diario/{entry['id']}", headers=user_headers)
        assert response.status_code == 200

        missing = await client.get(f"/api/diario/{entry['id']}", headers=user_headers)
        assert missing.status_code == 404


class TestDiaryOwnership:
    """Tests for access to another user's entries."""

    async def test_other_user_gets_401(self, client, user_headers, other_headers, diary_entry_data):
        entry = await create_entry(client, user_headers, diary_entry_data)

        for method in ("get", "delete"):
            response = await getattr(client, method)(f"/api/diario/{entry['id']}", headers=other_headers)
            assert response.status_code == 401

        update = await client.put(
            f"/api/diario/{entry['id']}", headers=other_headers, json={"emotional_rating": 1},
        )
        assert update.status_code == 401

        still_there = await client.get(f"/api/diario/{entry['id']}", headers=user_headers)
        assert still_there.json()["data"]["emotional_rating"] == 4

    async def test_unknown_entry(self, client, user_headers):
        response = await client.get("/api/diario/nao-existe", headers=user_headers)
        assert response.status_code == 404

    async def test_requires_authentication(self, client):
        response = await client.get("/api/diario")
        assert response.status_code == 401


class TestDiaryStats:
    """Tests for GET /api/diario/stats."""

    async def test_empty_stats(self, client, user_headers):
        response = await client.get("/api/diario/stats", headers=user_headers)

        assert response.json()["data"] == {
            "total_entries": 0,
            "current_streak": 0,
            "emotional_progress": 0,
            "entries_last_30_days": 0,
            "consistency_rate": 0,
        }

    async def test_stats(self, client, user_headers, diary_entry_data):
        today = date.today()
        for offset in (0, 1, 3):
            day = (today - timedelta(days=offset)).isoformat()
            await create_entry(client, user_headers, diary_entry_data, date=day)

        response = await client.get("/api/diario/stats", headers=user_headers)
        stats = response.json()["data"]

        assert stats["total_entries"] == 3
        assert stats["current_streak"] == 2
        assert stats["entries_last_30_days"] == 3
        assert stats["consistency_rate"] == 10

    async def test_emotional_progress(self, client, user_headers, diary_entry_data):
        today = date.today()
        # Newest three rated 5, previous three rated 3
        for offset, rating in enumerate([5, 5, 5, 3, 3, 3]):
            day = (today - timedelta(days=offset)).isoformat()
            await create_entry(client, user_headers, diary_entry_data, date=day, emotional_rating=rating)

        response = await client.get("/api/diario/stats", headers=user_headers)
        assert response.json()["data"]["emotional_progress"] == 40
