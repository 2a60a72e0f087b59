"""
Integration tests for personal and admin analytics.
"""

from datetime import datetime, timedelta

import pytest

pytestmark = pytest.mark.asyncio


@pytest.fixture
async def activity(client, admin_headers, user_headers, diary_entry_data, practice_data):
    """One diary entry today, one completed practice and one conversation."""
    await client.post(
        "/api/diario", headers=user_headers, json={**diary_entry_data, "date": datetime.utcnow().date().isoformat()},
    )
    practice = (await client.post("/api/praticas", headers=admin_headers, json=practice_data)).json()["data"]
    await client.post(f"/api/praticas/{practice['id']}/concluir", headers=user_headers)
    await client.post("/api/luz-ia/chat", headers=user_headers, json={"question": "Olá LUZ"})
    return practice


class TestPersonalAnalytics:
    """Tests for /api/analytics/me*."""

    async def test_summary(self, client, user_headers, activity):
        data = (await client.get("/api/analytics/me", headers=user_headers)).json()["data"]

        assert data["totals"] == {
            "diary_entries": 1,
            "conversations": 1,
            "manifestations": 0,
            "completed_practices": 1,
            "practice_minutes": 15,
        }
        assert data["diary_streak"] == 1
        assert data["practices_by_category"] == {"alpha": 1}

    async def test_summary_is_personal(self, client, other_headers, activity):
        data = (await client.get("/api/analytics/me", headers=other_headers)).json()["data"]
        assert data["totals"]["diary_entries"] == 0
        assert data["practices_by_category"] == {}

    async def test_recent_activity(self, client, user_headers, activity):
        items = (await client.get("/api/analytics/me/recent-activity", headers=user_headers)).json()["data"]

        assert {i["type"] for i in items} == {"diario", "pratica", "luzia"}
        practice_item = next(i for i in items if i["type"] == "pratica")
        assert practice_item["title"] == f"Prática: {activity['title']}"

    async def test_period(self, client, user_headers, activity):
        data = (await client.get("/api/analytics/me/period", headers=user_headers)).json()["data"]

        assert data["period"] == "daily"
        assert sum(b["count"] for b in data["diary"]) == 1
        assert data["practices"][0]["total_duration"] == 900
        assert sum(b["count"] for b in data["conversations"]) == 1

    async def test_period_monthly_with_window(self, client, user_headers, activity):
        response = await client.get(
            "/api/analytics/me/period",
            headers=user_headers,
            params={"period": "monthly", "start_date": "2000-01-01T00:00:00", "end_date": "2000-12-31T00:00:00"},
        )

        data = response.json()["data"]
        assert data["period"] == "monthly"
        assert data["diary"] == []

    async def test_invalid_period(self, client, user_headers):
        response = await client.get("/api/analytics/me/period?period=yearly", headers=user_headers)
        assert response.status_code == 400

    async def test_milestones(self, client, user_headers, activity):
        body = (await client.get("/api/analytics/me/milestones", headers=user_headers)).json()

        assert body["success"] is True
        assert body["total"] == len(body["data"]["all"])
        reached = {m["id"] for m in body["data"]["reached"]}
        assert reached == {"diario-first", "pratica-first", "luzia-first"}
        assert body["count"] == 3

    async def test_old_diary_run_is_not_a_streak(self, client, user_headers, diary_entry_data):
        start = datetime.utcnow().date() - timedelta(days=60)
        for offset in range(7):
            day = (start + timedelta(days=offset)).isoformat()
            response = await client.post("/api/diario", headers=user_headers, json={**diary_entry_data, "date": day})
            assert response.status_code == 201, response.text

        summary = (await client.get("/api/analytics/me", headers=user_headers)).json()["data"]
        assert summary["diary_streak"] == 0

        milestones = (await client.get("/api/analytics/me/milestones", headers=user_headers)).json()["data"]
        assert "diario-streak-7" not in {m["id"] for m in milestones["reached"]}
        assert "diario-first" in {m["id"] for m in milestones["reached"]}


class TestAdminAnalytics:
    """Tests for /api/analytics/admin/*."""

    async def test_requires_admin(self, client, user_headers):
        response = await client.get("/api/analytics/admin/general", headers=user_headers)
        assert response.status_code == 403

    async def test_general(self, client, admin_headers, activity):
        data = (await client.get("/api/analytics/admin/general", headers=admin_headers)).json()["data"]

        assert data["users"]["total"] == 2
        assert data["users"]["active_last_7_days"] == 1
        assert data["totals"]["completed_practices"] == 1
        assert data["totals"]["messages"] == 2

    async def test_usage(self, client, admin_headers, activity):
        data = (await client.get("/api/analytics/admin/usage", headers=admin_headers)).json()["data"]

        assert sum(b["count"] for b in data["registrations"]) == 2
        assert sum(b["count"] for b in data["diary"]) == 1
        assert sum(b["count"] for b in data["practices"]) == 1
