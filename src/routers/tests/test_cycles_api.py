"""API tests for cycles, insights, reminders, users and health."""

from __future__ import annotations

from fastapi.testclient import TestClient


def seed_logs(client: TestClient, user_id: int, days: list[str], flow: str = "heavy") -> None:
    for day in days:
        response = client.post(
            f"/api/v1/users/{user_id}/period-logs", json={"log_date": day, "flow": flow}
        )
        assert response.status_code == 201


class TestCyclesApi:
    def test_manual_edit_survives_until_next_log_change(
        self, client: TestClient, user_id: int
    ) -> None:
        seed_logs(client, user_id, ["2024-01-01", "2024-01-02"])
        cycle = client.get(f"/api/v1/users/{user_id}/cycles").json()[0]

        edited = client.patch(
            f"/api/v1/users/{user_id}/cycles/{cycle['cycle_id']}", json={"period_length": 7}
        )
        assert edited.status_code == 200
        assert edited.json()["period_length"] == 7

        seed_logs(client, user_id, ["2024-01-03"])
        cycles = client.get(f"/api/v1/users/{user_id}/cycles").json()
        assert [c["period_length"] for c in cycles] == [3]
        assert cycles[0]["cycle_id"] != cycle["cycle_id"]

    def test_force_derive(self, client: TestClient, user_id: int) -> None:
        seed_logs(client, user_id, ["2024-01-01", "2024-01-31"])
        cycles = client.get(f"/api/v1/users/{user_id}/cycles").json()
        client.delete(f"/api/v1/users/{user_id}/cycles/{cycles[0]['cycle_id']}")
        assert len(client.get(f"/api/v1/users/{user_id}/cycles").json()) == 1

        response = client.post(f"/api/v1/users/{user_id}/cycles/derive")
        assert response.status_code == 200
        assert [c["cycle_length"] for c in response.json()] == [30, None]

    def test_clearing_required_field_rejected(self, client: TestClient, user_id: int) -> None:
        seed_logs(client, user_id, ["2024-01-01"])
        cycle = client.get(f"/api/v1/users/{user_id}/cycles").json()[0]
        response = client.patch(
            f"/api/v1/users/{user_id}/cycles/{cycle['cycle_id']}", json={"start_date": None}
        )
        assert response.status_code == 400

    def test_missing_cycle(self, client: TestClient, user_id: int) -> None:
        assert client.get(f"/api/v1/users/{user_id}/cycles/42").status_code == 404
        assert client.delete(f"/api/v1/users/{user_id}/cycles/42").status_code == 404

    def test_insights(self, client: TestClient, user_id: int) -> None:
        seed_logs(client, user_id, ["2024-01-01", "2024-01-02", "2024-01-29", "2024-01-30"])
        response = client.get(
            f"/api/v1/users/{user_id}/cycles/insights", params={"as_of": "2024-02-05"}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["cycles_used"] == 1
        assert body["average_cycle_length"] == 28
        assert body["current_cycle_start"] == "2024-01-29"
        assert body["current_cycle_day"] == 8
        assert body["predicted_next_start"] == "2024-02-26"
        assert body["current_phase"] == "follicular"

    def test_insights_without_cycles(self, client: TestClient, user_id: int) -> None:
        body = client.get(f"/api/v1/users/{user_id}/cycles/insights").json()
        assert body["predicted_next_start"] is None
        assert body["warnings"]


class TestRemindersApi:
    def test_crud_and_upcoming(self, client: TestClient, user_id: int) -> None:
        base = f"/api/v1/users/{user_id}/reminders"
        created = client.post(base, json={
            "reminder_type": "period",
            "timing": {"days": 2, "when": "before"},
            "time": "08:00",
            "message": "Your period is coming soon",
        })
        assert created.status_code == 201
        reminder_id = created.json()["reminder_id"]

        client.post(base, json={"reminder_type": "medication", "time": "21:30"})
        assert len(client.get(base).json()) == 2

        seed_logs(client, user_id, ["2024-01-01", "2024-01-29"])
        upcoming = client.get(f"{base}/upcoming", params={"as_of": "2024-02-01"}).json()
        assert [u["reminder"]["reminder_id"] for u in upcoming] == [reminder_id]
        assert upcoming[0]["anchor_date"] == "2024-02-26"
        assert upcoming[0]["due_date"] == "2024-02-24"

        patched = client.patch(f"{base}/{reminder_id}", json={"enabled": False})
        assert patched.json()["enabled"] is False
        assert client.get(f"{base}/upcoming").json() == []

        assert client.delete(f"{base}/{reminder_id}").status_code == 204
        assert client.get(f"{base}/{reminder_id}").status_code == 404

    def test_upcoming_after_missed_period(self, client: TestClient, user_id: int) -> None:
        base = f"/api/v1/users/{user_id}/reminders"
        client.post(base, json={"reminder_type": "period", "timing": {"days": 2, "when": "before"}})
        seed_logs(client, user_id, ["2024-01-01", "2024-01-29"])

        upcoming = client.get(f"{base}/upcoming", params={"as_of": "2024-06-01"}).json()
        assert [(u["anchor_date"], u["due_date"]) for u in upcoming] == [
            ("2024-06-17", "2024-06-15")
        ]

    def test_invalid_time_rejected(self, client: TestClient, user_id: int) -> None:
        response = client.post(
            f"/api/v1/users/{user_id}/reminders",
            json={"reminder_type": "custom", "time": "25:00"},
        )
        assert response.status_code == 422


class TestUsersAndHealth:
    def test_duplicate_username(self, client: TestClient, user_id: int) -> None:
        response = client.post("/api/v1/users", json={"username": "ada"})
        assert response.status_code == 409

    def test_get_user(self, client: TestClient, user_id: int) -> None:
        response = client.get(f"/api/v1/users/{user_id}")
        assert response.status_code == 200
        assert response.json()["username"] == "ada"
        assert client.get("/api/v1/users/999").status_code == 404

    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["storage"] == "memory"

    def test_request_id_echoed(self, client: TestClient) -> None:
        response = client.get("/health", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"
        assert client.get("/health").headers["X-Request-ID"]
