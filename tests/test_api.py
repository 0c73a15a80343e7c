"""Tests for the HTTP API."""

import pytest

GROUP_PAYLOAD = {
    "name": "Đoàn Sông Hàn pax Việt",
    "location": "Tầng 2",
    "table_split": "3x4",
    "items": [
        {"name": "Lẩu riêu cua", "total_quantity": 1, "unit": "Nồi"},
        {"name": "Súp gà", "total_quantity": 1, "unit": "Bát"},
    ],
}


@pytest.fixture
def group(client) -> dict:
    response = client.post("/api/groups", json=GROUP_PAYLOAD)
    assert response.status_code == 201
    return response.json()


def item_id(group: dict, name: str) -> str:
    return next(i["id"] for i in group["items"] if i["name"] == name)


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "operational"
        assert data["store"] == "healthy"

    def test_root(self, client):
        assert client.get("/").json()["health"] == "/health"


class TestGroupEndpoints:
    """Create, read, edit and delete serving groups."""

    def test_create_applies_distribution(self, group):
        quantities = {i["name"]: i["total_quantity"] for i in group["items"]}
        assert quantities == {"Lẩu riêu cua": 3, "Súp gà": 12}
        assert group["date"] == "2024-05-01"
        assert group["progress"] == 0.0
        assert "Bếp ga" in {s["name"] for s in group["prep_list"]}

    def test_create_without_distribution(self, client):
        response = client.post("/api/groups", json={**GROUP_PAYLOAD, "apply_distribution": False})
        assert [i["total_quantity"] for i in response.json()["items"]] == [1, 1]

    def test_create_rejects_blank_name(self, client):
        response = client.post("/api/groups", json={**GROUP_PAYLOAD, "name": ""})
        assert response.status_code == 422

    def test_list_and_filter(self, client, group):
        assert [g["id"] for g in client.get("/api/groups").json()] == [group["id"]]
        assert client.get("/api/groups", params={"status": "COMPLETED"}).json() == []
        assert client.get("/api/groups", params={"date": "2024-04-30"}).json() == []

    def test_get_unknown_group(self, client):
        response = client.get("/api/groups/missing")
        assert response.status_code == 404
        assert response.json()["error"] == "Not Found"

    def test_patch_details(self, client, group):
        response = client.patch(f"/api/groups/{group['id']}", json={"location": "Sân vườn"})
        assert response.status_code == 200
        assert response.json()["location"] == "Sân vườn"
        assert response.json()["prep_list"] == group["prep_list"]

    def test_arrive_keeps_first_time(self, client, group, clock):
        assert client.post(f"/api/groups/{group['id']}/arrive").json()["start_time"] == "18:00"
        clock.advance(10)
        assert client.post(f"/api/groups/{group['id']}/arrive").json()["start_time"] == "18:00"

    def test_complete_then_edit_conflicts(self, client, group):
        done = client.post(f"/api/groups/{group['id']}/complete").json()
        assert done["status"] == "COMPLETED"
        assert client.post(f"/api/groups/{group['id']}/complete").status_code == 200

        response = client.patch(f"/api/groups/{group['id']}", json={"name": "Đoàn khác"})
        assert response.status_code == 409

    def test_delete(self, client, group):
        assert client.delete(f"/api/groups/{group['id']}").status_code == 204
        assert client.get(f"/api/groups/{group['id']}").status_code == 404

    def test_recompute(self, client, group):
        response = client.post(f"/api/groups/{group['id']}/recompute", json={"table_split": "2x10, 1x6"})
        data = response.json()
        assert data["table_count"] == 3
        assert data["guest_count"] == 26
        assert {i["name"]: i["total_quantity"] for i in data["items"]}["Súp gà"] == 26

    def test_toggle_prep_item(self, client, group):
        response = client.post(f"/api/groups/{group['id']}/prep/Bếp ga/toggle")
        assert response.status_code == 200
        bep_ga = next(s for s in response.json()["prep_list"] if s["name"] == "Bếp ga")
        assert bep_ga["is_completed"] is True

    def test_toggle_unknown_prep_item(self, client, group):
        assert client.post(f"/api/groups/{group['id']}/prep/Không có/toggle").status_code == 404


class TestItemEndpoints:
    """Served counters and item edits."""

    def test_counters_and_progress(self, client, group):
        lau = item_id(group, "Lẩu riêu cua")
        base = f"/api/groups/{group['id']}/items/{lau}"

        assert client.post(f"{base}/decrement").json()["items"][0]["served_quantity"] == 0
        client.post(f"{base}/increment")
        data = client.post(f"{base}/serve-all").json()
        assert data["items"][0]["served_quantity"] == 3
        assert data["progress"] == pytest.approx(3 / 15)

    def test_add_update_delete_item(self, client, group):
        base = f"/api/groups/{group['id']}/items"
        data = client.post(base, json={"name": "Cơm trắng", "total_quantity": 3}).json()
        com = item_id(data, "Cơm trắng")

        data = client.patch(f"{base}/{com}", json={"note": "Ít cơm"}).json()
        assert next(i for i in data["items"] if i["id"] == com)["note"] == "Ít cơm"

        data = client.delete(f"{base}/{com}").json()
        assert com not in {i["id"] for i in data["items"]}

    def test_invalid_item_update(self, client, group):
        lau = item_id(group, "Lẩu riêu cua")
        response = client.patch(f"/api/groups/{group['id']}/items/{lau}", json={"total_quantity": -1})
        assert response.status_code == 422

    def test_unknown_item(self, client, group):
        assert client.post(f"/api/groups/{group['id']}/items/missing/increment").status_code == 404


class TestLayoutAndImport:
    def test_layout_preview(self, client):
        data = client.get("/api/layout/preview", params={"text": "2x10, 1x6"}).json()
        assert data["total_tables"] == 3
        assert data["total_guests"] == 26
        assert data["tables"] == [{"count": 2, "size": 10}, {"count": 1, "size": 6}]

    def test_import_candidates(self, client):
        response = client.post("/api/import", json={"candidates": [{
            "name": "Đoàn Seoul pax Hàn",
            "table_split": "3 bàn 4",
            "items": [{"name": "Lẩu kim chi", "quantity": 1, "unit": "Nồi"}],
            "confidence": 0.7,
        }]})
        assert response.status_code == 201
        [group] = response.json()
        assert group["items"][0]["total_quantity"] == 3

    def test_import_rejects_blank_names(self, client):
        response = client.post("/api/import", json={"candidates": [{"name": " "}]})
        assert response.status_code == 422
        assert client.get("/api/groups").json() == []


class TestAlertEndpoints:
    """Late-service alerts through the API."""

    def test_late_group_alert_and_dismiss(self, client, group, clock):
        client.post(f"/api/groups/{group['id']}/arrive")
        clock.advance(20)

        [alert] = client.get("/api/alerts").json()["alerts"]
        assert alert["id"] == f"alert_serving_{group['id']}"
        assert alert["severity"] == "HIGH"

        assert client.post(f"/api/alerts/{alert['id']}/dismiss").status_code == 204
        active = client.get("/api/alerts").json()
        assert active["alerts"] == []
        assert active["dismissed_ids"] == [alert["id"]]
        assert [a["id"] for a in client.get("/api/alerts/history").json()["alerts"]] == [alert["id"]]

    def test_no_alert_before_threshold(self, client, group, clock):
        client.post(f"/api/groups/{group['id']}/arrive")
        clock.advance(10)
        assert client.get("/api/alerts").json()["alerts"] == []


class TestRealtimeEndpoints:
    def test_status(self, client):
        data = client.get("/api/realtime").json()
        assert data["status"] in {"CONNECTED", "CONNECTING"}
        assert data["last_reload_at"] is not None

    def test_manual_reload(self, client, floor):
        response = client.post("/api/realtime/reload")
        assert response.status_code == 200
        assert response.json()["last_reload_at"] is not None
