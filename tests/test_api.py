import json

import pytest
from fastapi.testclient import TestClient

from api.main import app
from placements.data import invalidate_placement_cache


@pytest.fixture
def client(placements_file):
    invalidate_placement_cache()
    yield TestClient(app)
    invalidate_placement_cache()


class TestMeta:
    def test_regions(self, client):
        resp = client.get("/meta/regions")
        assert resp.status_code == 200
        regions = resp.json()["regions"]
        assert list(regions) == ["Northeast", "Midwest", "South", "West"]
        assert "Texas" in regions["South"]

    def test_states(self, client):
        body = client.get("/meta/states").json()
        assert len(body["states"]) == 51
        assert body["present"] == ["California", "Maine", "Ohio", "Texas", "Unknown"]


class TestDashboards:
    def test_dashboard(self, client):
        resp = client.post("/dashboard", json={"date_range": "all"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["kpis"]["scoped_placements"] == 10
        assert body["kpis"]["latest_placement_date"].startswith("2024-06-30")
        assert body["state_totals"][0] == {"state": "Texas", "placements": 5, "share": 0.5}

    def test_manager_excludes_unknown_by_default(self, client):
        body = client.post("/manager", json={"date_range": "all"}).json()
        assert body["kpis"]["scoped_placements"] == 9
        assert body["kpis"]["unknown_state_records"] == 0

    def test_invalid_filters(self, client):
        resp = client.post("/dashboard", json={"date_range": "forever"})
        assert resp.status_code == 422

    def test_reload_after_invalidate(self, client, placements_file):
        assert client.post("/dashboard", json={"date_range": "all"}).json()["kpis"]["scoped_placements"] == 10

        placements_file.write_text(json.dumps([{"app_id": 1, "state": "TX", "placementDate": "2024-01-01"}]), encoding="utf-8")
        cached = client.post("/dashboard", json={"date_range": "all"}).json()
        assert cached["kpis"]["scoped_placements"] == 10

        assert client.post("/cache/invalidate").json() == {"invalidated": 1}
        fresh = client.post("/dashboard", json={"date_range": "all"}).json()
        assert fresh["kpis"]["scoped_placements"] == 1

    def test_force_refresh(self, client, placements_file):
        client.post("/dashboard", json={"date_range": "all"})
        placements_file.write_text("[]", encoding="utf-8")
        body = client.post("/dashboard?force_refresh=true", json={"date_range": "all"}).json()
        assert body["kpis"]["scoped_placements"] == 0

    def test_broken_source_returns_error(self, client, placements_file):
        placements_file.write_text("{not json", encoding="utf-8")
        resp = client.post("/dashboard", json={"date_range": "all"})
        assert resp.status_code == 500
        assert resp.json()["type"] == "JSONDecodeError"


class TestNormalize:
    def test_scenario(self, client, scenario_payload):
        body = client.post("/normalize", json=scenario_payload).json()
        assert body["count"] == 3
        assert [i["app_id"] for i in body["items"]] == [2, 1, 3]
        assert body["items"][2]["placement_date"] is None

    def test_non_list(self, client):
        assert client.post("/normalize", json={"records": []}).json() == {"count": 0, "items": []}


class TestExport:
    def test_state_totals_csv(self, client):
        resp = client.post("/export/state-totals", json={"date_range": "all"})
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        lines = resp.text.strip().splitlines()
        assert lines[0] == "state,placements,share"
        assert lines[1] == "Texas,5,0.5"

    def test_coverage_csv(self, client):
        lines = client.post("/export/coverage", json={"date_range": "all"}).text.strip().splitlines()
        assert lines[0] == "region,state,placements"
        assert len(lines) == 52
