from datetime import datetime

import pytest

from placements.data import prepare_context
from placements.filters import normalize_filters
from placements.metrics_dashboard import compute_dashboard
from placements.metrics_manager import compute_manager

NOW = datetime(2024, 7, 1)


def _run(compute, raw_filters, items):
    filters = normalize_filters(raw_filters)
    ctx = prepare_context(filters, {"items": items}, now=NOW)
    return compute(filters, ctx)


class TestComputeDashboard:
    def test_payload(self, placement_items):
        payload = _run(compute_dashboard, {"date_range": "all"}, placement_items)
        assert payload["snapshot"]["anchor_date"] == "2024-06-30"
        assert payload["kpis"]["scoped_placements"] == 10
        assert payload["kpis"]["data_health"] == "Issue"
        assert payload["state_totals"][0]["state"] == "Texas"
        assert len(payload["state_weekly_series_16w"]) == 16
        assert len(payload["state_seasonality_12m"]) == 60
        assert payload["state_seasonality_months"][-1] == "Jun '24"
        assert payload["state_pareto"][-1]["cumulative_share"] == pytest.approx(1.0)
        assert set(payload["charts"]) == {"state_totals", "weekly_series", "pareto", "seasonality"}
        assert "$schema" in payload["charts"]["state_totals"]

    def test_city_drilldown_follows_selected_state(self, placement_items):
        payload = _run(compute_dashboard, {"date_range": "all", "selected_state": "Texas"}, placement_items)
        assert [c["state"] for c in payload["state_totals"]] == ["Texas"]
        assert payload["city_drilldown"] == [{"city": "Austin", "placements": 3}, {"city": "Dallas", "placements": 2}]

    def test_top_n_limits_recency(self, placement_items):
        payload = _run(compute_dashboard, {"date_range": "all", "top_n": 2}, placement_items)
        assert [r["state"] for r in payload["state_recency_risk"]] == ["Ohio", "Maine"]

    def test_empty_scope(self, placement_items):
        payload = _run(compute_dashboard, {"date_range": "all", "search": "nowhere"}, placement_items)
        assert payload["state_totals"] == []
        assert payload["kpis"]["scoped_placements"] == 0
        assert payload["snapshot"]["anchor_date"] is None
        assert payload["charts"] == {}


class TestComputeManager:
    def test_payload(self, placement_items):
        payload = _run(compute_manager, {"date_range": "all", "include_unknown_states": False}, placement_items)
        assert payload["kpis"]["scoped_placements"] == 9
        assert payload["kpis"]["top_city"] == "Austin, Texas"
        assert [r["region"] for r in payload["region_totals"]] == ["Northeast", "Midwest", "South", "West"]
        assert len(payload["untapped_states"]) == 47
        assert [r["state"] for r in payload["stale_states_90d"]] == ["Ohio", "Maine"]
        assert payload["trend"][-1]["period_key"] == "2024-06-30"
        assert set(payload["charts"]) == {"trend", "region_totals", "top_cities"}

    def test_stale_states_in_default_range(self, placement_items):
        payload = _run(compute_manager, {}, placement_items)
        assert payload["filters"]["date_range"] == "90d"
        assert [r["state"] for r in payload["stale_states_90d"]] == ["Ohio", "Maine"]
        assert payload["stale_states_90d"][1]["days_since_last_placement"] == 121

    def test_stale_states_follow_selected_state(self, placement_items):
        payload = _run(compute_manager, {"date_range": "30d", "selected_state": "Maine"}, placement_items)
        assert payload["kpis"]["scoped_placements"] == 0
        assert [r["state"] for r in payload["stale_states_90d"]] == ["Maine"]
        assert payload["stale_states_90d"][0]["days_since_last_placement"] == 121

    def test_windowed_trend(self, placement_items):
        payload = _run(compute_manager, {"date_range": "30d", "granularity": "weekly"}, placement_items)
        assert payload["kpis"]["scoped_placements"] == 4
        assert payload["trend"][0]["period_key"] == "2024-05-27"
        assert payload["trend"][-1]["period_key"] == "2024-06-24"

    def test_empty_scope(self):
        payload = _run(compute_manager, {"date_range": "all"}, [])
        assert payload["trend"] == []
        assert len(payload["untapped_states"]) == 51
        assert payload["charts"] == {}
