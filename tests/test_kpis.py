from datetime import datetime

import pytest

from placements.data import normalize_placement_metrics
from placements.filters import Thresholds
from placements.kpis import (
    average_per_day,
    build_dashboard_kpis,
    build_manager_kpis,
    data_health,
    data_quality_counts,
    median_placements,
)
from placements.models import DashboardKpis


@pytest.mark.parametrize(
    "values, expected",
    [([], 0.0), ([4], 4.0), ([5, 1, 2], 2.0), ([5, 2, 1, 1], 1.5), ([1, 2], 1.5), ([3, 4, 4, 6], 4.0)],
)
def test_median_placements(values, expected):
    assert median_placements(values) == expected


class TestDataHealth:
    def test_counts(self, placement_items):
        assert data_quality_counts(placement_items) == {
            "records": 10,
            "invalid_date_records": 1,
            "unknown_state_records": 1,
            "issue_records": 2,
        }

    def test_issue_above_ratio(self, placement_items):
        assert data_health(placement_items) == "Issue"
        assert data_health(placement_items, Thresholds(data_health_issue_ratio=0.25)) == "OK"

    def test_ratio_is_exclusive(self):
        payload = [{"state": "Texas", "placementDate": "2024-01-01"} for _ in range(9)]
        payload.append({"state": "Texas", "placementDate": "bad"})
        assert data_health(normalize_placement_metrics(payload)) == "OK"

    def test_empty(self):
        assert data_health([]) == "OK"


class TestDashboardKpis:
    def test_full(self, placement_items):
        kpis = build_dashboard_kpis(placement_items)
        assert kpis.scoped_placements == 10
        assert kpis.active_states == 4
        assert kpis.top_state_name == "Texas"
        assert kpis.top_state_share == pytest.approx(0.5)
        assert kpis.median_placements_per_state == 1.5
        assert kpis.stale_state_count == 2
        assert kpis.latest_placement_date == datetime(2024, 6, 30)
        assert kpis.latest_placement_raw == "2024-06-30"
        assert kpis.data_health == "Issue"

    def test_scenario(self, scenario_payload):
        kpis = build_dashboard_kpis(normalize_placement_metrics(scenario_payload))
        assert kpis.top_state_name == "Texas"
        assert kpis.top_state_share == pytest.approx(2 / 3)
        assert kpis.latest_placement_date == datetime(2024, 2, 1)

    def test_empty(self):
        assert build_dashboard_kpis([]) == DashboardKpis()


class TestManagerKpis:
    def test_full(self, placement_items):
        kpis = build_manager_kpis(placement_items)
        assert kpis.scoped_placements == 10
        assert kpis.placements_last_7d == 2
        assert kpis.active_states == 4
        assert kpis.active_regions == 4
        assert kpis.top_state == "Texas"
        assert kpis.top_city == "Austin, Texas"
        assert kpis.untapped_states_count == 47
        assert kpis.unknown_state_records == 1
        assert kpis.invalid_date_records == 1
        assert kpis.latest_placement_date == datetime(2024, 6, 30)

    def test_average_per_day(self, placement_items):
        # Jan 5 to Jun 30 is 177 days.
        assert average_per_day(placement_items) == 0.06
        assert average_per_day(placement_items, window_days=90) == 0.11
        assert average_per_day([]) == 0.0

    def test_empty(self):
        kpis = build_manager_kpis([])
        assert kpis.scoped_placements == 0
        assert kpis.untapped_states_count == 51
        assert kpis.top_state is None
