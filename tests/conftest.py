"""Shared fixtures.

``placement_payload`` is anchored at 2024-06-30 (its latest dated record):

    Texas       5  Austin x3 (06-30, 05-25, 01-05), Dallas x2 (06-20, 05-10)
    California  2  Los Angeles (06-28, 04-01)
    Maine       1  Portland (03-01)
    Ohio        1  Columbus (unparsable date)
    Unknown     1  Springfield, state "ZZ" (06-15)
"""

from __future__ import annotations

import json
from typing import Any, Dict, List

import pytest

from placements.cache import TTLCache
from placements.data import normalize_placement_metrics


@pytest.fixture
def scenario_payload() -> List[Dict[str, Any]]:
    return [
        {"app_id": 1, "state": "Texas", "city": "Austin", "placementDate": "2024-01-10"},
        {"app_id": 2, "state": "Texas", "city": "Dallas", "placementDate": "2024-02-01"},
        {"app_id": 3, "state": "Maine", "city": "Portland", "placementDate": "not-a-date"},
    ]


@pytest.fixture
def placement_payload() -> List[Dict[str, Any]]:
    return [
        {"app_id": 101, "state": "TX", "city": "Austin", "placementDate": "2024-06-30"},
        {"app_id": 102, "state": "Texas", "city": "Dallas", "placementDate": "6/20/2024"},
        {"app_id": 103, "state": "texas", "city": "Austin", "placementDate": "2024-05-25"},
        {"app_id": "104", "state": "Texas", "city": "Dallas", "placementDate": "05/10/2024"},
        {"app_id": 105, "state": "Texas", "city": " Austin ", "placementDate": "2024-01-05"},
        {"app_id": 201, "state": "CA", "city": "Los Angeles", "placementDate": "2024-06-28"},
        {"app_id": 202, "state": "California", "city": "Los Angeles", "placementDate": "2024-04-01"},
        {"app_id": 301, "state": "Maine", "city": "Portland", "placementDate": "2024-03-01"},
        {"app_id": 401, "state": "OH", "city": "Columbus", "placementDate": "sometime in spring"},
        {"app_id": 501, "state": "ZZ", "city": "Springfield", "placementDate": "2024-06-15"},
    ]


@pytest.fixture
def placement_items(placement_payload):
    return normalize_placement_metrics(placement_payload)


@pytest.fixture
def placements_file(tmp_path, placement_payload, monkeypatch):
    path = tmp_path / "placement_metrics.json"
    path.write_text(json.dumps(placement_payload), encoding="utf-8")
    monkeypatch.setenv("PLACEMENTS_SOURCE", str(path))
    return path


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock) -> TTLCache:
    return TTLCache(clock=clock)
