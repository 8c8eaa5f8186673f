from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Literal, Optional

RegionName = Literal["Northeast", "Midwest", "South", "West", "Unknown"]
RiskBand = Literal["Healthy", "Watch", "At Risk"]
DataHealth = Literal["OK", "Issue"]


@dataclass(frozen=True)
class PlacementMetricItem:
    app_id: int
    city: str
    state: str
    placement_date_raw: str
    placement_date: Optional[datetime]
    placement_time: int


@dataclass(frozen=True)
class StateTotalRow:
    state: str
    placements: int
    share: float


@dataclass(frozen=True)
class StatePaceRow:
    state: str
    placements_30d: int


@dataclass(frozen=True)
class StateGrowthPoint:
    state: str
    recent_placements: int
    prior_placements: int
    growth_pct: float
    growth_delta: int
    total_placements: int


@dataclass(frozen=True)
class StateWeeklyRow:
    week_key: str
    week_label: str
    counts: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class StateParetoRow:
    state: str
    placements: int
    share: float
    cumulative_share: float


@dataclass(frozen=True)
class StateSeasonalityCell:
    state: str
    state_index: int
    month_label: str
    month_index: int
    placements: int
    intensity: float


@dataclass(frozen=True)
class StateRecencyRow:
    state: str
    days_since_last_placement: int
    risk_band: RiskBand
    total_placements: int
    last_placement_label: str


@dataclass(frozen=True)
class CityCountRow:
    city: str
    placements: int


@dataclass(frozen=True)
class RegionTotalRow:
    region: RegionName
    placements: int
    share: float


@dataclass(frozen=True)
class StateCountRow:
    state: str
    region: RegionName
    placements: int
    share: float


@dataclass(frozen=True)
class CityHotspotRow:
    city: str
    state: str
    region: RegionName
    label: str
    placements: int
    share: float


@dataclass(frozen=True)
class StaleStateRow:
    state: str
    region: RegionName
    total_placements: int
    days_since_last_placement: int
    last_placement_label: str


@dataclass(frozen=True)
class CoverageStateRow:
    state: str
    placements: int


@dataclass(frozen=True)
class CoverageRegionRow:
    region: RegionName
    total_placements: int
    states: List[CoverageStateRow] = field(default_factory=list)


@dataclass(frozen=True)
class TrendPoint:
    period_key: str
    period_label: str
    placements: int


@dataclass(frozen=True)
class DashboardKpis:
    scoped_placements: int = 0
    active_states: int = 0
    top_state_name: Optional[str] = None
    top_state_share: float = 0.0
    median_placements_per_state: float = 0.0
    stale_state_count: int = 0
    latest_placement_date: Optional[datetime] = None
    latest_placement_raw: str = ""
    data_health: DataHealth = "OK"


@dataclass(frozen=True)
class ManagerKpis:
    scoped_placements: int = 0
    placements_last_7d: int = 0
    avg_placements_per_day: float = 0.0
    active_states: int = 0
    active_regions: int = 0
    top_state: Optional[str] = None
    top_city: Optional[str] = None
    untapped_states_count: int = 0
    latest_placement_date: Optional[datetime] = None
    latest_placement_raw: str = ""
    unknown_state_records: int = 0
    invalid_date_records: int = 0
    data_health: DataHealth = "OK"
