from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Iterable, List, Literal, Optional

from placements.dates import DAY_MS, to_epoch_ms
from placements.models import PlacementMetricItem
from placements.states import is_unknown_state, normalize_state

DateRange = Literal["30d", "90d", "12m", "all"]
Granularity = Literal["daily", "weekly"]

RANGE_DAYS = {"30d": 30, "90d": 90, "12m": 365}


@dataclass(frozen=True)
class Thresholds:
    healthy_days: int = 14
    watch_days: int = 30
    stale_days: int = 30
    manager_stale_days: int = 90
    data_health_issue_ratio: float = 0.10
    growth_window_days: int = 30


@dataclass(frozen=True)
class DashboardFilters:
    date_range: DateRange = "90d"
    search: str = ""
    selected_state: Optional[str] = None
    granularity: Granularity = "daily"
    include_unknown_states: bool = True
    top_n: int = 15
    thresholds: Thresholds = field(default_factory=Thresholds)

    @property
    def window_days(self) -> Optional[int]:
        return RANGE_DAYS.get(self.date_range)


def _as_int(value: object, default: int) -> int:
    try:
        return int(value)
    except Exception:
        return default


def _as_float(value: object, default: float) -> float:
    try:
        return float(value)
    except Exception:
        return default


def normalize_filters(raw: dict) -> DashboardFilters:
    date_range = str(raw.get("date_range") or "90d").strip().lower()
    if date_range not in {"30d", "90d", "12m", "all"}:
        date_range = "90d"

    search = str(raw.get("search") or "").strip()

    selected_state = raw.get("selected_state")
    if selected_state is not None and str(selected_state).strip():
        selected_state = normalize_state(selected_state)
    else:
        selected_state = None

    granularity = str(raw.get("granularity") or "daily").strip().lower()
    if granularity not in {"daily", "weekly"}:
        granularity = "daily"

    top_n = max(1, min(200, _as_int(raw.get("top_n", 15), 15)))

    t = raw.get("thresholds") or {}
    defaults = Thresholds()
    thresholds = Thresholds(
        healthy_days=_as_int(t.get("healthy_days", defaults.healthy_days), defaults.healthy_days),
        watch_days=_as_int(t.get("watch_days", defaults.watch_days), defaults.watch_days),
        stale_days=_as_int(t.get("stale_days", defaults.stale_days), defaults.stale_days),
        manager_stale_days=_as_int(t.get("manager_stale_days", defaults.manager_stale_days), defaults.manager_stale_days),
        data_health_issue_ratio=_as_float(
            t.get("data_health_issue_ratio", defaults.data_health_issue_ratio), defaults.data_health_issue_ratio
        ),
        growth_window_days=_as_int(t.get("growth_window_days", defaults.growth_window_days), defaults.growth_window_days),
    )
    if thresholds.watch_days < thresholds.healthy_days:
        thresholds = replace(thresholds, watch_days=thresholds.healthy_days)

    return DashboardFilters(
        date_range=date_range,  # type: ignore[arg-type]
        search=search,
        selected_state=selected_state,
        granularity=granularity,  # type: ignore[arg-type]
        include_unknown_states=bool(raw.get("include_unknown_states", True)),
        top_n=top_n,
        thresholds=thresholds,
    )


def range_start_time(date_range: str, now: datetime) -> Optional[int]:
    days = RANGE_DAYS.get(date_range)
    if days is None:
        return None
    return to_epoch_ms(now) - days * DAY_MS


def apply_date_range(
    items: Iterable[PlacementMetricItem], date_range: str, *, now: Optional[datetime] = None
) -> List[PlacementMetricItem]:
    """Keep items placed inside the trailing window; undated items only survive "all"."""
    start = range_start_time(date_range, now or datetime.now())
    if start is None:
        return list(items)
    return [i for i in items if i.placement_date is not None and i.placement_time >= start]


def apply_scope(
    items: Iterable[PlacementMetricItem], filters: DashboardFilters, *, now: Optional[datetime] = None
) -> List[PlacementMetricItem]:
    scoped = apply_date_range(items, filters.date_range, now=now)

    if not filters.include_unknown_states:
        scoped = [i for i in scoped if not is_unknown_state(i.state)]

    if filters.selected_state:
        scoped = [i for i in scoped if i.state == filters.selected_state]

    if filters.search:
        q = filters.search.lower()
        scoped = [i for i in scoped if q in i.city.lower() or q in i.state.lower() or q in i.placement_date_raw.lower()]

    return scoped
