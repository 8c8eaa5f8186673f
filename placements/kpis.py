from __future__ import annotations

import math
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from placements.aggregate import (
    Items,
    as_frame,
    anchor_time,
    city_hotspots,
    region_totals,
    state_counts,
    state_recency_risk,
    state_totals,
    untapped_states,
)
from placements.data import round_half_up
from placements.dates import DAY_MS
from placements.filters import Thresholds
from placements.models import (
    DashboardKpis,
    DataHealth,
    ManagerKpis,
    StateRecencyRow,
    StateTotalRow,
)
from placements.regions import UNKNOWN_REGION
from placements.states import UNKNOWN_STATE


def median_placements(values: Sequence[int]) -> float:
    if not values:
        return 0.0
    ordered = sorted(values)
    middle = len(ordered) // 2
    if len(ordered) % 2 == 1:
        return float(ordered[middle])
    return round_half_up((ordered[middle - 1] + ordered[middle]) / 2, 1)


def data_quality_counts(items: Items) -> Dict[str, int]:
    df = as_frame(items)
    undated = df["placement_date"].isna()
    unknown = df["state"] == UNKNOWN_STATE
    return {
        "records": int(len(df)),
        "invalid_date_records": int(undated.sum()),
        "unknown_state_records": int(unknown.sum()),
        "issue_records": int((undated | unknown).sum()),
    }


def data_health(items: Items, thresholds: Optional[Thresholds] = None) -> DataHealth:
    t = thresholds or Thresholds()
    counts = data_quality_counts(items)
    if counts["records"] == 0:
        return "OK"
    return "Issue" if counts["issue_records"] / counts["records"] > t.data_health_issue_ratio else "OK"


def _latest_placement(df: pd.DataFrame) -> Tuple[Optional[datetime], str]:
    dated = df[df["placement_date"].notna()]
    if dated.empty:
        return None, ""
    row = dated.loc[dated["placement_time"].idxmax()]
    return row["placement_date"].to_pydatetime(), str(row["placement_date_raw"])


def build_dashboard_kpis(
    items: Items,
    *,
    thresholds: Optional[Thresholds] = None,
    totals: Optional[List[StateTotalRow]] = None,
    recency: Optional[List[StateRecencyRow]] = None,
) -> DashboardKpis:
    t = thresholds or Thresholds()
    df = as_frame(items)
    if df.empty:
        return DashboardKpis()

    totals = totals if totals is not None else state_totals(df)
    recency = recency if recency is not None else state_recency_risk(df, thresholds=t)
    known = [r for r in totals if r.state != UNKNOWN_STATE]
    top = known[0] if known else None
    latest_date, latest_raw = _latest_placement(df)

    return DashboardKpis(
        scoped_placements=int(len(df)),
        active_states=len(known),
        top_state_name=top.state if top else None,
        top_state_share=top.share if top else 0.0,
        median_placements_per_state=median_placements([r.placements for r in known]),
        stale_state_count=sum(
            1 for r in recency if r.state != UNKNOWN_STATE and r.days_since_last_placement > t.stale_days
        ),
        latest_placement_date=latest_date,
        latest_placement_raw=latest_raw,
        data_health=data_health(df, t),
    )


def average_per_day(items: Items, *, window_days: Optional[int] = None) -> float:
    """Placements per day over the scope window, or over the dated span when no window is set."""
    df = as_frame(items)
    if df.empty:
        return 0.0
    if window_days:
        days = window_days
    else:
        dated = df[df["placement_date"].notna()]
        if dated.empty:
            days = 1
        else:
            span = int(dated["placement_time"].max()) - int(dated["placement_time"].min())
            days = math.ceil(span / DAY_MS)
    return round_half_up(len(df) / max(1, days), 2)


def build_manager_kpis(
    items: Items,
    *,
    thresholds: Optional[Thresholds] = None,
    window_days: Optional[int] = None,
) -> ManagerKpis:
    t = thresholds or Thresholds()
    df = as_frame(items)
    if df.empty:
        return ManagerKpis(untapped_states_count=len(untapped_states(df)))

    anchor = anchor_time(df)
    last_7d = 0
    if anchor is not None:
        last_7d = int((df["placement_time"] >= anchor - 7 * DAY_MS).sum())

    states = [r for r in state_counts(df) if r.state != UNKNOWN_STATE]
    regions = [r for r in region_totals(df) if r.region != UNKNOWN_REGION and r.placements > 0]
    hotspots = city_hotspots(df, limit=1)
    quality = data_quality_counts(df)
    latest_date, latest_raw = _latest_placement(df)

    return ManagerKpis(
        scoped_placements=int(len(df)),
        placements_last_7d=last_7d,
        avg_placements_per_day=average_per_day(df, window_days=window_days),
        active_states=len(states),
        active_regions=len(regions),
        top_state=states[0].state if states else None,
        top_city=hotspots[0].label if hotspots else None,
        untapped_states_count=len(untapped_states(df)),
        latest_placement_date=latest_date,
        latest_placement_raw=latest_raw,
        unknown_state_records=quality["unknown_state_records"],
        invalid_date_records=quality["invalid_date_records"],
        data_health=data_health(df, t),
    )
