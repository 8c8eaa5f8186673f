"""Derived placement views.

Every function takes the scoped items (a list of ``PlacementMetricItem`` or the
frame from ``items_to_frame``) and returns freshly built row objects. Trailing
windows are anchored at the latest dated placement in the input, never at the
wall clock, so results depend on the data alone.
"""

from __future__ import annotations

from datetime import datetime
from itertools import accumulate
from typing import Dict, Iterable, List, Optional, Union

import pandas as pd

from placements.data import items_to_frame, round_half_up
from placements.dates import (
    DAY_MS,
    format_long_date,
    from_epoch_ms,
    month_label,
    short_label,
    start_of_day,
    start_of_week,
    trailing_months,
    trailing_weeks,
    ymd_key,
)
from placements.filters import Thresholds
from placements.models import (
    CityCountRow,
    CityHotspotRow,
    CoverageRegionRow,
    CoverageStateRow,
    PlacementMetricItem,
    RegionTotalRow,
    RiskBand,
    StateCountRow,
    StateGrowthPoint,
    StatePaceRow,
    StateParetoRow,
    StateRecencyRow,
    StateSeasonalityCell,
    StateTotalRow,
    StateWeeklyRow,
    StaleStateRow,
    TrendPoint,
)
from placements.regions import REGION_ORDER, UNKNOWN_REGION, region_for_state
from placements.states import ALL_STATE_NAMES, UNKNOWN_STATE

Items = Union[pd.DataFrame, Iterable[PlacementMetricItem]]

NO_DATED_RECORD_DAYS = 999
NO_DATED_RECORD_STALE_DAYS = 9999
GROWTH_PCT_FLOOR = -100.0
GROWTH_PCT_CEILING = 300.0


def as_frame(items: Items) -> pd.DataFrame:
    if isinstance(items, pd.DataFrame):
        return items
    return items_to_frame(items)


def _dated(df: pd.DataFrame) -> pd.DataFrame:
    return df[df["placement_date"].notna()]


def anchor_time(items: Items) -> Optional[int]:
    """Latest dated placement time (epoch ms), or None when nothing is dated."""
    dated = _dated(as_frame(items))
    if dated.empty:
        return None
    return int(dated["placement_time"].max())


def _state_counts(df: pd.DataFrame) -> pd.DataFrame:
    counts = df.groupby("state").size().reset_index(name="placements")
    return counts.sort_values(["placements", "state"], ascending=[False, True], kind="mergesort")


# ---------------- Organization dashboard ----------------
def state_totals(items: Items) -> List[StateTotalRow]:
    df = as_frame(items)
    total = len(df)
    if total == 0:
        return []
    return [
        StateTotalRow(state=str(r.state), placements=int(r.placements), share=int(r.placements) / total)
        for r in _state_counts(df).itertuples(index=False)
    ]


def _window_counts(df: pd.DataFrame, window_days: int) -> tuple[Dict[str, int], Dict[str, int]]:
    anchor = anchor_time(df)
    if anchor is None:
        return {}, {}
    dated = _dated(df)
    recent_start = anchor - window_days * DAY_MS
    prior_start = anchor - 2 * window_days * DAY_MS
    times = dated["placement_time"]
    recent = dated[times >= recent_start].groupby("state").size()
    prior = dated[(times >= prior_start) & (times < recent_start)].groupby("state").size()
    return {str(k): int(v) for k, v in recent.items()}, {str(k): int(v) for k, v in prior.items()}


def state_pace(items: Items, *, window_days: int = 30) -> List[StatePaceRow]:
    df = as_frame(items)
    recent, _ = _window_counts(df, window_days)
    rows = [StatePaceRow(state=t.state, placements_30d=recent.get(t.state, 0)) for t in state_totals(df)]
    return sorted(rows, key=lambda r: r.placements_30d, reverse=True)


def growth_pct(recent: int, prior: int) -> float:
    """Percent change between windows.

    With no prior placements the value saturates at 100 when there is any
    recent activity and is 0 otherwise. Otherwise it is clamped to [-100, 300].
    """
    if prior == 0:
        return 100.0 if recent > 0 else 0.0
    pct = (recent - prior) / prior * 100
    pct = max(GROWTH_PCT_FLOOR, min(GROWTH_PCT_CEILING, pct))
    return round_half_up(pct, 1)


def state_growth(items: Items, *, window_days: int = 30) -> List[StateGrowthPoint]:
    df = as_frame(items)
    recent, prior = _window_counts(df, window_days)
    rows = []
    for t in state_totals(df):
        r = recent.get(t.state, 0)
        p = prior.get(t.state, 0)
        rows.append(
            StateGrowthPoint(
                state=t.state,
                recent_placements=r,
                prior_placements=p,
                growth_pct=growth_pct(r, p),
                growth_delta=r - p,
                total_placements=t.placements,
            )
        )
    return sorted(rows, key=lambda row: row.recent_placements, reverse=True)


def state_weekly_series(items: Items, *, weeks: int = 16) -> List[StateWeeklyRow]:
    df = as_frame(items)
    anchor = anchor_time(df)
    if anchor is None:
        return []
    states = [t.state for t in state_totals(df)]
    week_starts = pd.DatetimeIndex(trailing_weeks(from_epoch_ms(anchor), weeks))

    dated = _dated(df)
    pivot = (
        dated.assign(
            week_start=lambda d: d["placement_date"].dt.normalize() - pd.to_timedelta(d["placement_date"].dt.weekday, unit="D")
        )
        .groupby(["week_start", "state"])
        .size()
        .unstack(fill_value=0)
        .reindex(index=week_starts, columns=states, fill_value=0)
    )

    rows = []
    for ts in week_starts:
        start = ts.to_pydatetime()
        rows.append(
            StateWeeklyRow(
                week_key=ymd_key(start),
                week_label=short_label(start),
                counts={state: int(pivot.at[ts, state]) for state in states},
            )
        )
    return rows


def state_pareto(items: Items) -> List[StateParetoRow]:
    totals = state_totals(items)
    cumulative = accumulate(t.share for t in totals)
    return [
        StateParetoRow(state=t.state, placements=t.placements, share=t.share, cumulative_share=c)
        for t, c in zip(totals, cumulative)
    ]


def state_seasonality(items: Items, *, months: int = 12) -> List[StateSeasonalityCell]:
    """State x month heat grid; intensity is relative to the busiest cell in the whole grid."""
    df = as_frame(items)
    anchor = anchor_time(df)
    if anchor is None:
        return []
    states = [t.state for t in state_totals(df)]
    buckets = trailing_months(from_epoch_ms(anchor), months)

    dated = _dated(df)
    grouped = (
        dated.assign(year=dated["placement_date"].dt.year, month=dated["placement_date"].dt.month)
        .groupby(["year", "month", "state"])
        .size()
    )
    counts = {(int(y), int(m), str(s)): int(v) for (y, m, s), v in grouped.items()}

    grid = {(state, idx): counts.get((y, m, state), 0) for state in states for idx, (y, m) in enumerate(buckets)}
    grid_max = max(grid.values(), default=0)

    cells = []
    for state_index, state in enumerate(states):
        for month_index, (y, m) in enumerate(buckets):
            placements = grid[(state, month_index)]
            cells.append(
                StateSeasonalityCell(
                    state=state,
                    state_index=state_index,
                    month_label=month_label(y, m),
                    month_index=month_index,
                    placements=placements,
                    intensity=0.0 if grid_max == 0 else round_half_up(placements / grid_max, 3),
                )
            )
    return cells


def seasonality_months(items: Items, *, months: int = 12) -> List[str]:
    anchor = anchor_time(items)
    if anchor is None:
        return []
    return [month_label(y, m) for y, m in trailing_months(from_epoch_ms(anchor), months)]


def risk_band(days: int, thresholds: Optional[Thresholds] = None) -> RiskBand:
    t = thresholds or Thresholds()
    if days <= t.healthy_days:
        return "Healthy"
    if days <= t.watch_days:
        return "Watch"
    return "At Risk"


def _latest_by_state(df: pd.DataFrame) -> Dict[str, int]:
    dated = _dated(df)
    return {str(k): int(v) for k, v in dated.groupby("state")["placement_time"].max().items()}


def state_recency_risk(items: Items, *, thresholds: Optional[Thresholds] = None) -> List[StateRecencyRow]:
    df = as_frame(items)
    anchor = anchor_time(df)
    latest = _latest_by_state(df)
    rows = []
    for t in state_totals(df):
        last = latest.get(t.state)
        if last is None or anchor is None:
            days = NO_DATED_RECORD_DAYS
            label = format_long_date(None)
        else:
            days = max(0, int(round_half_up((anchor - last) / DAY_MS)))
            label = format_long_date(from_epoch_ms(last))
        rows.append(
            StateRecencyRow(
                state=t.state,
                days_since_last_placement=days,
                risk_band=risk_band(days, thresholds),
                total_placements=t.placements,
                last_placement_label=label,
            )
        )
    return sorted(rows, key=lambda r: r.days_since_last_placement, reverse=True)


def city_drilldown(items: Items, state: Optional[str], *, limit: int = 10) -> List[CityCountRow]:
    if not state:
        return []
    df = as_frame(items)
    df = df[df["state"] == state]
    if df.empty:
        return []
    counts = df.groupby("city").size().reset_index(name="placements")
    counts = counts.sort_values(["placements", "city"], ascending=[False, True], kind="mergesort").head(limit)
    return [CityCountRow(city=str(r.city), placements=int(r.placements)) for r in counts.itertuples(index=False)]


# ---------------- Manager dashboard ----------------
def region_totals(items: Items) -> List[RegionTotalRow]:
    df = as_frame(items)
    total = len(df)
    counts = df["state"].map(region_for_state).value_counts().to_dict() if total else {}
    rows = []
    for region in REGION_ORDER:
        placements = int(counts.get(region, 0))
        if region == UNKNOWN_REGION and placements == 0:
            continue
        rows.append(RegionTotalRow(region=region, placements=placements, share=placements / total if total else 0.0))
    return rows


def state_counts(items: Items, *, include_unknown: bool = True) -> List[StateCountRow]:
    df = as_frame(items)
    total = len(df)
    if total == 0:
        return []
    rows = [
        StateCountRow(
            state=str(r.state),
            region=region_for_state(str(r.state)),
            placements=int(r.placements),
            share=int(r.placements) / total,
        )
        for r in _state_counts(df).itertuples(index=False)
    ]
    if not include_unknown:
        rows = [r for r in rows if r.state != UNKNOWN_STATE]
    return rows


def city_hotspots(items: Items, *, limit: Optional[int] = None) -> List[CityHotspotRow]:
    df = as_frame(items)
    total = len(df)
    if total == 0:
        return []
    counts = df.groupby(["city", "state"]).size().reset_index(name="placements")
    counts["label"] = counts["city"].astype(str) + ", " + counts["state"].astype(str)
    counts = counts.sort_values(["placements", "label"], ascending=[False, True], kind="mergesort")
    if limit is not None:
        counts = counts.head(limit)
    return [
        CityHotspotRow(
            city=str(r.city),
            state=str(r.state),
            region=region_for_state(str(r.state)),
            label=str(r.label),
            placements=int(r.placements),
            share=int(r.placements) / total,
        )
        for r in counts.itertuples(index=False)
    ]


def _placements_by_state(df: pd.DataFrame) -> Dict[str, int]:
    return {str(k): int(v) for k, v in df.groupby("state").size().items()}


def untapped_states(items: Items) -> List[str]:
    by_state = _placements_by_state(as_frame(items))
    return [s for s in ALL_STATE_NAMES if by_state.get(s, 0) == 0]


def coverage_by_region(items: Items) -> List[CoverageRegionRow]:
    by_state = _placements_by_state(as_frame(items))
    rows = []
    for region in REGION_ORDER:
        if region == UNKNOWN_REGION:
            continue
        states = [CoverageStateRow(state=s, placements=by_state.get(s, 0)) for s in ALL_STATE_NAMES if region_for_state(s) == region]
        states.sort(key=lambda r: r.placements, reverse=True)
        rows.append(
            CoverageRegionRow(region=region, total_placements=sum(r.placements for r in states), states=states)
        )
    return rows


def stale_states(items: Items, *, min_days: int = 90, anchor: Optional[int] = None) -> List[StaleStateRow]:
    """States whose latest placement is at least ``min_days`` before ``anchor`` (default: the latest in ``items``)."""
    df = as_frame(items)
    df = df[df["state"] != UNKNOWN_STATE]
    if df.empty:
        return []
    if anchor is None:
        anchor = anchor_time(df)
    latest = _latest_by_state(df)
    rows = []
    for state, total in _placements_by_state(df).items():
        last = latest.get(state)
        if last is None or anchor is None:
            days = NO_DATED_RECORD_STALE_DAYS
            label = format_long_date(None)
        else:
            days = (anchor - last) // DAY_MS
            label = format_long_date(from_epoch_ms(last))
        if days < min_days:
            continue
        rows.append(
            StaleStateRow(
                state=state,
                region=region_for_state(state),
                total_placements=total,
                days_since_last_placement=int(days),
                last_placement_label=label,
            )
        )
    return sorted(rows, key=lambda r: (-r.days_since_last_placement, r.state))


def placement_trend(
    items: Items,
    *,
    granularity: str = "daily",
    start_time: Optional[int] = None,
) -> List[TrendPoint]:
    """Contiguous daily or weekly placement counts from ``start_time`` (or the earliest dated record) to the anchor."""
    df = as_frame(items)
    dated = _dated(df)
    if dated.empty:
        return []
    anchor = from_epoch_ms(int(dated["placement_time"].max()))
    start: datetime = from_epoch_ms(start_time) if start_time is not None else from_epoch_ms(int(dated["placement_time"].min()))
    start = min(start, anchor)

    if granularity == "weekly":
        bucket = dated["placement_date"].dt.normalize() - pd.to_timedelta(dated["placement_date"].dt.weekday, unit="D")
        periods = pd.date_range(start_of_week(start), start_of_week(anchor), freq="7D")
    else:
        bucket = dated["placement_date"].dt.normalize()
        periods = pd.date_range(start_of_day(start), start_of_day(anchor), freq="D")

    counts = bucket.value_counts()
    points = []
    for ts in periods:
        day = ts.to_pydatetime()
        points.append(TrendPoint(period_key=ymd_key(day), period_label=short_label(day), placements=int(counts.get(ts, 0))))
    return points
