from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

import altair as alt
import pandas as pd

from placements.aggregate import (
    anchor_time,
    city_drilldown,
    seasonality_months,
    state_growth,
    state_pace,
    state_pareto,
    state_recency_risk,
    state_seasonality,
    state_totals,
    state_weekly_series,
)
from placements.charts import records, rows_frame, to_vega_spec
from placements.dates import from_epoch_ms, ymd_key
from placements.filters import DashboardFilters
from placements.kpis import build_dashboard_kpis
from placements.models import StateWeeklyRow

WEEKLY_CHART_STATES = 5


def _weekly_long(rows: List[StateWeeklyRow], states: List[str]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {"week_key": r.week_key, "week_label": r.week_label, "state": s, "placements": r.counts.get(s, 0)}
            for r in rows
            for s in states
        ]
    )


def compute_dashboard(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    scoped = ctx.get("scoped_frame")
    if scoped is None:
        scoped = ctx.get("scoped_items", [])
    t = filters.thresholds

    totals = state_totals(scoped)
    recency = state_recency_risk(scoped, thresholds=t)
    kpis = build_dashboard_kpis(scoped, thresholds=t, totals=totals, recency=recency)

    payload: Dict[str, Any] = {
        "filters": asdict(filters),
        "snapshot": {"anchor_date": None},
        "kpis": asdict(kpis),
        "state_totals": [],
        "state_pace": [],
        "state_growth_30d": [],
        "state_weekly_series_16w": [],
        "weekly_series_states": [],
        "state_pareto": [],
        "state_seasonality_12m": [],
        "state_seasonality_states": [],
        "state_seasonality_months": [],
        "state_recency_risk": [],
        "city_drilldown": [],
        "charts": {},
    }
    if not totals:
        return payload

    anchor = anchor_time(scoped)
    payload["snapshot"]["anchor_date"] = ymd_key(from_epoch_ms(anchor)) if anchor is not None else None

    weekly = state_weekly_series(scoped)
    pareto = state_pareto(scoped)
    seasonality = state_seasonality(scoped)
    growth = state_growth(scoped, window_days=t.growth_window_days)

    payload.update(
        {
            "state_totals": records(totals),
            "state_pace": records(state_pace(scoped, window_days=t.growth_window_days)),
            "state_growth_30d": records(growth),
            "state_weekly_series_16w": records(weekly),
            "weekly_series_states": [r.state for r in totals],
            "state_pareto": records(pareto),
            "state_seasonality_12m": records(seasonality),
            "state_seasonality_states": [r.state for r in totals] if seasonality else [],
            "state_seasonality_months": seasonality_months(scoped),
            "state_recency_risk": records(recency[: filters.top_n]),
            "city_drilldown": records(city_drilldown(ctx.get("filtered_items", scoped), filters.selected_state)),
        }
    )

    charts: Dict[str, Any] = {}

    top_totals = rows_frame(totals[: filters.top_n])
    state_hover = alt.selection_point(fields=["state"], on="mouseover", empty="all")
    charts["state_totals"] = to_vega_spec(
        alt.Chart(top_totals)
        .mark_bar()
        .encode(
            x=alt.X("placements:Q", title="Placements", axis=alt.Axis(format="d", gridDash=[4, 4], domain=False, ticks=False)),
            y=alt.Y("state:N", sort="-x", title=None),
            opacity=alt.condition(state_hover, alt.value(1), alt.value(0.6)),
            tooltip=["state", "placements", alt.Tooltip("share:Q", format=".1%")],
        )
        .add_params(state_hover)
    )

    if weekly:
        focus = [r.state for r in totals[:WEEKLY_CHART_STATES]]
        weekly_hover = alt.selection_point(fields=["state"], on="mouseover", empty="all")
        charts["weekly_series"] = to_vega_spec(
            alt.Chart(_weekly_long(weekly, focus))
            .mark_line(point={"filled": True, "size": 60})
            .encode(
                x=alt.X("week_key:O", title="Week", axis=alt.Axis(grid=False, labelAngle=-45)),
                y=alt.Y("placements:Q", axis=alt.Axis(format="d", gridDash=[4, 4], domain=False, ticks=False)),
                color="state:N",
                opacity=alt.condition(weekly_hover, alt.value(1), alt.value(0.2)),
                tooltip=["week_label", "state", "placements"],
            )
            .add_params(weekly_hover)
            .properties(height=260)
        )

    pareto_df = rows_frame(pareto[: filters.top_n])
    base = alt.Chart(pareto_df).encode(x=alt.X("state:N", sort=None, title=None, axis=alt.Axis(grid=False)))
    bars = base.mark_bar().encode(y=alt.Y("placements:Q", title="Placements"))
    line = base.mark_line(point=True, color="#ef4444").encode(
        y=alt.Y("cumulative_share:Q", title="Cumulative Share", axis=alt.Axis(format=".0%", orient="right"))
    )
    charts["pareto"] = to_vega_spec(alt.layer(bars, line).resolve_scale(y="independent"))

    if seasonality:
        charts["seasonality"] = to_vega_spec(
            alt.Chart(rows_frame(seasonality))
            .mark_rect()
            .encode(
                x=alt.X("month_label:O", sort=None, title=None),
                y=alt.Y("state:N", sort=None, title=None),
                color=alt.Color("intensity:Q", scale=alt.Scale(domain=[0, 1]), legend=None),
                tooltip=["state", "month_label", "placements"],
            )
        )

    payload["charts"] = charts
    return payload
