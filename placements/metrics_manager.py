from __future__ import annotations

from dataclasses import asdict, replace
from typing import Any, Dict

import altair as alt

from placements.aggregate import (
    anchor_time,
    city_hotspots,
    coverage_by_region,
    placement_trend,
    region_totals,
    stale_states,
    state_counts,
    untapped_states,
)
from placements.charts import records, rows_frame, to_vega_spec
from placements.dates import DAY_MS
from placements.filters import DashboardFilters, apply_scope
from placements.kpis import build_manager_kpis


def compute_manager(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    scoped = ctx.get("scoped_frame")
    if scoped is None:
        scoped = ctx.get("scoped_items", [])
    t = filters.thresholds

    kpis = build_manager_kpis(scoped, thresholds=t, window_days=filters.window_days)
    untapped = untapped_states(scoped)

    # Staleness spans every date, not just the selected range.
    stale_scope = apply_scope(ctx.get("items", []), replace(filters, date_range="all"))
    stale = stale_states(stale_scope, min_days=t.manager_stale_days, anchor=anchor_time(ctx.get("items", [])))

    payload: Dict[str, Any] = {
        "filters": asdict(filters),
        "kpis": asdict(kpis),
        "trend": [],
        "region_totals": records(region_totals(scoped)),
        "top_states": [],
        "top_cities": [],
        "coverage": records(coverage_by_region(scoped)),
        "untapped_states": untapped,
        "stale_states_90d": records(stale),
        "charts": {},
    }
    if kpis.scoped_placements == 0:
        return payload

    anchor = anchor_time(scoped)
    start_time = anchor - filters.window_days * DAY_MS if anchor is not None and filters.window_days else None
    trend = placement_trend(scoped, granularity=filters.granularity, start_time=start_time)
    top_states = state_counts(scoped, include_unknown=filters.include_unknown_states)
    top_cities = city_hotspots(scoped, limit=filters.top_n)

    payload.update(
        {
            "trend": records(trend),
            "top_states": records(top_states[: filters.top_n]),
            "top_cities": records(top_cities),
        }
    )

    charts: Dict[str, Any] = {}
    if trend:
        charts["trend"] = to_vega_spec(
            alt.Chart(rows_frame(trend))
            .mark_area(line=True, opacity=0.3)
            .encode(
                x=alt.X("period_key:T", title=None, axis=alt.Axis(grid=False)),
                y=alt.Y("placements:Q", title="Placements", axis=alt.Axis(format="d", gridDash=[4, 4], domain=False, ticks=False)),
                tooltip=["period_label", "placements"],
            )
            .properties(height=240)
        )

    region_df = rows_frame([r for r in region_totals(scoped) if r.placements > 0])
    if not region_df.empty:
        region_hover = alt.selection_point(fields=["region"], on="mouseover", empty="all")
        charts["region_totals"] = to_vega_spec(
            alt.Chart(region_df)
            .mark_arc(innerRadius=50)
            .encode(
                theta="placements:Q",
                color=alt.Color("region:N", title="Region"),
                opacity=alt.condition(region_hover, alt.value(1), alt.value(0.6)),
                tooltip=["region", "placements", alt.Tooltip("share:Q", format=".1%")],
            )
            .add_params(region_hover)
        )

    if top_cities:
        charts["top_cities"] = to_vega_spec(
            alt.Chart(rows_frame(top_cities))
            .mark_bar()
            .encode(
                x=alt.X("placements:Q", title="Placements"),
                y=alt.Y("label:N", sort="-x", title=None),
                color=alt.Color("region:N", title="Region"),
                tooltip=["label", "region", "placements", alt.Tooltip("share:Q", format=".1%")],
            )
        )

    payload["charts"] = charts
    return payload
