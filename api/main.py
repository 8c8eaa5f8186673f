from __future__ import annotations

from datetime import datetime
import logging
import math
from typing import Any, Dict

import numpy as np
import pandas as pd
from fastapi import Body, FastAPI, Query
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import DashboardFiltersModel, InvalidateResponse, ManagerFiltersModel
from placements.aggregate import coverage_by_region, state_recency_risk, state_totals
from placements.charts import rows_frame
from placements.data import (
    invalidate_placement_cache,
    items_to_frame,
    load_dashboard_data,
    normalize_placement_metrics,
    prepare_context,
)
from placements.filters import DashboardFilters, normalize_filters
from placements.metrics_dashboard import compute_dashboard
from placements.metrics_manager import compute_manager
from placements.regions import REGION_ORDER, UNKNOWN_REGION, region_for_state
from placements.states import ALL_STATE_NAMES


app = FastAPI(title="Placement Analytics API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _filters_from_model(model: DashboardFiltersModel) -> DashboardFilters:
    return normalize_filters(model.model_dump())


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
                datetime: lambda dt: dt.isoformat(),
            },
        )
    )


def _error(exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


@app.get("/meta/states")
def meta_states():
    try:
        data_ctx = load_dashboard_data()
        return _json({"states": ALL_STATE_NAMES, "present": data_ctx.get("states", [])})
    except Exception as exc:
        logger.exception("meta_states failed")
        return _error(exc)


@app.get("/meta/regions")
def meta_regions():
    regions: Dict[str, Any] = {
        region: [s for s in ALL_STATE_NAMES if region_for_state(s) == region]
        for region in REGION_ORDER
        if region != UNKNOWN_REGION
    }
    return _json({"regions": regions})


@app.post("/dashboard")
def dashboard(filters: DashboardFiltersModel, force_refresh: bool = Query(default=False)):
    try:
        data_ctx = load_dashboard_data(force_refresh=force_refresh)
        f = _filters_from_model(filters)
        ctx = prepare_context(f, data_ctx)
        return _json(compute_dashboard(f, ctx))
    except Exception as exc:
        logger.exception("dashboard failed")
        return _error(exc)


@app.post("/manager")
def manager(filters: ManagerFiltersModel, force_refresh: bool = Query(default=False)):
    try:
        data_ctx = load_dashboard_data(force_refresh=force_refresh)
        f = _filters_from_model(filters)
        ctx = prepare_context(f, data_ctx)
        return _json(compute_manager(f, ctx))
    except Exception as exc:
        logger.exception("manager failed")
        return _error(exc)


@app.post("/normalize")
def normalize(payload: Any = Body(default=None)):
    try:
        items = normalize_placement_metrics(payload)
        return _json({"count": len(items), "items": items})
    except Exception as exc:
        logger.exception("normalize failed")
        return _error(exc)


@app.post("/cache/invalidate", response_model=InvalidateResponse)
def cache_invalidate():
    removed = invalidate_placement_cache()
    logger.info("invalidated %d cached placement payloads", removed)
    return InvalidateResponse(invalidated=removed)


@app.post("/export/{view}")
def export_view(view: str, filters: DashboardFiltersModel):
    data_ctx = load_dashboard_data()
    f = _filters_from_model(filters)
    ctx = prepare_context(f, data_ctx)
    scoped = ctx["scoped_frame"]

    filename = f"{view}.csv"
    if view == "placements":
        export_df = items_to_frame(ctx["scoped_items"])
    elif view == "state-totals":
        export_df = rows_frame(state_totals(scoped))
    elif view == "recency":
        export_df = rows_frame(state_recency_risk(scoped, thresholds=f.thresholds))
    elif view == "coverage":
        export_df = pd.DataFrame(
            [
                {"region": row.region, "state": s.state, "placements": s.placements}
                for row in coverage_by_region(scoped)
                for s in row.states
            ]
        )
    else:
        export_df = pd.DataFrame()

    csv_bytes = export_df.to_csv(index=False).encode("utf-8")
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": f"attachment; filename={filename}"})
