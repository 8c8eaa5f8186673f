from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field


class ThresholdsModel(BaseModel):
    healthy_days: int = 14
    watch_days: int = 30
    stale_days: int = 30
    manager_stale_days: int = 90
    data_health_issue_ratio: float = 0.10
    growth_window_days: int = 30


class DashboardFiltersModel(BaseModel):
    date_range: Literal["30d", "90d", "12m", "all"] = "90d"
    search: str = ""
    selected_state: Optional[str] = None
    granularity: Literal["daily", "weekly"] = "daily"
    include_unknown_states: bool = True
    top_n: int = 15
    thresholds: ThresholdsModel = Field(default_factory=ThresholdsModel)


class ManagerFiltersModel(DashboardFiltersModel):
    include_unknown_states: bool = False


class InvalidateResponse(BaseModel):
    invalidated: int
