from __future__ import annotations

import json
import logging
import math
import os
import re
from dataclasses import asdict
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

import pandas as pd

from placements.cache import TTLCache
from placements.dates import in_frame_range, to_epoch_ms
from placements.filters import DashboardFilters, apply_date_range, apply_scope, normalize_filters
from placements.models import PlacementMetricItem
from placements.states import normalize_state

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parents[1]
DEFAULT_SOURCE = DATA_DIR / "placement_metrics.json"
SOURCE_ENV_VAR = "PLACEMENTS_SOURCE"

PAYLOAD_CACHE_PREFIX = "placement_metrics:"
PAYLOAD_TTL_SECONDS = 30.0

UNKNOWN_CITY = "Unknown city"

FRAME_COLUMNS = ["app_id", "city", "state", "placement_date_raw", "placement_date", "placement_time"]

US_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
WRITTEN_DATE_FORMATS = ("%b %d, %Y", "%B %d, %Y", "%b %d %Y", "%B %d %Y", "%d %b %Y", "%d %B %Y")

payload_cache = TTLCache()


# ---------------- Coercion helpers ----------------
def safe_string(value: object) -> Optional[str]:
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return None
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        s = str(int(value)) if value.is_integer() else str(value)
    else:
        s = str(value)
    s = s.strip()
    return s or None


def safe_number(value: object) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        n = float(value)
    elif isinstance(value, str) and value.strip():
        try:
            n = float(value)
        except ValueError:
            return None
    else:
        return None
    return n if math.isfinite(n) else None


def coerce_app_id(value: object, fallback: int) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    n = safe_number(value)
    if n is None or not n.is_integer():
        return fallback
    return int(n)


def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


# ---------------- Date parsing ----------------
def _parse_calendar_date(value: str) -> Optional[datetime]:
    try:
        ts = pd.to_datetime(value, format="ISO8601", errors="coerce")
    except (ValueError, TypeError, OverflowError):
        ts = pd.NaT
    if not pd.isna(ts):
        if ts.tzinfo is not None:
            ts = ts.tz_convert("UTC").tz_localize(None)
        return ts.to_pydatetime()

    for fmt in WRITTEN_DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


def parse_placement_date(value: Optional[str]) -> Optional[datetime]:
    """Parse a placement date.

    Calendar formats (ISO-8601, written month names) are tried first, then a
    strict ``M/D/YYYY``. Impossible calendar dates such as ``2/30/2020`` or
    ``13/1/2023`` yield None rather than rolling over, as do dates outside the
    range a pandas datetime column can hold.
    """
    parsed = _parse_date_text((value or "").strip())
    if parsed is None or not in_frame_range(parsed):
        return None
    return parsed


def _parse_date_text(s: str) -> Optional[datetime]:
    if not s:
        return None

    parsed = _parse_calendar_date(s)
    if parsed is not None:
        return parsed

    match = US_DATE_RE.match(s)
    if not match:
        return None
    month, day, year = (int(g) for g in match.groups())
    if not (1 <= month <= 12 and 1 <= day <= 31):
        return None
    try:
        return datetime(year, month, day)
    except ValueError:
        return None


# ---------------- Normalization ----------------
def normalize_record(record: Mapping, index: int) -> PlacementMetricItem:
    placement_date_raw = safe_string(record.get("placementDate")) or ""
    placement_date = parse_placement_date(placement_date_raw)
    return PlacementMetricItem(
        app_id=coerce_app_id(record.get("app_id"), index),
        city=safe_string(record.get("city")) or UNKNOWN_CITY,
        state=normalize_state(record.get("state")),
        placement_date_raw=placement_date_raw,
        placement_date=placement_date,
        placement_time=to_epoch_ms(placement_date) if placement_date is not None else 0,
    )


def normalize_placement_metrics(payload: object) -> List[PlacementMetricItem]:
    """Turn an untrusted JSON payload into placement items, newest first.

    Non-list payloads give an empty list. Elements that are not mappings are
    dropped; every mapping is kept with defaulted fields so counts stay intact.
    """
    if not isinstance(payload, (list, tuple)):
        return []

    items = [normalize_record(el, idx) for idx, el in enumerate(payload) if isinstance(el, Mapping)]
    logger.debug("normalize_placement_metrics kept %d records, dropped %d", len(items), len(payload) - len(items))

    # Dated records (including pre-1970 ones with negative times) come before undated ones.
    return sorted(items, key=lambda i: (i.placement_date is not None, i.placement_time, i.app_id), reverse=True)


def items_to_frame(items: Iterable[PlacementMetricItem]) -> pd.DataFrame:
    df = pd.DataFrame([asdict(i) for i in items], columns=FRAME_COLUMNS)
    df["placement_date"] = pd.to_datetime(df["placement_date"])
    df["placement_time"] = df["placement_time"].astype("int64")
    return df


# ---------------- Loaders ----------------
def get_source_path() -> Path:
    return Path(os.environ.get(SOURCE_ENV_VAR) or DEFAULT_SOURCE)


def read_payload(path: Path) -> object:
    with path.open(encoding="utf-8") as fh:
        return json.load(fh)


def load_placement_metrics(*, force_refresh: bool = False, cache: Optional[TTLCache] = None) -> List[PlacementMetricItem]:
    path = get_source_path()
    cache = cache if cache is not None else payload_cache

    def _load() -> List[PlacementMetricItem]:
        if not path.exists():
            logger.warning("placement source %s not found; serving empty dataset", path)
            return []
        logger.info("loading placement metrics from %s", path)
        items = normalize_placement_metrics(read_payload(path))
        logger.info("loaded %d placement records", len(items))
        return items

    return cache.get_or_load(f"{PAYLOAD_CACHE_PREFIX}{path}", _load, PAYLOAD_TTL_SECONDS, force_refresh=force_refresh)


def invalidate_placement_cache(cache: Optional[TTLCache] = None) -> int:
    cache = cache if cache is not None else payload_cache
    return cache.invalidate_prefix(PAYLOAD_CACHE_PREFIX)


# ---------------- Public API ----------------
def load_dashboard_data(*, force_refresh: bool = False) -> Dict[str, object]:
    items = load_placement_metrics(force_refresh=force_refresh)
    return {
        "source": str(get_source_path()),
        "items": items,
        "states": sorted({i.state for i in items}),
    }


def prepare_context(
    filters: dict | DashboardFilters,
    data_ctx: Dict[str, object],
    *,
    now: Optional[datetime] = None,
) -> Dict[str, object]:
    items: List[PlacementMetricItem] = list(data_ctx.get("items", []) or [])
    filt = filters if isinstance(filters, DashboardFilters) else normalize_filters(filters)

    filtered_items = apply_date_range(items, filt.date_range, now=now)
    scoped_items = apply_scope(items, filt, now=now)

    return {
        "filters": filt,
        "items": items,
        "filtered_items": filtered_items,
        "scoped_items": scoped_items,
        "scoped_frame": items_to_frame(scoped_items),
    }
