from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Iterable, List

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def rows_frame(rows: Iterable[Any]) -> pd.DataFrame:
    """Dataclass rows -> DataFrame for charting."""
    return pd.DataFrame([asdict(r) for r in rows])


def records(rows: Iterable[Any]) -> List[Dict[str, Any]]:
    return [asdict(r) for r in rows]
