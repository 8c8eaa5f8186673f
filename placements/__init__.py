"""Core (UI-agnostic) placement analytics.

This package contains:
- record normalization (untrusted JSON -> PlacementMetricItem)
- state canonicalization and census-region lookup
- scope filters and thresholds
- derived views and KPI summaries (pure functions of the scoped items)
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
- a TTL cache for loaded payloads
"""
