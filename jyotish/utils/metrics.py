# jyotish/utils/metrics.py
"""Prometheus instruments shared by the engine (names are stable; dashboards key on them)."""
from __future__ import annotations

from typing import Final

from prometheus_client import Counter, Gauge, Histogram

MET_HOUSE_FALLBACKS: Final = Counter(
    "jyotish_house_fallback_total",
    "Longitudes housed by the closest-cusp fallback",
    ["system"],
)
MET_CALC_ERRORS: Final = Counter(
    "jyotish_calculation_errors_total",
    "Numerical provider failures",
    ["body"],
)
MET_WARNINGS: Final = Counter("jyotish_warning_total", "Non-fatal warnings", ["kind"])
GAUGE_DEGRADED: Final = Gauge(
    "jyotish_ephemeris_degraded",
    "1 while the engine runs on the built-in ephemeris instead of data files",
)
CHART_LATENCY: Final = Histogram(
    "jyotish_chart_seconds",
    "Chart computation latency",
    ["kind"],
)


def warn(kind: str) -> None:
    MET_WARNINGS.labels(kind=kind).inc()
