# jyotish/core/houses.py
"""
House system façade.

- Normalizes house-system labels (single provider letter or slug alias such
  as ``placidus`` / ``Whole Sign``) with close-match suggestions on failure.
- Fetches the 12 sidereal cusps + ascendant/midheaven through the accessor;
  Placidus/Koch above the polar circle fall back to Porphyry with a warning.
- Assigns a longitude to a house by walking cusp-to-cusp arcs; a longitude
  no arc claims goes to the nearest cusp, logged and counted as a fallback.
"""
from __future__ import annotations

import logging
from typing import Dict, Sequence, Union

from jyotish.core.constants import HOUSE_SYSTEM_ALIASES, HOUSE_SYSTEM_CODES, abs_sep_deg, wrap_deg
from jyotish.core.ephemeris_adapter import EphemerisAccessor
from jyotish.core.errors import ValidationError, field_error
from jyotish.core.models import ChartCusps
from jyotish.core.validators import parse_latlon, slug, suggest
from jyotish.utils import metrics

__all__ = ["normalize_house_system", "house_of", "HouseSystemCalculator"]

log = logging.getLogger(__name__)

# Arcs narrower than this are degenerate (coincident cusps) and count as 30°.
_MIN_WIDTH_DEG = 0.001

# Systems the provider cannot build above the polar circle. The obliquity
# never exceeds 24.5°, so below 65.5° a failure is a real error.
_LATITUDE_LIMITED = frozenset({"P", "K"})
_POLAR_LATITUDE = 65.5
_POLAR_FALLBACK = "O"

_CODE_FROM_SLUG: Dict[str, str] = {slug(k): v for k, v in HOUSE_SYSTEM_ALIASES.items()}


def normalize_house_system(system: str | None) -> str:
    """Provider letter for a house-system label; defaults to Placidus."""
    if not system:
        return "P"
    s = str(system).strip()
    if len(s) == 1 and s.upper() in HOUSE_SYSTEM_CODES:
        return s.upper()
    code = _CODE_FROM_SLUG.get(slug(s))
    if code is None:
        hits = suggest(s, HOUSE_SYSTEM_ALIASES)
        hint = f" Try one of: {', '.join(hits)}." if hits else ""
        raise ValidationError(field_error(
            "house_system", f"unsupported house system '{system}' (slug='{slug(s)}').{hint}",
            "value_error.house_system"))
    return code


def house_of(lon: float, cusps: Union[ChartCusps, Sequence[float]]) -> int:
    """House 1..12 containing ``lon``; cusp ``h`` opens house ``h``."""
    cs = cusps.cusps if isinstance(cusps, ChartCusps) else tuple(cusps)
    if len(cs) != 12:
        raise ValueError(f"expected 12 cusps, got {len(cs)}")
    x = wrap_deg(lon)
    for h in range(12):
        start = cs[h]
        width = wrap_deg(cs[(h + 1) % 12] - start)
        if width < _MIN_WIDTH_DEG:
            width = 30.0
        if wrap_deg(x - start) < width:
            return h + 1

    best = min(range(12), key=lambda h: abs_sep_deg(x, cs[h])) + 1
    system = cusps.system if isinstance(cusps, ChartCusps) else "?"
    log.warning("Longitude %.6f matched no house arc (%s); using closest cusp, house %d",
                x, system, best)
    metrics.MET_HOUSE_FALLBACKS.labels(system=system).inc()
    return best


class HouseSystemCalculator:
    def __init__(self, accessor: EphemerisAccessor):
        self.accessor = accessor

    def cusps(self, jd: float, lat: float, lon: float, system: str | None = "P") -> ChartCusps:
        """
        Twelve sidereal cusps for ``system``. Placidus and Koch have no cusps
        where part of the ecliptic never rises; there a provider failure is
        answered with Porphyry cusps, and ``ChartCusps.system`` says so.
        """
        code = normalize_house_system(system)
        lat, lon = parse_latlon(lat, lon)
        polar = code in _LATITUDE_LIMITED and abs(lat) >= _POLAR_LATITUDE
        used, cusps, asc, mc = self.accessor.house_cusps_with_fallback(
            jd, lat, lon, code, _POLAR_FALLBACK if polar else None)
        return ChartCusps(cusps=cusps, ascendant=asc, midheaven=mc, system=used)

    # Convenience so callers holding a calculator need not import the function.
    house_of = staticmethod(house_of)
