# jyotish/core/varga.py
# -----------------------------------------------------------------------------
# Divisional charts (vargas) D2 … D60
#
# Each varga divides every sign into N parts. A body in part ``k`` of sign
# ``s`` moves to sign  start(s) + step(s)·k  (mod 12), and its position
# inside the part is stretched to a full 30° sign. D30 uses five unequal
# parts with a fixed destination per part instead.
#
# Part boundaries are compared in exact Decimal arcseconds (see
# classify.to_arcsec), so a longitude on a literal boundary such as 2°30'
# falls into the part that begins there, at degree 0 of its new sign.
# -----------------------------------------------------------------------------
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from decimal import ROUND_FLOOR, Decimal
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from jyotish.core.classify import classify, sign_and_offset_arcsec
from jyotish.core.constants import (
    AIR,
    DUAL,
    EARTH,
    FIRE,
    FIXED,
    MOVABLE,
    SIGN_SPAN_ARCSEC,
    WATER,
    element_of,
    is_odd_sign,
    modality_of,
)
from jyotish.core.errors import ValidationError, field_error
from jyotish.core.models import BodyPosition, DivisionalChartResult, VedicChart
from jyotish.core.validators import suggest
from jyotish.utils import metrics

__all__ = [
    "VargaRule",
    "VARGA_RULES",
    "VARGA_CODES",
    "COMMON_VARGAS",
    "varga_longitude",
    "varga_sign",
    "whole_sign_house",
    "DivisionalChartEngine",
]

log = logging.getLogger(__name__)

_SIGN = Decimal(SIGN_SPAN_ARCSEC)

# Sign indices used by the rule table
ARIES, TAURUS, GEMINI, CANCER, LEO, VIRGO = 0, 1, 2, 3, 4, 5
LIBRA, SCORPIO, SAGITTARIUS, CAPRICORN, AQUARIUS, PISCES = 6, 7, 8, 9, 10, 11


@dataclass(frozen=True)
class VargaRule:
    code: str
    division: int
    name: str
    signification: str
    start: Callable[[int], int]
    step: Callable[[int], int] = lambda s: 1
    # Unequal parts: per parity (odd, even) a tuple of (width in degrees, sign).
    segments: Optional[Mapping[bool, Tuple[Tuple[int, int], ...]]] = None

    @property
    def parts(self) -> int:
        if self.segments:
            return len(self.segments[True])
        return self.division


def _by_parity(odd: int, even: int) -> Callable[[int], int]:
    return lambda s: odd if is_odd_sign(s) else even


def _offset_by_parity(odd: int, even: int) -> Callable[[int], int]:
    return lambda s: s + (odd if is_odd_sign(s) else even)


def _by_modality(movable: int, fixed: int, dual: int) -> Callable[[int], int]:
    table = {MOVABLE: movable, FIXED: fixed, DUAL: dual}
    return lambda s: table[modality_of(s)]


def _offset_by_modality(movable: int, fixed: int, dual: int) -> Callable[[int], int]:
    table = {MOVABLE: movable, FIXED: fixed, DUAL: dual}
    return lambda s: s + table[modality_of(s)]


def _by_element(fire: int, earth: int, air: int, water: int) -> Callable[[int], int]:
    table = {FIRE: fire, EARTH: earth, AIR: air, WATER: water}
    return lambda s: table[element_of(s)]


_D30_SEGMENTS = {
    True: ((5, ARIES), (5, AQUARIUS), (8, SAGITTARIUS), (7, GEMINI), (5, TAURUS)),
    False: ((5, TAURUS), (7, VIRGO), (8, PISCES), (5, CAPRICORN), (5, SCORPIO)),
}

_RULES: Tuple[VargaRule, ...] = (
    VargaRule("D2", 2, "Hora", "Wealth, Prosperity",
              start=_by_parity(LEO, CANCER), step=_by_parity(-1, 1)),
    VargaRule("D3", 3, "Drekkana", "Siblings, Courage",
              start=lambda s: s, step=lambda s: 4),
    VargaRule("D4", 4, "Chaturthamsa", "Fortune, Property",
              start=lambda s: s, step=lambda s: 3),
    VargaRule("D7", 7, "Saptamsa", "Children, Progeny",
              start=_offset_by_parity(0, 6)),
    VargaRule("D9", 9, "Navamsa", "Marriage, Dharma",
              start=_offset_by_modality(0, 8, 4)),
    VargaRule("D10", 10, "Dasamsa", "Career, Profession",
              start=_offset_by_parity(0, 8)),
    VargaRule("D12", 12, "Dwadasamsa", "Parents, Ancestry",
              start=lambda s: s),
    VargaRule("D16", 16, "Shodasamsa", "Vehicles, Pleasures",
              start=_by_modality(ARIES, LEO, SAGITTARIUS)),
    VargaRule("D20", 20, "Vimsamsa", "Spiritual Life",
              start=_by_modality(ARIES, SAGITTARIUS, LEO)),
    VargaRule("D24", 24, "Siddhamsa", "Education, Learning",
              start=_by_parity(LEO, CANCER)),
    VargaRule("D27", 27, "Bhamsa", "Strength, Weakness",
              start=_by_element(ARIES, CANCER, LIBRA, CAPRICORN)),
    VargaRule("D30", 30, "Trimsamsa", "Evils, Misfortunes",
              start=lambda s: s, segments=_D30_SEGMENTS),
    VargaRule("D60", 60, "Shashtiamsa", "Past Life Karma",
              start=_offset_by_parity(0, 6)),
)

VARGA_RULES: Dict[str, VargaRule] = {r.code: r for r in _RULES}
VARGA_CODES: Tuple[str, ...] = tuple(r.code for r in _RULES)
COMMON_VARGAS: Tuple[str, ...] = ("D9", "D10")


def _rule(code: str) -> VargaRule:
    key = str(code).strip().upper()
    if not key.startswith("D"):
        key = f"D{key}"
    rule = VARGA_RULES.get(key)
    if rule is None:
        hits = suggest(str(code), VARGA_CODES)
        hint = f" Try one of: {', '.join(hits)}." if hits else ""
        raise ValidationError(field_error("varga", f"unknown divisional chart '{code}'.{hint}",
                                          "value_error.varga"))
    return rule


def _part(rule: VargaRule, sign: int, offset: Decimal) -> Tuple[int, int, Decimal]:
    """(part index, destination sign, offset inside the destination sign in arcsec)."""
    if rule.segments:
        lo = Decimal(0)
        segs = rule.segments[is_odd_sign(sign)]
        for k, (width, dest) in enumerate(segs):
            hi = lo + Decimal(width * 3600)
            if offset < hi or k == len(segs) - 1:
                inner = (offset - lo) * _SIGN / Decimal(width * 3600)
                return k, dest, inner
            lo = hi
    n = Decimal(rule.division)
    scaled = offset * n
    k = min(int((scaled / _SIGN).to_integral_value(rounding=ROUND_FLOOR)), rule.division - 1)
    inner = scaled - Decimal(k) * _SIGN
    return k, (rule.start(sign) + rule.step(sign) * k) % 12, inner


def varga_longitude(lon: float, code: str) -> float:
    """Divisional longitude of natal longitude ``lon`` in varga ``code``."""
    rule = _rule(code)
    sign, offset = sign_and_offset_arcsec(lon)
    _, dest, inner = _part(rule, sign, offset)
    return dest * 30.0 + float(max(inner, Decimal(0)) / Decimal(3600))


def varga_sign(lon: float, code: str) -> int:
    return int(varga_longitude(lon, code) // 30.0) % 12


def whole_sign_house(sign: int, ascendant_sign: int) -> int:
    return (sign - ascendant_sign) % 12 + 1


class DivisionalChartEngine:
    """Projects natal charts into vargas; stateless and safe to share."""

    def _project(self, pos: BodyPosition, rule: VargaRule, asc_sign: int) -> BodyPosition:
        p = classify(varga_longitude(pos.longitude, rule.code))
        return replace(
            pos,
            longitude=p.longitude,
            sign=p.sign,
            degree=p.degree,
            minute=p.minute,
            second=p.second,
            nakshatra=p.nakshatra,
            pada=p.pada,
            house=whole_sign_house(p.sign, asc_sign),
        )

    def compute(self, chart: VedicChart, code: str) -> DivisionalChartResult:
        rule = _rule(code)
        t0 = time.perf_counter()
        asc = varga_longitude(chart.ascendant, rule.code)
        asc_sign = int(asc // 30.0) % 12
        positions = tuple(self._project(p, rule, asc_sign) for p in chart.positions)
        log.debug("Varga %s: ascendant %.6f (sign %d)", rule.code, asc, asc_sign)
        metrics.CHART_LATENCY.labels(kind="varga").observe(time.perf_counter() - t0)
        return DivisionalChartResult(
            code=rule.code,
            name=rule.name,
            signification=rule.signification,
            ascendant=asc,
            positions=positions,
        )

    def compute_many(self, chart: VedicChart, codes: Iterable[str]) -> List[DivisionalChartResult]:
        return [self.compute(chart, c) for c in codes]

    def compute_all(self, chart: VedicChart) -> List[DivisionalChartResult]:
        return self.compute_many(chart, VARGA_CODES)

    def compute_common(self, chart: VedicChart) -> List[DivisionalChartResult]:
        return self.compute_many(chart, COMMON_VARGAS)
