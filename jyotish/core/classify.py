# jyotish/core/classify.py
# -----------------------------------------------------------------------------
# Longitude classification: sign, degree/minute/second, nakshatra, pada.
#
# Sign, nakshatra and pada boundaries are whole arcseconds (108000", 48000"
# and 12000"), so every field is evaluated in Decimal arcseconds after
# snapping the input to 1e-6". A float that lands on a boundary
# (13.333333333333334 for 13°20') therefore classifies into the division that
# begins there, and sign, D/M/S and nakshatra always agree with each other.
# Non-finite input is rejected with ValidationError.
# -----------------------------------------------------------------------------
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_FLOOR, ROUND_HALF_EVEN, Context, Decimal
from typing import Tuple
import math

from jyotish.core.constants import (
    NAKSHATRA_DEITIES,
    NAKSHATRA_NAMES,
    NAKSHATRA_RULERS,
    NAKSHATRA_SPAN_ARCSEC,
    PADA_SPAN_ARCSEC,
    SIGN_SPAN_ARCSEC,
    wrap_deg,
)
from jyotish.core.errors import ValidationError, field_error

__all__ = [
    "Placement",
    "NakshatraInfo",
    "to_arcsec",
    "sign_of",
    "dms_in_sign",
    "nakshatra_of",
    "nakshatra_start",
    "nakshatra_info",
    "navamsa_sign_from_nakshatra",
    "classify",
    "sign_and_offset_arcsec",
]

_CTX = Context(prec=34, rounding=ROUND_HALF_EVEN)
_SNAP = Decimal("0.000001")
_FULL_CIRCLE_ARCSEC = Decimal(360 * 3600)


@dataclass(frozen=True)
class Placement:
    longitude: float
    sign: int
    degree: int
    minute: int
    second: float
    nakshatra: int
    pada: int


@dataclass(frozen=True)
class NakshatraInfo:
    index: int
    name: str
    ruler: str
    deity: str
    start: float
    end: float


def to_arcsec(lon: float) -> Decimal:
    """Normalized longitude as Decimal arcseconds in [0, 1296000), snapped to 1e-6"."""
    if lon is None or not math.isfinite(lon):
        raise ValidationError(field_error("longitude", f"longitude must be a finite number, got {lon!r}",
                                          "value_error.longitude"))
    arc = _CTX.multiply(Decimal(wrap_deg(lon)), Decimal(3600)).quantize(_SNAP, context=_CTX)
    return arc if arc < _FULL_CIRCLE_ARCSEC else Decimal(0)


def _floor_div(a: Decimal, b: int) -> int:
    return int(_CTX.divide(a, Decimal(b)).to_integral_value(rounding=ROUND_FLOOR))


# Used by the divisional engine to place a longitude inside a sign exactly.
def sign_and_offset_arcsec(lon: float) -> Tuple[int, Decimal]:
    arc = to_arcsec(lon)
    sign = _floor_div(arc, SIGN_SPAN_ARCSEC) % 12
    return sign, arc - Decimal(sign * SIGN_SPAN_ARCSEC)


def _dms(offset: Decimal) -> Tuple[int, int, float]:
    deg = _floor_div(offset, 3600)
    rest = offset - Decimal(deg * 3600)
    minute = _floor_div(rest, 60)
    return deg, minute, float(rest - Decimal(minute * 60))


def _nakshatra(arc: Decimal) -> Tuple[int, int]:
    idx = min(_floor_div(arc, NAKSHATRA_SPAN_ARCSEC), 26)
    within = arc - Decimal(idx * NAKSHATRA_SPAN_ARCSEC)
    return idx, min(_floor_div(within, PADA_SPAN_ARCSEC) + 1, 4)


def sign_of(lon: float) -> int:
    """0-based sign index: floor(L/30) mod 12, on the snapped arcseconds."""
    return sign_and_offset_arcsec(lon)[0]


def dms_in_sign(lon: float) -> Tuple[int, int, float]:
    """Degree, minute, second within the sign by successive ×60 on the remainder."""
    return _dms(sign_and_offset_arcsec(lon)[1])


def nakshatra_of(lon: float) -> Tuple[int, int]:
    """(nakshatra index 0..26, pada 1..4). Non-finite input is a ValidationError."""
    return _nakshatra(to_arcsec(lon))


def nakshatra_start(n: int) -> float:
    """Starting longitude of nakshatra ``n`` (0..26), in degrees."""
    if not 0 <= n <= 26:
        raise ValueError(f"nakshatra index out of range: {n}")
    return n * NAKSHATRA_SPAN_ARCSEC / 3600.0


def nakshatra_info(n: int) -> NakshatraInfo:
    start = nakshatra_start(n)
    return NakshatraInfo(
        index=n,
        name=NAKSHATRA_NAMES[n],
        ruler=NAKSHATRA_RULERS[n],
        deity=NAKSHATRA_DEITIES[n],
        start=start,
        end=(n + 1) * NAKSHATRA_SPAN_ARCSEC / 3600.0,
    )


def navamsa_sign_from_nakshatra(n: int, pada: int) -> int:
    """
    Navamsa sign from nakshatra + pada: the 108 padas run through the zodiac
    nine times starting at Aries.
    """
    return (n * 4 + (pada - 1)) % 12


def classify(lon: float) -> Placement:
    arc = to_arcsec(lon)
    sign = _floor_div(arc, SIGN_SPAN_ARCSEC) % 12
    deg, minute, second = _dms(arc - Decimal(sign * SIGN_SPAN_ARCSEC))
    idx, pada = _nakshatra(arc)
    return Placement(
        longitude=wrap_deg(lon),
        sign=sign,
        degree=deg,
        minute=minute,
        second=second,
        nakshatra=idx,
        pada=pada,
    )
