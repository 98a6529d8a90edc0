# jyotish/core/timescales.py
# -----------------------------------------------------------------------------
# Civil time ↔ UTC ↔ Julian Day (proleptic Gregorian, ERFA aligned)
#
# Public API:
#   TimeConverter.to_utc(local, tz)               -> UtcInstant
#   TimeConverter.julian_day(local, tz)           -> float
#   TimeConverter.julian_day_utc(utc_datetime)    -> float
#   TimeConverter.from_julian_day(jd, tz)         -> aware datetime in tz
#
# Guarantees:
#   • Calendar → JD via erfa.cal2jd + day fraction; inverse via erfa.jd2cal.
#   • Two-part JD arithmetic (math.fsum); no POSIX timestamp math feeds a JD.
#   • Time zone offset via zoneinfo; DST ambiguity / gaps flagged, fold=0 used.
#   • Round trip local → JD → local is exact to well under one millisecond
#     for years 1..9999.
# -----------------------------------------------------------------------------

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Tuple
from zoneinfo import ZoneInfo
import logging
import math

import erfa  # pyERFA

from jyotish.core.errors import ValidationError, field_error
from jyotish.core.validators import MAX_YEAR, MIN_YEAR, parse_timezone
from jyotish.utils import metrics

__all__ = ["UtcInstant", "TimeConverter"]

log = logging.getLogger(__name__)

_US_PER_DAY = 86_400_000_000

# ───────────────────────────── Dataclass ─────────────────────────────

@dataclass(frozen=True)
class UtcInstant:
    utc: datetime              # aware, tzinfo=UTC
    tz_offset_seconds: int
    timezone: str
    warnings: Tuple[str, ...]

# ───────────────────────────── helpers ─────────────────────────────

def _split_jd(jd: float) -> Tuple[float, float]:
    d1 = math.floor(jd)
    d2 = jd - d1
    return float(d1), float(d2)


def _fold_offsets(z: ZoneInfo, naive_local: datetime) -> Tuple[int, List[str]]:
    """
    Offset seconds for a naive local datetime.
    Prefer fold=0; warn on DST ambiguity (repeated hour) or gap (skipped hour).
    """
    warnings: List[str] = []
    off0 = naive_local.replace(tzinfo=z, fold=0).utcoffset()
    off1 = naive_local.replace(tzinfo=z, fold=1).utcoffset()
    if off0 is None:
        raise ValidationError(field_error("timezone", "timezone returned no UTC offset"))
    if off1 is not None and off1 != off0:
        # Repeated wall time has fold=0 offset > fold=1 offset; a gap the reverse.
        warnings.append("dst_ambiguous" if off0 > off1 else "dst_gap")
    return int(off0.total_seconds()), warnings


def _day_fraction(t: datetime) -> float:
    us = ((t.hour * 60 + t.minute) * 60 + t.second) * 1_000_000 + t.microsecond
    return us / _US_PER_DAY

# ───────────────────────────── converter ─────────────────────────────

class TimeConverter:
    """Stateless civil-time conversions; safe to share between threads."""

    def to_utc(self, local: datetime, tz_name: str) -> UtcInstant:
        z = parse_timezone(tz_name)
        if local.tzinfo is not None:
            raise ValidationError(field_error("local", "local must be naive civil time",
                                              "value_error.datetime"))
        off, warnings = _fold_offsets(z, local)
        for w in warnings:
            log.warning("%s at %s in %s; using the earlier offset", w, local.isoformat(), tz_name)
            metrics.warn(w)
        try:
            utc = local.replace(tzinfo=z, fold=0).astimezone(timezone.utc)
        except OverflowError as e:
            raise ValidationError(field_error(
                "local", f"UTC instant falls outside years {MIN_YEAR}..{MAX_YEAR}")) from e
        return UtcInstant(utc=utc, tz_offset_seconds=off, timezone=str(z.key), warnings=tuple(warnings))

    def julian_day_utc(self, utc: datetime) -> float:
        """JD (UT) of a UTC datetime; naive values are taken as UTC."""
        if utc.tzinfo is not None:
            utc = utc.astimezone(timezone.utc)
        djm0, djm = erfa.cal2jd(utc.year, utc.month, utc.day)
        return math.fsum((float(djm0), float(djm), _day_fraction(utc)))

    def julian_day(self, local: datetime, tz_name: str) -> float:
        return self.julian_day_utc(self.to_utc(local, tz_name).utc)

    def from_julian_day(self, jd: float, tz_name: str = "UTC") -> datetime:
        """Aware datetime in ``tz_name`` for a JD, rounded to the microsecond."""
        z = parse_timezone(tz_name)
        if not math.isfinite(jd):
            raise ValidationError(field_error("jd", "julian day must be finite"))
        d1, d2 = _split_jd(jd)
        try:
            iy, im, iday, fd = erfa.jd2cal(d1, d2)
        except erfa.ErfaError as e:
            raise ValidationError(field_error("jd", f"julian day out of range: {e}")) from e
        us = int(round(float(fd) * _US_PER_DAY))
        try:
            utc = datetime(int(iy), int(im), int(iday), tzinfo=timezone.utc) + timedelta(microseconds=us)
            return utc.astimezone(z)
        except (ValueError, OverflowError) as e:
            raise ValidationError(field_error(
                "jd", f"julian day {jd} falls outside years {MIN_YEAR}..{MAX_YEAR}")) from e

    def round_trip(self, local: datetime, tz_name: str) -> datetime:
        """local → JD → local (naive), used to check conversion fidelity."""
        return self.from_julian_day(self.julian_day(local, tz_name), tz_name).replace(tzinfo=None)
