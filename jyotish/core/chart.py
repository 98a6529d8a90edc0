# jyotish/core/chart.py
# -----------------------------------------------------------------------------
# Natal chart assembly
#
#   BirthMoment ─► TimeConverter (JD) ─► accessor.exclusive():
#        ayanamsa, cusps (HouseSystemCalculator), body states
#   ─► CoordinateClassifier (sign/dms/nakshatra/pada) ─► house_of ─► VedicChart
#
# Validation happens before the provider is touched; a provider failure for
# any body aborts the whole chart (no partial charts, no default values).
# -----------------------------------------------------------------------------
from __future__ import annotations

import logging
import os
import time
from datetime import datetime
from typing import Any, Iterable, Optional, Tuple

from jyotish.core.classify import classify
from jyotish.core.constants import TRACKED_BODIES
from jyotish.core.ephemeris_adapter import AccessorConfig, EphemerisAccessor
from jyotish.core.errors import ValidationError, field_error
from jyotish.core.houses import HouseSystemCalculator, house_of, normalize_house_system
from jyotish.core.models import BirthMoment, BodyPosition, BodyState, ChartCusps, VedicChart
from jyotish.core.timescales import TimeConverter
from jyotish.core.validators import birth_errors
from jyotish.utils import metrics

__all__ = ["ChartAssembler", "build_position"]

log = logging.getLogger(__name__)

_HOUSE_SYSTEM_ENV = os.getenv("JYOTISH_HOUSE_SYSTEM", "P")


def build_position(body: str, state: BodyState, cusps: ChartCusps) -> BodyPosition:
    p = classify(state.longitude)
    return BodyPosition(
        body=body,
        longitude=p.longitude,
        latitude=state.latitude,
        distance=state.distance,
        speed=state.speed,
        sign=p.sign,
        degree=p.degree,
        minute=p.minute,
        second=p.second,
        nakshatra=p.nakshatra,
        pada=p.pada,
        house=house_of(p.longitude, cusps),
    )


class ChartAssembler:
    """
    Builds immutable natal charts on top of a shared accessor.

    The accessor (and its provider) may be injected; ``ChartAssembler.open``
    creates one from an ``AccessorConfig`` and the assembler then owns it.
    """

    def __init__(self, accessor: EphemerisAccessor, *, bodies: Iterable[str] = TRACKED_BODIES,
                 time_converter: Optional[TimeConverter] = None):
        self.accessor = accessor
        self.houses = HouseSystemCalculator(accessor)
        self.time = time_converter or TimeConverter()
        self.bodies: Tuple[str, ...] = tuple(bodies)
        for b in self.bodies:
            accessor.rule_for(b)
        self._owns_accessor = False

    @classmethod
    def open(cls, config: Optional[AccessorConfig] = None, **kwargs: Any) -> "ChartAssembler":
        inst = cls(EphemerisAccessor(config), **kwargs)
        inst._owns_accessor = True
        return inst

    def close(self) -> None:
        if self._owns_accessor:
            self.accessor.close()

    def __enter__(self) -> "ChartAssembler":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # ── natal chart ──
    def assemble(self, moment: BirthMoment, house_system: Optional[str] = None) -> VedicChart:
        code = normalize_house_system(house_system or _HOUSE_SYSTEM_ENV)
        t0 = time.perf_counter()
        utc = self.time.to_utc(moment.local, moment.timezone)
        jd = self.time.julian_day_utc(utc.utc)
        with self.accessor.exclusive() as acc:
            ayanamsa = acc.ayanamsa(jd)
            cusps = self.houses.cusps(jd, moment.latitude, moment.longitude, code)
            states = [(b, acc.position(b, jd)) for b in self.bodies]
        positions = tuple(build_position(b, st, cusps) for b, st in states)
        warnings = utc.warnings
        if cusps.system != code:
            warnings += ("house_system_fallback",)
        metrics.CHART_LATENCY.labels(kind="natal").observe(time.perf_counter() - t0)
        log.debug("Chart assembled: jd=%.6f system=%s bodies=%d", jd, cusps.system, len(positions))
        return VedicChart(
            moment=moment,
            julian_day=jd,
            ayanamsa=ayanamsa,
            ayanamsa_name=self.accessor.config.ayanamsa,
            ascendant=cusps.ascendant,
            midheaven=cusps.midheaven,
            positions=positions,
            cusps=cusps,
            house_system=cusps.system,
            warnings=warnings,
        )

    # ── single lookups ──
    def position_at(self, body: str, local: datetime, tz_name: str,
                    latitude: float, longitude: float) -> BodyPosition:
        """One body at a civil instant, housed with Placidus cusps."""
        errs = birth_errors(local, tz_name, latitude, longitude)
        if errs:
            raise ValidationError(errs)
        self.accessor.rule_for(body)
        jd = self.time.julian_day(local, tz_name)
        with self.accessor.exclusive() as acc:
            state = acc.position(body, jd)
            cusps = self.houses.cusps(jd, latitude, longitude, "P")
        return build_position(body, state, cusps)

    def ayanamsa_for(self, local: datetime, tz_name: str) -> float:
        if not isinstance(local, datetime):
            raise ValidationError(field_error("local", "local must be a datetime", "type_error.datetime"))
        return self.accessor.ayanamsa(self.time.julian_day(local, tz_name))
