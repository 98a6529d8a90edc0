# jyotish/core/ephemeris_adapter.py
# -----------------------------------------------------------------------------
# Ephemeris accessor (sidereal positions, ayanamsa, raw house cusps)
#
# Highlights
# • Deterministic, testable Config + Accessor class; provider is injected
# • Reader/writer lock: chart work is exclusive, ayanamsa lookups shared
# • Per-thread scratch buffers (numpy), zeroed before every provider call
# • Declarative body-rule table; Ketu is derived from Rahu by the same code
#   path every body takes
# • Clean error taxonomy; one-way close() after which every call fails
# -----------------------------------------------------------------------------
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Tuple
import logging
import math
import os
import threading

import numpy as np

from jyotish.core.constants import HOUSE_SYSTEM_CODES, TRACKED_BODIES, wrap_deg
from jyotish.core.errors import (
    CalculationError,
    ClosedStateError,
    InitializationError,
    ProviderError,
    ValidationError,
    field_error,
)
from jyotish.core.models import BodyState
from jyotish.core.provider import NumericalProvider, SwissEphemerisProvider
from jyotish.core.validators import parse_ayanamsa, parse_node_model
from jyotish.utils import metrics
from jyotish.utils.locks import ReadWriteLock

__all__ = [
    "AccessorConfig",
    "BodyRule",
    "BODY_RULES",
    "EphemerisAccessor",
]

log = logging.getLogger(__name__)

# ─────────────────────────────────────────────────────────────────────────────
# Environment (converted into Config defaults)
# ─────────────────────────────────────────────────────────────────────────────
_AYANAMSA_ENV = os.getenv("JYOTISH_AYANAMSA", "lahiri").strip().lower()
_EPHE_PATH_ENV = os.getenv("JYOTISH_EPHE_PATH") or None
_NODE_MODEL_ENV = os.getenv("JYOTISH_NODE_MODEL", "mean").strip().lower()  # {"mean","true"}

# Scratch sizes: six state values, 13 cusp slots, ten angle slots.
_POS_SLOTS = 6
_CUSP_SLOTS = 13
_ANGLE_SLOTS = 10
_ERR_CHARS = 256

# ─────────────────────────────────────────────────────────────────────────────
# Configuration
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class AccessorConfig:
    ayanamsa: str = _AYANAMSA_ENV
    ephe_path: Optional[str] = _EPHE_PATH_ENV
    node_model: str = _NODE_MODEL_ENV      # "mean" | "true"

    def normalized(self) -> "AccessorConfig":
        return AccessorConfig(
            ayanamsa=parse_ayanamsa(self.ayanamsa),
            ephe_path=self.ephe_path or None,
            node_model=parse_node_model(self.node_model),
        )

# ─────────────────────────────────────────────────────────────────────────────
# Body rules
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class BodyRule:
    """How a tracked body is read: provider source, longitude offset, speed factor."""
    source: str
    longitude_offset: float = 0.0
    speed_factor: float = 1.0


_NODE_SOURCE = {"mean": "mean_node", "true": "true_node"}


def _rules_for(node_model: str) -> Dict[str, BodyRule]:
    node = _NODE_SOURCE[node_model]
    rules = {b: BodyRule(source=b) for b in TRACKED_BODIES}
    rules["Rahu"] = BodyRule(source=node)
    rules["Ketu"] = BodyRule(source=node, longitude_offset=180.0, speed_factor=-1.0)
    return rules


# Default (mean node) table; accessors build their own for the configured node model.
BODY_RULES: Dict[str, BodyRule] = _rules_for("mean")

# ─────────────────────────────────────────────────────────────────────────────
# Scratch arena
# ─────────────────────────────────────────────────────────────────────────────
class _Scratch:
    __slots__ = ("position", "cusps", "angles", "error")

    def __init__(self) -> None:
        self.position = np.zeros(_POS_SLOTS)
        self.cusps = np.zeros(_CUSP_SLOTS)
        self.angles = np.zeros(_ANGLE_SLOTS)
        self.error = ""

    def clear(self) -> None:
        self.position.fill(0.0)
        self.cusps.fill(0.0)
        self.angles.fill(0.0)
        self.error = ""

# ─────────────────────────────────────────────────────────────────────────────
# Accessor
# ─────────────────────────────────────────────────────────────────────────────
def _check_data_dir(path: Optional[str]) -> None:
    if not path:
        return
    if os.path.exists(path) and not os.path.isdir(path):
        raise InitializationError(f"ephemeris path is not a directory: {path}", path=path)
    try:
        os.makedirs(path, exist_ok=True)
    except OSError as e:
        raise InitializationError(f"cannot create ephemeris directory {path}: {e}", path=path) from e
    if not os.access(path, os.R_OK | os.W_OK | os.X_OK):
        raise InitializationError(f"ephemeris directory is not writable: {path}", path=path)


class EphemerisAccessor:
    """
    Thread-safe gateway to a numerical provider.

    ``exclusive()`` holds the writer side for a whole chart; ``position`` and
    ``house_cusps`` take it themselves (re-entrantly) so they are safe alone
    too. ``ayanamsa`` takes the shared side.
    """

    def __init__(self, config: Optional[AccessorConfig] = None,
                 provider: Optional[NumericalProvider] = None):
        self.config = (config or AccessorConfig()).normalized()
        _check_data_dir(self.config.ephe_path)
        try:
            self._provider = provider if provider is not None else SwissEphemerisProvider(self.config.ephe_path)
            self._provider.configure(self.config.ayanamsa)
        except ProviderError as e:
            raise InitializationError(f"provider setup failed: {e}") from e
        self._rules = _rules_for(self.config.node_model)
        self._lock = ReadWriteLock()
        self._local = threading.local()
        self._closed = False
        self.degraded = not self._provider.high_precision
        metrics.GAUGE_DEGRADED.set(1 if self.degraded else 0)
        if self.degraded:
            log.warning("No high-precision ephemeris files%s; using built-in ephemeris (%s)",
                        f" in {self.config.ephe_path}" if self.config.ephe_path else "",
                        self._provider.name)
        log.info("Ephemeris accessor open: provider=%s ayanamsa=%s node=%s",
                 self._provider.name, self.config.ayanamsa, self.config.node_model)

    # ── lifecycle ──
    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def provider_name(self) -> str:
        return self._provider.name

    def close(self) -> None:
        """Release the provider and scratch buffers. Idempotent."""
        with self._lock.write():
            if self._closed:
                return
            self._closed = True
            self._local = threading.local()
            self._provider.close()
        log.info("Ephemeris accessor closed")

    def __enter__(self) -> "EphemerisAccessor":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise ClosedStateError()

    def _scratch(self) -> _Scratch:
        s = getattr(self._local, "scratch", None)
        if s is None:
            s = self._local.scratch = _Scratch()
        s.clear()
        return s

    def _fail(self, s: _Scratch, body: Optional[str], jd: float, err: ProviderError) -> CalculationError:
        s.error = str(err)[:_ERR_CHARS]
        metrics.MET_CALC_ERRORS.labels(body=body or "houses").inc()
        log.error("Provider failure for %s at JD %.6f: %s", body or "houses", jd, s.error)
        return CalculationError(body, jd, s.error)

    @contextmanager
    def exclusive(self) -> Iterator["EphemerisAccessor"]:
        """Hold the writer side for a multi-call computation (one chart)."""
        self._ensure_open()
        with self._lock.write():
            self._ensure_open()
            # sidereal mode is process-global inside the provider library
            self._provider.configure(self.config.ayanamsa)
            yield self

    # ── queries ──
    def rule_for(self, body: str) -> BodyRule:
        rule = self._rules.get(body)
        if rule is None:
            raise ValidationError(field_error("body", f"untracked body '{body}'", "value_error.body"))
        return rule

    def position(self, body: str, jd: float) -> BodyState:
        """Sidereal state of ``body``; the returned record owns its values."""
        rule = self.rule_for(body)
        with self.exclusive():
            s = self._scratch()
            try:
                self._provider.raw_position(rule.source, jd, s.position)
            except ProviderError as e:
                raise self._fail(s, body, jd, e) from e
            lon, lat, dist, speed = (float(v) for v in s.position[:4])
            if not all(math.isfinite(v) for v in (lon, lat, dist, speed)):
                raise self._fail(s, body, jd, ProviderError(
                    f"non-finite state from provider for {rule.source}"))
        return BodyState(
            longitude=wrap_deg(lon + rule.longitude_offset),
            latitude=lat,
            distance=dist,
            speed=speed * rule.speed_factor,
        )

    def house_cusps(self, jd: float, lat: float, lon: float, code: str
                    ) -> Tuple[Tuple[float, ...], float, float]:
        """(twelve sidereal cusps, ascendant, midheaven) from the provider."""
        _, cusps, asc, mc = self._house_cusps(jd, lat, lon, code, None)
        return cusps, asc, mc

    def house_cusps_with_fallback(self, jd: float, lat: float, lon: float, code: str,
                                  fallback: Optional[str]
                                  ) -> Tuple[str, Tuple[float, ...], float, float]:
        """
        Like ``house_cusps``, but a provider failure for ``code`` is answered
        with ``fallback`` cusps (a WARNING, not an error). Returns the code
        actually used first.
        """
        return self._house_cusps(jd, lat, lon, code, fallback)

    def _house_cusps(self, jd: float, lat: float, lon: float, code: str, fallback: Optional[str]
                     ) -> Tuple[str, Tuple[float, ...], float, float]:
        with self.exclusive():
            s = self._scratch()
            try:
                self._provider.raw_houses(jd, lat, lon, code, s.cusps, s.angles)
            except ProviderError as e:
                if fallback is None:
                    raise self._fail(s, None, jd, e) from e
                log.warning("%s houses undefined at latitude %.4f (%s); using %s",
                            HOUSE_SYSTEM_CODES[code], lat, e, HOUSE_SYSTEM_CODES[fallback])
                metrics.warn("house_system_fallback")
                code = fallback
                s = self._scratch()
                try:
                    self._provider.raw_houses(jd, lat, lon, code, s.cusps, s.angles)
                except ProviderError as e2:
                    raise self._fail(s, None, jd, e2) from e2
            if not np.all(np.isfinite(s.cusps[:12])) or not np.all(np.isfinite(s.angles[:2])):
                raise self._fail(s, None, jd, ProviderError(f"non-finite house cusps from provider ({code})"))
            cusps = tuple(wrap_deg(float(c)) for c in s.cusps[:12])
            asc = wrap_deg(float(s.angles[0]))
            mc = wrap_deg(float(s.angles[1]))
        return code, cusps, asc, mc

    def ayanamsa(self, jd: float) -> float:
        self._ensure_open()
        with self._lock.read():
            self._ensure_open()
            try:
                self._provider.configure(self.config.ayanamsa)
                value = float(self._provider.raw_ayanamsa(jd))
            except ProviderError as e:
                raise self._fail(self._scratch(), "ayanamsa", jd, e) from e
            if not math.isfinite(value):
                raise self._fail(self._scratch(), "ayanamsa", jd,
                                 ProviderError("non-finite ayanamsa from provider"))
            return value
