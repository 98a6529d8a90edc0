# tests/conftest.py
from __future__ import annotations

"""
Shared fixtures for the jyotish tests.

Every accessor, house, chart and varga test runs against ``FakeProvider``,
an in-memory provider with linear motion, so results are exact and no
ephemeris data is needed. Only test_swisseph_scenario.py touches the real
Swiss Ephemeris.
"""

import os
import threading
from typing import Dict, List, Optional, Set

import numpy as np
import pytest
from hypothesis import HealthCheck, settings

from jyotish.core.errors import ProviderError


# ──────────────────────────────────────────────────────────────────────────────
# Hypothesis
# ──────────────────────────────────────────────────────────────────────────────
# Decimal classification makes single examples slow; deadlines are off.
for _name, _examples in (("dev", 60), ("ci", 120)):
    settings.register_profile(
        _name,
        deadline=None,
        max_examples=_examples,
        suppress_health_check=[HealthCheck.too_slow],
    )

HYPOTHESIS_PROFILE = os.getenv("HYPOTHESIS_PROFILE") or ("ci" if os.getenv("CI") else "dev")
settings.load_profile(HYPOTHESIS_PROFILE)


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "slow: thread stress tests and real-ephemeris scenarios")


def pytest_report_header(config: pytest.Config) -> List[str]:
    return [
        f"hypothesis profile: {HYPOTHESIS_PROFILE}",
        f"JYOTISH_EPHE_PATH: {os.getenv('JYOTISH_EPHE_PATH') or '-'}",
    ]


# ──────────────────────────────────────────────────────────────────────────────
# Deterministic provider
# ──────────────────────────────────────────────────────────────────────────────
J2000 = 2451545.0

# (longitude at J2000, degrees/day); linear motion keeps expectations exact.
FAKE_MOTION: Dict[str, tuple] = {
    "Sun": (280.46, 0.9856),
    "Moon": (218.32, 13.1764),
    "Mercury": (252.25, 1.3833),
    "Venus": (181.98, 1.2021),
    "Mars": (355.43, 0.5240),
    "Jupiter": (34.35, 0.0831),
    "Saturn": (50.08, -0.0335),
    "Uranus": (314.06, 0.0117),
    "Neptune": (304.35, 0.0060),
    "Pluto": (238.93, -0.0040),
    "mean_node": (125.04, -0.0529),
    "true_node": (123.95, -0.0610),
}

FAKE_AYANAMSA = {
    "lahiri": 23.85,
    "raman": 22.41,
    "krishnamurti": 23.76,
    "true_chitrapaksha": 23.86,
    "yukteshwar": 22.48,
    "fagan_bradley": 24.74,
}


class FakeProvider:
    """
    Linear-motion stand-in for the Swiss Ephemeris.

    Records every call, flags scratch buffers that arrive dirty, and tracks
    how many provider calls overlap so tests can assert exclusivity.
    """

    name = "fake"

    def __init__(self, high_precision: bool = True, fail_bodies: Optional[Set[str]] = None,
                 fail_houses: bool = False, fail_jds: Optional[Set[float]] = None,
                 reader_barrier: Optional[threading.Barrier] = None,
                 nan_bodies: Optional[Set[str]] = None, nan_houses: bool = False,
                 fail_codes: Optional[Set[str]] = None):
        self.high_precision = high_precision
        self.fail_bodies = set(fail_bodies or ())
        self.fail_houses = fail_houses
        self.fail_jds = set(fail_jds or ())
        self.reader_barrier = reader_barrier
        self.nan_bodies = set(nan_bodies or ())
        self.nan_houses = nan_houses
        self.fail_codes = set(fail_codes or ())
        self.ayanamsa_name: Optional[str] = None
        self.calls: List[tuple] = []
        self.dirty_buffers = 0
        self.buffer_ids: Dict[int, Set[int]] = {}
        self.close_calls = 0
        self.max_active = 0
        self._active = 0
        self._mu = threading.Lock()

    # bookkeeping
    def _enter(self, call: tuple, buf: Optional[np.ndarray] = None) -> None:
        with self._mu:
            self.calls.append(call)
            self._active += 1
            self.max_active = max(self.max_active, self._active)
            if buf is not None:
                if np.any(buf != 0.0):
                    self.dirty_buffers += 1
                self.buffer_ids.setdefault(threading.get_ident(), set()).add(id(buf))

    def _leave(self) -> None:
        with self._mu:
            self._active -= 1

    def _aya(self, jd: float) -> float:
        return FAKE_AYANAMSA[self.ayanamsa_name or "lahiri"] + (jd - J2000) * 3.82e-5

    # provider surface
    def configure(self, ayanamsa: str) -> None:
        self.ayanamsa_name = ayanamsa

    def raw_position(self, body: str, jd: float, out: np.ndarray) -> None:
        self._enter(("position", body, jd), out)
        try:
            if body in self.fail_bodies or jd in self.fail_jds:
                raise ProviderError(f"fake: cannot compute {body} at {jd}")
            lon0, rate = FAKE_MOTION[body]
            out[0] = lon0 + rate * (jd - J2000) - self._aya(jd)  # left un-normalized on purpose
            out[1] = 0.25
            out[2] = 1.5
            out[3] = rate
            out[4] = 0.0
            out[5] = 0.0
            if body in self.nan_bodies:
                out[0] = float("nan")
        finally:
            self._leave()

    def raw_houses(self, jd: float, lat: float, lon: float, code: str,
                   cusps_out: np.ndarray, angles_out: np.ndarray) -> None:
        self._enter(("houses", code, jd), cusps_out)
        try:
            if self.fail_houses:
                raise ProviderError("fake: house calculation failed")
            if code in self.fail_codes:
                raise ProviderError(f"fake: {code} houses undefined at latitude {lat}")
            asc = ((jd % 1.0) * 360.0 + lon + lat * 0.1) % 360.0
            for i in range(12):
                cusps_out[i] = asc + 30.0 * i
            angles_out[0] = asc
            angles_out[1] = asc + 270.0
            if self.nan_houses:
                cusps_out[4] = float("nan")
        finally:
            self._leave()

    def raw_ayanamsa(self, jd: float) -> float:
        with self._mu:
            self.calls.append(("ayanamsa", jd))
        if self.reader_barrier is not None:
            try:
                self.reader_barrier.wait(timeout=5.0)
            except threading.BrokenBarrierError as e:
                raise ProviderError("readers were serialized") from e
        return self._aya(jd)

    def close(self) -> None:
        self.close_calls += 1

    def position_calls(self) -> List[tuple]:
        return [c for c in self.calls if c[0] == "position"]


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def accessor(fake_provider):
    from jyotish.core.ephemeris_adapter import AccessorConfig, EphemerisAccessor
    acc = EphemerisAccessor(AccessorConfig(ayanamsa="lahiri", ephe_path=None, node_model="mean"),
                            provider=fake_provider)
    yield acc
    acc.close()


@pytest.fixture
def assembler(accessor):
    from jyotish.core.chart import ChartAssembler
    return ChartAssembler(accessor)


# ──────────────────────────────────────────────────────────────────────────────
# Global fixtures
# ──────────────────────────────────────────────────────────────────────────────

@pytest.fixture(scope="session", autouse=True)
def utc_host_zone():
    """Charts take explicit IANA zones; pin TZ so the host zone can never leak in."""
    mp = pytest.MonkeyPatch()
    mp.setenv("TZ", "UTC")
    yield
    mp.undo()


@pytest.fixture(scope="session")
def ensure_erfa():
    """Fail early if pyERFA isn't importable or lacks the calendar functions."""
    import erfa
    assert hasattr(erfa, "cal2jd"), "ERFA.cal2jd not available"
    assert hasattr(erfa, "jd2cal"), "ERFA.jd2cal not available"
    return erfa


@pytest.fixture(scope="session")
def ensure_tzdata():
    """Sanity-check that core IANA zones resolve on this machine."""
    from zoneinfo import ZoneInfo
    for name in ("UTC", "Asia/Kolkata", "Asia/Kathmandu", "America/New_York"):
        ZoneInfo(name)

