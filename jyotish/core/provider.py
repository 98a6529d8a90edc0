# jyotish/core/provider.py
# -----------------------------------------------------------------------------
# Numerical provider seam (Swiss Ephemeris via pyswisseph)
#
# The engine never computes orbits itself. It talks to a provider through
# the small ``NumericalProvider`` protocol below; ``SwissEphemerisProvider``
# is the production implementation, and tests substitute a deterministic
# fake with the same surface.
#
# Contract
# • Positions and cusps are returned in the sidereal frame selected by
#   ``configure(ayanamsa)``; results are written into caller-owned buffers
#   (numpy arrays) instead of being returned, so the caller controls reuse.
# • Failures raise ``ProviderError`` whose text is the provider's message.
# • Body vocabulary: the planet names of ``TRACKED_BODIES`` (minus the
#   nodes) plus ``mean_node`` / ``true_node``.
# -----------------------------------------------------------------------------
from __future__ import annotations

import logging
import os
import re
from typing import Dict, List, Optional, Protocol

import numpy as np
import swisseph as swe

from jyotish.core.errors import ProviderError
from jyotish.utils import metrics

__all__ = [
    "NumericalProvider",
    "SwissEphemerisProvider",
    "find_ephemeris_files",
    "HIGH_PRECISION_PATTERNS",
]

log = logging.getLogger(__name__)

# Swiss data files (sepl_18.se1, semo_18.se1, …) or JPL kernels (de431.eph).
HIGH_PRECISION_PATTERNS = (
    re.compile(r"^se.*\.se1$", re.IGNORECASE),
    re.compile(r"^de\d{3}[ls]?\.eph$", re.IGNORECASE),
)
_JPL_PATTERN = HIGH_PRECISION_PATTERNS[1]


class NumericalProvider(Protocol):
    name: str
    high_precision: bool

    def configure(self, ayanamsa: str) -> None: ...

    def raw_position(self, body: str, jd: float, out: np.ndarray) -> None: ...

    def raw_houses(self, jd: float, lat: float, lon: float, code: str,
                   cusps_out: np.ndarray, angles_out: np.ndarray) -> None: ...

    def raw_ayanamsa(self, jd: float) -> float: ...

    def close(self) -> None: ...


def find_ephemeris_files(path: Optional[str]) -> List[str]:
    """High-precision data files present in ``path`` (sorted; empty if none)."""
    if not path or not os.path.isdir(path):
        return []
    return sorted(
        f for f in os.listdir(path)
        if any(p.match(f) for p in HIGH_PRECISION_PATTERNS)
    )

# ─────────────────────────────────────────────────────────────────────────────
# Swiss Ephemeris
# ─────────────────────────────────────────────────────────────────────────────
_BODY_IDS: Dict[str, int] = {
    "Sun": swe.SUN,
    "Moon": swe.MOON,
    "Mercury": swe.MERCURY,
    "Venus": swe.VENUS,
    "Mars": swe.MARS,
    "Jupiter": swe.JUPITER,
    "Saturn": swe.SATURN,
    "Uranus": swe.URANUS,
    "Neptune": swe.NEPTUNE,
    "Pluto": swe.PLUTO,
    "mean_node": swe.MEAN_NODE,
    "true_node": swe.TRUE_NODE,
}

_SIDEREAL_MODES: Dict[str, int] = {
    "lahiri": swe.SIDM_LAHIRI,
    "raman": swe.SIDM_RAMAN,
    "krishnamurti": swe.SIDM_KRISHNAMURTI,
    "true_chitrapaksha": swe.SIDM_TRUE_CITRA,
    "yukteshwar": swe.SIDM_YUKTESHWAR,
    "fagan_bradley": swe.SIDM_FAGAN_BRADLEY,
}


class SwissEphemerisProvider:
    """
    pyswisseph-backed provider.

    With ``ephe_path`` pointing at Swiss ``.se1`` files (or a JPL ``de###.eph``
    kernel) the high-precision ephemeris is used; otherwise the library's
    built-in Moshier theory (about one arcsecond) is selected explicitly.
    """

    def __init__(self, ephe_path: Optional[str] = None):
        self.ephe_path = ephe_path
        self.files = find_ephemeris_files(ephe_path)
        self.high_precision = bool(self.files)
        try:
            swe.set_ephe_path(ephe_path if ephe_path else None)
            jpl = [f for f in self.files if _JPL_PATTERN.match(f)]
            if self.high_precision and len(jpl) == len(self.files):
                swe.set_jpl_file(jpl[-1])
                self._eph_flag = swe.FLG_JPLEPH
                self.name = f"jpl:{jpl[-1]}"
            elif self.high_precision:
                self._eph_flag = swe.FLG_SWIEPH
                self.name = "swiss"
            else:
                self._eph_flag = swe.FLG_MOSEPH
                self.name = "moshier"
        except swe.Error as e:
            raise ProviderError(str(e)) from e
        self._flags = self._eph_flag | swe.FLG_SPEED | swe.FLG_SIDEREAL
        self._ayanamsa: Optional[str] = None
        self._fallback_logged = False

    def configure(self, ayanamsa: str) -> None:
        mode = _SIDEREAL_MODES.get(ayanamsa)
        if mode is None:
            raise ProviderError(f"unknown ayanamsa '{ayanamsa}'")
        swe.set_sid_mode(mode, 0.0, 0.0)
        self._ayanamsa = ayanamsa

    def raw_position(self, body: str, jd: float, out: np.ndarray) -> None:
        ipl = _BODY_IDS.get(body)
        if ipl is None:
            raise ProviderError(f"unsupported body '{body}'")
        try:
            # (xx, retflag); some builds append a warning string
            res = swe.calc_ut(jd, ipl, self._flags)
        except swe.Error as e:
            raise ProviderError(str(e)) from e
        xx, retflag = res[0], int(res[1])
        if not retflag & self._eph_flag:
            self._note_fallback(body, jd, retflag)
        out[:6] = xx[:6]

    def _note_fallback(self, body: str, jd: float, retflag: int) -> None:
        # data files do not cover jd; the library answered from Moshier instead
        metrics.warn("ephemeris_fallback")
        if not self._fallback_logged:
            self._fallback_logged = True
            log.warning("%s ephemeris unavailable for %s at JD %.6f (retflag=%d); "
                        "library fell back to its built-in theory", self.name, body, jd, retflag)

    def raw_houses(self, jd: float, lat: float, lon: float, code: str,
                   cusps_out: np.ndarray, angles_out: np.ndarray) -> None:
        try:
            cusps, ascmc = swe.houses_ex(jd, lat, lon, code.encode("ascii"), swe.FLG_SIDEREAL)
        except swe.Error as e:
            raise ProviderError(str(e)) from e
        # Older bindings return 13 entries with an unused slot 0.
        if len(cusps) == 13:
            cusps = cusps[1:]
        cusps_out[:12] = cusps[:12]
        n = min(len(ascmc), len(angles_out))
        angles_out[:n] = ascmc[:n]

    def raw_ayanamsa(self, jd: float) -> float:
        try:
            return float(swe.get_ayanamsa_ut(jd))
        except swe.Error as e:
            raise ProviderError(str(e)) from e

    def close(self) -> None:
        swe.close()
        log.info("Swiss Ephemeris released (%s)", self.name)
