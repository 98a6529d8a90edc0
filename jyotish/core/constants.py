# jyotish/core/constants.py
# -*- coding: utf-8 -*-
"""
Core constants & small helpers

Purpose
-------
Single source of truth for:
- tracked bodies (stable output order)
- zodiac signs and their modality / element groups
- nakshatra names, rulers and deities
- ayanamsa presets and house-system aliases (stable canonical keys)
- tiny angle helpers (wrap/Δ/separation)

Design
------
- Pure-Python, no external dependencies.
- Safe to import from any core module.
- Provider-specific numeric ids live in ``provider.py``; this module only
  stores the names callers see.
"""

from __future__ import annotations
from typing import Dict, Tuple
import math

__all__ = [
    # bodies
    "TRACKED_BODIES",
    # zodiac
    "SIGN_NAMES", "MOVABLE", "FIXED", "DUAL", "modality_of",
    "FIRE", "EARTH", "AIR", "WATER", "element_of",
    "is_odd_sign",
    # nakshatras
    "NAKSHATRA_NAMES", "NAKSHATRA_RULERS", "NAKSHATRA_DEITIES",
    "NAKSHATRA_SPAN_ARCSEC", "PADA_SPAN_ARCSEC", "SIGN_SPAN_ARCSEC",
    # presets
    "AYANAMSA_NAMES", "AYANAMSA_ALIASES", "NODE_MODELS",
    "HOUSE_SYSTEM_CODES", "HOUSE_SYSTEM_ALIASES",
    # helpers
    "wrap_deg", "delta_deg", "abs_sep_deg",
]

# ── bodies ───────────────────────────────────────────────────────────────────
# Output order of every chart; keep stable.
TRACKED_BODIES: Tuple[str, ...] = (
    "Sun", "Moon", "Mars", "Mercury", "Jupiter", "Venus", "Saturn",
    "Rahu", "Ketu", "Uranus", "Neptune", "Pluto",
)

# ── zodiac ───────────────────────────────────────────────────────────────────
SIGN_NAMES: Tuple[str, ...] = (
    "Aries", "Taurus", "Gemini", "Cancer", "Leo", "Virgo",
    "Libra", "Scorpio", "Sagittarius", "Capricorn", "Aquarius", "Pisces",
)

# Sign index mod 3: 0 movable (chara), 1 fixed (sthira), 2 dual (dvisvabhava)
MOVABLE, FIXED, DUAL = 0, 1, 2

# Sign index mod 4: Aries fire, Taurus earth, Gemini air, Cancer water
FIRE, EARTH, AIR, WATER = "fire", "earth", "air", "water"
_ELEMENTS: Tuple[str, ...] = (FIRE, EARTH, AIR, WATER)


def modality_of(sign: int) -> int:
    return sign % 3


def element_of(sign: int) -> str:
    return _ELEMENTS[sign % 4]


def is_odd_sign(sign: int) -> bool:
    """Aries, Gemini, Leo… (1st, 3rd, 5th sign) are odd; their 0-based index is even."""
    return sign % 2 == 0


# ── nakshatras ───────────────────────────────────────────────────────────────
# Boundaries are whole arcseconds: 13°20' per nakshatra, 3°20' per pada.
SIGN_SPAN_ARCSEC: int = 30 * 3600
NAKSHATRA_SPAN_ARCSEC: int = 48_000
PADA_SPAN_ARCSEC: int = 12_000

NAKSHATRA_NAMES: Tuple[str, ...] = (
    "Ashwini", "Bharani", "Krittika", "Rohini", "Mrigashira", "Ardra",
    "Punarvasu", "Pushya", "Ashlesha", "Magha", "Purva Phalguni", "Uttara Phalguni",
    "Hasta", "Chitra", "Swati", "Vishakha", "Anuradha", "Jyeshtha",
    "Mula", "Purva Ashadha", "Uttara Ashadha", "Shravana", "Dhanishta", "Shatabhisha",
    "Purva Bhadrapada", "Uttara Bhadrapada", "Revati",
)

# Vimshottari lords repeat every nine nakshatras.
NAKSHATRA_RULERS: Tuple[str, ...] = (
    "Ketu", "Venus", "Sun", "Moon", "Mars", "Rahu", "Jupiter", "Saturn", "Mercury",
) * 3

NAKSHATRA_DEITIES: Tuple[str, ...] = (
    "Ashwini Kumaras", "Yama", "Agni", "Brahma", "Soma", "Rudra",
    "Aditi", "Brihaspati", "Nagas", "Pitris", "Bhaga", "Aryaman",
    "Savitar", "Vishvakarma", "Vayu", "Indragni", "Mitra", "Indra",
    "Nirriti", "Apas", "Vishvedevas", "Vishnu", "Vasus", "Varuna",
    "Aja Ekapada", "Ahir Budhnya", "Pushan",
)

# ── ayanamsa presets ─────────────────────────────────────────────────────────
AYANAMSA_NAMES: Tuple[str, ...] = (
    "lahiri", "raman", "krishnamurti", "true_chitrapaksha", "yukteshwar", "fagan_bradley",
)

AYANAMSA_ALIASES: Dict[str, str] = {
    "lahiri": "lahiri",
    "chitrapaksha": "lahiri",
    "raman": "raman",
    "b_v_raman": "raman",
    "krishnamurti": "krishnamurti",
    "kp": "krishnamurti",
    "true_chitrapaksha": "true_chitrapaksha",
    "true_chitra": "true_chitrapaksha",
    "true_citra": "true_chitrapaksha",
    "yukteshwar": "yukteshwar",
    "sri_yukteshwar": "yukteshwar",
    "fagan_bradley": "fagan_bradley",
    "fagan": "fagan_bradley",
}

NODE_MODELS: Tuple[str, ...] = ("mean", "true")

# ── house systems ────────────────────────────────────────────────────────────
# Canonical single-letter codes understood by the numerical provider.
HOUSE_SYSTEM_CODES: Dict[str, str] = {
    "P": "placidus",
    "K": "koch",
    "O": "porphyry",
    "R": "regiomontanus",
    "C": "campanus",
    "E": "equal",
    "W": "whole_sign",
    "V": "vehlow",
    "X": "axial_rotation",
    "M": "morinus",
    "B": "alcabitius",
}

# Stable canonical names → code; callers may also pass the letter itself.
HOUSE_SYSTEM_ALIASES: Dict[str, str] = {
    "placidus": "P",
    "koch": "K",
    "porphyry": "O",
    "porphyrius": "O",
    "regiomontanus": "R",
    "campanus": "C",
    "equal": "E",
    "equal_asc": "E",
    "a": "E",
    "whole_sign": "W",
    "whole": "W",
    "wholesign": "W",
    "vehlow": "V",
    "vehlow_equal": "V",
    "axial_rotation": "X",
    "meridian": "X",
    "morinus": "M",
    "alcabitius": "B",
    "alcabitus": "B",
}

# ── helpers ──────────────────────────────────────────────────────────────────

def wrap_deg(x: float) -> float:
    """Normalize angle to [0, 360)."""
    r = math.fmod(x, 360.0)
    if r < 0.0:
        r += 360.0
    # fmod of a tiny negative lands on 360.0 after the shift
    return 0.0 if r >= 360.0 else r


def delta_deg(a: float, b: float) -> float:
    """Signed smallest difference a-b in (-180, 180]."""
    d = (a - b + 180.0) % 360.0 - 180.0
    return 180.0 if d == -180.0 else d


def abs_sep_deg(a: float, b: float) -> float:
    """Absolute separation on the circle, in [0, 180]."""
    return abs(delta_deg(a, b))
