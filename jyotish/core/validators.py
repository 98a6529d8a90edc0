# jyotish/core/validators.py
from __future__ import annotations

import difflib
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from jyotish.core.constants import AYANAMSA_ALIASES, NODE_MODELS
from jyotish.core.errors import ValidationError, field_error

__all__ = [
    "slug",
    "suggest",
    "parse_latlon",
    "parse_timezone",
    "parse_ayanamsa",
    "parse_node_model",
    "birth_errors",
    "MIN_YEAR",
    "MAX_YEAR",
]

MIN_YEAR = 1
MAX_YEAR = 9999

# ───────────────────────── helpers ─────────────────────────

def slug(s: str) -> str:
    """Lowercase + strip non-alphanumerics → compact, stable alias token."""
    return "".join(ch for ch in str(s).lower() if ch.isalnum())


def suggest(name: str, candidates: Iterable[str], n: int = 5) -> List[str]:
    """Closest labels for friendlier error messages."""
    return difflib.get_close_matches(str(name).lower(), sorted(candidates), n=n, cutoff=0.5)


def _as_float(v: Any) -> Optional[float]:
    if v is None or isinstance(v, bool):
        return None
    try:
        x = float(v)
    except (TypeError, ValueError):
        return None
    if x != x or x in (float("inf"), float("-inf")):
        return None
    return x

# ───────────────────────── atomic checks ─────────────────────────

def _latlon_errors(lat: Any, lon: Any) -> List[Dict[str, Any]]:
    lat_f = _as_float(lat)
    lon_f = _as_float(lon)
    if lat_f is None or lon_f is None:
        return [field_error(["latitude", "longitude"], "latitude/longitude must be finite numbers", "type_error.float")]
    out: List[Dict[str, Any]] = []
    if not (-90.0 <= lat_f <= 90.0):
        out.append(field_error("latitude", "latitude must be between -90 and 90"))
    if not (-180.0 <= lon_f <= 180.0):
        out.append(field_error("longitude", "longitude must be between -180 and 180"))
    return out


def _timezone_errors(tz: Any) -> List[Dict[str, Any]]:
    if not isinstance(tz, str) or not tz.strip():
        return [field_error("timezone", "timezone must not be blank", "value_error.timezone")]
    try:
        ZoneInfo(tz.strip())
    except (ZoneInfoNotFoundError, ValueError, OSError):
        # zone ids naming a tzdata directory ("America") raise IsADirectoryError
        return [field_error("timezone", f"must be a valid IANA zone like 'Asia/Kolkata', got '{tz}'",
                            "value_error.timezone")]
    return []


def _local_errors(local: Any) -> List[Dict[str, Any]]:
    if not isinstance(local, datetime):
        return [field_error("local", "local must be a datetime", "type_error.datetime")]
    if local.tzinfo is not None:
        return [field_error("local", "local must be naive civil time; pass the zone separately",
                            "value_error.datetime")]
    if not (MIN_YEAR <= local.year <= MAX_YEAR):
        return [field_error("local", f"year must be between {MIN_YEAR} and {MAX_YEAR}")]
    return []


def birth_errors(local: Any, timezone: Any, latitude: Any, longitude: Any) -> List[Dict[str, Any]]:
    """All problems with a birth moment, in field order; empty when valid."""
    return _local_errors(local) + _timezone_errors(timezone) + _latlon_errors(latitude, longitude)

# ───────────────────────── parsers ─────────────────────────

def parse_latlon(lat: Any, lon: Any) -> Tuple[float, float]:
    errs = _latlon_errors(lat, lon)
    if errs:
        raise ValidationError(errs)
    return float(lat), float(lon)


def parse_timezone(tz: Any) -> ZoneInfo:
    errs = _timezone_errors(tz)
    if errs:
        raise ValidationError(errs)
    return ZoneInfo(tz.strip())


_AYANAMSA_FROM_SLUG: Mapping[str, str] = {slug(k): v for k, v in AYANAMSA_ALIASES.items()}


def parse_ayanamsa(val: Any) -> str:
    s = slug(val or "lahiri")
    canon = _AYANAMSA_FROM_SLUG.get(s)
    if canon is None:
        hits = suggest(str(val), AYANAMSA_ALIASES)
        hint = f" Try one of: {', '.join(hits)}." if hits else ""
        raise ValidationError(field_error("ayanamsa", f"unsupported ayanamsa '{val}'.{hint}",
                                          "value_error.ayanamsa"))
    return canon


def parse_node_model(val: Any) -> str:
    s = str(val or "mean").strip().lower()
    if s not in NODE_MODELS:
        raise ValidationError(field_error("node_model", "node_model must be 'mean' or 'true'",
                                          "value_error.node_model"))
    return s
