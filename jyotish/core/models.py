# jyotish/core/models.py
# -----------------------------------------------------------------------------
# Immutable result records handed to callers.
#
# Every record is a frozen dataclass built from plain Python floats, so a
# returned chart never aliases engine scratch memory and can be shared
# across threads freely.
# -----------------------------------------------------------------------------
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from jyotish.core.constants import NAKSHATRA_NAMES, SIGN_NAMES, wrap_deg
from jyotish.core.errors import ValidationError
from jyotish.core.validators import birth_errors
from jyotish.version import VERSION

__all__ = [
    "JulianDay",
    "BirthMoment",
    "BodyState",
    "BodyPosition",
    "ChartCusps",
    "VedicChart",
    "DivisionalChartResult",
    "format_dms",
]

JulianDay = float

_RULE = "═" * 51
_THIN = "─" * 51


def format_dms(degrees: float) -> str:
    """``D° M' S"`` with truncated fields, as printed in chart summaries."""
    d = int(degrees)
    m_f = (degrees - d) * 60.0
    m = int(m_f)
    s = int((m_f - m) * 60.0)
    return f"{d}° {m}' {s}\""


@dataclass(frozen=True)
class BirthMoment:
    """Civil birth instant: naive local time, IANA zone id and geographic position."""
    local: datetime
    timezone: str
    latitude: float
    longitude: float
    name: str = ""
    place: str = ""

    def __post_init__(self) -> None:
        errs = birth_errors(self.local, self.timezone, self.latitude, self.longitude)
        if errs:
            raise ValidationError(errs)
        object.__setattr__(self, "timezone", self.timezone.strip())
        object.__setattr__(self, "latitude", float(self.latitude))
        object.__setattr__(self, "longitude", float(self.longitude))

    @staticmethod
    def validate(local: Any, timezone: Any, latitude: Any, longitude: Any) -> List[str]:
        """Non-raising check for input forms; returns human-readable messages."""
        return [e["msg"] for e in birth_errors(local, timezone, latitude, longitude)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "local": self.local.isoformat(),
            "timezone": self.timezone,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "name": self.name,
            "place": self.place,
        }


@dataclass(frozen=True)
class BodyState:
    """Sidereal state of one body as read from the provider (no classification)."""
    longitude: float
    latitude: float
    distance: float
    speed: float


@dataclass(frozen=True)
class BodyPosition:
    body: str
    longitude: float
    latitude: float
    distance: float
    speed: float
    sign: int
    degree: int
    minute: int
    second: float
    nakshatra: int
    pada: int
    house: int

    @property
    def is_retrograde(self) -> bool:
        return self.speed < 0.0

    @property
    def sign_name(self) -> str:
        return SIGN_NAMES[self.sign]

    @property
    def nakshatra_name(self) -> str:
        return NAKSHATRA_NAMES[self.nakshatra]

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["sign_name"] = self.sign_name
        d["nakshatra_name"] = self.nakshatra_name
        d["retrograde"] = self.is_retrograde
        return d

    def summary_line(self) -> str:
        retro = " [R]" if self.is_retrograde else ""
        in_sign = self.longitude - self.sign * 30.0
        return (f"{self.body:<10}: {self.sign_name:<12} {format_dms(in_sign)}{retro}"
                f" | House {self.house}")


@dataclass(frozen=True)
class ChartCusps:
    cusps: Tuple[float, ...]
    ascendant: float
    midheaven: float
    system: str

    def __post_init__(self) -> None:
        if len(self.cusps) != 12:
            raise ValueError(f"expected 12 cusps, got {len(self.cusps)}")

    def cusp(self, house: int) -> float:
        """Cusp longitude of ``house`` (1..12)."""
        return self.cusps[house - 1]


def _find(positions: Tuple[BodyPosition, ...], body: str) -> Optional[BodyPosition]:
    for p in positions:
        if p.body == body:
            return p
    return None


@dataclass(frozen=True)
class VedicChart:
    moment: BirthMoment
    julian_day: JulianDay
    ayanamsa: float
    ayanamsa_name: str
    ascendant: float
    midheaven: float
    positions: Tuple[BodyPosition, ...]
    cusps: ChartCusps
    house_system: str
    warnings: Tuple[str, ...] = field(default=())

    @property
    def ascendant_sign(self) -> int:
        return int(wrap_deg(self.ascendant) // 30.0) % 12

    def position_of(self, body: str) -> Optional[BodyPosition]:
        return _find(self.positions, body)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "moment": self.moment.to_dict(),
            "julian_day": self.julian_day,
            "ayanamsa": self.ayanamsa,
            "ayanamsa_name": self.ayanamsa_name,
            "ascendant": self.ascendant,
            "midheaven": self.midheaven,
            "house_system": self.house_system,
            "cusps": list(self.cusps.cusps),
            "positions": [p.to_dict() for p in self.positions],
            "warnings": list(self.warnings),
            "engine_version": VERSION,
        }

    def to_plain_text(self) -> str:
        m = self.moment
        lines = [
            _RULE,
            "           NATAL CHART (D1)",
            f"           {m.name}".rstrip(),
            _RULE,
            "",
            f"Local time: {m.local.isoformat(sep=' ')} {m.timezone}",
            f"Location:   {m.latitude:.4f}, {m.longitude:.4f}" + (f" ({m.place})" if m.place else ""),
            f"Ayanamsa:   {self.ayanamsa_name} {format_dms(self.ayanamsa)}",
            f"Ascendant:  {format_dms(self.ascendant)} ({SIGN_NAMES[self.ascendant_sign]})",
            "",
            "PLANETARY POSITIONS",
            _THIN,
        ]
        lines.extend(p.summary_line() for p in self.positions)
        lines.append("")
        return "\n".join(lines)


@dataclass(frozen=True)
class DivisionalChartResult:
    code: str
    name: str
    signification: str
    ascendant: float
    positions: Tuple[BodyPosition, ...]

    @property
    def ascendant_sign(self) -> int:
        return int(wrap_deg(self.ascendant) // 30.0) % 12

    def position_of(self, body: str) -> Optional[BodyPosition]:
        return _find(self.positions, body)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "name": self.name,
            "signification": self.signification,
            "ascendant": self.ascendant,
            "ascendant_sign": self.ascendant_sign,
            "positions": [p.to_dict() for p in self.positions],
        }

    def to_plain_text(self) -> str:
        lines = [
            _RULE,
            f"           {self.name.upper()} CHART ({self.code})",
            f"           {self.signification}",
            _RULE,
            "",
            f"Ascendant: {format_dms(self.ascendant)} ({SIGN_NAMES[self.ascendant_sign]})",
            "",
            "PLANETARY POSITIONS",
            _THIN,
        ]
        lines.extend(p.summary_line() for p in self.positions)
        lines.append("")
        return "\n".join(lines)
