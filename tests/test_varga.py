# tests/test_varga.py
from __future__ import annotations

from datetime import datetime

import pytest
from hypothesis import given
from hypothesis import strategies as st

from jyotish.core.classify import classify
from jyotish.core.constants import (
    AIR,
    DUAL,
    EARTH,
    FIRE,
    FIXED,
    MOVABLE,
    WATER,
    element_of,
    modality_of,
)
from jyotish.core.errors import ValidationError
from jyotish.core.models import BirthMoment, BodyPosition, ChartCusps, VedicChart
from jyotish.core.varga import (
    COMMON_VARGAS,
    VARGA_CODES,
    VARGA_RULES,
    DivisionalChartEngine,
    varga_longitude,
    varga_sign,
    whole_sign_house,
)

ARIES, TAURUS, GEMINI, CANCER, LEO, VIRGO = range(6)
LIBRA, SCORPIO, SAGITTARIUS, CAPRICORN, AQUARIUS, PISCES = range(6, 12)

LONS = st.floats(min_value=0.0, max_value=360.0, exclude_max=True, allow_nan=False)

# ─────────────────────────────────────────────────────────────────────────────
# Literal reference boundaries, one table per varga
# ─────────────────────────────────────────────────────────────────────────────
REFERENCE = {
    "D2": [(10.0, LEO), (15.0, CANCER), (40.0, CANCER), (50.0, LEO)],
    "D3": [(5.0, ARIES), (10.0, LEO), (25.0, SAGITTARIUS), (45.0, VIRGO)],
    "D4": [(0.0, ARIES), (7.5, CANCER), (15.0, LIBRA), (22.5, CAPRICORN)],
    "D7": [(0.0, ARIES), (29.9, LIBRA), (30.0, SCORPIO)],
    "D9": [
        (0.0, ARIES), (10.0 / 3.0, TAURUS),            # movable: from itself
        (30.0, CAPRICORN),                              # fixed: from the 9th
        (60.0, LIBRA),                                  # dual: from the 5th
        (90.0, CANCER), (120.0, ARIES), (240.0, ARIES), (330.0, CANCER),
    ],
    "D10": [(0.0, ARIES), (3.0, TAURUS), (30.0, CAPRICORN), (33.0, AQUARIUS)],
    "D12": [(0.0, ARIES), (2.5, TAURUS), (32.5, GEMINI), (357.5, AQUARIUS)],
    "D16": [(0.0, ARIES), (30.0, LEO), (60.0, SAGITTARIUS), (1.875, TAURUS)],
    "D20": [(0.0, ARIES), (30.0, SAGITTARIUS), (60.0, LEO), (1.5, TAURUS)],
    "D24": [(0.0, LEO), (1.25, VIRGO), (30.0, CANCER), (31.25, LEO)],
    "D27": [(0.0, ARIES), (30.0, CANCER), (60.0, LIBRA), (90.0, CAPRICORN), (120.0, ARIES)],
    "D30": [
        (4.99, ARIES), (5.0, AQUARIUS), (10.0, SAGITTARIUS), (18.0, GEMINI), (25.0, TAURUS),
        (30.0, TAURUS), (35.0, VIRGO), (42.0, PISCES), (50.0, CAPRICORN), (55.0, SCORPIO),
    ],
    "D60": [(0.0, ARIES), (0.5, TAURUS), (30.0, SCORPIO)],
}


def test_reference_tables_cover_every_varga() -> None:
    assert set(REFERENCE) == set(VARGA_CODES)
    assert len(VARGA_CODES) == 13


@pytest.mark.parametrize(
    "code,lon,sign",
    [(code, lon, sign) for code, rows in REFERENCE.items() for lon, sign in rows],
)
def test_reference_boundaries(code: str, lon: float, sign: int) -> None:
    assert varga_sign(lon, code) == sign


@pytest.mark.parametrize("sign", [ARIES, CANCER, LIBRA, CAPRICORN])
def test_d9_movable_sign_start_maps_to_itself_at_zero(sign: int) -> None:
    assert varga_longitude(sign * 30.0, "D9") == pytest.approx(sign * 30.0, abs=1e-12)


@pytest.mark.parametrize("sign", range(12))
@pytest.mark.parametrize("k", range(12))
def test_d12_steps_k_signs_at_degree_zero(sign: int, k: int) -> None:
    lon = sign * 30.0 + k * 2.5
    out = varga_longitude(lon, "D12")
    assert out == pytest.approx(((sign + k) % 12) * 30.0, abs=1e-12)


def test_in_part_offset_is_stretched_to_a_sign() -> None:
    assert varga_longitude(1.0, "D9") == pytest.approx(9.0)
    assert varga_longitude(2.5, "D30") == pytest.approx(15.0)       # half of Aries' 5° part
    assert varga_longitude(14.0, "D30") == pytest.approx(8 * 30.0 + 15.0)  # 4 of 8 degrees
    assert varga_longitude(29.0, "D2") == pytest.approx(3 * 30.0 + 28.0)


def test_codes_are_forgiving_but_checked() -> None:
    assert varga_sign(30.0, "d9") == varga_sign(30.0, "9") == CAPRICORN
    with pytest.raises(ValidationError):
        varga_sign(30.0, "D5")


def test_rule_metadata() -> None:
    d9 = VARGA_RULES["D9"]
    assert (d9.division, d9.name, d9.signification) == (9, "Navamsa", "Marriage, Dharma")
    assert VARGA_RULES["D30"].parts == 5
    assert VARGA_RULES["D24"].name == "Siddhamsa"


@given(lon=LONS, code=st.sampled_from(VARGA_CODES))
def test_divisional_longitude_is_normalized(lon: float, code: str) -> None:
    out = varga_longitude(lon, code)
    assert 0.0 <= out < 360.0


@given(lon=LONS, code=st.sampled_from([c for c in VARGA_CODES if c != "D30"]))
def test_equal_part_degree_is_scaled_remainder(lon: float, code: str) -> None:
    n = VARGA_RULES[code].division
    expected = (lon % 30.0) * n % 30.0
    got = varga_longitude(lon, code) % 30.0
    # equal modulo the 30° wrap
    assert min(abs(got - expected), 30.0 - abs(got - expected)) < 1e-6


def test_whole_sign_house() -> None:
    assert whole_sign_house(ARIES, ARIES) == 1
    assert whole_sign_house(PISCES, ARIES) == 12
    assert whole_sign_house(ARIES, PISCES) == 2

# ─────────────────────────────────────────────────────────────────────────────
# Engine on a whole chart
# ─────────────────────────────────────────────────────────────────────────────

def _pos(body: str, lon: float, speed: float = 1.0) -> BodyPosition:
    p = classify(lon)
    return BodyPosition(body=body, longitude=p.longitude, latitude=0.0, distance=1.0, speed=speed,
                        sign=p.sign, degree=p.degree, minute=p.minute, second=p.second,
                        nakshatra=p.nakshatra, pada=p.pada, house=1)


@pytest.fixture
def chart() -> VedicChart:
    moment = BirthMoment(datetime(1990, 5, 15, 14, 30), "Asia/Kathmandu", 27.7, 85.3)
    cusps = ChartCusps(cusps=tuple(float(30 * i) for i in range(12)), ascendant=31.0,
                       midheaven=301.0, system="W")
    return VedicChart(
        moment=moment, julian_day=2448026.864583333, ayanamsa=23.7, ayanamsa_name="lahiri",
        ascendant=31.0, midheaven=301.0,
        positions=(_pos("Sun", 1.0), _pos("Moon", 45.0), _pos("Saturn", 275.0, -0.02)),
        cusps=cusps, house_system="W",
    )


def test_compute_projects_and_rehouses(chart: VedicChart) -> None:
    d9 = DivisionalChartEngine().compute(chart, "D9")
    assert d9.code == "D9"
    # 31° = Taurus 1° → fixed sign, part 0 → Capricorn
    assert d9.ascendant_sign == CAPRICORN
    sun = d9.position_of("Sun")
    assert sun.sign == ARIES and sun.degree == 9
    assert sun.house == whole_sign_house(ARIES, CAPRICORN) == 4
    saturn = d9.position_of("Saturn")
    assert saturn.is_retrograde
    for p in d9.positions:
        assert p.house == whole_sign_house(p.sign, d9.ascendant_sign)
        assert 0 <= p.nakshatra <= 26 and 1 <= p.pada <= 4


def test_compute_all_and_common(chart: VedicChart) -> None:
    engine = DivisionalChartEngine()
    all_charts = engine.compute_all(chart)
    assert [c.code for c in all_charts] == list(VARGA_CODES)
    assert [c.code for c in engine.compute_common(chart)] == list(COMMON_VARGAS)
    # natal chart is untouched
    assert chart.position_of("Sun").longitude == pytest.approx(1.0)


def test_plain_text_summary(chart: VedicChart) -> None:
    text = DivisionalChartEngine().compute(chart, "D10").to_plain_text()
    assert "DASAMSA CHART (D10)" in text
    assert "Career, Profession" in text
    assert "Saturn" in text and "[R]" in text


@pytest.mark.parametrize("sign,modality,element", [
    (ARIES, MOVABLE, FIRE), (TAURUS, FIXED, EARTH), (GEMINI, DUAL, AIR),
    (CANCER, MOVABLE, WATER), (SCORPIO, FIXED, WATER), (PISCES, DUAL, WATER),
])
def test_sign_groups_drive_rule_starts(sign: int, modality: int, element: str) -> None:
    assert modality_of(sign) == modality
    assert element_of(sign) == element
    # D27 starts from the first sign of the element, D9 from the modality offset
    assert varga_sign(sign * 30.0, "D27") == {FIRE: ARIES, EARTH: CANCER, AIR: LIBRA, WATER: CAPRICORN}[element]
    assert varga_sign(sign * 30.0, "D9") == (sign + {MOVABLE: 0, FIXED: 8, DUAL: 4}[modality]) % 12
