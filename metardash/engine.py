"""Flight-rule classification and derived metrics for a single observation.

Everything here is a pure function of its arguments: no I/O, no shared state,
nothing mutated. Thresholds follow the FAA flight-category definitions:

    category  ceiling (ft AGL)      visibility (sm)
    VFR       > 3000                > 5
    MVFR      1000 .. 3000          3 .. 5
    IFR       500 .. < 1000         1 .. < 3
    LIFR      < 500                 < 1
"""
from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from typing import Optional

from metardash.errors import InvalidMeasurement, MissingDependentField
from metardash.models import (
    CloudLayer,
    DerivedMetrics,
    FlightRules,
    Measurement,
    Observation,
    SafetyFlags,
    SafetyStatus,
)

logger = logging.getLogger(__name__)

# "No ceiling" sentinel. Sits on the VFR side of every ceiling threshold and
# doubles as the ceiling gauge maximum.
UNLIMITED_CEILING_FT = 10000

VISIBILITY_GAUGE_MAX_SM = 10.0
CEILING_GAUGE_MAX_FT = UNLIMITED_CEILING_FT

ALTIMETER_MIN_SAFE_INHG = 29.70
GUST_MAX_SAFE_KT = 20.0

# Magnus approximation constants (Alduchov & Eskridge)
MAGNUS_A = 17.625
MAGNUS_B = 243.04  # deg C

_HPA_TO_INHG = 0.0295300
_METRES_PER_SM = 1609.344
_MS_TO_KT = 1.943844
_KMH_TO_KT = 0.539957


def _require_measurement(field: str, value: float) -> float:
    """Reject negative or non-finite numbers instead of clamping them."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidMeasurement(field, value)
    if not math.isfinite(value) or value < 0:
        raise InvalidMeasurement(field, value)
    return float(value)


# ---------------------------------------------------------------------------
# Flight-rule classifier
# ---------------------------------------------------------------------------

def classify_by_visibility(visibility_sm: float) -> FlightRules:
    v = _require_measurement("visibility", visibility_sm)
    if v > 5:
        return FlightRules.VFR
    if v >= 3:
        return FlightRules.MVFR
    if v >= 1:
        return FlightRules.IFR
    return FlightRules.LIFR


def classify_by_ceiling(ceiling_ft: float) -> FlightRules:
    c = _require_measurement("ceiling", ceiling_ft)
    if c > 3000:
        return FlightRules.VFR
    if c >= 1000:
        return FlightRules.MVFR
    if c >= 500:
        return FlightRules.IFR
    return FlightRules.LIFR


# ---------------------------------------------------------------------------
# Ceiling resolver
# ---------------------------------------------------------------------------

def ceiling_layer(layers: Iterable[CloudLayer]) -> Optional[CloudLayer]:
    """Return the lowest BKN/OVC layer, or None when there is no ceiling.

    Layers are not assumed to be sorted.
    """
    lowest: Optional[CloudLayer] = None
    for layer in layers:
        _require_measurement("cloud altitude", layer.altitude)
        if not layer.coverage.is_ceiling:
            continue
        if lowest is None or layer.altitude < lowest.altitude:
            lowest = layer
    return lowest


def resolve_ceiling(layers: Iterable[CloudLayer]) -> int:
    """Ceiling in feet, or UNLIMITED_CEILING_FT when no layer qualifies."""
    layer = ceiling_layer(layers)
    if layer is None:
        return UNLIMITED_CEILING_FT
    return int(layer.altitude) * 100


# ---------------------------------------------------------------------------
# Unit normalization
# ---------------------------------------------------------------------------

def altimeter_inhg(m: Measurement) -> float:
    value = _require_measurement("altimeter", m.value)
    if m.unit.lower() == "hpa":
        return value * _HPA_TO_INHG
    return value


def visibility_sm(m: Measurement) -> float:
    value = _require_measurement("visibility", m.value)
    if m.unit.lower() == "m":
        return value / _METRES_PER_SM
    return value


def speed_kt(m: Measurement) -> float:
    value = _require_measurement("wind speed", m.value)
    unit = m.unit.lower()
    if unit in ("m/s", "mps"):
        return value * _MS_TO_KT
    if unit in ("km/h", "kph", "kmh"):
        return value * _KMH_TO_KT
    return value


def temperature_c(m: Measurement) -> float:
    if not math.isfinite(m.value):
        raise InvalidMeasurement("temperature", m.value)
    if m.unit.upper() == "F":
        return (m.value - 32.0) * 5.0 / 9.0
    return float(m.value)


# ---------------------------------------------------------------------------
# Safety flags
# ---------------------------------------------------------------------------

def altimeter_status(altimeter: float) -> SafetyStatus:
    """Altimeter in inHg; below 29.70 is flagged."""
    value = _require_measurement("altimeter", altimeter)
    if value < ALTIMETER_MIN_SAFE_INHG:
        return SafetyStatus.UNSAFE
    return SafetyStatus.SAFE


def gust_status(gust_kt: Optional[float]) -> SafetyStatus:
    """Gust in knots. No reported gust compares as zero."""
    value = 0.0 if gust_kt is None else _require_measurement("wind gust", gust_kt)
    if value > GUST_MAX_SAFE_KT:
        return SafetyStatus.UNSAFE
    return SafetyStatus.SAFE


# ---------------------------------------------------------------------------
# Relative humidity
# ---------------------------------------------------------------------------

def relative_humidity(temp_c: Optional[float], dewpoint_c: Optional[float]) -> int:
    """Relative humidity in whole percent from temperature and dewpoint (deg C).

    Uses the Magnus approximation of saturation vapour pressure:
    RH = 100 * exp(a*Td / (b+Td)) / exp(a*T / (b+T))
    """
    missing = [
        name for name, val in (("temperature", temp_c), ("dewpoint", dewpoint_c))
        if val is None
    ]
    if missing:
        raise MissingDependentField("relative_humidity", missing)
    for name, val in (("temperature", temp_c), ("dewpoint", dewpoint_c)):
        if not math.isfinite(val):
            raise InvalidMeasurement(name, val)

    dewpoint_vp = math.exp((MAGNUS_A * dewpoint_c) / (MAGNUS_B + dewpoint_c))
    temp_vp = math.exp((MAGNUS_A * temp_c) / (MAGNUS_B + temp_c))
    rh = 100.0 * dewpoint_vp / temp_vp
    return int(max(0, min(100, round(rh))))


def _humidity_for(obs: Observation) -> Optional[int]:
    if obs.relative_humidity is not None:
        rh = _require_measurement("relative_humidity", obs.relative_humidity)
        if rh > 100:
            raise InvalidMeasurement("relative_humidity", obs.relative_humidity)
        return int(round(rh))
    try:
        return relative_humidity(
            temperature_c(obs.temperature) if obs.temperature else None,
            temperature_c(obs.dewpoint) if obs.dewpoint else None,
        )
    except MissingDependentField as exc:
        logger.debug("%s: humidity unavailable (%s)", obs.station_id, exc)
        return None


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def _gauge_ratio(value: float, maximum: float) -> float:
    return min(value, maximum) / maximum


def derive_metrics(obs: Observation) -> DerivedMetrics:
    """Compute flight rules, ceiling, gauge ratios and safety flags.

    Raises InvalidMeasurement when a numeric field is out of range.
    """
    vis_sm = visibility_sm(obs.visibility)
    vis_cat = classify_by_visibility(vis_sm)

    layer = ceiling_layer(obs.clouds)
    ceiling_ft = UNLIMITED_CEILING_FT if layer is None else int(layer.altitude) * 100
    ceil_cat = classify_by_ceiling(ceiling_ft)

    gust_kt = speed_kt(obs.wind_gust) if obs.wind_gust is not None else None
    safety = SafetyFlags(
        altimeter=altimeter_status(altimeter_inhg(obs.altimeter)),
        wind_gust=gust_status(gust_kt),
    )

    return DerivedMetrics(
        flight_rules=FlightRules.worst(vis_cat, ceil_cat),
        visibility_category=vis_cat,
        ceiling_category=ceil_cat,
        visibility_sm=vis_sm,
        ceiling_ft=ceiling_ft,
        ceiling_unlimited=layer is None,
        visibility_ratio=_gauge_ratio(vis_sm, VISIBILITY_GAUGE_MAX_SM),
        ceiling_ratio=_gauge_ratio(ceiling_ft, CEILING_GAUGE_MAX_FT),
        safety=safety,
        relative_humidity=_humidity_for(obs),
        reported_flight_rules=obs.reported_flight_rules,
    )
