from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class FlightRules(str, Enum):
    """Flight-rule categories, declared from least to most restrictive."""

    VFR = "VFR"
    MVFR = "MVFR"
    IFR = "IFR"
    LIFR = "LIFR"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    @classmethod
    def worst(cls, *categories: FlightRules) -> FlightRules:
        """Return the most restrictive of the given categories."""
        return max(categories, key=lambda c: c.severity)


_SEVERITY = {rule: i for i, rule in enumerate(FlightRules)}


class CloudCoverage(str, Enum):
    FEW = "FEW"
    SCT = "SCT"
    BKN = "BKN"
    OVC = "OVC"

    @property
    def is_ceiling(self) -> bool:
        # FEW and SCT never constitute a ceiling
        return self in (CloudCoverage.BKN, CloudCoverage.OVC)


class SafetyStatus(str, Enum):
    SAFE = "safe"
    UNSAFE = "unsafe"


@dataclass(frozen=True, slots=True)
class Measurement:
    value: float
    unit: str


@dataclass(frozen=True, slots=True)
class CloudLayer:
    coverage: CloudCoverage
    altitude: int  # hundreds of feet AGL


@dataclass(frozen=True, slots=True)
class Observation:
    """A single METAR observation, already decoded by the provider.

    Units are carried as reported (AVWX uses the station's local convention,
    e.g. inHg/sm/kt in the US and hPa/m/kt elsewhere). The engine converts as
    needed; nothing here is normalized in-place.
    """

    station_id: str
    observed_at: datetime
    observed_repr: str
    altimeter: Measurement
    visibility: Measurement
    wind_speed: Measurement
    wind_direction: Optional[float] = None  # degrees true, as reported; None = variable
    wind_gust: Optional[Measurement] = None  # None = no gust reported (not zero)
    temperature: Optional[Measurement] = None
    dewpoint: Optional[Measurement] = None
    relative_humidity: Optional[float] = None  # percent
    clouds: tuple[CloudLayer, ...] = ()
    raw: str = ""
    reported_flight_rules: Optional[FlightRules] = None

    def to_api_dict(self) -> dict:
        """Serialize for the JSON API response.

          station:        string
          time:           string  ISO-8601 UTC  "2026-10-18T16:51:00Z"
          time_repr:      string  as reported, e.g. "181651Z"
          altimeter:      {value, unit}
          visibility:     {value, unit}
          wind_speed:     {value, unit}
          wind_direction: float   degrees, omitted when variable
          wind_gust:      {value, unit}, omitted when no gust reported
          temperature:    {value, unit}
          dewpoint:       {value, unit}
          relative_humidity: float percent
          clouds:         [{type, altitude}]  altitude in hundreds of feet
          flight_rules:   string  provider's own category
          raw:            string  unmodified report
        """
        d: dict = {
            "station": self.station_id,
            "time": self.observed_at.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "time_repr": self.observed_repr,
            "altimeter": _measurement_dict(self.altimeter),
            "visibility": _measurement_dict(self.visibility),
            "wind_speed": _measurement_dict(self.wind_speed),
            "clouds": [
                {"type": layer.coverage.value, "altitude": layer.altitude}
                for layer in self.clouds
            ],
            "raw": self.raw,
        }
        _optional = [
            ("wind_direction", self.wind_direction),
            ("relative_humidity", self.relative_humidity),
        ]
        for key, val in _optional:
            # NaN and infinity have no JSON form; left out like an absent value
            if val is not None and math.isfinite(val):
                d[key] = float(val)
        _optional_measurements = [
            ("wind_gust", self.wind_gust),
            ("temperature", self.temperature),
            ("dewpoint", self.dewpoint),
        ]
        for key, m in _optional_measurements:
            if m is not None:
                d[key] = _measurement_dict(m)
        if self.reported_flight_rules is not None:
            d["flight_rules"] = self.reported_flight_rules.value
        return d


@dataclass(frozen=True, slots=True)
class SafetyFlags:
    altimeter: SafetyStatus
    wind_gust: SafetyStatus


@dataclass(frozen=True, slots=True)
class DerivedMetrics:
    """Classification and gauge values computed from one Observation."""

    flight_rules: FlightRules           # worst of visibility and ceiling category
    visibility_category: FlightRules
    ceiling_category: FlightRules
    visibility_sm: float
    ceiling_ft: int                     # UNLIMITED_CEILING_FT when ceiling_unlimited
    ceiling_unlimited: bool
    visibility_ratio: float             # gauge fill, 0..1
    ceiling_ratio: float                # gauge fill, 0..1
    safety: SafetyFlags
    relative_humidity: Optional[int] = None
    reported_flight_rules: Optional[FlightRules] = None  # provider's category, verbatim

    def to_api_dict(self) -> dict:
        return {
            "flight_rules": self.flight_rules.value,
            "reported_flight_rules": (
                self.reported_flight_rules.value if self.reported_flight_rules else None
            ),
            "visibility": {
                "value_sm": round(self.visibility_sm, 2),
                "category": self.visibility_category.value,
                "ratio": round(self.visibility_ratio, 3),
            },
            "ceiling": {
                "value_ft": self.ceiling_ft,
                "unlimited": self.ceiling_unlimited,
                "category": self.ceiling_category.value,
                "ratio": round(self.ceiling_ratio, 3),
            },
            "safety": {
                "altimeter": self.safety.altimeter.value,
                "wind_gust": self.safety.wind_gust.value,
            },
            "relative_humidity": self.relative_humidity,
        }


def _measurement_dict(m: Measurement) -> dict:
    value = float(round(m.value, 2)) if math.isfinite(m.value) else None
    return {"value": value, "unit": m.unit}
