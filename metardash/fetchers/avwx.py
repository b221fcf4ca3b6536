from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any

import httpx

from metardash.config import AVWX_API_KEY, AVWX_BASE_URL, HTTP_TIMEOUT_SECONDS
from metardash.errors import (
    MalformedUpstreamResponse,
    StationNotFound,
    UpstreamRateLimited,
    UpstreamUnavailable,
)
from metardash.models import CloudCoverage, CloudLayer, FlightRules, Measurement, Observation

logger = logging.getLogger(__name__)

# AVWX "units" keys -> default unit when the block is missing
DEFAULT_UNITS: dict[str, str] = {
    "altimeter": "inHg",
    "altitude": "ft",
    "temperature": "C",
    "visibility": "sm",
    "wind_speed": "kt",
}


def _number(block: Any) -> float | None:
    """Pull the numeric value out of an AVWX {repr, value, spoken} block."""
    if block is None:
        return None
    if isinstance(block, dict):
        block = block.get("value")
    if block is None or isinstance(block, bool):
        return None
    try:
        return float(block)
    except (TypeError, ValueError):
        return None


def _measurement(data: dict, key: str, unit: str) -> Measurement | None:
    value = _number(data.get(key))
    if value is None:
        return None
    return Measurement(value=value, unit=unit)


def _require(data: dict, key: str, unit: str) -> Measurement:
    m = _measurement(data, key, unit)
    if m is None:
        raise MalformedUpstreamResponse(f"METAR missing {key}", details={"field": key})
    return m


def _parse_time(block: Any) -> tuple[datetime, str]:
    if not isinstance(block, dict) or not block.get("dt"):
        raise MalformedUpstreamResponse("METAR missing time", details={"field": "time"})
    try:
        dt = datetime.fromisoformat(str(block["dt"]).replace("Z", "+00:00"))
    except ValueError:
        raise MalformedUpstreamResponse(
            "METAR has unreadable time", details={"field": "time", "value": block["dt"]}
        ) from None
    return dt, str(block.get("repr") or "")


def _parse_clouds(station: str, clouds: Any) -> tuple[CloudLayer, ...]:
    layers: list[CloudLayer] = []
    for c in clouds or []:
        if not isinstance(c, dict):
            continue
        try:
            coverage = CloudCoverage(str(c.get("type", "")).upper())
        except ValueError:
            # VV, CLR, NSC etc. are outside the coverage set we classify on
            logger.debug("%s: dropping cloud layer %r", station, c.get("repr"))
            continue
        altitude = _number(c.get("altitude"))
        if altitude is None or not math.isfinite(altitude):
            logger.debug("%s: dropping cloud layer without altitude %r", station, c.get("repr"))
            continue
        layers.append(CloudLayer(coverage=coverage, altitude=int(round(altitude))))
    return tuple(layers)


def _parse_flight_rules(value: Any) -> FlightRules | None:
    try:
        return FlightRules(str(value).upper())
    except ValueError:
        return None


def parse_avwx_metar(data: Any) -> Observation:
    """Normalize an AVWX /api/metar response into an Observation.

    Required: station, time, altimeter, visibility, wind_speed.
    Everything else is optional and left as None when the provider omits it.
    AVWX reports relative_humidity as a fraction; it is stored as percent.
    """
    if not isinstance(data, dict):
        raise MalformedUpstreamResponse("METAR response is not an object")

    station = str(data.get("station") or "").strip().upper()
    if not station:
        raise MalformedUpstreamResponse("METAR missing station", details={"field": "station"})

    raw_units = data.get("units") or {}
    if not isinstance(raw_units, dict):
        raise MalformedUpstreamResponse("METAR units block is not an object", details={"field": "units"})
    units = {**DEFAULT_UNITS, **raw_units}
    observed_at, observed_repr = _parse_time(data.get("time"))

    gust = _measurement(data, "wind_gust", units["wind_speed"])

    rh = _number(data.get("relative_humidity"))
    if rh is not None:
        rh = rh * 100.0 if rh <= 1.0 else rh

    return Observation(
        station_id=station,
        observed_at=observed_at,
        observed_repr=observed_repr,
        altimeter=_require(data, "altimeter", units["altimeter"]),
        visibility=_require(data, "visibility", units["visibility"]),
        wind_speed=_require(data, "wind_speed", units["wind_speed"]),
        wind_direction=_number(data.get("wind_direction")),
        wind_gust=gust,
        temperature=_measurement(data, "temperature", units["temperature"]),
        dewpoint=_measurement(data, "dewpoint", units["temperature"]),
        relative_humidity=rh,
        clouds=_parse_clouds(station, data.get("clouds")),
        raw=str(data.get("raw") or ""),
        reported_flight_rules=_parse_flight_rules(data.get("flight_rules")),
    )


def _error_details(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return {}


async def fetch_metar_json(client: httpx.AsyncClient, icao: str) -> dict:
    """Fetch the raw AVWX METAR JSON for one station.

    Raises an IngestionError subclass on any upstream failure.
    """
    code = icao.strip().upper()
    url = f"{AVWX_BASE_URL}/metar/{code}"
    logger.info("Fetching METAR: %s", url)
    try:
        resp = await client.get(
            url,
            headers={"Authorization": AVWX_API_KEY},
            timeout=HTTP_TIMEOUT_SECONDS,
        )
    except httpx.HTTPError as exc:
        logger.warning("METAR fetch for %s failed: %s", code, exc)
        raise UpstreamUnavailable(f"METAR provider unreachable: {exc}") from exc

    status = resp.status_code
    if status in (400, 404):
        raise StationNotFound(
            f"Unknown station {code}", details=_error_details(resp), upstream_status=status,
        )
    if status == 429:
        raise UpstreamRateLimited(
            "METAR provider rate limit reached", details=_error_details(resp), upstream_status=status,
        )
    if status >= 400:
        raise UpstreamUnavailable(
            f"METAR provider returned HTTP {status}", details=_error_details(resp), upstream_status=status,
        )

    try:
        data = resp.json()
    except ValueError:
        raise MalformedUpstreamResponse("METAR response is not JSON") from None
    if not isinstance(data, dict):
        raise MalformedUpstreamResponse("METAR response is not an object")
    # AVWX answers unknown-but-well-formed codes with 200 and an error body
    if "error" in data and "station" not in data:
        raise StationNotFound(f"Unknown station {code}", details=data)
    return data


async def fetch_observation(client: httpx.AsyncClient, icao: str) -> tuple[Observation, dict]:
    """Fetch and parse one station. Returns (observation, raw provider JSON)."""
    data = await fetch_metar_json(client, icao)
    return parse_avwx_metar(data), data
