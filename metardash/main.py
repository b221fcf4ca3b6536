from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import httpx
import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from metardash.config import (
    APP_VERSION,
    CACHE_TTL_SECONDS,
    PURGE_INTERVAL_SECONDS,
    SERVER_HOST,
    SERVER_PORT,
)
from metardash.engine import derive_metrics
from metardash.errors import IngestionError, InvalidMeasurement, MalformedUpstreamResponse
from metardash.fetchers.avwx import fetch_metar_json, fetch_observation, parse_avwx_metar
from metardash.history import SearchHistory
from metardash.store import CacheEntry, ObservationStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

store = ObservationStore(ttl_seconds=CACHE_TTL_SECONDS)
history = SearchHistory()
_start_time: float = time.monotonic()
_http_client: httpx.AsyncClient | None = None  # set during lifespan

_STATION_RE = re.compile(r"^[A-Z0-9]{3,4}$")


def _now_str() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _station_code(icao: str) -> str:
    code = icao.strip().upper()
    if not _STATION_RE.match(code):
        raise HTTPException(status_code=400, detail=f"Invalid station code: {icao!r}")
    return code


def _client() -> httpx.AsyncClient:
    if _http_client is None:
        raise HTTPException(status_code=503, detail="Server not ready")
    return _http_client


async def _purge_loop() -> None:
    while True:
        await asyncio.sleep(PURGE_INTERVAL_SECONDS)
        store.purge_expired()


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _start_time, _http_client

    _start_time = time.monotonic()

    async with httpx.AsyncClient() as client:
        _http_client = client
        task = asyncio.create_task(_purge_loop())
        try:
            yield
        finally:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        _http_client = None


app = FastAPI(title="METAR Dashboard Server", version=APP_VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)


async def _lookup(code: str) -> tuple[CacheEntry, bool]:
    """Return (entry, cached) for a station, fetching from AVWX on a cache miss."""
    entry = store.get(code)
    if entry is not None:
        return entry, True
    obs, raw = await fetch_observation(_client(), code)
    return store.put(obs, raw), False


@app.get("/api/metar/{icao}")
async def proxy_metar(icao: str):
    """Relay the provider's METAR JSON verbatim."""
    code = _station_code(icao)
    cached = False
    try:
        entry = store.get(code)
        if entry is not None:
            raw, cached = entry.raw, True
        else:
            raw = await fetch_metar_json(_client(), code)
            try:
                store.put(parse_avwx_metar(raw), raw)
            except MalformedUpstreamResponse as exc:
                # Still relayed; only the cache and the metrics endpoint need a full record
                logger.warning("%s: not caching unparseable METAR: %s", code, exc)
    except IngestionError as exc:
        logger.warning("%s: METAR fetch failed: %s", code, exc)
        return JSONResponse(
            status_code=exc.upstream_status or exc.status_code,
            content={"error": "Failed to fetch METAR data", "details": exc.details},
        )
    except HTTPException:
        raise
    except Exception:
        logger.exception("%s: METAR fetch error", code)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    history.add(code)
    logger.info("%s: proxied METAR (cached=%s)", code, cached)
    # json.dumps keeps provider NaN tokens that JSONResponse would refuse
    return Response(content=json.dumps(raw), media_type="application/json")


@app.get("/api/v1/metar/{icao}")
async def get_metar(icao: str):
    """Normalized observation plus derived flight-rule metrics."""
    code = _station_code(icao)
    try:
        entry, cached = await _lookup(code)
    except IngestionError as exc:
        logger.warning("%s: METAR lookup failed: %s", code, exc)
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": str(exc),
                "kind": type(exc).__name__,
                "details": exc.details,
            },
        )

    obs = entry.observation
    metrics: dict | None = None
    metrics_error = ""
    try:
        metrics = derive_metrics(obs).to_api_dict()
    except InvalidMeasurement as exc:
        # Degraded: the observation is still shown, gauges render as N/A
        logger.warning("%s: cannot derive metrics: %s", obs.station_id, exc)
        metrics_error = str(exc)

    history.add(code)
    logger.info("%s: served metrics (cached=%s)", code, cached)
    content: dict = {
        "generated": _now_str(),
        "cached": cached,
        "observation": obs.to_api_dict(),
        "metrics": metrics,
    }
    if metrics_error:
        content["metrics_error"] = metrics_error
    return JSONResponse(content=content)


@app.get("/api/v1/history")
async def get_history():
    return JSONResponse(content={"stations": history.stations()})


def _uptime_str() -> str:
    elapsed = time.monotonic() - _start_time
    days = int(elapsed // 86400)
    hours = int((elapsed % 86400) // 3600)
    if days > 0:
        return f"{days}d {hours}h"
    minutes = int((elapsed % 3600) // 60)
    return f"{hours}h {minutes}m"


@app.api_route("/api/v1/status", methods=["GET", "HEAD"])
async def get_status():
    return JSONResponse(
        content={
            "version": APP_VERSION,
            "uptime": _uptime_str(),
            "cached_stations": store.count,
        }
    )


def run() -> None:
    uvicorn.run(app, host=SERVER_HOST, port=SERVER_PORT, log_config=None)


if __name__ == "__main__":
    run()
