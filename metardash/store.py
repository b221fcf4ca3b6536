from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass

from metardash.models import Observation

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CacheEntry:
    observation: Observation
    raw: dict
    stored_at: float  # time.monotonic()


def newer(existing: CacheEntry, incoming: CacheEntry) -> CacheEntry:
    """Pick between two entries for the same station.

    The later observation wins; an equal observation time counts as a refresh.
    We don't field-merge because each report is a snapshot.
    """
    if incoming.observation.observed_at >= existing.observation.observed_at:
        return incoming
    return existing


class ObservationStore:
    """Thread-safe in-memory cache of the latest observation per station."""

    def __init__(self, ttl_seconds: float) -> None:
        self._lock = threading.Lock()
        self._ttl = ttl_seconds
        self._entries: dict[str, CacheEntry] = {}

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, station_id: str) -> CacheEntry | None:
        """Return the cached entry if it is younger than the TTL."""
        key = station_id.upper()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if time.monotonic() - entry.stored_at > self._ttl:
                del self._entries[key]
                return None
            return entry

    def put(self, observation: Observation, raw: dict) -> CacheEntry:
        incoming = CacheEntry(observation=observation, raw=raw, stored_at=time.monotonic())
        key = observation.station_id
        with self._lock:
            existing = self._entries.get(key)
            entry = incoming if existing is None else newer(existing, incoming)
            self._entries[key] = entry
        return entry

    def purge_expired(self) -> int:
        """Drop entries older than the TTL. Returns number purged."""
        cutoff = time.monotonic() - self._ttl
        with self._lock:
            before = len(self._entries)
            self._entries = {k: v for k, v in self._entries.items() if v.stored_at >= cutoff}
            purged = before - len(self._entries)
        if purged:
            logger.info("Purged %d expired observations", purged)
        return purged

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
