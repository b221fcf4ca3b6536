from __future__ import annotations

import threading
from collections.abc import Iterable

from metardash.config import DEFAULT_STATIONS, HISTORY_SIZE


class SearchHistory:
    """Recently looked-up stations, most recent first."""

    def __init__(self, seed: Iterable[str] = DEFAULT_STATIONS, size: int = HISTORY_SIZE) -> None:
        self._lock = threading.Lock()
        self._size = size
        self._stations: list[str] = [s.upper() for s in seed][:size]

    def add(self, station_id: str) -> bool:
        """Prepend a station unless it is already listed. Returns True if added."""
        code = station_id.upper()
        with self._lock:
            if code in self._stations:
                return False
            self._stations = [code, *self._stations][: self._size]
            return True

    def stations(self) -> list[str]:
        with self._lock:
            return list(self._stations)

    def reset(self, seed: Iterable[str] = DEFAULT_STATIONS) -> None:
        with self._lock:
            self._stations = [s.upper() for s in seed][: self._size]
