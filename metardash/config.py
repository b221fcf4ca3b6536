from __future__ import annotations

import os

APP_VERSION = "0.3.0"

AVWX_BASE_URL = os.getenv("AVWX_BASE_URL", "https://avwx.rest/api")
AVWX_API_KEY = os.getenv("AVWX_API_KEY", "")

HTTP_TIMEOUT_SECONDS = 10

SERVER_HOST = "0.0.0.0"
SERVER_PORT = int(os.getenv("PORT", "3000"))

CACHE_TTL_SECONDS = int(os.getenv("CACHE_TTL_SECONDS", "120"))

HISTORY_SIZE = 8
DEFAULT_STATIONS = ("KJFK", "EGLL", "VABB", "RJTT")

PURGE_INTERVAL_SECONDS = 5 * 60  # 5 minutes
