import copy

import pytest

# Trimmed AVWX /api/metar/KJFK response
KJFK_METAR = {
    "meta": {"timestamp": "2026-10-18T17:02:11.123456Z"},
    "altimeter": {"repr": "A2992", "value": 29.92, "spoken": "two nine point nine two"},
    "clouds": [
        {"repr": "SCT025", "type": "SCT", "altitude": 25, "modifier": None, "direction": None},
        {"repr": "BKN040", "type": "BKN", "altitude": 40, "modifier": None, "direction": None},
        {"repr": "OVC250", "type": "OVC", "altitude": 250, "modifier": None, "direction": None},
    ],
    "flight_rules": "VFR",
    "raw": "KJFK 181651Z 31012G18KT 10SM SCT025 BKN040 OVC250 14/06 A2992",
    "sanitized": "KJFK 181651Z 31012G18KT 10SM SCT025 BKN040 OVC250 14/06 A2992",
    "station": "KJFK",
    "time": {"repr": "181651Z", "dt": "2026-10-18T16:51:00Z"},
    "visibility": {"repr": "10", "value": 10, "spoken": "ten"},
    "wind_direction": {"repr": "310", "value": 310, "spoken": "three one zero"},
    "wind_speed": {"repr": "12", "value": 12, "spoken": "one two"},
    "wind_gust": {"repr": "18", "value": 18, "spoken": "one eight"},
    "temperature": {"repr": "14", "value": 14, "spoken": "one four"},
    "dewpoint": {"repr": "06", "value": 6, "spoken": "six"},
    "relative_humidity": 0.5838,
    "units": {
        "altimeter": "inHg",
        "altitude": "ft",
        "temperature": "C",
        "visibility": "sm",
        "wind_speed": "kt",
    },
}

# Trimmed AVWX /api/metar/EGLL response (metric units, no gust)
EGLL_METAR = {
    "altimeter": {"repr": "Q1002", "value": 1002, "spoken": "one zero zero two"},
    "clouds": [
        {"repr": "FEW008", "type": "FEW", "altitude": 8, "modifier": None, "direction": None},
        {"repr": "BKN012", "type": "BKN", "altitude": 12, "modifier": None, "direction": None},
    ],
    "flight_rules": "MVFR",
    "raw": "EGLL 181650Z 24008KT 4000 BR FEW008 BKN012 11/10 Q1002",
    "station": "EGLL",
    "time": {"repr": "181650Z", "dt": "2026-10-18T16:50:00Z"},
    "visibility": {"repr": "4000", "value": 4000, "spoken": "four thousand"},
    "wind_direction": {"repr": "240", "value": 240, "spoken": "two four zero"},
    "wind_speed": {"repr": "08", "value": 8, "spoken": "eight"},
    "wind_gust": None,
    "temperature": {"repr": "11", "value": 11, "spoken": "one one"},
    "dewpoint": {"repr": "10", "value": 10, "spoken": "one zero"},
    "units": {
        "altimeter": "hPa",
        "altitude": "ft",
        "temperature": "C",
        "visibility": "m",
        "wind_speed": "kt",
    },
}


@pytest.fixture
def kjfk_metar() -> dict:
    return copy.deepcopy(KJFK_METAR)


@pytest.fixture
def egll_metar() -> dict:
    return copy.deepcopy(EGLL_METAR)
