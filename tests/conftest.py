from __future__ import annotations

import copy

import pytest

from hubdrivers.hub import InMemoryAttributeStore, ManualScheduler

STATION_URL = "http://station.test:80"
HEALTH_URL = STATION_URL + "/api/system/health"
DASHBOARD_URL = STATION_URL + "/api/v1/json/dashboard/?main"

HEALTH_PAYLOAD = {"status": "Online", "realtime": "Online", "database": "OK"}

DASHBOARD_PAYLOAD = {
    "main": {
        "tempF": 72.5,
        "tempC": 22.5,
        "relH": 55,
        "pressure_inHg": 29.92,
        "windSpeedMPH": 3.1,
        "windSpeedKMH": 5,
        "dewptF": 55.4,
        "sunrise": "2025-04-24T06:23:00-06:00",
        "lastUpdated": "2025-04-24T10:00:00-06:00",
        "feels Like": 71,
    },
    "atlas": {
        "lightIntensity": 400,
        "uvIndex": 2,
        "windGust": 7.2,
    },
    "lightning": {
        "strikecount": 0,
        "last_strike_ts": None,
    },
}


@pytest.fixture
def dashboard_payload():
    return copy.deepcopy(DASHBOARD_PAYLOAD)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def store() -> InMemoryAttributeStore:
    return InMemoryAttributeStore("acuparse")


@pytest.fixture
def station(requests_mock, dashboard_payload):
    """Mock both station endpoints with healthy responses."""
    requests_mock.get(HEALTH_URL, json=HEALTH_PAYLOAD)
    requests_mock.get(DASHBOARD_URL, json=dashboard_payload)
    return requests_mock
