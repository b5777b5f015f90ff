from __future__ import annotations

import json
from io import StringIO

import pytest
import requests
from django.conf import settings
from django.core.cache import caches
from django.core.management import call_command
from django.test import Client

from backend.api.drivers import reset_registry


@pytest.fixture(autouse=True)
def fresh_registry():
    caches["default"].clear()
    reset_registry()
    yield
    reset_registry()


@pytest.fixture
def client() -> Client:
    return Client()


def test_device_list(client) -> None:
    response = client.get("/api/devices")

    assert response.status_code == 200
    devices = {item["device"]: item["driver"] for item in response.json()["devices"]}
    assert devices == {"acuparse": "acuparse", "network-monitor": "network-monitor", "virtual-aqi": "virtual-aqi"}


def test_weather_refresh_returns_updates_and_persists(client, station) -> None:
    response = client.post("/api/weather/refresh")

    assert response.status_code == 200
    updates = {item["name"]: item["value"] for item in response.json()["updates"]}
    assert updates["temperatureF"] == 72.5
    assert updates["systemStatus"] == "Online"

    attributes = client.get("/api/devices/acuparse/attributes").json()["attributes"]
    assert attributes["humidity"] == 55
    assert attributes["lastUpdated_time"] == "16:00:00 UTC"

    again = client.post("/api/weather/refresh")
    assert again.json()["updates"] == []


def test_weather_fields_lists_discovered_fields(client, station) -> None:
    client.post("/api/weather/refresh")

    payload = client.get("/api/weather/fields").json()

    assert "main_dewptF" in payload["discovered"]
    assert payload["pull_all_fields"] is False
    assert payload["invalid_extra_fields"] == []


def test_unknown_device_is_404(client) -> None:
    response = client.get("/api/devices/toaster/attributes")

    assert response.status_code == 404
    assert "detail" in response.json()


def test_network_check(client, requests_mock) -> None:
    requests_mock.get("https://www.google.com/", status_code=200)
    requests_mock.get("http://lan.test/", exc=requests.ConnectTimeout("timed out"))

    response = client.post("/api/network/check")

    assert response.status_code == 200
    hosts = response.json()["hosts"]
    assert hosts["internet"] == {"state": "online", "description": "Online - HTTP 200"}
    assert hosts["lan"]["state"] == "offline"
    assert hosts["custom"]["state"] == "disabled"


def test_set_air_quality(client) -> None:
    response = client.post("/api/aqi", {"aqi": 120}, content_type="application/json")

    assert response.status_code == 200
    assert response.json() == {"airQualityIndex": 120, "airQuality": "Unhealthy for Sensitive Groups"}
    attributes = client.get("/api/devices/virtual-aqi/attributes").json()["attributes"]
    assert attributes["airQuality"] == "Unhealthy for Sensitive Groups"


def test_set_air_quality_reports_parsed_index(client) -> None:
    response = client.post("/api/aqi", {"aqi": " 42 "}, content_type="application/json")

    assert response.status_code == 200
    assert response.json() == {"airQualityIndex": 42, "airQuality": "Good"}


@pytest.mark.parametrize("body", [{"aqi": "high"}, {}])
def test_set_air_quality_validates_input(client, body) -> None:
    response = client.post("/api/aqi", body, content_type="application/json")

    assert response.status_code == 400
    assert "detail" in response.json()


def test_poll_station_command_prints_updates(station) -> None:
    out = StringIO()

    call_command("poll_station", "--fields", stdout=out)

    payload = json.loads(out.getvalue())
    assert {"name": "uvIndex", "value": 2} in payload["updates"]
    assert "atlas_windGust" in payload["discovered"]


def test_no_database_is_configured() -> None:
    assert settings.DATABASES.get("default", {}).get("ENGINE", "django.db.backends.dummy") == "django.db.backends.dummy"
