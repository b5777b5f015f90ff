"""REST API views over the registered drivers."""
from __future__ import annotations

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from backend.api.drivers import UnknownDevice, get_registry


def _serialize_statuses(statuses) -> dict:
    return {name: {"state": value.state, "description": value.description} for name, value in statuses.items()}


class DeviceListView(APIView):
    def get(self, request, *args, **kwargs):  # noqa: D401
        """Return the registered devices and their driver kind."""
        devices = get_registry().devices()
        return Response({"devices": [{"device": name, "driver": kind} for name, kind in sorted(devices.items())]})


class DeviceAttributesView(APIView):
    def get(self, request, device: str, *args, **kwargs):  # noqa: D401
        """Return the current attribute values of one device."""
        try:
            store = get_registry().store(device)
        except UnknownDevice:
            return Response({"detail": f"Unknown device: {device}"}, status=status.HTTP_404_NOT_FOUND)
        return Response({"device": device, "attributes": store.snapshot()})


class WeatherRefreshView(APIView):
    def post(self, request, *args, **kwargs):  # noqa: D401
        """Run one weather poll and return the attributes it changed."""
        driver = get_registry().weather
        if driver is None:
            return Response({"detail": "Weather station is not configured"}, status=status.HTTP_404_NOT_FOUND)
        updates = driver.refresh()
        return Response({"updates": [update.as_dict() for update in updates]})


class WeatherFieldsView(APIView):
    def get(self, request, *args, **kwargs):  # noqa: D401
        """Return the fields seen in the last poll, for picking extra fields."""
        driver = get_registry().weather
        if driver is None:
            return Response({"detail": "Weather station is not configured"}, status=status.HTTP_404_NOT_FOUND)
        return Response(
            {
                "discovered": sorted(driver.discovered_fields),
                "extra_fields": list(driver.config.extra_fields),
                "invalid_extra_fields": list(driver.invalid_extra_fields),
                "pull_all_fields": driver.config.pull_all_fields,
            }
        )


class NetworkCheckView(APIView):
    def post(self, request, *args, **kwargs):  # noqa: D401
        """Probe the configured hosts now."""
        statuses = get_registry().network.check_now()
        return Response({"hosts": _serialize_statuses(statuses)})


class AirQualityView(APIView):
    def post(self, request, *args, **kwargs):  # noqa: D401
        """Set the AQI from ``{"aqi": <number>}``."""
        if not isinstance(request.data, dict) or "aqi" not in request.data:
            return Response({"detail": "aqi is required"}, status=status.HTTP_400_BAD_REQUEST)
        sensor = get_registry().aqi
        level = sensor.set_air_quality_index(request.data["aqi"])
        if level is None:
            return Response({"detail": "aqi must be numeric"}, status=status.HTTP_400_BAD_REQUEST)
        aqi = sensor.store.current_value("airQualityIndex")
        return Response({"airQualityIndex": aqi, "airQuality": level}, status=status.HTTP_200_OK)
