"""API URL configuration."""
from __future__ import annotations

from django.urls import path

from backend.api.views import (
    AirQualityView,
    DeviceAttributesView,
    DeviceListView,
    NetworkCheckView,
    WeatherFieldsView,
    WeatherRefreshView,
)

urlpatterns = [
    path("devices", DeviceListView.as_view(), name="devices"),
    path("devices/<str:device>/attributes", DeviceAttributesView.as_view(), name="device-attributes"),
    path("weather/refresh", WeatherRefreshView.as_view(), name="weather-refresh"),
    path("weather/fields", WeatherFieldsView.as_view(), name="weather-fields"),
    path("network/check", NetworkCheckView.as_view(), name="network-check"),
    path("aqi", AirQualityView.as_view(), name="aqi"),
]
