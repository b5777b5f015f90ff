"""Builds the driver set for the Django process from settings and env."""
from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, Optional

from django.conf import settings
from django.core.cache import caches

from backend.core.attribute_store import CacheAttributeStore
from hubdrivers.config import load_aqi_config, load_network_config, load_weather_config
from hubdrivers.hub import ManualScheduler, Scheduler
from hubdrivers.services.aqi import VirtualAirQualitySensor
from hubdrivers.services.network import NetworkMonitor
from hubdrivers.services.weather import WeatherStationDriver


class UnknownDevice(LookupError):
    """Raised when a request names a device that is not registered."""


@dataclass
class DriverRegistry:
    scheduler: Scheduler
    network: NetworkMonitor
    aqi: VirtualAirQualitySensor
    weather: Optional[WeatherStationDriver] = None
    stores: Dict[str, CacheAttributeStore] = field(default_factory=dict)

    def store(self, device: str) -> CacheAttributeStore:
        try:
            return self.stores[device]
        except KeyError:
            raise UnknownDevice(device) from None

    def devices(self) -> Dict[str, str]:
        kinds = {self.network.config.device: "network-monitor", self.aqi.config.device: "virtual-aqi"}
        if self.weather is not None:
            kinds[self.weather.config.device] = "acuparse"
        return kinds

    def shutdown(self) -> None:
        for driver in (self.weather, self.network, self.aqi):
            if driver is not None:
                driver.shutdown()


def build_registry(scheduler: Scheduler) -> DriverRegistry:
    cache = caches[settings.DRIVER_CACHE_ALIAS]
    timeout = settings.DRIVER_CACHE_TIMEOUT
    stores: Dict[str, CacheAttributeStore] = {}

    def store_for(device: str) -> CacheAttributeStore:
        stores[device] = CacheAttributeStore(device, cache, timeout)
        return stores[device]

    network_config = load_network_config()
    aqi_config = load_aqi_config()
    network = NetworkMonitor(network_config, store=store_for(network_config.device), scheduler=scheduler)
    aqi = VirtualAirQualitySensor(aqi_config, store=store_for(aqi_config.device), scheduler=scheduler)

    weather = None
    if settings.WEATHER_STATION_ENABLED:
        weather_config = load_weather_config()
        weather = WeatherStationDriver(weather_config, store=store_for(weather_config.device), scheduler=scheduler)

    return DriverRegistry(scheduler=scheduler, network=network, aqi=aqi, weather=weather, stores=stores)


@lru_cache(maxsize=1)
def get_registry() -> DriverRegistry:
    # Web workers never own timers; run_drivers does.
    return build_registry(ManualScheduler())


def reset_registry() -> None:
    get_registry.cache_clear()


__all__ = ["DriverRegistry", "UnknownDevice", "build_registry", "get_registry", "reset_registry"]
