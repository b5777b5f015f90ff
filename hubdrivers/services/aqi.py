from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from ..config import AirQualityConfig, LogLevel, apply_log_level
from ..hub import AttributeStore, Scheduler

# Upper bound (inclusive) of each US EPA category.
AQI_LEVELS = (
    (Decimal(50), "Good"),
    (Decimal(100), "Moderate"),
    (Decimal(150), "Unhealthy for Sensitive Groups"),
    (Decimal(200), "Unhealthy"),
    (Decimal(300), "Very Unhealthy"),
)
HAZARDOUS = "Hazardous"


def parse_aqi(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


def aqi_category(aqi: Decimal) -> str:
    for bound, label in AQI_LEVELS:
        if aqi <= bound:
            return label
    return HAZARDOUS


class VirtualAirQualitySensor:
    """AQI value set by command, with its qualitative category."""

    LOGS_OFF_JOB = "aqi-logs-off"

    def __init__(
        self,
        config: AirQualityConfig,
        *,
        store: AttributeStore,
        scheduler: Scheduler,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config
        self.store = store
        self.scheduler = scheduler
        self._log = logger or logging.getLogger(self.__class__.__name__)
        apply_log_level(self._log, config.log_level)

    def initialize(self) -> None:
        self._log.info("Virtual AQI sensor initialized")
        self.store.send_event("airQualityIndex", 0)
        self.store.send_event("airQuality", "Good")

    def updated(self, config: Optional[AirQualityConfig] = None) -> None:
        if config is not None:
            self.config = config
            apply_log_level(self._log, config.log_level)
        self._log.info("Preferences updated")
        if self.config.log_level is LogLevel.DEBUG:
            self.scheduler.run_in(self.config.debug_log_timeout, self.logs_off, self.LOGS_OFF_JOB)

    def shutdown(self) -> None:
        self.scheduler.unschedule(self.LOGS_OFF_JOB)

    def logs_off(self) -> None:
        self._log.warning("Debug logging disabled.")
        self.config = self.config.model_copy(update={"log_level": LogLevel.INFO})
        apply_log_level(self._log, LogLevel.INFO)

    def set_air_quality_index(self, value: Any) -> Optional[str]:
        aqi = parse_aqi(value)
        if aqi is None:
            self._log.error("Invalid AQI input: %r - must be numeric.", value)
            return None

        level = aqi_category(aqi)
        self.store.send_event("airQualityIndex", aqi)
        self.store.send_event("airQuality", level)
        if self.config.txt_enable:
            self._log.info("Air Quality Index set to %s (%s)", aqi, level)
        self._log.debug("Set AQI: %s | Level: %s", aqi, level)
        return level


__all__ = ["VirtualAirQualitySensor", "aqi_category", "parse_aqi", "AQI_LEVELS"]
