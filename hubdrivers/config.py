"""Typed driver configuration, validated once at load time."""
from __future__ import annotations

import enum
import logging
import os
from typing import Any, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from .entities import DEFAULT_CORE_FIELDS, DEFAULT_TIMESTAMP_FIELDS, FieldPolicy
from .timestamps import TimestampError, resolve_timezone


class ConfigError(ValueError):
    """Raised when driver settings are missing or invalid."""


class LogLevel(str, enum.Enum):
    OFF = "off"
    WARN = "warn"
    INFO = "info"
    DEBUG = "debug"

    @classmethod
    def parse(cls, value: Any) -> "LogLevel":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        if text == "warning":
            text = "warn"
        try:
            return cls(text)
        except ValueError as exc:
            raise ValueError(f"unknown log level: {value!r}") from exc

    @property
    def logging_level(self) -> int:
        return {
            LogLevel.OFF: logging.CRITICAL + 10,
            LogLevel.WARN: logging.WARNING,
            LogLevel.INFO: logging.INFO,
            LogLevel.DEBUG: logging.DEBUG,
        }[self]


def apply_log_level(logger: logging.Logger, level: LogLevel) -> None:
    logger.setLevel(level.logging_level)
    logger.disabled = level is LogLevel.OFF


def split_field_list(value: Any) -> Tuple[str, ...]:
    """Accept ``"a, b"`` or ``["a", "b"]`` and return unique stripped names."""
    if value is None:
        return ()
    items = value.split(",") if isinstance(value, str) else list(value)
    names = []
    for item in items:
        name = str(item).strip()
        if name and name not in names:
            names.append(name)
    return tuple(names)


class _DriverConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    log_level: LogLevel = LogLevel.INFO

    @field_validator("log_level", mode="before")
    @classmethod
    def _parse_log_level(cls, value: Any) -> LogLevel:
        return LogLevel.parse(value)


class WeatherStationConfig(_DriverConfig):
    device: str = "acuparse"
    host: str
    port: int = 80
    update_interval: int = 60
    min_update_interval: int = 10
    timeout: float = 10.0
    pull_all_fields: bool = False
    extra_fields: Tuple[str, ...] = ()
    core_fields: Tuple[str, ...] = tuple(sorted(DEFAULT_CORE_FIELDS))
    timestamp_fields: Tuple[str, ...] = tuple(sorted(DEFAULT_TIMESTAMP_FIELDS))
    timezone: str = "UTC"
    fetch_on_health_failure: bool = False
    debug_log_timeout: int = 300

    @field_validator("host")
    @classmethod
    def _check_host(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("host must be provided")
        return value

    @field_validator("port")
    @classmethod
    def _check_port(cls, value: int) -> int:
        if not 0 < value < 65536:
            raise ValueError("port must be between 1 and 65535")
        return value

    @field_validator("update_interval", "min_update_interval")
    @classmethod
    def _check_interval(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("intervals must be positive")
        return value

    @field_validator("extra_fields", "core_fields", "timestamp_fields", mode="before")
    @classmethod
    def _split_fields(cls, value: Any) -> Tuple[str, ...]:
        return split_field_list(value)

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            resolve_timezone(value)
        except TimestampError as exc:
            raise ValueError(str(exc)) from exc
        return value

    @property
    def poll_interval(self) -> int:
        return max(self.update_interval, self.min_update_interval)

    def policy(self) -> FieldPolicy:
        return FieldPolicy.build(
            pull_all=self.pull_all_fields,
            core_fields=self.core_fields,
            extra_fields=self.extra_fields,
            timestamp_fields=self.timestamp_fields,
            timezone=self.timezone,
        )


class NetworkMonitorConfig(_DriverConfig):
    device: str = "network-monitor"
    internet_host: str = "https://www.google.com"
    check_lan: bool = True
    lan_host: str = ""
    check_custom: bool = True
    custom_host: str = ""
    check_interval: int = 300
    treat_refused_as_online: bool = False
    verify_ssl: bool = False
    timeout: float = 10.0

    @field_validator("internet_host", "lan_host", "custom_host", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> str:
        return str(value or "").strip()

    @field_validator("check_interval")
    @classmethod
    def _check_interval(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("check_interval must be positive")
        return value


class AirQualityConfig(_DriverConfig):
    device: str = "virtual-aqi"
    log_level: LogLevel = LogLevel.DEBUG
    txt_enable: bool = True
    debug_log_timeout: int = 1800

    @model_validator(mode="after")
    def _check_timeout(self) -> "AirQualityConfig":
        if self.debug_log_timeout <= 0:
            raise ValueError("debug_log_timeout must be positive")
        return self


def _build(model: type, values: Mapping[str, Any]) -> Any:
    try:
        return model(**values)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc


def _read(environ: Mapping[str, str], prefix: str, fields: Mapping[str, str]) -> dict:
    values = {}
    for variable, field in fields.items():
        raw = environ.get(prefix + variable)
        if raw is not None and raw != "":
            values[field] = raw
    return values


def load_weather_config(environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> WeatherStationConfig:
    environ = os.environ if environ is None else environ
    values = _read(
        environ,
        "ACUPARSE_",
        {
            "DEVICE": "device",
            "HOST": "host",
            "PORT": "port",
            "UPDATE_INTERVAL": "update_interval",
            "MIN_UPDATE_INTERVAL": "min_update_interval",
            "TIMEOUT": "timeout",
            "LOG_LEVEL": "log_level",
            "PULL_ALL_FIELDS": "pull_all_fields",
            "EXTRA_FIELDS": "extra_fields",
            "TIMEZONE": "timezone",
            "FETCH_ON_HEALTH_FAILURE": "fetch_on_health_failure",
        },
    )
    values.update(overrides)
    if "host" not in values:
        raise ConfigError("ACUPARSE_HOST is required")
    return _build(WeatherStationConfig, values)


def load_network_config(environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> NetworkMonitorConfig:
    environ = os.environ if environ is None else environ
    values = _read(
        environ,
        "NETMON_",
        {
            "DEVICE": "device",
            "INTERNET_HOST": "internet_host",
            "CHECK_LAN": "check_lan",
            "LAN_HOST": "lan_host",
            "CHECK_CUSTOM": "check_custom",
            "CUSTOM_HOST": "custom_host",
            "CHECK_INTERVAL": "check_interval",
            "TREAT_REFUSED_AS_ONLINE": "treat_refused_as_online",
            "VERIFY_SSL": "verify_ssl",
            "TIMEOUT": "timeout",
            "LOG_LEVEL": "log_level",
        },
    )
    values.update(overrides)
    return _build(NetworkMonitorConfig, values)


def load_aqi_config(environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> AirQualityConfig:
    environ = os.environ if environ is None else environ
    values = _read(
        environ,
        "AQI_",
        {"DEVICE": "device", "LOG_LEVEL": "log_level", "TXT_ENABLE": "txt_enable"},
    )
    values.update(overrides)
    return _build(AirQualityConfig, values)


__all__ = [
    "ConfigError",
    "LogLevel",
    "apply_log_level",
    "split_field_list",
    "WeatherStationConfig",
    "NetworkMonitorConfig",
    "AirQualityConfig",
    "load_weather_config",
    "load_network_config",
    "load_aqi_config",
]
