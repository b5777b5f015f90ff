from __future__ import annotations

import logging

import pytest

from hubdrivers.config import (
    ConfigError,
    LogLevel,
    apply_log_level,
    load_aqi_config,
    load_network_config,
    load_weather_config,
    split_field_list,
)


def test_weather_config_from_environment() -> None:
    config = load_weather_config(
        {
            "ACUPARSE_HOST": " 10.0.0.5 ",
            "ACUPARSE_PORT": "8080",
            "ACUPARSE_UPDATE_INTERVAL": "120",
            "ACUPARSE_PULL_ALL_FIELDS": "true",
            "ACUPARSE_EXTRA_FIELDS": "main_dewptF, atlas_windGust,,main_dewptF",
            "ACUPARSE_TIMEZONE": "America/Denver",
            "ACUPARSE_LOG_LEVEL": "Debug",
        }
    )

    assert config.host == "10.0.0.5"
    assert config.port == 8080
    assert config.poll_interval == 120
    assert config.pull_all_fields is True
    assert config.extra_fields == ("main_dewptF", "atlas_windGust")
    assert config.log_level is LogLevel.DEBUG

    policy = config.policy()
    assert policy.pull_all is True
    assert policy.timezone == "America/Denver"
    assert "main_sunrise" in policy.timestamp_fields


def test_weather_config_defaults() -> None:
    config = load_weather_config({"ACUPARSE_HOST": "station"})

    assert config.port == 80
    assert config.poll_interval == 60
    assert config.fetch_on_health_failure is False
    assert "main_tempF" in config.policy().core_fields


@pytest.mark.parametrize(
    "environ",
    [
        {},
        {"ACUPARSE_HOST": "station", "ACUPARSE_PORT": "70000"},
        {"ACUPARSE_HOST": "station", "ACUPARSE_UPDATE_INTERVAL": "0"},
        {"ACUPARSE_HOST": "station", "ACUPARSE_TIMEZONE": "Not/AZone"},
        {"ACUPARSE_HOST": "station", "ACUPARSE_LOG_LEVEL": "verbose"},
    ],
)
def test_invalid_weather_config_is_rejected(environ) -> None:
    with pytest.raises(ConfigError):
        load_weather_config(environ)


def test_overrides_take_precedence() -> None:
    config = load_weather_config({"ACUPARSE_HOST": "station"}, extra_fields=["a", " b "])

    assert config.extra_fields == ("a", "b")


def test_network_config_defaults() -> None:
    config = load_network_config({})

    assert config.internet_host == "https://www.google.com"
    assert config.check_lan is True
    assert config.check_custom is True
    assert config.check_interval == 300
    assert config.treat_refused_as_online is False


def test_network_config_flags_from_environment() -> None:
    config = load_network_config({"NETMON_CHECK_LAN": "false", "NETMON_TREAT_REFUSED_AS_ONLINE": "1"})

    assert config.check_lan is False
    assert config.treat_refused_as_online is True


def test_aqi_config_defaults_to_debug_logging() -> None:
    assert load_aqi_config({}).log_level is LogLevel.DEBUG


def test_split_field_list() -> None:
    assert split_field_list(None) == ()
    assert split_field_list(" a , b ,a") == ("a", "b")
    assert split_field_list(["x", "", "y"]) == ("x", "y")


def test_apply_log_level_off_disables_logger() -> None:
    logger = logging.getLogger("config_test.silenced")

    apply_log_level(logger, LogLevel.OFF)
    assert logger.disabled

    apply_log_level(logger, LogLevel.WARN)
    assert not logger.disabled
    assert logger.level == logging.WARNING
