from __future__ import annotations

import logging
from typing import FrozenSet, List, Optional, Tuple

from ..config import LogLevel, WeatherStationConfig, apply_log_level
from ..entities import AttributeUpdate
from ..hub import AttributeStore, Scheduler, send_event_if_changed
from ..providers.acuparse import AcuparseClient
from ..providers.base import FetchResult, RequestConfig
from ..sync import synchronize


class WeatherStationDriver:
    """Polls an Acuparse station and mirrors its dashboard into attributes."""

    POLL_JOB = "acuparse-poll"
    DEBUG_OFF_JOB = "acuparse-debug-off"

    def __init__(
        self,
        config: WeatherStationConfig,
        *,
        store: AttributeStore,
        scheduler: Scheduler,
        client: Optional[AcuparseClient] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config
        self.store = store
        self.scheduler = scheduler
        self.client = client or self._build_client(config)
        self._log = logger or logging.getLogger(self.__class__.__name__)
        self._discovered: FrozenSet[str] = frozenset()
        self._invalid_extra_fields: Tuple[str, ...] = ()
        apply_log_level(self._log, config.log_level)

    @staticmethod
    def _build_client(config: WeatherStationConfig) -> AcuparseClient:
        return AcuparseClient(config.host, config.port, request_config=RequestConfig(timeout=config.timeout))

    # Lifecycle ----------------------------------------------------------
    def initialize(self) -> List[AttributeUpdate]:
        self._log.info("Initializing with interval: %s seconds", self.config.poll_interval)
        if self.config.log_level is LogLevel.DEBUG:
            self._log.debug("Debug logging will auto-disable in %s seconds.", self.config.debug_log_timeout)
            self.scheduler.run_in(self.config.debug_log_timeout, self.disable_debug_logging, self.DEBUG_OFF_JOB)
        return self.poll()

    def updated(self, config: WeatherStationConfig) -> List[AttributeUpdate]:
        self.shutdown()
        if (config.host, config.port, config.timeout) != (self.config.host, self.config.port, self.config.timeout):
            self.client = self._build_client(config)
        self.config = config
        apply_log_level(self._log, config.log_level)
        return self.initialize()

    def shutdown(self) -> None:
        self.scheduler.unschedule(self.POLL_JOB)
        self.scheduler.unschedule(self.DEBUG_OFF_JOB)

    def disable_debug_logging(self) -> None:
        if self.config.log_level is LogLevel.DEBUG:
            self.config = self.config.model_copy(update={"log_level": LogLevel.INFO})
            apply_log_level(self._log, LogLevel.INFO)
            self._log.info("Debug logging disabled automatically after %s seconds.", self.config.debug_log_timeout)

    # Commands -----------------------------------------------------------
    def refresh(self) -> List[AttributeUpdate]:
        return self.poll()

    def poll(self) -> List[AttributeUpdate]:
        """Run one poll cycle and schedule the next one, whatever happens."""
        try:
            return self._poll_once()
        except Exception as exc:  # noqa: BLE001 - a broken cycle must not stop the schedule
            self._log.warning("Weather poll error: %s", exc, exc_info=exc)
            return []
        finally:
            self.scheduler.run_in(self.config.poll_interval, self.poll, self.POLL_JOB)

    @property
    def discovered_fields(self) -> FrozenSet[str]:
        return self._discovered

    @property
    def invalid_extra_fields(self) -> Tuple[str, ...]:
        return self._invalid_extra_fields

    # Helpers ------------------------------------------------------------
    def _poll_once(self) -> List[AttributeUpdate]:
        emitted: List[AttributeUpdate] = []
        healthy = self._poll_health(emitted)
        if not healthy and not self.config.fetch_on_health_failure:
            return emitted

        result, snapshot = self.client.dashboard()
        if snapshot is None:
            self._warn_fetch("weather data", result)
            return emitted

        prior = self.store.snapshot()
        sync = synchronize(snapshot, self.config.policy(), prior, log=self._log)
        self._discovered = sync.discovered
        self._invalid_extra_fields = sync.invalid_extra_fields
        for update in sync.updates:
            self.store.send_event(update.name, update.value)
            self._log.info("Updated %s = %s", update.name, update.value)
            emitted.append(update)
        if not sync.updates:
            self._log.debug("No attribute changes this cycle")
        return emitted

    def _poll_health(self, emitted: List[AttributeUpdate]) -> bool:
        result, health = self.client.health()
        if health is None:
            self._warn_fetch("health data", result)
            return False
        for name, value in (("systemStatus", health.status), ("realtimeStatus", health.realtime)):
            if value is None:
                continue
            if send_event_if_changed(self.store, name, value, log=self._log):
                emitted.append(AttributeUpdate(name=name, value=value))
        return True

    def _warn_fetch(self, what: str, result: FetchResult) -> None:
        if result.status_code is not None:
            self._log.warning("Failed to fetch %s - Status: %s (%s)", what, result.status_code, result.message)
        else:
            kind = result.error_kind.value if result.error_kind else "unknown"
            self._log.warning("Failed to fetch %s - %s: %s", what, kind, result.message)


__all__ = ["WeatherStationDriver"]
