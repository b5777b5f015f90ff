"""Reachability checks for the internet, a LAN host and a custom host."""
from __future__ import annotations

import logging
import re
from typing import Dict, Optional

from ..config import NetworkMonitorConfig, apply_log_level
from ..entities import HostStatus
from ..hub import AttributeStore, Scheduler, send_event_if_changed
from ..providers.base import ErrorKind, FetchResult, HttpClient, RequestConfig

ONLINE = "online"
OFFLINE = "offline"
DISABLED = "disabled"

_HTTP_PREFIX = re.compile(r"^http://", re.IGNORECASE)


def classify(result: FetchResult, treat_refused_as_online: bool = False) -> HostStatus:
    """Decide whether a probe means the host is up.

    Any HTTP response counts as online, whatever its status code. A refused
    connection only counts when ``treat_refused_as_online`` is set.
    """
    if result.responded:
        return HostStatus(ONLINE, f"Online - HTTP {result.status_code}")
    if result.error_kind is ErrorKind.CONNECTION_REFUSED and treat_refused_as_online:
        return HostStatus(ONLINE, "Online - Connection refused")
    return HostStatus(OFFLINE, f"Offline - {result.message or 'Unknown error'}")


class NetworkMonitor:
    CHECK_JOB = "network-check"

    def __init__(
        self,
        config: NetworkMonitorConfig,
        *,
        store: AttributeStore,
        scheduler: Scheduler,
        client: Optional[HttpClient] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config
        self.store = store
        self.scheduler = scheduler
        self.client = client or self._build_client(config)
        self._log = logger or logging.getLogger(self.__class__.__name__)
        apply_log_level(self._log, config.log_level)

    @staticmethod
    def _build_client(config: NetworkMonitorConfig) -> HttpClient:
        return HttpClient(request_config=RequestConfig(timeout=config.timeout, verify_ssl=config.verify_ssl))

    # Lifecycle ----------------------------------------------------------
    def initialize(self) -> Dict[str, HostStatus]:
        self._log.info("Initializing network monitor...")
        self.store.send_event("checkInterval", self.config.check_interval, unit="sec")
        return self.check_connectivity()

    def updated(self, config: NetworkMonitorConfig) -> Dict[str, HostStatus]:
        self.shutdown()
        if (config.timeout, config.verify_ssl) != (self.config.timeout, self.config.verify_ssl):
            self.client = self._build_client(config)
        self.config = config
        apply_log_level(self._log, config.log_level)
        return self.initialize()

    def shutdown(self) -> None:
        self.scheduler.unschedule(self.CHECK_JOB)

    # Commands -----------------------------------------------------------
    def check_now(self) -> Dict[str, HostStatus]:
        self._log.info("Manual network check triggered")
        return self.check_connectivity()

    def check_connectivity(self) -> Dict[str, HostStatus]:
        self._log.info("Running connectivity check...")
        try:
            statuses = {"internet": self.check_host("internet", self.config.internet_host or "https://www.google.com")}
            statuses["lan"] = self._optional_check("lan", "LAN", self.config.check_lan, self.config.lan_host)
            statuses["custom"] = self._optional_check(
                "custom", "Custom", self.config.check_custom, self.config.custom_host
            )
            return statuses
        finally:
            self._log.info("Scheduling next check in %s seconds", self.config.check_interval)
            self.scheduler.run_in(self.config.check_interval, self.check_connectivity, self.CHECK_JOB)

    def check_host(self, attribute: str, url: str) -> HostStatus:
        result = self.client.fetch(url, expect_json=False)
        if result.error_kind is ErrorKind.PROTOCOL and _HTTP_PREFIX.match(url):
            https_url = _HTTP_PREFIX.sub("https://", url)
            self._log.warning("%s HTTP failed, retrying as HTTPS: %s", attribute.upper(), https_url)
            result = self.client.fetch(https_url, expect_json=False)
            url = https_url

        status = classify(result, self.config.treat_refused_as_online)
        if status.state == ONLINE:
            self._log.info("%s check OK: %s (%s)", attribute.upper(), status.description, url)
        else:
            self._log.warning("%s unreachable: %s (%s)", attribute.upper(), result.message, url)
        send_event_if_changed(self.store, attribute, status.state, status.description, log=self._log)
        return status

    def _optional_check(self, attribute: str, label: str, enabled: bool, host: str) -> HostStatus:
        if not enabled:
            status = HostStatus(DISABLED, f"{label} check is disabled")
        elif not host:
            self._log.warning("%s check enabled but no host specified", label)
            status = HostStatus(OFFLINE, f"{label} host not specified")
        else:
            return self.check_host(attribute, host)
        send_event_if_changed(self.store, attribute, status.state, status.description, log=self._log)
        return status


__all__ = ["NetworkMonitor", "classify", "ONLINE", "OFFLINE", "DISABLED"]
