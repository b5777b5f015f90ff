"""Management command that runs every driver on its own schedule."""
from __future__ import annotations

import logging
import signal
import threading
from typing import Any, Optional

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from backend.api.drivers import DriverRegistry, build_registry
from hubdrivers.config import ConfigError
from hubdrivers.hub import ThreadingScheduler
from hubdrivers.sinks.mqtt import MQTTAttributePublisher

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Initialize all drivers and keep polling until interrupted"

    def add_arguments(self, parser) -> None:  # noqa: D401
        parser.add_argument("--no-mqtt", action="store_true", help="Do not publish attribute events to MQTT")

    def handle(self, *args: Any, **options: Any) -> None:  # noqa: D401
        try:
            registry = build_registry(ThreadingScheduler())
        except ConfigError as exc:
            raise CommandError(f"Invalid driver configuration: {exc}") from exc

        publisher: Optional[MQTTAttributePublisher] = None
        if settings.MQTT_ENABLED and not options.get("no_mqtt"):
            publisher = MQTTAttributePublisher()
            for store in registry.stores.values():
                publisher.attach(store)
            publisher.start()

        stop = threading.Event()
        self._install_signal_handlers(stop)
        self._initialize(registry)
        logger.info("Drivers running: %s", ", ".join(sorted(registry.devices())))
        try:
            stop.wait()
        finally:
            registry.shutdown()
            if publisher is not None:
                publisher.stop()

    @staticmethod
    def _initialize(registry: DriverRegistry) -> None:
        registry.aqi.initialize()
        registry.aqi.updated()
        registry.network.initialize()
        if registry.weather is not None:
            registry.weather.initialize()

    @staticmethod
    def _install_signal_handlers(stop: threading.Event) -> None:
        def _handle_signal(signum, frame):
            logger.info("Received signal %s, shutting down", signum)
            stop.set()

        signal.signal(signal.SIGINT, _handle_signal)
        signal.signal(signal.SIGTERM, _handle_signal)
