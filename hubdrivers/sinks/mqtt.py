"""MQTT publisher that mirrors attribute events to a broker."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional
from uuid import uuid4

import paho.mqtt.client as mqtt

from ..entities import AttributeEvent
from ..hub import ListenerMixin

logger = logging.getLogger(__name__)


@dataclass
class MQTTConfig:
    host: str = field(default_factory=lambda: os.getenv("MQTT_HOST", "localhost"))
    port: int = field(default_factory=lambda: int(os.getenv("MQTT_PORT", "1883")))
    username: Optional[str] = field(default_factory=lambda: os.getenv("MQTT_USERNAME"))
    password: Optional[str] = field(default_factory=lambda: os.getenv("MQTT_PASSWORD"))
    keepalive: int = field(default_factory=lambda: int(os.getenv("MQTT_KEEPALIVE", "60")))
    client_id: str = field(default_factory=lambda: os.getenv("MQTT_CLIENT_ID", f"hubdrivers-{uuid4().hex[:8]}"))
    topic_prefix: str = field(default_factory=lambda: os.getenv("MQTT_TOPIC_PREFIX", "hub/devices"))
    retain: bool = True


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    return str(value)


def event_topic(prefix: str, event: AttributeEvent) -> str:
    return f"{prefix.rstrip('/')}/{event.device}/{event.name}"


def event_payload(event: AttributeEvent) -> bytes:
    return json.dumps(event.as_dict(), default=_json_default, sort_keys=True).encode("utf-8")


class MQTTAttributePublisher:
    """Publishes every accepted attribute write as a retained JSON message."""

    def __init__(self, config: Optional[MQTTConfig] = None, client: Optional[Any] = None) -> None:
        self.config = config or MQTTConfig()
        self.client = client or mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=self.config.client_id,
        )
        if self.config.username:
            self.client.username_pw_set(self.config.username, self.config.password)
        self.client.on_connect = self._on_connect
        self._connected = False

    # -- MQTT callbacks -------------------------------------------------
    def _on_connect(self, client, userdata, flags, reason_code, properties=None):  # type: ignore[override]
        if reason_code != 0:
            logger.error("Failed to connect to MQTT broker: rc=%s", reason_code)
            return
        self._connected = True
        logger.info("Connected to MQTT broker %s:%s", self.config.host, self.config.port)

    # -- Public API -----------------------------------------------------
    def attach(self, store: ListenerMixin) -> None:
        store.subscribe(self.publish)

    def detach(self, store: ListenerMixin) -> None:
        store.unsubscribe(self.publish)

    def start(self) -> None:
        self.client.connect(self.config.host, self.config.port, self.config.keepalive)
        logger.info("Starting MQTT network loop")
        self.client.loop_start()

    def stop(self) -> None:
        logger.info("Stopping MQTT network loop")
        self.client.loop_stop()
        self.client.disconnect()
        self._connected = False

    def publish(self, event: AttributeEvent) -> None:
        topic = event_topic(self.config.topic_prefix, event)
        info = self.client.publish(topic, event_payload(event), qos=0, retain=self.config.retain)
        rc = getattr(info, "rc", 0)
        if rc != 0:
            logger.warning("Publishing %s failed: rc=%s", topic, rc)
        else:
            logger.debug("Published %s", topic)


__all__ = ["MQTTConfig", "MQTTAttributePublisher", "event_topic", "event_payload"]
