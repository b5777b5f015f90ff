from __future__ import annotations

import json
from decimal import Decimal
from types import SimpleNamespace

from hubdrivers.hub import InMemoryAttributeStore
from hubdrivers.sinks.mqtt import MQTTAttributePublisher, MQTTConfig


class FakeClient:
    def __init__(self, rc: int = 0) -> None:
        self.rc = rc
        self.published = []
        self.credentials = None
        self.on_connect = None

    def username_pw_set(self, username, password) -> None:
        self.credentials = (username, password)

    def publish(self, topic, payload, qos=0, retain=False):
        self.published.append((topic, json.loads(payload), retain))
        return SimpleNamespace(rc=self.rc)


def make_publisher(client: FakeClient, **overrides) -> MQTTAttributePublisher:
    values = {"host": "broker.test", "client_id": "test", "topic_prefix": "hub/devices/"}
    values.update(overrides)
    return MQTTAttributePublisher(MQTTConfig(**values), client=client)


def test_attribute_events_are_published_retained() -> None:
    client = FakeClient()
    store = InMemoryAttributeStore("acuparse")
    make_publisher(client).attach(store)

    store.send_event("temperatureF", 72.5)

    topic, payload, retain = client.published[0]
    assert topic == "hub/devices/acuparse/temperatureF"
    assert payload["value"] == 72.5
    assert payload["device"] == "acuparse"
    assert payload["timestamp"].endswith("Z")
    assert retain is True


def test_decimal_values_are_encoded_as_numbers() -> None:
    client = FakeClient()
    store = InMemoryAttributeStore("virtual-aqi")
    make_publisher(client).attach(store)

    store.send_event("airQualityIndex", Decimal("42"))
    store.send_event("airQualityIndex", Decimal("42.5"))

    assert [payload["value"] for _, payload, _ in client.published] == [42, 42.5]


def test_detach_stops_publishing() -> None:
    client = FakeClient()
    store = InMemoryAttributeStore("dev")
    publisher = make_publisher(client)
    publisher.attach(store)
    publisher.detach(store)

    store.send_event("lan", "online")

    assert client.published == []


def test_credentials_are_applied() -> None:
    client = FakeClient()

    make_publisher(client, username="hub", password="secret")

    assert client.credentials == ("hub", "secret")


def test_failed_publish_is_logged(caplog) -> None:
    client = FakeClient(rc=4)
    store = InMemoryAttributeStore("dev")
    make_publisher(client).attach(store)

    store.send_event("lan", "offline")

    assert "Publishing hub/devices/dev/lan failed" in caplog.text
