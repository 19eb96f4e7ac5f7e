from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

import arexx_tap.sinks.mqtt as mqtt_mod
from arexx_tap.core.errors import SinkError
from arexx_tap.model.reading import Reading


class FakeInfo:
    def __init__(self, rc: int):
        self.rc = rc


class FakeClient:
    def __init__(self, *args, **kwargs):
        self.args = args
        self.kwargs = kwargs
        self.connected_to = None
        self.loop_started = False
        self.loop_stopped = False
        self.disconnected = False
        self.published = []
        self.publish_rc = 0

    def connect_async(self, host, port, keepalive):
        self.connected_to = (host, port, keepalive)

    def loop_start(self):
        self.loop_started = True

    def loop_stop(self):
        self.loop_stopped = True

    def disconnect(self):
        self.disconnected = True

    def publish(self, topic, payload, qos=0, retain=False):
        self.published.append((topic, payload, qos, retain))
        return FakeInfo(self.publish_rc)


@pytest.fixture
def fake_client(monkeypatch):
    created = []

    def factory(*args, **kwargs):
        c = FakeClient(*args, **kwargs)
        created.append(c)
        return c

    monkeypatch.setattr(mqtt_mod.mqtt, "Client", factory)
    return created


def _reading() -> Reading:
    return Reading(
        sensor_id=1111,
        sensor_name="Outdoors",
        timestamp=datetime(2000, 1, 1, tzinfo=timezone.utc),
        raw_value=100,
        temperature=0.85,
    )


def test_connects_async_and_starts_loop(fake_client):
    sink = mqtt_mod.MqttSink("broker", 1883, "mqtt/0/arexx/", client_id="tap-1")
    c = fake_client[0]

    assert c.connected_to == ("broker", 1883, 5)
    assert c.loop_started
    assert c.kwargs["client_id"] == "tap-1"
    assert sink.topic_for(1111) == "mqtt/0/arexx/1111"


def test_publish_json_payload_on_sensor_topic(fake_client):
    sink = mqtt_mod.MqttSink("broker", 1883, "mqtt/0/arexx")
    sink.persist(_reading())

    topic, payload, qos, retain = fake_client[0].published[0]
    assert topic == "mqtt/0/arexx/1111"
    assert qos == 1 and retain is False
    assert json.loads(payload) == _reading().as_dict()


def test_publish_failure_raises_sink_error(fake_client):
    sink = mqtt_mod.MqttSink("broker", 1883, "t")
    fake_client[0].publish_rc = mqtt_mod.mqtt.MQTT_ERR_NO_CONN

    with pytest.raises(SinkError) as ei:
        sink.persist(_reading())
    assert ei.value.kind == "MQTT"


def test_close_disconnects_and_stops_loop(fake_client):
    sink = mqtt_mod.MqttSink("broker", 1883, "t")
    sink.close()

    c = fake_client[0]
    assert c.disconnected and c.loop_stopped
