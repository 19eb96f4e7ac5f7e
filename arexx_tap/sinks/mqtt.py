# arexx_tap/sinks/mqtt.py
from __future__ import annotations

import json
import logging
from typing import Optional

import paho.mqtt.client as mqtt

from arexx_tap.core.errors import SinkError
from arexx_tap.model.reading import Reading


class MqttSink:
    """
    Publishes each reading as JSON on `<topic_base>/<sensor_id>`.

    The client connects asynchronously and runs paho's network loop in its
    own thread; messages published while the broker is unreachable are
    queued by paho (QoS >= 1) or rejected (QoS 0).
    """

    kind = "MQTT"

    def __init__(
        self,
        host: str,
        port: int,
        topic_base: str,
        *,
        client_id: str = "arexx-tap",
        qos: int = 1,
        keepalive_s: int = 5,
        logger: Optional[logging.Logger] = None,
    ):
        self.host = host
        self.port = int(port)
        self.topic_base = topic_base.rstrip("/")
        self.qos = int(qos)
        self._log = logger or logging.getLogger(__name__)

        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect

        try:
            self.client.connect_async(self.host, self.port, keepalive_s)
            self.client.loop_start()
        except (OSError, ValueError) as e:
            raise SinkError(
                self.kind,
                f"Cannot start MQTT client for {self.host}:{self.port}.",
                hint=str(e),
                details={"host": self.host, "port": self.port},
            ) from None

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code == 0:
            self._log.info("MQTT_CONNECTED host=%s port=%s", self.host, self.port)
        else:
            self._log.warning("MQTT_CONNECT_FAILED host=%s rc=%s", self.host, reason_code)

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        self._log.info("MQTT_DISCONNECTED host=%s rc=%s", self.host, reason_code)

    def topic_for(self, sensor_id: int) -> str:
        return f"{self.topic_base}/{int(sensor_id)}"

    def persist(self, reading: Reading) -> None:
        topic = self.topic_for(reading.sensor_id)
        payload = json.dumps(reading.as_dict(), ensure_ascii=False)

        info = self.client.publish(topic, payload, qos=self.qos, retain=False)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise SinkError(
                self.kind,
                f"MQTT publish to {topic} failed: {mqtt.error_string(info.rc)}",
                details={"topic": topic, "rc": info.rc, "sensor_id": reading.sensor_id},
            )

    def close(self) -> None:
        try:
            self.client.disconnect()
        finally:
            self.client.loop_stop()

    def __repr__(self) -> str:
        return f"MqttSink({self.host!r}:{self.port})"
