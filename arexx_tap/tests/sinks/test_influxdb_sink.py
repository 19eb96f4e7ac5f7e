from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest

from arexx_tap.core.errors import SinkError
from arexx_tap.model.reading import Reading
from arexx_tap.sinks.influxdb import InfluxDbSink, format_line


def _reading(**kw) -> Reading:
    base = dict(
        sensor_id=1111,
        sensor_name="Outdoors",
        timestamp=datetime(2000, 1, 1, 0, 0, 1, tzinfo=timezone.utc),
        raw_value=100,
        temperature=0.85,
    )
    base.update(kw)
    return Reading(**base)


def _sink(handler) -> InfluxDbSink:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return InfluxDbSink("http://influx:8086/", "iobroker", "secret", "mqtt.0.temp", client=client)


def test_format_line_without_signal_quality():
    line = format_line("mqtt.0.temp.1111", _reading())
    assert line == "mqtt.0.temp.1111,sensor_id=1111 temperature=0.85,raw_value=100 946684801000000000"


def test_format_line_with_signal_quality_and_escaping():
    line = format_line("my temp,x", _reading(signal_quality=42))
    assert line.startswith(r"my\ temp\,x,sensor_id=1111 ")
    assert "temperature=0.85,raw_value=100,signal_quality=42 " in line


def test_persist_posts_line_protocol_with_token():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = request.url
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = request.content.decode("utf-8")
        return httpx.Response(204)

    sink = _sink(handler)
    sink.persist(_reading())
    sink.close()

    assert seen["url"].path == "/write"
    assert seen["url"].params["db"] == "iobroker"
    assert seen["url"].params["precision"] == "ns"
    assert seen["auth"] == "Token secret"
    assert seen["body"].startswith("mqtt.0.temp.1111,sensor_id=1111 ")


def test_http_error_status_raises_sink_error():
    sink = _sink(lambda request: httpx.Response(401, text="unauthorized"))

    with pytest.raises(SinkError) as ei:
        sink.persist(_reading())

    assert ei.value.kind == "InfluxDB"
    assert "401" in ei.value.message


def test_connection_error_raises_sink_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(SinkError):
        _sink(handler).persist(_reading())


def test_measurement_name_is_base_plus_sensor():
    sink = _sink(lambda request: httpx.Response(204))
    assert sink.measurement_name(2222) == "mqtt.0.temp.2222"
