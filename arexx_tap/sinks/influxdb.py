# arexx_tap/sinks/influxdb.py
from __future__ import annotations

import logging
from typing import Optional

import httpx

from arexx_tap.core.errors import SinkError
from arexx_tap.model.reading import Reading


def _escape_measurement(name: str) -> str:
    return name.replace(",", r"\,").replace(" ", r"\ ")


def format_line(measurement: str, reading: Reading) -> str:
    """
    One line-protocol point:
      <measurement>,sensor_id=<id> temperature=<f>,raw_value=<n>[,signal_quality=<n>] <unix_ns>
    """
    fields = [
        f"temperature={float(reading.temperature)!r}",
        f"raw_value={int(reading.raw_value)}",
    ]
    if reading.signal_quality is not None:
        fields.append(f"signal_quality={int(reading.signal_quality)}")

    return (
        f"{_escape_measurement(measurement)},sensor_id={int(reading.sensor_id)} "
        f"{','.join(fields)} {reading.unix_ns}"
    )


class InfluxDbSink:
    """
    Pushes each reading as one line-protocol point to an InfluxDB HTTP
    write endpoint (`/write?db=<bucket>&precision=ns`, token auth).
    """

    kind = "InfluxDB"

    def __init__(
        self,
        url: str,
        bucket: str,
        token: str,
        measurement_base: str,
        *,
        timeout_s: float = 10.0,
        client: Optional[httpx.Client] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.url = url.rstrip("/")
        self.bucket = bucket
        self.measurement_base = measurement_base
        self._log = logger or logging.getLogger(__name__)

        self._client = client or httpx.Client(timeout=timeout_s)
        self._headers = {
            "Authorization": f"Token {token}",
            "Content-Type": "text/plain; charset=utf-8",
        }

    def measurement_name(self, sensor_id: int) -> str:
        return f"{self.measurement_base}.{int(sensor_id)}"

    def persist(self, reading: Reading) -> None:
        line = format_line(self.measurement_name(reading.sensor_id), reading)
        try:
            resp = self._client.post(
                f"{self.url}/write",
                params={"db": self.bucket, "precision": "ns"},
                headers=self._headers,
                content=line.encode("utf-8"),
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise SinkError(
                self.kind,
                f"InfluxDB rejected point for sensor {reading.sensor_id}: HTTP {e.response.status_code}",
                hint=e.response.text[:200],
                details={"url": self.url, "bucket": self.bucket, "sensor_id": reading.sensor_id},
            ) from None
        except httpx.HTTPError as e:
            raise SinkError(
                self.kind,
                f"InfluxDB write failed ({self.url}): {e}",
                details={"url": self.url, "bucket": self.bucket, "sensor_id": reading.sensor_id},
            ) from None

        self._log.debug("INFLUX_WRITE_OK sensor_id=%s", reading.sensor_id)

    def close(self) -> None:
        self._client.close()

    def __repr__(self) -> str:
        return f"InfluxDbSink({self.url!r})"
