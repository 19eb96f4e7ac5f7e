# arexx_tap/app/config.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Optional, Tuple, Union

from arexx_tap.model.sensor import SensorConfig


@dataclass(frozen=True)
class DeviceConfig:
    vid: int = 0x0451
    pid: int = 0x3211
    port: Optional[str] = None
    baudrate: int = 115200
    timeout_s: float = 30.0


@dataclass(frozen=True)
class LogConfig:
    enabled: bool = False
    directory: str = "."
    prefix: str = "arexx-tap"
    level: str = "info"


@dataclass(frozen=True)
class DispatchConfig:
    queue_size: int = 256
    drain_timeout_s: float = 5.0


@dataclass(frozen=True)
class DataFileSinkConfig:
    kind: ClassVar[str] = "DataFile"
    enabled: bool
    file: str


@dataclass(frozen=True)
class InfluxDbSinkConfig:
    kind: ClassVar[str] = "InfluxDB"
    enabled: bool
    url: str
    bucket: str
    token: str
    measurement_base: str
    timeout_s: float = 10.0

    def masked(self) -> dict:
        return {
            "url": self.url,
            "bucket": self.bucket,
            "token": "***" if self.token else "",
            "measurement-base": self.measurement_base,
        }


@dataclass(frozen=True)
class MqttSinkConfig:
    kind: ClassVar[str] = "MQTT"
    enabled: bool
    host: str
    port: int
    topic_base: str
    client_id: str = "arexx-tap"
    qos: int = 1


SinkConfig = Union[DataFileSinkConfig, InfluxDbSinkConfig, MqttSinkConfig]


@dataclass(frozen=True)
class TapConfig:
    device: DeviceConfig = field(default_factory=DeviceConfig)
    poll_interval_s: float = 1.0
    temperature_scaling: Optional[float] = None
    log: LogConfig = field(default_factory=LogConfig)
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    sinks: Tuple[SinkConfig, ...] = ()
    sensors: Tuple[SensorConfig, ...] = ()

    @property
    def enabled_sinks(self) -> Tuple[SinkConfig, ...]:
        return tuple(s for s in self.sinks if s.enabled)
