# arexx_tap/model/reading.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class Reading:
    """
    A calibrated, sink-ready temperature observation.

    Immutable; the same instance is handed to every sink and none of them
    may change it.

    registered: False when the sensor id was not in the registry and the
    name/scale are fallbacks.
    """
    sensor_id: int
    sensor_name: str
    timestamp: datetime
    raw_value: int
    temperature: float
    signal_quality: Optional[int] = None
    registered: bool = True

    @property
    def unix_ns(self) -> int:
        delta = self.timestamp - _UNIX_EPOCH
        return (delta.days * 86_400 + delta.seconds) * 1_000_000_000 + delta.microseconds * 1_000

    def as_dict(self) -> dict:
        """JSON-ready record; signal_quality only when the device sent it."""
        d = {
            "sensor_id": self.sensor_id,
            "sensor_name": self.sensor_name,
            "timestamp": self.timestamp.isoformat(),
            "raw_value": self.raw_value,
            "temperature": self.temperature,
        }
        if self.signal_quality is not None:
            d["signal_quality"] = self.signal_quality
        return d

    def __str__(self) -> str:
        return (
            f"Temperature[time: {self.timestamp.isoformat()}, sensor: {self.sensor_id} "
            f"({self.sensor_name}), temp: {self.temperature:.4f}]"
        )
