# arexx_tap/model/sensor.py
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Mapping, Optional


@dataclass(frozen=True)
class SensorConfig:
    """
    Static configuration of one logger sensor.

    scaling_factor_override: per-sensor calibration constant; None means
    the registry's global factor applies.
    """
    id: int
    name: str
    scaling_factor_override: Optional[float] = None

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "scaling_factor_override": self.scaling_factor_override,
        }


class SensorRegistry:
    """
    Read-only sensor id -> SensorConfig mapping, built once at startup.

    The backing mapping is never mutated after __init__, so lookups are
    safe from any thread without locking.
    """

    def __init__(
        self,
        sensors: Iterable[SensorConfig] = (),
        *,
        default_scale: Optional[float] = None,
    ):
        by_id: Dict[int, SensorConfig] = {}
        for s in sensors:
            if s.id in by_id:
                raise ValueError(f"Duplicate sensor id {s.id} ('{by_id[s.id].name}' and '{s.name}')")
            by_id[s.id] = s

        self._sensors: Mapping[int, SensorConfig] = MappingProxyType(by_id)
        self.default_scale: Optional[float] = None if default_scale is None else float(default_scale)

    def lookup(self, sensor_id: int) -> Optional[SensorConfig]:
        return self._sensors.get(int(sensor_id))

    def __contains__(self, sensor_id: object) -> bool:
        return sensor_id in self._sensors

    def __iter__(self) -> Iterator[SensorConfig]:
        return iter(sorted(self._sensors.values(), key=lambda s: s.id))

    def __len__(self) -> int:
        return len(self._sensors)

    def __repr__(self) -> str:
        return f"SensorRegistry(sensors={len(self._sensors)}, default_scale={self.default_scale})"
