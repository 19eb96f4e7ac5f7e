# arexx_tap/model/calibration.py
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from arexx_tap.protocol.core.decoder import RawTuple
from arexx_tap.protocol.core.defs import PROTOCOL_EPOCH

from .reading import Reading
from .sensor import SensorRegistry

#: Built-in raw -> Celsius factor used when neither sensor nor config sets one.
DEFAULT_TEMPERATURE_SCALE = 0.0078


def protocol_time_to_utc(seconds: int) -> datetime:
    return PROTOCOL_EPOCH + timedelta(seconds=int(seconds))


def fallback_sensor_name(sensor_id: int) -> str:
    return str(int(sensor_id))


def effective_scale(
    sensor_id: int,
    registry: SensorRegistry,
    global_scale: Optional[float] = None,
) -> float:
    """Per-sensor override, else the global factor, else the built-in default."""
    cfg = registry.lookup(sensor_id)
    if cfg is not None and cfg.scaling_factor_override is not None:
        return float(cfg.scaling_factor_override)
    if global_scale is None:
        global_scale = registry.default_scale
    if global_scale is not None:
        return float(global_scale)
    return DEFAULT_TEMPERATURE_SCALE


def calibrate(
    raw: RawTuple,
    registry: SensorRegistry,
    global_scale: Optional[float] = None,
) -> Reading:
    """
    Convert a raw tuple into a Reading. Pure; no logging, no I/O.

    temperature = raw_value * scale. No offset term is applied: the device
    reports zero-referenced magnitudes.
    """
    cfg = registry.lookup(raw.sensor_id)
    scale = effective_scale(raw.sensor_id, registry, global_scale)

    return Reading(
        sensor_id=raw.sensor_id,
        sensor_name=cfg.name if cfg is not None else fallback_sensor_name(raw.sensor_id),
        timestamp=protocol_time_to_utc(raw.timestamp),
        raw_value=raw.raw_value,
        temperature=raw.raw_value * scale,
        signal_quality=raw.signal_quality,
        registered=cfg is not None,
    )
