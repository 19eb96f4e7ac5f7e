# arexx_tap/app/config_loader.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml

from arexx_tap.core.errors import ConfigError
from arexx_tap.model.sensor import SensorConfig

from .config import (
    DataFileSinkConfig,
    DeviceConfig,
    DispatchConfig,
    InfluxDbSinkConfig,
    LogConfig,
    MqttSinkConfig,
    SinkConfig,
    TapConfig,
)

SINK_TYPES = ("DataFile", "InfluxDB", "MQTT")


class ConfigLoader:
    """
    Loads the YAML configuration file into a validated TapConfig.

    Keys use the hyphenated spelling of the config file
    (`temperature-scaling`, `measurement-base`, `topic-base`, ...).
    Every problem is reported as ConfigError with the offending section
    in `details`.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    # ---------------------------------------------------------------------
    # YAML utility
    # ---------------------------------------------------------------------
    def _load_yaml(self) -> dict:
        if not self.path.exists():
            raise ConfigError(
                f"Config file `{self.path}` not found.",
                hint="Pass --config with an existing YAML file.",
                details={"path": str(self.path)},
            )
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(
                f"Config file `{self.path}` is not valid YAML.",
                hint=str(e),
                details={"path": str(self.path)},
            ) from None

        if not isinstance(data, dict):
            raise ConfigError(f"Config file `{self.path}` must contain a mapping at top level.")
        return data

    # ---------------------------------------------------------------------
    # Public entry point
    # ---------------------------------------------------------------------
    def load(self) -> TapConfig:
        return parse_config(self._load_yaml())


def load_config(path: Optional[str | Path]) -> TapConfig:
    """Load `path`, or return the defaults (no sinks, no sensors) if None."""
    if path is None:
        return TapConfig()
    return ConfigLoader(path).load()


# -------------------------------------------------------------------------
# Sections
# -------------------------------------------------------------------------

def parse_config(data: Mapping[str, Any]) -> TapConfig:
    return TapConfig(
        device=_parse_device(_section(data, "device")),
        poll_interval_s=_number(data, "poll-interval-s", "root", default=1.0, minimum=0.0),
        temperature_scaling=_optional_number(data, "temperature-scaling", "root"),
        log=_parse_log(_section(data, "log")),
        dispatch=_parse_dispatch(_section(data, "dispatch")),
        sinks=_parse_sinks(data.get("sinks")),
        sensors=_parse_sensors(data.get("sensors")),
    )


def _parse_device(d: Mapping[str, Any]) -> DeviceConfig:
    port = d.get("port")
    timeout_s = _number(d, "timeout-s", "device", default=30.0)
    if timeout_s <= 0:
        raise ConfigError(
            f"'timeout-s' in device must be > 0 (got {timeout_s}).",
            hint="Use a positive number of seconds.",
            details={"section": "device", "param": "timeout-s"},
        )
    return DeviceConfig(
        vid=_usb_id(d, "vid", default=0x0451),
        pid=_usb_id(d, "pid", default=0x3211),
        port=None if port is None else str(port),
        baudrate=int(_number(d, "baudrate", "device", default=115200, minimum=1)),
        timeout_s=timeout_s,
    )


def _usb_id(d: Mapping[str, Any], key: str, *, default: int) -> int:
    value = d.get(key, default)
    if isinstance(value, str):
        try:
            value = int(value, 0)
        except ValueError:
            pass
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 0xFFFF:
        raise ConfigError(
            f"'{key}' in device must be a USB id in 0x0000..0xFFFF (got {value!r}).",
            details={"section": "device", "param": key},
        )
    return value


def _parse_log(d: Mapping[str, Any]) -> LogConfig:
    level = str(d.get("level", "info")).lower()
    if level not in ("debug", "info", "warning", "warn", "error", "critical"):
        raise ConfigError(
            f"Invalid log level '{level}'.",
            hint="Use one of: debug, info, warning, error, critical",
            details={"section": "log"},
        )
    return LogConfig(
        enabled=bool(d.get("enabled", False)),
        directory=str(d.get("directory", ".")),
        prefix=str(d.get("prefix", "arexx-tap")),
        level=level,
    )


def _parse_dispatch(d: Mapping[str, Any]) -> DispatchConfig:
    return DispatchConfig(
        queue_size=int(_number(d, "queue-size", "dispatch", default=256, minimum=1)),
        drain_timeout_s=_number(d, "drain-timeout-s", "dispatch", default=5.0, minimum=0.0),
    )


def _parse_sinks(raw: Any) -> Tuple[SinkConfig, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ConfigError("'sinks' must be a list of sink entries.")

    out: List[SinkConfig] = []
    for idx, entry in enumerate(raw):
        where = f"sinks[{idx}]"
        if not isinstance(entry, dict):
            raise ConfigError(f"{where} must be a mapping.")

        stype = entry.get("type")
        enabled = bool(entry.get("enabled", True))

        if stype == "DataFile":
            out.append(DataFileSinkConfig(enabled=enabled, file=_required_str(entry, "file", where)))
        elif stype == "InfluxDB":
            out.append(
                InfluxDbSinkConfig(
                    enabled=enabled,
                    url=_required_str(entry, "url", where),
                    bucket=_required_str(entry, "bucket", where),
                    token=str(entry.get("token", "")),
                    measurement_base=_required_str(entry, "measurement-base", where),
                    timeout_s=_number(entry, "timeout-s", where, default=10.0, minimum=0.0),
                )
            )
        elif stype == "MQTT":
            qos = int(_number(entry, "qos", where, default=1, minimum=0))
            if qos > 2:
                raise ConfigError(f"{where}: qos must be 0, 1 or 2 (got {qos}).")
            out.append(
                MqttSinkConfig(
                    enabled=enabled,
                    host=_required_str(entry, "host", where),
                    port=int(_number(entry, "port", where, default=1883, minimum=1)),
                    topic_base=_required_str(entry, "topic-base", where),
                    client_id=str(entry.get("client-id", "arexx-tap")),
                    qos=qos,
                )
            )
        else:
            raise ConfigError(
                f"Unknown sink type {stype!r} in {where}.",
                hint=f"Valid sink types: {', '.join(SINK_TYPES)}",
                details={"section": where, "type": stype},
            )

    return tuple(out)


def _parse_sensors(raw: Any) -> Tuple[SensorConfig, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ConfigError("'sensors' must be a list of sensor entries.")

    seen: Dict[int, str] = {}
    out: List[SensorConfig] = []
    for idx, entry in enumerate(raw):
        where = f"sensors[{idx}]"
        if not isinstance(entry, dict):
            raise ConfigError(f"{where} must be a mapping.")

        sid = entry.get("id")
        if isinstance(sid, bool) or not isinstance(sid, int) or not 0 <= sid <= 0xFFFF:
            raise ConfigError(
                f"{where}: 'id' must be an integer in 0..65535 (got {sid!r}).",
                details={"section": where},
            )
        if sid in seen:
            raise ConfigError(
                f"Duplicate sensor id {sid} ('{seen[sid]}').",
                details={"section": where, "id": sid},
            )

        name = str(entry.get("name") or sid)
        seen[sid] = name
        out.append(
            SensorConfig(
                id=sid,
                name=name,
                scaling_factor_override=_optional_number(entry, "temperature-scaling", where),
            )
        )

    return tuple(out)


# -------------------------------------------------------------------------
# Field helpers
# -------------------------------------------------------------------------

def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{key}' must be a mapping.", details={"section": key})
    return value


def _required_str(d: Mapping[str, Any], key: str, where: str) -> str:
    value = d.get(key)
    if value is None or str(value) == "":
        raise ConfigError(
            f"Missing required '{key}' in {where}.",
            details={"section": where, "param": key},
        )
    return str(value)


def _optional_number(d: Mapping[str, Any], key: str, where: str) -> Optional[float]:
    if d.get(key) is None:
        return None
    return _number(d, key, where, default=0.0)


def _number(
    d: Mapping[str, Any],
    key: str,
    where: str,
    *,
    default: float,
    minimum: Optional[float] = None,
) -> float:
    value = d.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(
            f"'{key}' in {where} must be numeric (got {value!r}).",
            details={"section": where, "param": key},
        )
    if minimum is not None and value < minimum:
        raise ConfigError(
            f"'{key}' in {where} must be >= {minimum} (got {value}).",
            details={"section": where, "param": key},
        )
    return float(value)
