# arexx_tap/sinks/registry.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional

from arexx_tap.app.config import (
    DataFileSinkConfig,
    InfluxDbSinkConfig,
    MqttSinkConfig,
    SinkConfig,
)
from arexx_tap.core.errors import ConfigError, SinkError
from arexx_tap.interfaces.reading_sink import ReadingSink

from .data_file import DataFileSink
from .influxdb import InfluxDbSink
from .mqtt import MqttSink


def build_sink(cfg: SinkConfig) -> ReadingSink:
    """
    Instantiate the sink for one config variant. Does not check `enabled`.

    The variant set is closed: adding a sink kind means adding a branch here.
    """
    if isinstance(cfg, DataFileSinkConfig):
        return DataFileSink(Path(cfg.file))
    if isinstance(cfg, InfluxDbSinkConfig):
        return InfluxDbSink(
            cfg.url,
            cfg.bucket,
            cfg.token,
            cfg.measurement_base,
            timeout_s=cfg.timeout_s,
        )
    if isinstance(cfg, MqttSinkConfig):
        return MqttSink(
            cfg.host,
            cfg.port,
            cfg.topic_base,
            client_id=cfg.client_id,
            qos=cfg.qos,
        )
    raise ConfigError(
        f"Unsupported sink config {type(cfg).__name__}.",
        hint="Valid sink types: DataFile, InfluxDB, MQTT",
    )


def build_sinks(
    configs: Iterable[SinkConfig],
    *,
    logger: Optional[logging.Logger] = None,
) -> List[ReadingSink]:
    """
    Build every enabled sink. A sink that fails to start is logged and left
    out; the others still run.
    """
    log = logger or logging.getLogger(__name__)
    sinks: List[ReadingSink] = []

    for cfg in configs:
        if not cfg.enabled:
            log.debug("SINK_DISABLED kind=%s", cfg.kind)
            continue
        try:
            sink = build_sink(cfg)
        except SinkError as e:
            log.error("SINK_INIT_FAILED kind=%s msg=%s hint=%s", e.kind, e.message, e.hint)
            continue
        log.info("SINK_READY kind=%s sink=%r", sink.kind, sink)
        sinks.append(sink)

    return sinks
