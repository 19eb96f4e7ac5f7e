# arexx_tap/app/runner.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from arexx_tap.app.config import TapConfig
from arexx_tap.core.dispatch import SinkDispatcher
from arexx_tap.core.dispatch.worker import ErrorCallback
from arexx_tap.core.errors import ConfigError
from arexx_tap.interfaces.reading_sink import ReadingSink
from arexx_tap.model.sensor import SensorRegistry
from arexx_tap.runtime.session import TapSession
from arexx_tap.sinks import build_sinks
from arexx_tap.transport.base import Transport
from arexx_tap.transport.serial_port import SerialTransport
from arexx_tap.transport.usb_bulk import UsbBulkTransport


@dataclass(frozen=True)
class AppRun:
    session: TapSession
    dispatcher: SinkDispatcher
    registry: SensorRegistry
    sinks: List[ReadingSink]
    transport: Transport


def build_registry(cfg: TapConfig) -> SensorRegistry:
    try:
        return SensorRegistry(cfg.sensors, default_scale=cfg.temperature_scaling)
    except ValueError as e:
        raise ConfigError("Invalid sensor list.", hint=str(e)) from None


def build_transport(cfg: TapConfig) -> Transport:
    """USB bulk link by vid/pid, or a serial port when `device.port` is set."""
    dev = cfg.device
    if dev.port:
        return SerialTransport(dev.port, baudrate=dev.baudrate, timeout=dev.timeout_s)
    return UsbBulkTransport(dev.vid, dev.pid, timeout=dev.timeout_s)


def start_run(
    cfg: TapConfig,
    *,
    start_time: Optional[datetime] = None,
    transport: Optional[Transport] = None,
    fallback_sink: Optional[ReadingSink] = None,
    on_sink_error: Optional[ErrorCallback] = None,
) -> AppRun:
    """
    Wire registry, sinks, dispatcher and session. Does NOT open the device.

    `fallback_sink` is used when no configured sink is enabled (or none
    could be started), so readings are never silently discarded.
    """
    log = logging.getLogger(__name__)

    registry = build_registry(cfg)
    transport = transport or build_transport(cfg)

    sinks = build_sinks(cfg.sinks)
    if not sinks and fallback_sink is not None:
        log.info("NO_SINKS_ENABLED fallback=%s", getattr(fallback_sink, "kind", "?"))
        sinks = [fallback_sink]

    dispatcher = SinkDispatcher(
        sinks,
        queue_size=cfg.dispatch.queue_size,
        on_error=on_sink_error,
    )

    session = TapSession(
        transport=transport,
        registry=registry,
        dispatcher=dispatcher,
        global_scale=cfg.temperature_scaling,
        poll_interval_s=cfg.poll_interval_s,
        start_time=start_time,
    )

    log.info(
        "RUN_READY transport=%s sensors=%d sinks=%s",
        transport.description,
        len(registry),
        dispatcher.kinds,
    )

    return AppRun(
        session=session,
        dispatcher=dispatcher,
        registry=registry,
        sinks=sinks,
        transport=transport,
    )


def close_run(run: AppRun, *, drain_timeout_s: Optional[float] = None) -> None:
    """Stop the session, then let sinks drain and release them."""
    try:
        run.session.stop()
    finally:
        run.dispatcher.close(timeout=drain_timeout_s)
