# arexx_tap/cli/commands.py
from __future__ import annotations

import signal
import threading
from dataclasses import replace
from typing import Callable

from arexx_tap.app.clock import parse_start_time
from arexx_tap.app.config import DataFileSinkConfig, InfluxDbSinkConfig, MqttSinkConfig, TapConfig
from arexx_tap.app.config_loader import load_config
from arexx_tap.app.logging_setup import configure_logging
from arexx_tap.app.runner import close_run, start_run
from arexx_tap.model.reading import Reading


# ---------------- Console sink ----------------

class PrintReadingSink:
    """Print readings to stdout (used when no sink is enabled)."""

    kind = "Console"

    def persist(self, reading: Reading) -> None:
        print(reading, flush=True)

    def close(self) -> None:
        return None


# ---------------- Config printing ----------------

def print_config(cfg: TapConfig) -> None:
    print("\nConfiguration")
    dev = cfg.device
    if dev.port:
        print(f"  Device: serial {dev.port} (baudrate={dev.baudrate}, timeout={dev.timeout_s}s)")
    else:
        print(f"  Device: USB {dev.vid:04x}:{dev.pid:04x} (timeout={dev.timeout_s}s)")
    if cfg.temperature_scaling is not None:
        print(f"  Global temperature scale = {cfg.temperature_scaling}")
    print(f"  Poll interval: {cfg.poll_interval_s}s")

    if cfg.log.enabled:
        print(f"  Logging: level={cfg.log.level}, directory={cfg.log.directory}, prefix={cfg.log.prefix}")
    else:
        print("  Logging: file disabled")

    enabled = cfg.enabled_sinks
    if not enabled:
        print("  Sinks: none (readings are printed)")
    else:
        print("  Sinks:")
        for s in enabled:
            if isinstance(s, InfluxDbSinkConfig):
                print(f"     InfluxDB:  {s.masked()}")
            elif isinstance(s, MqttSinkConfig):
                print(f"     MQTT:      {s.host}:{s.port} topic-base={s.topic_base} qos={s.qos}")
            elif isinstance(s, DataFileSinkConfig):
                print(f"     Data File: {s.file}")

    if cfg.sensors:
        print("  Sensors:")
        for sc in cfg.sensors:
            scale = f" scale={sc.scaling_factor_override}" if sc.scaling_factor_override is not None else ""
            print(f"     id={sc.id} name={sc.name}{scale}")
    print()


# ---------------- Signals ----------------

def _install_stop_handlers(stop_event: threading.Event) -> Callable[[], None]:
    """Route SIGINT/SIGTERM to `stop_event`. Returns a restore callback."""
    if threading.current_thread() is not threading.main_thread():
        return lambda: None

    def _handler(signum, _frame):
        stop_event.set()

    previous = {}
    for sig in (signal.SIGINT, getattr(signal, "SIGTERM", None)):
        if sig is None:
            continue
        previous[sig] = signal.signal(sig, _handler)

    def _restore() -> None:
        for sig, h in previous.items():
            signal.signal(sig, h)

    return _restore


# ---------------- Commands ----------------

def cmd_show_config(args) -> int:
    cfg = load_config(args.config)
    print_config(cfg)
    return 0


def cmd_run(args) -> int:
    cfg = load_config(args.config)
    if args.port:
        cfg = replace(cfg, device=replace(cfg.device, port=args.port))

    log_path = configure_logging(cfg.log)
    start_time = parse_start_time(args.start_time)

    print("Starting arexx-tap")
    print_config(cfg)
    if log_path is not None:
        print(f"Log file:  {log_path}")

    run = start_run(cfg, start_time=start_time, fallback_sink=PrintReadingSink())

    stop_event = threading.Event()
    restore = _install_stop_handlers(stop_event)
    try:
        run.session.start()
        reason = run.session.run(stop_event, max_polls=args.polls)
    finally:
        restore()
        close_run(run, drain_timeout_s=cfg.dispatch.drain_timeout_s)

    st = run.session.status()
    c = st.counters
    print(f"Stopped:   {reason}")
    print(f"Polls:     {c.polls} frames={c.frames} readings={c.readings} idle={c.idle_polls} malformed={c.malformed_frames}")
    if st.unregistered_ids:
        print(f"Unregistered sensors: {list(st.unregistered_ids)}")
    for s in st.sinks:
        print(f"  {s.kind}: persisted={s.persisted} failed={s.failed} dropped={s.dropped}")
    if st.last_error:
        print(f"Last error: {st.last_error}")

    return 0 if reason in ("stopped", "max_polls") else 1
