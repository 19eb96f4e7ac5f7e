# arexx_tap/runtime/session.py
from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, List, Optional, Set

from arexx_tap.core.dispatch import SinkDispatcher
from arexx_tap.core.errors import DeviceConnectError, DeviceDisconnectedError
from arexx_tap.model.calibration import calibrate
from arexx_tap.model.reading import Reading
from arexx_tap.model.sensor import SensorRegistry
from arexx_tap.protocol.core.decoder import FrameDecoder
from arexx_tap.protocol.core.defs import NO_SENSOR_ID
from arexx_tap.protocol.core.frame import Frame, request_data_frame, set_clock_frame
from arexx_tap.protocol.core.reader import FrameReader
from arexx_tap.protocol.errors import MalformedTupleError, ShortReadError
from arexx_tap.transport.base import Transport
from arexx_tap.transport.errors import TransportError, TransportIOError

from .state import PipelineCounters, SessionStatus

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TapSession:
    """
    Sequential read -> decode -> calibrate pipeline feeding a SinkDispatcher.

    Each poll writes a request frame, reads one reply frame and dispatches
    the readings it carries. Only byte-source failures end the loop; bad
    tuples cost one frame, sink failures are the dispatcher's business.
    """

    def __init__(
        self,
        *,
        transport: Transport,
        registry: SensorRegistry,
        dispatcher: SinkDispatcher,
        global_scale: Optional[float] = None,
        poll_interval_s: float = 1.0,
        start_time: Optional[datetime] = None,
        clock: Clock = _utc_now,
        logger: Optional[logging.Logger] = None,
    ):
        self._transport = transport
        self._registry = registry
        self._dispatcher = dispatcher
        self._global_scale = global_scale
        self._poll_interval_s = max(0.0, float(poll_interval_s))
        self._start_time = start_time
        self._clock = clock
        self._log = logger or logging.getLogger(__name__)

        self._reader = FrameReader(transport, logger=self._log)
        self._decoder = FrameDecoder()

        self._lock = threading.Lock()
        self._connected = False
        self._counters = PipelineCounters()
        self._unregistered: Set[int] = set()
        self._last_error: Optional[str] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def is_started(self) -> bool:
        return self._connected

    def start(self) -> None:
        """Open the byte source and set the device clock."""
        if self._connected:
            return

        self._log.info("SESSION_START transport=%s", self._transport.description)
        try:
            self._transport.open()
        except TransportError as e:
            self._set_error(str(e))
            raise DeviceConnectError(
                f"Could not open {self._transport.description}.",
                hint=str(e),
            ) from None

        # a user-supplied start time only applies to the first handshake
        when = self._start_time or self._clock()
        self._start_time = None
        try:
            self._send(set_clock_frame(when))
        except TransportError as e:
            self._transport.close()
            self._set_error(str(e))
            raise DeviceConnectError("Setting the device clock failed.", hint=str(e)) from None

        with self._lock:
            self._connected = True
        self._log.info("DEVICE_CLOCK_SET time=%s", when.isoformat())

    def stop(self) -> None:
        with self._lock:
            was_connected = self._connected
            self._connected = False
        if was_connected:
            self._log.info("SESSION_STOP")
        self._transport.close()

    def __enter__(self) -> "TapSession":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Read loop
    # ------------------------------------------------------------------
    def run(self, stop_event: threading.Event, *, max_polls: Optional[int] = None) -> str:
        """
        Poll until stopped. Returns the reason the loop ended:
          'stopped' | 'max_polls' | 'source_exhausted' | 'short_read' | 'disconnected'
        """
        polls = 0
        while not stop_event.is_set():
            if max_polls is not None and polls >= max_polls:
                return "max_polls"
            polls += 1

            try:
                readings = self.poll_once()
            except ShortReadError as e:
                self._set_error(str(e))
                self._log.error("FRAME_SHORT_READ received=%d expected=%d", e.received, e.expected)
                return "short_read"
            except DeviceDisconnectedError as e:
                self._set_error(e.message)
                self._log.error("DEVICE_DISCONNECTED msg=%s", e.message)
                return "disconnected"

            if readings is None:
                self._log.warning("SOURCE_EXHAUSTED transport=%s", self._transport.description)
                return "source_exhausted"

            stop_event.wait(self._poll_interval_s)

        return "stopped"

    def poll_once(self) -> Optional[List[Reading]]:
        """
        Request data, read one frame and dispatch its readings.

        A device that stays quiet until the read timeout counts as an idle
        poll and yields no readings. Returns None only once the transport
        reports it is closed.
        """
        try:
            self._send(request_data_frame())
            frame = self._reader.next_frame()
        except TransportIOError as e:
            raise DeviceDisconnectedError(str(e), hint="Check the USB cable and device power.") from None

        self._bump(polls=1)
        if frame is None:
            if not self._transport.is_open():
                return None
            self._bump(idle_polls=1)
            self._log.info("DEVICE_IDLE transport=%s", self._transport.description)
            return []
        return self.process_frame(frame)

    def process_frame(self, frame: Frame) -> List[Reading]:
        self._bump(frames=1)

        try:
            tuples = self._decoder.decode(frame)
        except MalformedTupleError as e:
            self._bump(malformed_frames=1)
            self._log.warning(
                "FRAME_MALFORMED_TUPLE frame_type=0x%02X offset=%d length=%d kept=%d",
                frame.frame_type,
                e.offset,
                e.length,
                len(e.decoded),
            )
            tuples = e.decoded
        else:
            if not tuples:
                self._bump(ignored_frames=1)
                self._log.debug("FRAME_WITHOUT_TUPLES frame_type=%s", frame.type_name)

        readings: List[Reading] = []
        for raw in tuples:
            self._bump(tuples=1)
            if raw.sensor_id == NO_SENSOR_ID:
                self._bump(empty_slots=1)
                self._log.debug("NO_SENSOR_DATA frame_type=%s", frame.type_name)
                continue

            reading = calibrate(raw, self._registry, self._global_scale)
            if not reading.registered:
                self._note_unregistered(reading.sensor_id)

            self._log.debug("READING %s", reading)
            self._dispatcher.dispatch(reading)
            readings.append(reading)

        self._bump(readings=len(readings))
        return readings

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------
    def status(self) -> SessionStatus:
        with self._lock:
            return SessionStatus(
                connected=self._connected,
                transport=self._transport.description,
                counters=self._counters,
                unregistered_ids=tuple(sorted(self._unregistered)),
                sinks=tuple(self._dispatcher.stats()),
                last_error=self._last_error,
            )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _send(self, frame: Frame) -> None:
        self._transport.write(frame.encode())
        self._log.debug("Sent frame type=%s", frame.type_name)

    def _note_unregistered(self, sensor_id: int) -> None:
        with self._lock:
            first = sensor_id not in self._unregistered
            self._unregistered.add(sensor_id)
        if first:
            self._log.warning("SENSOR_UNREGISTERED sensor_id=%s", sensor_id)

    def _bump(self, **deltas: int) -> None:
        with self._lock:
            c = self._counters
            self._counters = replace(c, **{k: getattr(c, k) + v for k, v in deltas.items()})

    def _set_error(self, msg: str) -> None:
        with self._lock:
            self._last_error = msg
