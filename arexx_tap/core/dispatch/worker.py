# arexx_tap/core/dispatch/worker.py
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from queue import Empty, Full, Queue
from typing import Callable, Optional

from arexx_tap.core.errors import SinkError
from arexx_tap.interfaces.reading_sink import ReadingSink
from arexx_tap.model.reading import Reading

ErrorCallback = Callable[[str, Reading, BaseException], None]  # (kind, reading, error)


@dataclass(frozen=True)
class SinkStats:
    """Counters for one sink, snapshot taken under the worker lock."""
    kind: str
    accepted: int = 0
    persisted: int = 0
    failed: int = 0
    dropped: int = 0
    pending: int = 0


class SinkWorker:
    """
    Threaded, ordered hand-off to one sink.

    - submit() never blocks: the reading is queued or, if the bounded queue
      is full, dropped and counted.
    - One thread per sink calls persist() in submit order.
    - A failing persist() is logged and reported, never re-raised; the
      reading is not retried.
    """

    def __init__(
        self,
        sink: ReadingSink,
        *,
        queue_size: int = 256,
        on_error: Optional[ErrorCallback] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.sink = sink
        self.kind = str(getattr(sink, "kind", type(sink).__name__))
        self._on_error = on_error
        self._log = logger or logging.getLogger(__name__)

        self._queue: Queue[Reading] = Queue(maxsize=max(1, int(queue_size)))
        self._stop_event = threading.Event()
        self._lock = threading.Lock()

        self._accepted = 0
        self._persisted = 0
        self._failed = 0
        self._dropped = 0

        self._thread = threading.Thread(target=self._worker, name=f"sink-{self.kind}", daemon=True)
        self._thread.start()

    # ---------------- Public API ----------------
    def submit(self, reading: Reading) -> bool:
        """Queue a reading for this sink. Returns False if it was not accepted."""
        # stop() takes the same lock, so a reading is either queued before
        # the worker can see the stop flag or rejected here
        with self._lock:
            if self._stop_event.is_set():
                return False
            try:
                self._queue.put_nowait(reading)
            except Full:
                self._dropped += 1
                dropped = self._dropped
            else:
                self._accepted += 1
                return True

        self._log.warning(
            "SINK_QUEUE_FULL kind=%s sensor_id=%s dropped=%d",
            self.kind,
            reading.sensor_id,
            dropped,
        )
        return False

    def stop(self) -> None:
        """Stop accepting readings; the thread drains what is queued and exits."""
        with self._lock:
            self._stop_event.set()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the drain to finish. Returns True if the thread exited."""
        self._thread.join(timeout=timeout)
        return not self._thread.is_alive()

    @property
    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def stats(self) -> SinkStats:
        with self._lock:
            return SinkStats(
                kind=self.kind,
                accepted=self._accepted,
                persisted=self._persisted,
                failed=self._failed,
                dropped=self._dropped,
                pending=self._queue.qsize(),
            )

    # ---------------- Internal ----------------
    def _worker(self) -> None:
        while not self._stop_event.is_set() or not self._queue.empty():
            try:
                reading = self._queue.get(timeout=0.1)
            except Empty:
                continue
            self._persist_safe(reading)

    def _persist_safe(self, reading: Reading) -> None:
        """Persist with exception safety (never kill the worker thread)."""
        t0 = time.monotonic()
        try:
            self.sink.persist(reading)
        except SinkError as e:
            with self._lock:
                self._failed += 1
            self._log.error(
                "SINK_PERSIST_FAILED kind=%s sensor_id=%s msg=%s",
                self.kind,
                reading.sensor_id,
                e.message,
            )
            self._report(reading, e)
        except Exception as e:
            with self._lock:
                self._failed += 1
            self._log.exception("SINK_PERSIST_FAILED kind=%s sensor_id=%s", self.kind, reading.sensor_id)
            self._report(reading, e)
        else:
            with self._lock:
                self._persisted += 1
            self._log.debug(
                "SINK_PERSIST_OK kind=%s sensor_id=%s dt_ms=%.1f",
                self.kind,
                reading.sensor_id,
                (time.monotonic() - t0) * 1000.0,
            )

    def _report(self, reading: Reading, error: BaseException) -> None:
        if self._on_error is None:
            return
        try:
            self._on_error(self.kind, reading, error)
        except Exception:
            self._log.exception("SINK_ERROR_CALLBACK_FAILED kind=%s", self.kind)
