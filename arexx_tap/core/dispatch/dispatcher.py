# arexx_tap/core/dispatch/dispatcher.py
from __future__ import annotations

import logging
import time
from typing import Iterable, List, Optional

from arexx_tap.interfaces.reading_sink import ReadingSink
from arexx_tap.model.reading import Reading

from .worker import ErrorCallback, SinkStats, SinkWorker


class SinkDispatcher:
    """
    Fans each reading out to every sink through its own SinkWorker.

    dispatch() only enqueues, so a slow or hung sink delays neither the
    other sinks nor the read loop. Per sink, readings are persisted in
    dispatch order; across sinks there is no ordering.
    """

    def __init__(
        self,
        sinks: Iterable[ReadingSink],
        *,
        queue_size: int = 256,
        on_error: Optional[ErrorCallback] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._log = logger or logging.getLogger(__name__)
        self._workers: List[SinkWorker] = [
            SinkWorker(s, queue_size=queue_size, on_error=on_error, logger=self._log)
            for s in sinks
        ]
        self._closed = False

    @property
    def kinds(self) -> List[str]:
        return [w.kind for w in self._workers]

    def __len__(self) -> int:
        return len(self._workers)

    def dispatch(self, reading: Reading) -> int:
        """Hand the reading to every sink. Returns how many sinks accepted it."""
        if self._closed:
            self._log.warning("DISPATCH_AFTER_CLOSE sensor_id=%s", reading.sensor_id)
            return 0
        return sum(1 for w in self._workers if w.submit(reading))

    def stats(self) -> List[SinkStats]:
        return [w.stats() for w in self._workers]

    def close(self, timeout: Optional[float] = None) -> None:
        """
        Stop accepting readings, let every sink drain (bounded by `timeout`
        overall), then close the sinks whose worker finished.
        """
        if self._closed:
            return
        self._closed = True

        for w in self._workers:
            w.stop()

        deadline = None if timeout is None else time.monotonic() + max(0.0, timeout)
        for w in self._workers:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            if not w.join(remaining):
                st = w.stats()
                # worker still inside persist(); closing the sink under it is unsafe
                self._log.warning("SINK_DRAIN_TIMEOUT kind=%s pending=%d", w.kind, st.pending)
                continue
            try:
                w.sink.close()
            except Exception:
                self._log.exception("SINK_CLOSE_FAILED kind=%s", w.kind)

        for st in self.stats():
            self._log.info(
                "SINK_STATS kind=%s accepted=%d persisted=%d failed=%d dropped=%d",
                st.kind,
                st.accepted,
                st.persisted,
                st.failed,
                st.dropped,
            )

    def __enter__(self) -> "SinkDispatcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
