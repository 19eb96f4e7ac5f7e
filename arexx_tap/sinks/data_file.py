# arexx_tap/sinks/data_file.py
from __future__ import annotations

import json
import logging
from pathlib import Path
from threading import Lock
from typing import IO, Optional

from arexx_tap.core.errors import SinkError
from arexx_tap.model.reading import Reading


class DataFileSink:
    """
    Appends one JSON object per reading to a local file (JSON lines).

    The file is opened in append mode for the sink's lifetime; every
    record is flushed right after it is written.
    """

    kind = "DataFile"

    def __init__(self, path: Path, *, logger: Optional[logging.Logger] = None):
        self.path = Path(path)
        self._log = logger or logging.getLogger(__name__)
        self._lock = Lock()

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._file: Optional[IO[str]] = open(self.path, "a", encoding="utf-8")
        except OSError as e:
            raise SinkError(
                self.kind,
                f"Can't open data file {self.path}.",
                hint=str(e),
                details={"path": str(self.path)},
            ) from None

    @staticmethod
    def format_record(reading: Reading) -> str:
        return json.dumps(reading.as_dict(), ensure_ascii=False)

    def persist(self, reading: Reading) -> None:
        line = self.format_record(reading)
        with self._lock:
            if self._file is None:
                raise SinkError(self.kind, f"Data file {self.path} is closed.")
            try:
                self._file.write(line + "\n")
                self._file.flush()
            except OSError as e:
                raise SinkError(
                    self.kind,
                    f"Cannot write to data file {self.path}: {e}",
                    details={"path": str(self.path), "sensor_id": reading.sensor_id},
                ) from None

    def close(self) -> None:
        with self._lock:
            if self._file is not None:
                try:
                    self._file.close()
                finally:
                    self._file = None

    def __repr__(self) -> str:
        return f"DataFileSink({str(self.path)!r})"
