# arexx_tap/interfaces/reading_sink.py
from typing import Protocol

from arexx_tap.model.reading import Reading


class ReadingSink(Protocol):
    """
    Output backend for calibrated readings.

    persist() raises SinkError (or any exception) on failure; the
    dispatcher catches and reports it.
    """
    kind: str

    def persist(self, reading: Reading) -> None: ...
    def close(self) -> None: ...
