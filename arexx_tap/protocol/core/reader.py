# arexx_tap/protocol/core/reader.py
from __future__ import annotations

import logging
from typing import Iterator, Optional, Protocol

from ..errors import ShortReadError
from .defs import FRAME_SIZE
from .frame import Frame


class ByteSource(Protocol):
    def read(self, n: int) -> bytes: ...


class FrameReader:
    """
    Assembles fixed 64-byte frames from a byte source.

    Source contract: read(n) returns 1..n bytes while data flows and b""
    when nothing arrived before its read timeout.

    There is no resynchronization: frames are fixed-size, so a stream that
    is out of step is a hardware/configuration fault, not a parse problem.
    """

    def __init__(self, source: ByteSource, logger: Optional[logging.Logger] = None):
        self._source = source
        self.buffer = bytearray()
        self._log = logger or logging.getLogger(__name__)

    def next_frame(self) -> Optional[Frame]:
        """
        Return the next frame, or None if no byte arrived at a frame boundary
        (the caller decides whether that is an idle device or a closed one).

        Raises ShortReadError if the stream stops mid-frame.
        """
        while len(self.buffer) < FRAME_SIZE:
            chunk = self._source.read(FRAME_SIZE - len(self.buffer))
            if not chunk:
                if not self.buffer:
                    return None
                received = len(self.buffer)
                self.buffer.clear()
                raise ShortReadError(received, FRAME_SIZE)
            self.buffer.extend(chunk)

        raw = bytes(self.buffer[:FRAME_SIZE])
        del self.buffer[:FRAME_SIZE]

        frame = Frame.from_bytes(raw)
        self._log.debug("Read frame type=%s", frame.type_name)
        return frame

    def __iter__(self) -> Iterator[Frame]:
        while True:
            frame = self.next_frame()
            if frame is None:
                return
            yield frame
