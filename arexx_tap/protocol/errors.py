# arexx_tap/protocol/errors.py
from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from arexx_tap.protocol.core.decoder import RawTuple


class ProtocolError(Exception):
    """Base for protocol-level failures (framing/tuple layout)."""


class FrameError(ProtocolError):
    """Frame bytes do not form a valid fixed-size frame."""


class ShortReadError(ProtocolError):
    """Byte stream stopped in the middle of a frame."""

    def __init__(self, received: int, expected: int):
        super().__init__(f"byte stream stopped mid-frame ({received}/{expected} bytes)")
        self.received = received
        self.expected = expected


class MalformedTupleError(ProtocolError):
    """
    A tuple length byte outside {0, 9, 10} (or a tuple overrunning the payload).

    `decoded` holds the tuples read from the same frame before the failure.
    """

    def __init__(self, length: int, offset: int, decoded: Sequence["RawTuple"] = ()):
        super().__init__(f"invalid tuple length {length} at payload offset {offset}")
        self.length = length
        self.offset = offset
        self.decoded = list(decoded)
