# arexx_tap/protocol/core/decoder.py
"""
Sensor-data reply decoding.

Payload of a SENSOR_DATA frame is a sequence of length-prefixed tuples,
terminated by a zero length byte (or by the end of the payload):

    len  sensor_id  raw_value  timestamp  [signal_quality]
    u8   u16 LE     u16 BE     u32 LE     [u8]

raw_value is big-endian while the other fields are little-endian. Each
field is unpacked with its own byte order on purpose.
"""
from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import List, Optional

from ..errors import MalformedTupleError
from .defs import TUPLE_END, TUPLE_LEN_BASIC, TUPLE_LEN_WITH_QUALITY, FrameType
from .frame import Frame

_SENSOR_ID = struct.Struct("<H")
_RAW_VALUE = struct.Struct(">H")
_TIMESTAMP = struct.Struct("<I")


@dataclass(frozen=True)
class RawTuple:
    sensor_id: int
    raw_value: int
    timestamp: int
    signal_quality: Optional[int] = None


def decode_tuple(body: bytes) -> RawTuple:
    """Decode one tuple body (the bytes after the length byte, 8 or 9 long)."""
    sensor_id = _SENSOR_ID.unpack_from(body, 0)[0]
    raw_value = _RAW_VALUE.unpack_from(body, 2)[0]
    timestamp = _TIMESTAMP.unpack_from(body, 4)[0]
    quality = body[8] if len(body) > 8 else None
    return RawTuple(sensor_id, raw_value, timestamp, quality)


def encode_tuple(t: RawTuple) -> bytes:
    """Wire bytes of one tuple, including its length byte."""
    length = TUPLE_LEN_BASIC if t.signal_quality is None else TUPLE_LEN_WITH_QUALITY
    out = (
        bytes([length])
        + _SENSOR_ID.pack(t.sensor_id)
        + _RAW_VALUE.pack(t.raw_value)
        + _TIMESTAMP.pack(t.timestamp)
    )
    if t.signal_quality is not None:
        out += bytes([t.signal_quality])
    return out


class FrameDecoder:
    """
    Turns frames into raw tuples.

    Only SENSOR_DATA frames produce tuples; any other frame type decodes to
    an empty list and is left for request/response handling elsewhere.
    """

    def decode(self, frame: Frame) -> List[RawTuple]:
        if frame.frame_type != FrameType.SENSOR_DATA:
            return []
        return self.decode_payload(frame.payload)

    @staticmethod
    def decode_payload(payload: bytes) -> List[RawTuple]:
        tuples: List[RawTuple] = []
        pos = 0

        while pos < len(payload):
            length = payload[pos]
            if length == TUPLE_END:
                break  # rest is padding
            if length not in (TUPLE_LEN_BASIC, TUPLE_LEN_WITH_QUALITY):
                raise MalformedTupleError(length, pos, tuples)

            # length byte counts itself
            end = pos + length
            if end > len(payload):
                raise MalformedTupleError(length, pos, tuples)

            tuples.append(decode_tuple(payload[pos + 1: end]))
            pos = end

        return tuples
