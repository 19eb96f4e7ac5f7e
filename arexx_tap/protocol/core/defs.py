# arexx_tap/protocol/core/defs.py
"""
Wire constants of the logger base-station protocol.

Every exchange is one fixed 64-byte frame: byte 0 is the frame type,
bytes 1..63 are the type-dependent payload.
"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import IntEnum

FRAME_SIZE = 64
PAYLOAD_SIZE = FRAME_SIZE - 1

#: Device clock epoch; all protocol timestamps are seconds since this instant.
PROTOCOL_EPOCH = datetime(2000, 1, 1, tzinfo=timezone.utc)

#: Tuple length byte values.
TUPLE_END = 0
TUPLE_LEN_BASIC = 9
TUPLE_LEN_WITH_QUALITY = 10
VALID_TUPLE_LENGTHS = frozenset({TUPLE_END, TUPLE_LEN_BASIC, TUPLE_LEN_WITH_QUALITY})

#: Sensor id reported when the device has no reading to hand out.
NO_SENSOR_ID = 0xFFFF


class FrameType(IntEnum):
    SENSOR_DATA = 0x00
    REQUEST_DATA = 0x03
    SET_CLOCK = 0x04


def frame_type_name(code: int) -> str:
    try:
        return FrameType(code).name
    except ValueError:
        return f"TYPE_0x{code:02X}"
