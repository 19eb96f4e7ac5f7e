# arexx_tap/protocol/core/frame.py
from __future__ import annotations

import struct
from dataclasses import dataclass
from datetime import datetime, timezone

from ..errors import FrameError
from .defs import FRAME_SIZE, PAYLOAD_SIZE, PROTOCOL_EPOCH, FrameType, frame_type_name


@dataclass(frozen=True)
class Frame:
    """One 64-byte protocol unit. `payload` is always the full 63 bytes."""

    frame_type: int
    payload: bytes = b""

    def __post_init__(self) -> None:
        if not 0 <= int(self.frame_type) <= 0xFF:
            raise FrameError(f"Invalid frame_type={self.frame_type}")
        if len(self.payload) > PAYLOAD_SIZE:
            raise FrameError(f"Payload too long: {len(self.payload)} > {PAYLOAD_SIZE}")
        # zero-pad short payloads so every frame has the same shape
        object.__setattr__(self, "frame_type", int(self.frame_type))
        object.__setattr__(self, "payload", bytes(self.payload).ljust(PAYLOAD_SIZE, b"\x00"))

    @classmethod
    def from_bytes(cls, raw: bytes) -> "Frame":
        if len(raw) != FRAME_SIZE:
            raise FrameError(f"Frame must be exactly {FRAME_SIZE} bytes, got {len(raw)}")
        return cls(frame_type=raw[0], payload=bytes(raw[1:]))

    def encode(self) -> bytes:
        return bytes([self.frame_type]) + self.payload

    @property
    def type_name(self) -> str:
        return frame_type_name(self.frame_type)

    def __repr__(self) -> str:
        used = self.payload.rstrip(b"\x00")
        return f"Frame(type={self.type_name}, payload={used.hex()})"


# ---------------------------------------------------------------------------
# Outbound frames
# ---------------------------------------------------------------------------

def protocol_seconds(when: datetime) -> int:
    """Seconds since the protocol epoch, as sent in the set-clock frame."""
    if when.tzinfo is None:
        when = when.astimezone()
    secs = int((when.astimezone(timezone.utc) - PROTOCOL_EPOCH).total_seconds())
    if not 0 <= secs <= 0xFFFFFFFF:
        raise ValueError(f"{when.isoformat()} is outside the device clock range")
    return secs


def request_data_frame() -> Frame:
    """Ask the device to hand out its next sensor-data reply."""
    return Frame(FrameType.REQUEST_DATA)


def set_clock_frame(when: datetime) -> Frame:
    return Frame(FrameType.SET_CLOCK, struct.pack("<I", protocol_seconds(when)))
