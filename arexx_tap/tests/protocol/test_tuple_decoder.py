from __future__ import annotations

import pytest

from arexx_tap.protocol.core.decoder import FrameDecoder, RawTuple, decode_tuple, encode_tuple
from arexx_tap.protocol.core.frame import Frame
from arexx_tap.protocol.core.defs import FrameType, PAYLOAD_SIZE
from arexx_tap.protocol.errors import MalformedTupleError


def _sensor_frame(payload: bytes) -> Frame:
    return Frame(FrameType.SENSOR_DATA, payload)


def test_decode_reference_frame_mixed_endianness():
    raw = bytes([0x00, 0x09, 0x57, 0x04, 0x00, 0x64, 0x00, 0x00, 0x00, 0x00, 0x00]).ljust(64, b"\x00")

    tuples = FrameDecoder().decode(Frame.from_bytes(raw))

    assert tuples == [RawTuple(sensor_id=1111, raw_value=100, timestamp=0, signal_quality=None)]


def test_raw_value_is_big_endian_and_timestamp_little_endian():
    body = bytes([0x34, 0x12, 0x12, 0x34, 0x78, 0x56, 0x34, 0x12])

    t = decode_tuple(body)

    assert t.sensor_id == 0x1234
    assert t.raw_value == 0x1234
    assert t.timestamp == 0x12345678
    assert t.signal_quality is None


def test_ten_byte_tuple_carries_signal_quality():
    payload = bytes([10, 0x01, 0x00, 0x00, 0x10, 0x05, 0x00, 0x00, 0x00, 0xC8])

    tuples = FrameDecoder().decode(_sensor_frame(payload))

    assert tuples == [RawTuple(sensor_id=1, raw_value=16, timestamp=5, signal_quality=200)]


def test_multiple_tuples_until_terminator():
    a = RawTuple(2222, 2500, 1000)
    b = RawTuple(3333, 1800, 1001, signal_quality=77)
    trailing = RawTuple(4444, 1, 1)  # after the terminator -> padding
    payload = encode_tuple(a) + encode_tuple(b) + b"\x00" + encode_tuple(trailing)

    assert FrameDecoder().decode(_sensor_frame(payload)) == [a, b]


def test_leading_zero_length_decodes_to_empty_sequence():
    assert FrameDecoder().decode(_sensor_frame(b"\x00" + b"\xFF" * 20)) == []


def test_tuples_filling_whole_payload_stop_at_frame_end():
    t = RawTuple(7, 8, 9)
    payload = encode_tuple(t) * 7  # 63 bytes, no terminator

    assert len(payload) == PAYLOAD_SIZE
    assert FrameDecoder().decode(_sensor_frame(payload)) == [t] * 7


@pytest.mark.parametrize("bad_len", [1, 2, 8, 11, 12, 0x7F, 0xFF])
def test_invalid_length_raises_and_keeps_prior_tuples(bad_len):
    good = RawTuple(1111, 100, 42)
    payload = encode_tuple(good) + bytes([bad_len]) + b"\x01" * 12

    with pytest.raises(MalformedTupleError) as ei:
        FrameDecoder().decode(_sensor_frame(payload))

    assert ei.value.length == bad_len
    assert ei.value.offset == 9
    assert ei.value.decoded == [good]


def test_tuple_overrunning_payload_is_malformed():
    payload = encode_tuple(RawTuple(1, 1, 1)) * 6 + bytes([10, 1, 2, 3, 4, 5, 6, 7, 8])

    with pytest.raises(MalformedTupleError) as ei:
        FrameDecoder().decode_payload(payload)

    assert len(ei.value.decoded) == 6


@pytest.mark.parametrize("ftype", [FrameType.REQUEST_DATA, FrameType.SET_CLOCK, 0x7E])
def test_non_sensor_frames_decode_to_nothing(ftype):
    payload = encode_tuple(RawTuple(1, 2, 3))
    assert FrameDecoder().decode(Frame(ftype, payload)) == []


@pytest.mark.parametrize(
    "t",
    [
        RawTuple(0, 0, 0),
        RawTuple(1111, 100, 0),
        RawTuple(0xFFFE, 0xFFFF, 0xFFFFFFFF),
        RawTuple(0x0102, 0x0304, 0x05060708),
    ],
)
def test_nine_byte_tuple_bytes_survive_decode_encode(t):
    wire = encode_tuple(t)
    assert len(wire) == 9

    decoded = decode_tuple(wire[1:])
    assert decoded == t
    assert encode_tuple(decoded) == wire


def test_encode_tuple_field_byte_order():
    wire = encode_tuple(RawTuple(0x0457, 0x0064, 0x01020304))
    assert wire == bytes([0x09, 0x57, 0x04, 0x00, 0x64, 0x04, 0x03, 0x02, 0x01])
