# protocol/core/__init__.py

from .defs import FRAME_SIZE, PROTOCOL_EPOCH, FrameType
from .frame import Frame, request_data_frame, set_clock_frame
from .decoder import FrameDecoder, RawTuple, decode_tuple, encode_tuple
from .reader import FrameReader

__all__ = [
    "FRAME_SIZE", "PROTOCOL_EPOCH", "FrameType",
    "Frame", "request_data_frame", "set_clock_frame",
    "FrameDecoder", "RawTuple", "decode_tuple", "encode_tuple",
    "FrameReader",
]
