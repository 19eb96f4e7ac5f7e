# protocol/__init__.py

# Core classes
from .core import Frame, FrameDecoder, FrameReader, FrameType, RawTuple
from .errors import ProtocolError, FrameError, ShortReadError, MalformedTupleError

__all__ = [
    "Frame", "FrameDecoder", "FrameReader", "FrameType", "RawTuple",
    "ProtocolError", "FrameError", "ShortReadError", "MalformedTupleError"]
