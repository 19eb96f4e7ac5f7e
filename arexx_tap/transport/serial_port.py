# arexx_tap/transport/serial_port.py
from __future__ import annotations

from typing import Optional

import serial
from serial import SerialException

from arexx_tap.protocol.core.defs import FRAME_SIZE

from .base import Transport
from .errors import TransportIOError, TransportOpenError


class SerialTransport(Transport):
    """
    Serial-port link, implemented via pyserial.

    For base stations reached through a USB-serial bridge or a tty exposed
    by a kernel driver. Writes are always whole 64-byte frames; a read that
    hits the port timeout returns what arrived (possibly b"").
    """

    def __init__(
        self,
        port: str,
        *,
        baudrate: int = 115200,
        timeout: float = 30.0,
    ):
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self.ser: Optional[serial.Serial] = None

    @property
    def description(self) -> str:
        return f"serial:{self.port}"

    def open(self) -> None:
        try:
            self.ser = serial.Serial(
                self.port,
                baudrate=self.baudrate,
                timeout=self.timeout,
                write_timeout=self.timeout,
            )
            # stale bytes would shift every following frame
            self.ser.reset_input_buffer()
            self.ser.reset_output_buffer()
        except SerialException as e:
            self.ser = None
            raise TransportOpenError(f"could not open serial port {self.port!r}: {e}") from None

    def close(self) -> None:
        if self.ser is not None:
            try:
                self.ser.close()
            finally:
                self.ser = None

    def is_open(self) -> bool:
        return self.ser is not None and self.ser.is_open

    def read(self, n: int) -> bytes:
        if self.ser is None:
            raise TransportIOError("read while transport not open")

        try:
            buf = b""
            while len(buf) < n:
                chunk = self.ser.read(n - len(buf))
                if not chunk:
                    # timeout reached -> return whatever is collected
                    break
                buf += chunk
            return buf
        except SerialException as e:
            self.ser = None
            raise TransportIOError(f"serial read failed (device disconnected?): {e}") from None

    def write(self, data: bytes) -> int:
        if self.ser is None:
            raise TransportIOError("write while transport not open")
        if len(data) != FRAME_SIZE:
            raise ValueError(f"writes must be whole {FRAME_SIZE}-byte frames, got {len(data)}")

        try:
            n = self.ser.write(data)
            self.ser.flush()
            return n
        except SerialException as e:
            self.ser = None
            raise TransportIOError(f"serial write failed (device disconnected?): {e}") from None
