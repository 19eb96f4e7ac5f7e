# arexx_tap/transport/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class Transport(ABC):
    """
    Byte link to the logger base station (USB bulk endpoints or a serial port).

    Contract:
      - open() claims the device; close() releases it and is safe to repeat.
      - read(n) returns 0..n bytes. b"" means the device stayed quiet until
        the read timeout: the link is still usable and the next poll may
        well get a reply.
      - is_open() tells an idle link apart from one that is gone. Once it
        returns False no further bytes will arrive.
      - A link that fails while open (unplugged device, I/O error) raises
        TransportIOError from read()/write().
      - write(data) sends one whole frame and returns the bytes written.
    """

    @abstractmethod
    def open(self) -> None: ...

    @abstractmethod
    def close(self) -> None: ...

    @abstractmethod
    def is_open(self) -> bool: ...

    @abstractmethod
    def read(self, n: int) -> bytes: ...

    @abstractmethod
    def write(self, data: bytes) -> int: ...

    @property
    def description(self) -> str:
        return type(self).__name__

    def __enter__(self) -> "Transport":
        self.open()
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        self.close()
