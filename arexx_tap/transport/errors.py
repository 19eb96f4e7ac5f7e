# arexx_tap/transport/errors.py
from __future__ import annotations


class TransportError(Exception):
    """Base class for failures of the link to the base station."""


class TransportOpenError(TransportError):
    """The device could not be found, claimed or opened."""


class TransportIOError(TransportError):
    """A read or write failed on an open link; the device is treated as gone."""
