# arexx_tap/core/errors.py
from __future__ import annotations


class TapError(Exception):
    """
    Base class for all expected operational errors in arexx-tap.
    """

    #: Stable machine-readable identifier (for CLI exit mapping, logs, etc.)
    code: str = "unknown"

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Configuration / setup errors (no hardware access yet)
# ---------------------------------------------------------------------------

class ConfigError(TapError):
    """
    Configuration file or command-line value is invalid.

    Examples:
      - config file missing or not valid YAML
      - unknown sink type
      - duplicate sensor id
      - unparsable --start-time
    """
    code = "config_error"


# ---------------------------------------------------------------------------
# Device lifecycle errors
# ---------------------------------------------------------------------------

class DeviceConnectError(TapError):
    """
    Byte source could not be opened or the clock handshake failed.

    Examples:
      - serial port not found
      - permission denied
      - device already in use
    """
    code = "device_connect_error"


class DeviceDisconnectedError(TapError):
    """
    Device was previously connected but is no longer reachable.

    Examples:
      - USB unplugged
      - OS-level I/O error during read/write
    """
    code = "device_disconnected"


# ---------------------------------------------------------------------------
# Sink errors
# ---------------------------------------------------------------------------

class SinkError(TapError):
    """
    A sink failed to persist a reading.

    Raised by ReadingSink.persist(); caught and reported per sink by the
    dispatcher, never propagated to the read loop.
    """
    code = "sink_error"

    def __init__(
        self,
        kind: str,
        message: str,
        *,
        hint: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, hint=hint, details=details)
        self.kind = kind
