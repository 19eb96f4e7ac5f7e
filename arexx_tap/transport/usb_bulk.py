# arexx_tap/transport/usb_bulk.py
from __future__ import annotations

import logging
from typing import Optional, Tuple

import usb.core
import usb.util

from arexx_tap.protocol.core.defs import FRAME_SIZE

from .base import Transport
from .errors import TransportIOError, TransportOpenError

AREXX_VENDOR_ID = 0x0451
AREXX_PRODUCT_ID = 0x3211


def _is_bulk(ep, direction: int) -> bool:
    return (
        usb.util.endpoint_direction(ep.bEndpointAddress) == direction
        and usb.util.endpoint_type(ep.bmAttributes) == usb.util.ENDPOINT_TYPE_BULK
    )


def find_bulk_endpoints(dev) -> Optional[Tuple[int, int, int, object, object]]:
    """
    First interface offering both a bulk IN and a bulk OUT endpoint.

    Returns (configuration value, interface number, alternate setting,
    endpoint in, endpoint out), or None.
    """
    for cfg in dev:
        for intf in cfg:
            ep_in = next((ep for ep in intf if _is_bulk(ep, usb.util.ENDPOINT_IN)), None)
            ep_out = next((ep for ep in intf if _is_bulk(ep, usb.util.ENDPOINT_OUT)), None)
            if ep_in is not None and ep_out is not None:
                return cfg.bConfigurationValue, intf.bInterfaceNumber, intf.bAlternateSetting, ep_in, ep_out
    return None


class UsbBulkTransport(Transport):
    """
    Vendor-class USB link to the base station, implemented via pyusb.

    The device is selected by vendor/product id and spoken to through its
    bulk endpoint pair. A kernel driver bound to the interface is detached
    on open and re-attached on close. A read that times out returns b"";
    any other USB error marks the device as gone.
    """

    def __init__(
        self,
        vid: int = AREXX_VENDOR_ID,
        pid: int = AREXX_PRODUCT_ID,
        *,
        timeout: float = 30.0,
        logger: Optional[logging.Logger] = None,
    ):
        self.vid = vid
        self.pid = pid
        self.timeout = timeout
        self._log = logger or logging.getLogger(__name__)

        self.dev = None
        self._iface: Optional[int] = None
        self._ep_in = None
        self._ep_out = None
        self._reattach = False
        self._pending = bytearray()

    @property
    def description(self) -> str:
        return f"usb:{self.vid:04x}:{self.pid:04x}"

    @property
    def _timeout_ms(self) -> int:
        return max(1, int(self.timeout * 1000))

    def open(self) -> None:
        try:
            dev = usb.core.find(idVendor=self.vid, idProduct=self.pid)
        except usb.core.NoBackendError as e:
            raise TransportOpenError(f"no libusb backend available: {e}") from None
        if dev is None:
            raise TransportOpenError(f"no USB device {self.vid:04x}:{self.pid:04x} found")

        found = find_bulk_endpoints(dev)
        if found is None:
            raise TransportOpenError(f"device {self.description} has no bulk IN/OUT endpoint pair")
        cfg_value, iface, alt, ep_in, ep_out = found

        self.dev = dev
        self._iface = iface
        try:
            self._detach_kernel_driver()
            dev.set_configuration(cfg_value)
            usb.util.claim_interface(dev, iface)
            if alt:
                dev.set_interface_altsetting(interface=iface, alternate_setting=alt)
        except usb.core.USBError as e:
            self.close()
            raise TransportOpenError(f"could not claim {self.description}: {e}") from None

        self._ep_in = ep_in
        self._ep_out = ep_out
        self._pending.clear()
        self._log.debug(
            "USB_CLAIMED device=%s iface=%d ep_in=0x%02X ep_out=0x%02X",
            self.description,
            iface,
            ep_in.bEndpointAddress,
            ep_out.bEndpointAddress,
        )

    def _detach_kernel_driver(self) -> None:
        try:
            active = self.dev.is_kernel_driver_active(self._iface)
        except NotImplementedError:
            # not supported by the backend (e.g. Windows)
            return
        if active:
            self.dev.detach_kernel_driver(self._iface)
            self._reattach = True

    def close(self) -> None:
        dev, self.dev = self.dev, None
        self._ep_in = self._ep_out = None
        self._pending.clear()
        if dev is None:
            return
        try:
            usb.util.release_interface(dev, self._iface)
            if self._reattach:
                dev.attach_kernel_driver(self._iface)
        except usb.core.USBError as e:
            self._log.warning("USB_RELEASE_FAILED device=%s msg=%s", self.description, e)
        finally:
            self._reattach = False
            usb.util.dispose_resources(dev)

    def is_open(self) -> bool:
        return self.dev is not None

    def read(self, n: int) -> bytes:
        if self.dev is None:
            raise TransportIOError("read while transport not open")

        if not self._pending:
            size = max(n, FRAME_SIZE, self._ep_in.wMaxPacketSize)
            try:
                data = self._ep_in.read(size, timeout=self._timeout_ms)
            except usb.core.USBTimeoutError:
                return b""
            except usb.core.USBError as e:
                self.close()
                raise TransportIOError(f"USB read failed (device disconnected?): {e}") from None
            self._pending.extend(bytes(data))

        out = bytes(self._pending[:n])
        del self._pending[:n]
        return out

    def write(self, data: bytes) -> int:
        if self.dev is None:
            raise TransportIOError("write while transport not open")
        if len(data) != FRAME_SIZE:
            raise ValueError(f"writes must be whole {FRAME_SIZE}-byte frames, got {len(data)}")

        try:
            return self._ep_out.write(data, timeout=self._timeout_ms)
        except usb.core.USBError as e:
            self.close()
            raise TransportIOError(f"USB write failed (device disconnected?): {e}") from None
