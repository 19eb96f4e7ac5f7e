from __future__ import annotations

import pytest

import arexx_tap.transport.usb_bulk as bulk_mod
from arexx_tap.protocol.core.frame import request_data_frame
from arexx_tap.transport.errors import TransportIOError, TransportOpenError

FRAME = request_data_frame().encode()


class FakeEndpoint:
    def __init__(self, address: int, attributes: int = 0x02, max_packet: int = 64):
        self.bEndpointAddress = address
        self.bmAttributes = attributes
        self.wMaxPacketSize = max_packet
        self.reads = []
        self.written = []
        self.read_sizes = []
        self.read_timeouts = []
        self.raise_on_write = None

    def read(self, size, timeout=None):
        self.read_sizes.append(size)
        self.read_timeouts.append(timeout)
        item = self.reads.pop(0) if self.reads else bulk_mod.usb.core.USBTimeoutError("timeout")
        if isinstance(item, Exception):
            raise item
        return bytearray(item)

    def write(self, data, timeout=None):
        if self.raise_on_write is not None:
            raise self.raise_on_write
        self.written.append(bytes(data))
        return len(data)


class FakeInterface:
    def __init__(self, endpoints, number: int = 0, alt: int = 0):
        self._endpoints = endpoints
        self.bInterfaceNumber = number
        self.bAlternateSetting = alt

    def __iter__(self):
        return iter(self._endpoints)


class FakeConfiguration:
    def __init__(self, interfaces, value: int = 1):
        self._interfaces = interfaces
        self.bConfigurationValue = value

    def __iter__(self):
        return iter(self._interfaces)


class FakeDevice:
    def __init__(self, configs, *, kernel_driver: bool = False):
        self._configs = configs
        self.kernel_driver = kernel_driver
        self.detached = []
        self.attached = []
        self.configuration = None
        self.altsettings = []

    def __iter__(self):
        return iter(self._configs)

    def is_kernel_driver_active(self, iface):
        return self.kernel_driver

    def detach_kernel_driver(self, iface):
        self.detached.append(iface)

    def attach_kernel_driver(self, iface):
        self.attached.append(iface)

    def set_configuration(self, value):
        self.configuration = value

    def set_interface_altsetting(self, interface, alternate_setting):
        self.altsettings.append((interface, alternate_setting))


def _arexx_device(**kw):
    ep_in = FakeEndpoint(0x81)
    ep_out = FakeEndpoint(0x01)
    control = FakeInterface([FakeEndpoint(0x82, attributes=0x03)], number=0)
    bulk = FakeInterface([ep_in, ep_out], number=1)
    return FakeDevice([FakeConfiguration([control, bulk])], **kw), ep_in, ep_out


@pytest.fixture
def usb_calls(monkeypatch):
    calls = {"find": [], "claim": [], "release": [], "dispose": []}
    monkeypatch.setattr(bulk_mod.usb.util, "claim_interface", lambda dev, i: calls["claim"].append(i))
    monkeypatch.setattr(bulk_mod.usb.util, "release_interface", lambda dev, i: calls["release"].append(i))
    monkeypatch.setattr(bulk_mod.usb.util, "dispose_resources", lambda dev: calls["dispose"].append(dev))
    return calls


def _install(monkeypatch, usb_calls, dev):
    def find(**kw):
        usb_calls["find"].append(kw)
        return dev

    monkeypatch.setattr(bulk_mod.usb.core, "find", find)


def test_open_selects_device_by_vid_pid_and_claims_bulk_interface(monkeypatch, usb_calls):
    dev, ep_in, ep_out = _arexx_device()
    _install(monkeypatch, usb_calls, dev)

    t = bulk_mod.UsbBulkTransport()
    t.open()

    assert usb_calls["find"] == [{"idVendor": 0x0451, "idProduct": 0x3211}]
    assert dev.configuration == 1
    assert usb_calls["claim"] == [1]
    assert t.is_open()
    assert t.description == "usb:0451:3211"


def test_open_detaches_and_close_reattaches_kernel_driver(monkeypatch, usb_calls):
    dev, _, _ = _arexx_device(kernel_driver=True)
    _install(monkeypatch, usb_calls, dev)

    t = bulk_mod.UsbBulkTransport()
    t.open()
    t.close()

    assert dev.detached == [1]
    assert dev.attached == [1]
    assert usb_calls["release"] == [1]
    assert usb_calls["dispose"] == [dev]
    assert not t.is_open()


def test_open_without_device_raises(monkeypatch, usb_calls):
    _install(monkeypatch, usb_calls, None)

    with pytest.raises(TransportOpenError, match="0451:3211"):
        bulk_mod.UsbBulkTransport().open()


def test_open_without_bulk_pair_raises(monkeypatch, usb_calls):
    dev = FakeDevice([FakeConfiguration([FakeInterface([FakeEndpoint(0x81)])])])
    _install(monkeypatch, usb_calls, dev)

    t = bulk_mod.UsbBulkTransport()
    with pytest.raises(TransportOpenError, match="bulk"):
        t.open()
    assert not t.is_open()


def test_missing_backend_maps_to_open_error(monkeypatch):
    def find(**kw):
        raise bulk_mod.usb.core.NoBackendError("No backend available")

    monkeypatch.setattr(bulk_mod.usb.core, "find", find)

    with pytest.raises(TransportOpenError, match="libusb"):
        bulk_mod.UsbBulkTransport().open()


def test_read_returns_frame_bytes_in_requested_slices(monkeypatch, usb_calls):
    dev, ep_in, _ = _arexx_device()
    ep_in.reads = [bytes(range(64))]
    _install(monkeypatch, usb_calls, dev)

    t = bulk_mod.UsbBulkTransport(timeout=2.5)
    t.open()

    assert t.read(10) == bytes(range(10))
    assert t.read(54) == bytes(range(10, 64))
    assert ep_in.read_sizes == [64]
    assert ep_in.read_timeouts == [2500]


def test_read_timeout_returns_empty_and_keeps_link_open(monkeypatch, usb_calls):
    dev, ep_in, _ = _arexx_device()
    ep_in.reads = [bulk_mod.usb.core.USBTimeoutError("timeout"), bytes(64)]
    _install(monkeypatch, usb_calls, dev)

    t = bulk_mod.UsbBulkTransport()
    t.open()

    assert t.read(64) == b""
    assert t.is_open()
    assert t.read(64) == bytes(64)


def test_read_usb_error_closes_and_raises(monkeypatch, usb_calls):
    dev, ep_in, _ = _arexx_device()
    ep_in.reads = [bulk_mod.usb.core.USBError("No such device")]
    _install(monkeypatch, usb_calls, dev)

    t = bulk_mod.UsbBulkTransport()
    t.open()

    with pytest.raises(TransportIOError):
        t.read(64)
    assert not t.is_open()


def test_write_sends_whole_frames(monkeypatch, usb_calls):
    dev, _, ep_out = _arexx_device()
    _install(monkeypatch, usb_calls, dev)

    t = bulk_mod.UsbBulkTransport()
    t.open()

    assert t.write(FRAME) == 64
    assert ep_out.written == [FRAME]
    with pytest.raises(ValueError):
        t.write(b"\x03")


def test_write_usb_error_closes_and_raises(monkeypatch, usb_calls):
    dev, _, ep_out = _arexx_device()
    ep_out.raise_on_write = bulk_mod.usb.core.USBError("pipe error")
    _install(monkeypatch, usb_calls, dev)

    t = bulk_mod.UsbBulkTransport()
    t.open()

    with pytest.raises(TransportIOError):
        t.write(FRAME)
    assert not t.is_open()


def test_io_before_open_raises():
    t = bulk_mod.UsbBulkTransport()
    with pytest.raises(TransportIOError):
        t.read(1)
    with pytest.raises(TransportIOError):
        t.write(FRAME)
