from __future__ import annotations

import pytest
import usb.core

from capdaq.ad7746 import transport as transport_mod
from capdaq.ad7746.errors import DeviceNotFoundError, RegisterAccessError, ShortTransferError, TransportError
from capdaq.ad7746.transport import CTRL_IN, CTRL_OUT, DeviceSession, UsbSettings, UsbTransport, VendorRequest


def test_request_types_are_vendor_device_requests():
    assert CTRL_IN == 0xC0
    assert CTRL_OUT == 0x40


def test_vendor_read_returns_exact_length(bridge, transport):
    bridge.regs[0x07:0x0A] = b"\x01\x02\x03"
    data = transport.vendor_read(VendorRequest.I2C1, 0x90, 0x07, 3)
    assert data == b"\x01\x02\x03"
    assert bridge.calls == [(0xC0, 0xDD, 0x90, 0x07, 3)]


def test_vendor_read_short_transfer(bridge, transport):
    bridge.short_by = 1
    with pytest.raises(ShortTransferError) as info:
        transport.vendor_read(VendorRequest.I2C1, 0x90, 0x01, 3)
    assert info.value.requested == 3
    assert info.value.transferred == 2
    assert isinstance(info.value, RegisterAccessError)


def test_vendor_write_short_transfer(bridge, transport):
    bridge.short_by = 1
    with pytest.raises(ShortTransferError):
        transport.vendor_write(VendorRequest.I2C1, 0x90, 0x0A, b"\xf9\x00")


def test_usb_error_becomes_transport_error(bridge, transport, usb_error):
    bridge.fail = usb_error
    with pytest.raises(TransportError) as info:
        transport.vendor_write(VendorRequest.I2C1, 0x90, 0x0A, b"\xf9")
    assert info.value.__cause__ is usb_error


def test_open_device_not_found(monkeypatch):
    monkeypatch.setattr(transport_mod.usb.core, "find", lambda **kwargs: None)
    with pytest.raises(DeviceNotFoundError):
        transport_mod.open_device(UsbSettings())


def test_open_device_sets_configuration_when_unconfigured(monkeypatch, bridge):
    state = {"configured": False}

    def get_active_configuration():
        raise usb.core.USBError("not configured")

    def set_configuration():
        state["configured"] = True

    bridge.get_active_configuration = get_active_configuration
    bridge.set_configuration = set_configuration
    found = {}

    def fake_find(**kwargs):
        found.update(kwargs)
        return bridge

    monkeypatch.setattr(transport_mod.usb.core, "find", fake_find)
    transport = transport_mod.open_device(UsbSettings(timeout_ms=250))
    assert found == {"idVendor": 0x0456, "idProduct": 0xB481}
    assert state["configured"]
    assert transport.device is bridge
    assert transport.timeout_ms == 250


def test_device_session_releases_on_error(monkeypatch, bridge):
    released = []
    monkeypatch.setattr(transport_mod.usb.util, "dispose_resources", released.append)
    session = DeviceSession(opener=lambda settings: UsbTransport(bridge))
    with pytest.raises(RuntimeError):
        with session as transport:
            assert transport.device is bridge
            raise RuntimeError("boom")
    assert released == [bridge]
    assert session.transport is None
