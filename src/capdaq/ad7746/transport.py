"""
Vendor control-transfer adapter for the EVAL-AD7746EB FX2 bridge.

The Analog Devices FX2 firmware tunnels I2C traffic through vendor requests on
endpoint 0. For the indexed I2C requests, wValue carries the 7-bit slave
address shifted left by one and wIndex carries the first register address.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

import usb.core
import usb.util

from .errors import DeviceNotFoundError, ShortTransferError, TransportError

logger = logging.getLogger(__name__)

EVAL_AD7746EB_VID = 0x0456
EVAL_AD7746EB_PID = 0xB481

CTRL_IN = usb.util.build_request_type(
    usb.util.CTRL_IN, usb.util.CTRL_TYPE_VENDOR, usb.util.CTRL_RECIPIENT_DEVICE
)
CTRL_OUT = usb.util.build_request_type(
    usb.util.CTRL_OUT, usb.util.CTRL_TYPE_VENDOR, usb.util.CTRL_RECIPIENT_DEVICE
)


class VendorRequest(enum.IntEnum):
    IO = 0xDB  # read/write I/O port configuration
    I2C0 = 0xDC  # simple I2C, no register index
    I2C1 = 0xDD  # I2C with 8-bit register index
    I2C2 = 0xDE  # I2C with 16-bit register index


@dataclass
class UsbSettings:
    vid: int = EVAL_AD7746EB_VID
    pid: int = EVAL_AD7746EB_PID
    timeout_ms: int = 1000


class UsbTransport:
    """Fixed-shape vendor reads and writes on top of a pyusb device."""

    def __init__(self, device: Any, timeout_ms: int = 1000) -> None:
        self.device = device
        self.timeout_ms = timeout_ms

    def vendor_read(self, request: int, value: int, index: int, length: int) -> bytes:
        try:
            data = self.device.ctrl_transfer(
                CTRL_IN, int(request), value, index, length, timeout=self.timeout_ms
            )
        except usb.core.USBError as exc:
            raise TransportError(f"Vendor read 0x{int(request):02X} failed: {exc}") from exc
        data = bytes(data)
        if len(data) < length:
            raise ShortTransferError(length, len(data), "read")
        return data[:length]

    def vendor_write(self, request: int, value: int, index: int, data: bytes) -> int:
        payload = bytes(data)
        try:
            written = self.device.ctrl_transfer(
                CTRL_OUT, int(request), value, index, payload, timeout=self.timeout_ms
            )
        except usb.core.USBError as exc:
            raise TransportError(f"Vendor write 0x{int(request):02X} failed: {exc}") from exc
        if written < len(payload):
            raise ShortTransferError(len(payload), int(written), "write")
        return int(written)

    def close(self) -> None:
        usb.util.dispose_resources(self.device)


def open_device(settings: Optional[UsbSettings] = None) -> UsbTransport:
    settings = settings or UsbSettings()
    device = usb.core.find(idVendor=settings.vid, idProduct=settings.pid)
    if device is None:
        raise DeviceNotFoundError(
            f"EVAL-AD7746EB not found (VID=0x{settings.vid:04X} PID=0x{settings.pid:04X}); "
            "is the FX2 firmware loaded?"
        )
    try:
        device.get_active_configuration()
    except usb.core.USBError:
        try:
            device.set_configuration()
        except usb.core.USBError as exc:
            raise TransportError(f"Unable to configure USB device: {exc}") from exc
    logger.info(
        "Opened EVAL-AD7746EB (bus=%s address=%s)",
        getattr(device, "bus", "?"),
        getattr(device, "address", "?"),
    )
    return UsbTransport(device, timeout_ms=settings.timeout_ms)


class DeviceSession:
    """
    Owns the USB transport for one acquisition run.

    Use as a context manager; the device resources are released on every exit
    path, including errors raised while configuring or acquiring.
    """

    def __init__(
        self,
        settings: Optional[UsbSettings] = None,
        opener: Optional[Callable[[UsbSettings], UsbTransport]] = None,
    ) -> None:
        self.settings = settings or UsbSettings()
        self._opener = opener or open_device
        self.transport: Optional[UsbTransport] = None

    def open(self) -> UsbTransport:
        if self.transport is None:
            self.transport = self._opener(self.settings)
        return self.transport

    def close(self) -> None:
        if self.transport is None:
            return
        try:
            self.transport.close()
        except usb.core.USBError as exc:
            logger.warning("Error releasing USB device: %s", exc)
        finally:
            self.transport = None
            logger.debug("USB session closed")

    def __enter__(self) -> UsbTransport:
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()
