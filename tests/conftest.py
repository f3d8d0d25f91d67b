from __future__ import annotations

from typing import List, Optional

import pytest
import usb.core

from capdaq.ad7746.bus import RegisterBus
from capdaq.ad7746.transport import CTRL_IN, UsbTransport, VendorRequest


class FakeBridge:
    """Stand-in for a pyusb device running the FX2 I2C bridge firmware."""

    def __init__(self, status: Optional[List[int]] = None) -> None:
        self.regs = bytearray(256)
        self.status = list(status or [0x00])
        self.ports = bytearray(6)
        self.calls: list[tuple] = []
        self.writes: list[tuple[int, bytes]] = []
        self.short_by = 0
        self.fail: Optional[Exception] = None

    def ctrl_transfer(self, bm_request_type, b_request, w_value, w_index, data_or_length, timeout=None):
        self.calls.append((bm_request_type, b_request, w_value, w_index, data_or_length))
        if self.fail is not None:
            raise self.fail
        if bm_request_type == CTRL_IN:
            length = int(data_or_length)
            if b_request == VendorRequest.IO:
                data = bytes(self.ports[:length])
            else:
                data = self._read(w_index, length)
            return bytes(data[: max(length - self.short_by, 0)])
        payload = bytes(data_or_length)
        if b_request == VendorRequest.IO:
            self.ports[: len(payload)] = payload
        else:
            self.writes.append((w_index, payload))
            self.regs[w_index : w_index + len(payload)] = payload
        return max(len(payload) - self.short_by, 0)

    def _read(self, start: int, length: int) -> bytes:
        data = bytearray(self.regs[start : start + length])
        if start == 0x00:
            data[0] = self.status.pop(0) if len(self.status) > 1 else self.status[0]
        return bytes(data)

    @property
    def reads(self) -> list[tuple[int, int]]:
        return [(c[3], c[4]) for c in self.calls if c[0] == CTRL_IN and c[1] == VendorRequest.I2C1]

    def set_word(self, address: int, word: int) -> None:
        self.regs[address : address + 3] = word.to_bytes(3, "big")


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def bridge() -> FakeBridge:
    return FakeBridge()


@pytest.fixture
def transport(bridge: FakeBridge) -> UsbTransport:
    return UsbTransport(bridge, timeout_ms=100)


@pytest.fixture
def bus(transport: UsbTransport) -> RegisterBus:
    return RegisterBus(transport)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def usb_error() -> usb.core.USBError:
    return usb.core.USBError("Pipe error", errno=32)
