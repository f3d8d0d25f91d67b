"""
FX2 I/O port access (ports A, B and D, in that order).

For each port, direction bit 1 selects output and value holds the driven
level for outputs. On the EVAL-AD7746EB, A[7] drives the red LED (active
low), A[3] is the sensor RDY# input and D[0] is an unused open-drain wakeup.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence

from .bus import VendorTransport
from .errors import InvalidArgumentError
from .transport import VendorRequest

logger = logging.getLogger(__name__)

PORT_NAMES = ("A", "B", "D")
MAX_PORTS = len(PORT_NAMES)
LED_MASK = 0x80


@dataclass
class PortState:
    value: int = 0x00
    direction: int = 0x00


def _check_count(count: int) -> None:
    if not 1 <= count <= MAX_PORTS:
        raise InvalidArgumentError(f"GPIO port count must be 1..{MAX_PORTS}, got {count}")


def pack_ports(ports: Sequence[PortState]) -> bytes:
    _check_count(len(ports))
    payload = bytearray()
    for port in ports:
        payload.append(port.value & 0xFF)
        payload.append(port.direction & 0xFF)
    return bytes(payload)


def unpack_ports(data: bytes) -> List[PortState]:
    if len(data) % 2:
        raise InvalidArgumentError("GPIO payload must contain (value, direction) pairs")
    return [PortState(value=data[i], direction=data[i + 1]) for i in range(0, len(data), 2)]


def write_gpio(transport: VendorTransport, ports: Sequence[PortState]) -> None:
    payload = pack_ports(ports)
    transport.vendor_write(VendorRequest.IO, 0, 0, payload)


def read_gpio(transport: VendorTransport, count: int = MAX_PORTS) -> List[PortState]:
    _check_count(count)
    data = transport.vendor_read(VendorRequest.IO, 0, 0, 2 * count)
    return unpack_ports(data)


def configure_board(transport: VendorTransport) -> None:
    """LED output (lit), everything else input."""
    write_gpio(
        transport,
        [PortState(value=0x00, direction=LED_MASK), PortState(), PortState()],
    )
    logger.debug("Board GPIO configured")


def set_led(transport: VendorTransport, on: bool) -> None:
    write_gpio(transport, [PortState(value=0x00 if on else LED_MASK, direction=LED_MASK)])
