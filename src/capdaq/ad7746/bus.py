from __future__ import annotations

import logging
from typing import Dict, Protocol

from .errors import InvalidArgumentError, RegisterAccessError
from .registers import REGISTER_FILE_SIZE, SLAVE_ADDR, RegisterLike, check_readable, check_writable
from .transport import VendorRequest

logger = logging.getLogger(__name__)

MIN_TRANSFER = 1
MAX_TRANSFER = 64


class VendorTransport(Protocol):
    def vendor_read(self, request: int, value: int, index: int, length: int) -> bytes: ...

    def vendor_write(self, request: int, value: int, index: int, data: bytes) -> int: ...


def _check_length(length: int) -> None:
    if not MIN_TRANSFER <= length <= MAX_TRANSFER:
        raise InvalidArgumentError(
            f"Register transfer length must be {MIN_TRANSFER}..{MAX_TRANSFER}, got {length}"
        )


class RegisterBus:
    """
    Read and write contiguous sensor registers through the FX2 I2C bridge.

    Every access is a single VR_I2C1 control transfer. Transport failures and
    short transfers both surface as RegisterAccessError subclasses; callers
    never see partial data.
    """

    def __init__(self, transport: VendorTransport, slave_addr: int = SLAVE_ADDR) -> None:
        if not 0 <= slave_addr <= 0x7F:
            raise InvalidArgumentError(f"I2C slave address 0x{slave_addr:X} is not 7-bit")
        self.transport = transport
        self.slave_addr = slave_addr

    @property
    def _wire_addr(self) -> int:
        return self.slave_addr << 1

    def read_registers(self, start: RegisterLike, length: int) -> bytes:
        address = check_readable(start)
        _check_length(length)
        try:
            return self.transport.vendor_read(VendorRequest.I2C1, self._wire_addr, address, length)
        except RegisterAccessError as exc:
            logger.error("Failed to read %d register(s) at 0x%02X: %s", length, address, exc)
            raise

    def write_registers(self, start: RegisterLike, data: bytes) -> None:
        address = check_writable(start)
        payload = bytes(data)
        _check_length(len(payload))
        try:
            self.transport.vendor_write(VendorRequest.I2C1, self._wire_addr, address, payload)
        except RegisterAccessError as exc:
            logger.error("Failed to write %d register(s) at 0x%02X: %s", len(payload), address, exc)
            raise

    def read_register(self, reg: RegisterLike) -> int:
        return self.read_registers(reg, 1)[0]

    def write_register(self, reg: RegisterLike, value: int) -> None:
        if not 0 <= value <= 0xFF:
            raise InvalidArgumentError(f"Register value {value} does not fit in 8 bits")
        self.write_registers(reg, bytes([value]))

    def dump_registers(self) -> Dict[int, int]:
        data = self.read_registers(0x00, REGISTER_FILE_SIZE)
        return {address: value for address, value in enumerate(data)}
