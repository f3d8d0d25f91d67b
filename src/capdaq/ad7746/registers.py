"""
AD7746 register map.

The sensor exposes a flat register file (0x00-0x12, of which 0x00-0x0C are
documented) plus a write-only reset pseudo-address. 24-bit conversion results
occupy three consecutive registers, most significant byte first, and the
capacitance and voltage/temperature results are adjacent so both can be
fetched with a single burst read.
"""

from __future__ import annotations

import enum
from typing import Dict, Union

from .errors import InvalidArgumentError

SLAVE_ADDR = 0x48
REGISTER_FILE_SIZE = 19

STATUS_RDYCAP = 0x01
STATUS_RDYVT = 0x02
STATUS_RDY = 0x04
STATUS_EXCERR = 0x08


class Access(str, enum.Enum):
    READ_ONLY = "ro"
    WRITE_ONLY = "wo"
    READ_WRITE = "rw"


class Register(enum.IntEnum):
    """Register address with its field width (bytes) and access mode."""

    STATUS = (0x00, 1, Access.READ_ONLY)
    CAP_DATA = (0x01, 3, Access.READ_ONLY)
    VT_DATA = (0x04, 3, Access.READ_ONLY)
    CAP_SETUP = (0x07, 1, Access.READ_WRITE)
    VT_SETUP = (0x08, 1, Access.READ_WRITE)
    EXC_SETUP = (0x09, 1, Access.READ_WRITE)
    CONFIG = (0x0A, 1, Access.READ_WRITE)
    CAPDAC_A = (0x0B, 1, Access.READ_WRITE)
    CAPDAC_B = (0x0C, 1, Access.READ_WRITE)
    RESET = (0xBF, 1, Access.WRITE_ONLY)

    def __new__(cls, address: int, width: int, access: Access) -> "Register":
        obj = int.__new__(cls, address)
        obj._value_ = address
        obj.width = width
        obj.access = access
        return obj

    @property
    def readable(self) -> bool:
        return self.access is not Access.WRITE_ONLY

    @property
    def writable(self) -> bool:
        return self.access is not Access.READ_ONLY


RegisterLike = Union[Register, int]


def check_readable(reg: RegisterLike) -> int:
    if isinstance(reg, Register) and not reg.readable:
        raise InvalidArgumentError(f"Register {reg.name} is write-only")
    return _check_address(reg)


def check_writable(reg: RegisterLike) -> int:
    if isinstance(reg, Register) and not reg.writable:
        raise InvalidArgumentError(f"Register {reg.name} is read-only")
    return _check_address(reg)


def _check_address(reg: RegisterLike) -> int:
    address = int(reg)
    if not 0 <= address <= 0xFF:
        raise InvalidArgumentError(f"Register address 0x{address:X} does not fit in 8 bits")
    return address


def decode_status(status: int) -> Dict[str, bool]:
    """Split a STATUS byte into named flags. RDY reads 1 while converting."""
    return {
        "ready": not status & STATUS_RDY,
        "cap_ready": not status & STATUS_RDYCAP,
        "vt_ready": not status & STATUS_RDYVT,
        "exc_error": bool(status & STATUS_EXCERR),
    }
