from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, List

from .bus import RegisterBus
from .errors import ConfigurationError
from .registers import STATUS_EXCERR, STATUS_RDY, Register

logger = logging.getLogger(__name__)


@dataclass
class SensorSetup:
    """
    Register values written by configure_sensor.

    Defaults: EXC always on at VDD/2 with EXCB normal, both CAPDACs enabled at
    0x49, internal temperature sensor with VTCHOP, CIN1 differential without
    CAPCHOP, slowest conversion rate in continuous mode. With both channels
    enabled the device alternates between them, roughly halving the rate.
    """

    exc_setup: int = 0x63
    capdac_a: int = 0x49 | 0x80
    capdac_b: int = 0x49 | 0x80
    vt_setup: int = 0x81
    cap_setup: int = 0xA0
    config: int = 0xF9
    reset_settle_s: float = 0.0005
    first_sample_settle_s: float = 0.3


def setup_writes(setup: SensorSetup, enable_temperature: bool) -> List[tuple[Register, int]]:
    writes = [
        (Register.EXC_SETUP, setup.exc_setup),
        (Register.CAPDAC_A, setup.capdac_a),
        (Register.CAPDAC_B, setup.capdac_b),
    ]
    if enable_temperature:
        writes.append((Register.VT_SETUP, setup.vt_setup))
    writes.append((Register.CAP_SETUP, setup.cap_setup))
    writes.append((Register.CONFIG, setup.config))
    return writes


def configure_sensor(
    bus: RegisterBus,
    setup: SensorSetup | None = None,
    enable_temperature: bool = True,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """
    Reset and configure the AD7746, then check that the first conversion
    completed. Returns the STATUS byte (always 0 on success).

    Writes are not retried or rolled back; the first register access error
    propagates unchanged.
    """
    setup = setup or SensorSetup()
    bus.write_register(Register.RESET, 0)
    sleep(setup.reset_settle_s)
    for reg, value in setup_writes(setup, enable_temperature):
        logger.debug("Writing %s = 0x%02X", reg.name, value)
        bus.write_register(reg, value)
    sleep(setup.first_sample_settle_s)

    status = bus.read_register(Register.STATUS)
    if status == 0:
        logger.info("AD7746 configured (temperature %s)", "on" if enable_temperature else "off")
        return status
    reasons = []
    if status & STATUS_EXCERR:
        reasons.append("failed to drive EXC signal")
    if status & STATUS_RDY:
        reasons.append("failed to complete first sample")
    for reason in reasons:
        logger.error("AD7746 setup: %s", reason)
    raise ConfigurationError(status, reasons)
