from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from .bus import RegisterBus
from .errors import AcquisitionTimeout
from .registers import STATUS_EXCERR, STATUS_RDY, Register

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_S = 0.010


@dataclass
class PollResult:
    status: int
    polls: int
    sleeps: int
    elapsed_s: float
    exc_faults: int = 0


class ReadinessPoller:
    """
    Block until the STATUS register reports every enabled channel ready.

    An excitation fault is logged and polling continues; only the timeout
    ends an unsuccessful poll. The clock and sleep callables are injectable so
    tests can drive the poller with simulated time.
    """

    def __init__(
        self,
        bus: RegisterBus,
        interval_s: float = DEFAULT_POLL_INTERVAL_S,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if interval_s < 0:
            raise ValueError("interval_s must be non-negative")
        self.bus = bus
        self.interval_s = interval_s
        self._clock = clock
        self._sleep = sleep
        self.last_result: PollResult | None = None

    def wait(self, timeout_s: float) -> PollResult:
        start = self._clock()
        polls = sleeps = faults = 0
        while True:
            status = self.bus.read_register(Register.STATUS)
            polls += 1
            elapsed = self._clock() - start
            if not status & STATUS_RDY:
                result = PollResult(status, polls, sleeps, elapsed, faults)
                self.last_result = result
                return result
            if status & STATUS_EXCERR:
                faults += 1
                logger.warning("Failed to drive EXC signal (status=0x%02X)", status)
            if elapsed > timeout_s:
                self.last_result = PollResult(status, polls, sleeps, elapsed, faults)
                logger.warning("Timeout waiting for ready after %.1f ms", elapsed * 1000.0)
                raise AcquisitionTimeout(timeout_s, status)
            self._sleep(self.interval_s)
            sleeps += 1
