from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .bus import RegisterBus
from .convert import capacitance_farads, temperature_celsius
from .poller import ReadinessPoller
from .registers import Register

logger = logging.getLogger(__name__)

WORD_BYTES = 3


class Channels(enum.Flag):
    NONE = 0
    CAPACITANCE = 1
    TEMPERATURE = 2
    BOTH = 3

    @classmethod
    def select(cls, capacitance: bool, temperature: bool) -> "Channels":
        selected = cls.NONE
        if capacitance:
            selected |= cls.CAPACITANCE
        if temperature:
            selected |= cls.TEMPERATURE
        return selected


@dataclass
class RawSample:
    capacitance: Optional[int] = None
    temperature: Optional[int] = None


@dataclass
class Sample:
    """One converted acquisition cycle."""

    timestamp: float
    capacitance_raw: Optional[int]
    capacitance_f: Optional[float]
    temperature_raw: Optional[int]
    temperature_c: Optional[float]

    @property
    def capacitance_pf(self) -> Optional[float]:
        if self.capacitance_f is None:
            return None
        return self.capacitance_f * 1e12


def assemble_word(data: bytes) -> int:
    """Big-endian 24-bit word from three register bytes."""
    if len(data) != WORD_BYTES:
        raise ValueError(f"Expected {WORD_BYTES} bytes, got {len(data)}")
    return data[0] << 16 | data[1] << 8 | data[2]


def data_window(channels: Channels) -> tuple[Register, int]:
    """Start register and byte count covering the selected channels."""
    if channels & Channels.CAPACITANCE and channels & Channels.TEMPERATURE:
        return Register.CAP_DATA, 2 * WORD_BYTES
    if channels & Channels.CAPACITANCE:
        return Register.CAP_DATA, WORD_BYTES
    if channels & Channels.TEMPERATURE:
        return Register.VT_DATA, WORD_BYTES
    raise ValueError("No channel selected")


def acquire(
    bus: RegisterBus,
    poller: ReadinessPoller,
    want_capacitance: bool,
    want_temperature: bool,
    timeout_s: float,
) -> RawSample:
    """
    Wait for a conversion and fetch the raw codes of the requested channels.

    Both channels are read with one burst: CAP_DATA and VT_DATA are adjacent,
    so the capacitance word is the first three bytes and the temperature word
    the last three. Any failure propagates and no partial sample is returned.
    """
    channels = Channels.select(want_capacitance, want_temperature)
    if not channels:
        return RawSample()
    poller.wait(timeout_s)
    start, length = data_window(channels)
    data = bus.read_registers(start, length)
    sample = RawSample()
    if channels & Channels.CAPACITANCE:
        sample.capacitance = assemble_word(data[:WORD_BYTES])
    if channels & Channels.TEMPERATURE:
        sample.temperature = assemble_word(data[-WORD_BYTES:])
    return sample


class Acquirer:
    """Bundle of bus, poller and channel selection producing converted samples."""

    def __init__(
        self,
        bus: RegisterBus,
        poller: ReadinessPoller,
        channels: Channels = Channels.BOTH,
        timeout_s: float = 0.3,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self.bus = bus
        self.poller = poller
        self.channels = channels
        self.timeout_s = timeout_s
        self._wall_clock = wall_clock

    def read_raw(self) -> RawSample:
        return acquire(
            self.bus,
            self.poller,
            bool(self.channels & Channels.CAPACITANCE),
            bool(self.channels & Channels.TEMPERATURE),
            self.timeout_s,
        )

    def read(self) -> Sample:
        raw = self.read_raw()
        return Sample(
            timestamp=self._wall_clock(),
            capacitance_raw=raw.capacitance,
            capacitance_f=capacitance_farads(raw.capacitance) if raw.capacitance is not None else None,
            temperature_raw=raw.temperature,
            temperature_c=temperature_celsius(raw.temperature) if raw.temperature is not None else None,
        )
