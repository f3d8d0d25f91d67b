from __future__ import annotations

import csv
import logging
import math
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Optional, TextIO

from .acquisition import Acquirer, Channels, Sample
from .bus import RegisterBus
from .config import CapdaqConfig
from .errors import Ad7746Error, InvalidArgumentError
from .gpio import configure_board
from .poller import ReadinessPoller
from .sequencer import configure_sensor
from .transport import DeviceSession, UsbSettings, UsbTransport, open_device

logger = logging.getLogger(__name__)

CSV_FIELDS = [
    "timestamp",
    "capacitance_raw",
    "capacitance_pF",
    "temperature_raw",
    "temperature_C",
]


def format_sample(sample: Sample) -> str:
    cap_raw = sample.capacitance_raw if sample.capacitance_raw is not None else 0
    cap_pf = sample.capacitance_pf if sample.capacitance_pf is not None else 0.0
    temp_raw = sample.temperature_raw if sample.temperature_raw is not None else 0
    temp_c = sample.temperature_c if sample.temperature_c is not None else 0.0
    return (
        f"time: {sample.timestamp:f}  capacitance_raw: {cap_raw:06x}  "
        f"capacitance_pF: {cap_pf:.6f}  temp_raw: {temp_raw:d}  temp_C: {temp_c:.3f}"
    )


class CsvLogger:
    """
    Lazily opens the CSV file when the first sample arrives so that runs
    failing during setup leave nothing behind. Existing logs are appended to;
    the header is written only when the file is new or empty.
    """

    def __init__(self, path: Path):
        self.path = path
        self._writer: Optional[csv.DictWriter[str]] = None
        self._file_handle: Optional[TextIO] = None

    def append(self, sample: Sample) -> None:
        if self._writer is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            is_new = not self.path.exists() or self.path.stat().st_size == 0
            self._file_handle = self.path.open("a", newline="", encoding="utf-8")
            self._writer = csv.DictWriter(self._file_handle, fieldnames=CSV_FIELDS)
            if is_new:
                self._writer.writeheader()
        self._writer.writerow(
            {
                "timestamp": f"{sample.timestamp:.6f}",
                "capacitance_raw": "" if sample.capacitance_raw is None else sample.capacitance_raw,
                "capacitance_pF": "" if sample.capacitance_pf is None else f"{sample.capacitance_pf:.6f}",
                "temperature_raw": "" if sample.temperature_raw is None else sample.temperature_raw,
                "temperature_C": "" if sample.temperature_c is None else f"{sample.temperature_c:.3f}",
            }
        )
        if self._file_handle is not None:
            self._file_handle.flush()

    def close(self) -> None:
        if self._file_handle:
            self._file_handle.close()
            self._file_handle = None
            self._writer = None


@dataclass
class RunningStat:
    """Count, mean and variance accumulated without keeping the samples (Welford)."""

    count: int = 0
    mean: float = 0.0
    m2: float = 0.0

    def add(self, value: float) -> None:
        self.count += 1
        delta = value - self.mean
        self.mean += delta / self.count
        self.m2 += delta * (value - self.mean)

    @property
    def std(self) -> float:
        return math.sqrt(self.m2 / (self.count - 1)) if self.count > 1 else 0.0


@dataclass
class RunStats:
    samples: int = 0
    poll_sleeps: int = 0
    exc_faults: int = 0
    capacitance_pf: RunningStat = field(default_factory=RunningStat)
    temperature_c: RunningStat = field(default_factory=RunningStat)

    def add(self, sample: Sample, sleeps: int = 0, faults: int = 0) -> None:
        self.samples += 1
        self.poll_sleeps += sleeps
        self.exc_faults += faults
        if sample.capacitance_pf is not None:
            self.capacitance_pf.add(sample.capacitance_pf)
        if sample.temperature_c is not None:
            self.temperature_c.add(sample.temperature_c)

    def summary(self) -> Dict[str, float]:
        result: Dict[str, float] = {"samples": float(self.samples)}
        for name, stat in (("capacitance_pF", self.capacitance_pf), ("temperature_C", self.temperature_c)):
            if not stat.count:
                continue
            result[f"{name}_mean"] = stat.mean
            result[f"{name}_std"] = stat.std
        return result


class AcquisitionHost:
    """
    Owns one device session: configures the sensor and board, then acquires
    samples until `max_samples` is reached or an error occurs. Errors are
    fatal; the session is released before they propagate.
    """

    def __init__(
        self,
        config: CapdaqConfig,
        opener: Optional[Callable[[UsbSettings], UsbTransport]] = None,
        sink: Callable[[str], None] | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self.channels = Channels.select(config.capacitance, config.temperature)
        self._opener = opener or open_device
        self._sink = sink or _stdout_sink
        self._sleep = sleep
        self._clock = clock
        self.stats = RunStats()

    def setup(self, transport: UsbTransport) -> Acquirer:
        bus = RegisterBus(transport, self.config.slave_addr)
        configure_sensor(
            bus,
            self.config.setup,
            enable_temperature=bool(self.channels & Channels.TEMPERATURE),
            sleep=self._sleep,
        )
        configure_board(transport)
        poller = ReadinessPoller(
            bus,
            interval_s=self.config.poll.interval_ms / 1000.0,
            clock=self._clock,
            sleep=self._sleep,
        )
        return Acquirer(bus, poller, self.channels, timeout_s=self.config.poll.timeout_ms / 1000.0)

    def run(self, max_samples: Optional[int] = None) -> RunStats:
        if not self.channels:
            raise InvalidArgumentError("At least one of capacitance/temperature must be enabled")
        csv_logger = CsvLogger(self.config.output_csv) if self.config.output_csv else None
        interval_sec = max(float(self.config.stats_log_interval), 5.0)
        next_log = self._clock() + interval_sec
        session = DeviceSession(self.config.usb, opener=self._opener)
        try:
            with session as transport:
                acquirer = self.setup(transport)
                while max_samples is None or self.stats.samples < max_samples:
                    sample = acquirer.read()
                    poll = acquirer.poller.last_result
                    self.stats.add(
                        sample,
                        sleeps=poll.sleeps if poll else 0,
                        faults=poll.exc_faults if poll else 0,
                    )
                    self._sink(format_sample(sample))
                    if csv_logger:
                        csv_logger.append(sample)
                    if self._clock() >= next_log:
                        self._log_stats()
                        next_log = self._clock() + interval_sec
        except Ad7746Error as exc:
            logger.error("Acquisition stopped: %s", exc)
            raise
        except KeyboardInterrupt:
            logger.info("Stopping acquisition (Ctrl+C)")
        finally:
            if csv_logger:
                csv_logger.close()
            self._log_stats(final=True)
        return self.stats

    def _log_stats(self, final: bool = False) -> None:
        summary = self.stats.summary()
        logger.info(
            "%ssamples=%d poll_sleeps=%d exc_faults=%d cap_mean_pF=%s temp_mean_C=%s",
            "Final stats: " if final else "",
            self.stats.samples,
            self.stats.poll_sleeps,
            self.stats.exc_faults,
            _fmt(summary.get("capacitance_pF_mean")),
            _fmt(summary.get("temperature_C_mean")),
        )


def _fmt(value: Optional[float]) -> str:
    return "n/a" if value is None else f"{value:.6f}"


def _stdout_sink(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()
