from __future__ import annotations

import csv
from pathlib import Path

import pytest

from capdaq.ad7746 import transport as transport_mod
from capdaq.ad7746.acquisition import Sample
from capdaq.ad7746.config import CapdaqConfig
from capdaq.ad7746.errors import AcquisitionTimeout, ConfigurationError, InvalidArgumentError
from capdaq.ad7746.runner import AcquisitionHost, RunningStat, RunStats, format_sample
from capdaq.ad7746.transport import UsbTransport


@pytest.fixture
def released(monkeypatch):
    devices = []
    monkeypatch.setattr(transport_mod.usb.util, "dispose_resources", devices.append)
    return devices


def make_host(bridge, clock, config=None):
    lines: list[str] = []
    host = AcquisitionHost(
        config or CapdaqConfig(),
        opener=lambda settings: UsbTransport(bridge),
        sink=lines.append,
        sleep=clock.sleep,
        clock=clock,
    )
    return host, lines


def test_format_sample():
    sample = Sample(
        timestamp=1593500000.25,
        capacitance_raw=0x800001,
        capacitance_f=4.8828125e-19,
        temperature_raw=8388608,
        temperature_c=0.0,
    )
    assert format_sample(sample) == (
        "time: 1593500000.250000  capacitance_raw: 800001  capacitance_pF: 0.000000  "
        "temp_raw: 8388608  temp_C: 0.000"
    )


def test_run_emits_lines_and_releases(bridge, clock, released):
    bridge.regs[0x01:0x07] = b"\x80\x40\x00\x81\x00\x00"
    host, lines = make_host(bridge, clock)
    stats = host.run(max_samples=3)
    assert stats.samples == 3
    assert len(lines) == 3
    assert "capacitance_raw: 804000" in lines[0]
    assert "capacitance_pF: 0.008000" in lines[0]
    assert "temp_C: 32.000" in lines[0]
    assert released == [bridge]
    # configuration precedes the first data read
    assert bridge.writes[0] == (0xBF, b"\x00")


def test_capacitance_only_run(bridge, clock, released):
    cfg = CapdaqConfig(temperature=False)
    host, lines = make_host(bridge, clock, cfg)
    host.run(max_samples=1)
    assert 0x08 not in [address for address, _ in bridge.writes]
    assert [r for r in bridge.reads if r[0] != 0x00] == [(0x01, 3)]
    assert "temp_raw: 0" in lines[0]


def test_configuration_failure_is_fatal(bridge, clock, released):
    bridge.status = [0x04]
    host, lines = make_host(bridge, clock)
    with pytest.raises(ConfigurationError):
        host.run(max_samples=1)
    assert lines == []
    assert released == [bridge]


def test_timeout_is_fatal(bridge, clock, released):
    bridge.status = [0x00, 0x04]
    host, lines = make_host(bridge, clock)
    with pytest.raises(AcquisitionTimeout):
        host.run()
    assert lines == []
    assert released == [bridge]


def test_csv_output(bridge, clock, released, tmp_path: Path):
    bridge.regs[0x01:0x07] = b"\x80\x00\x00\x80\x00\x00"
    out = tmp_path / "logs" / "run.csv"
    host, _ = make_host(bridge, clock, CapdaqConfig(output_csv=out))
    host.run(max_samples=2)
    with out.open(newline="", encoding="utf-8") as fh:
        rows = list(csv.DictReader(fh))
    assert len(rows) == 2
    assert rows[0]["capacitance_raw"] == "8388608"
    assert float(rows[0]["capacitance_pF"]) == 0.0
    assert float(rows[1]["temperature_C"]) == 0.0


def test_no_channels_rejected(bridge, clock):
    host, _ = make_host(bridge, clock, CapdaqConfig(capacitance=False, temperature=False))
    with pytest.raises(InvalidArgumentError):
        host.run(max_samples=1)
    assert bridge.calls == []


def test_csv_appends_across_runs(bridge, clock, released, tmp_path: Path):
    bridge.regs[0x01:0x07] = b"\x80\x00\x00\x80\x00\x00"
    out = tmp_path / "run.csv"
    for _ in range(2):
        host, _ = make_host(bridge, clock, CapdaqConfig(output_csv=out))
        host.run(max_samples=3)
    lines = out.read_text(encoding="utf-8").splitlines()
    assert lines[0].startswith("timestamp,")
    assert sum(line.startswith("timestamp,") for line in lines) == 1
    with out.open(newline="", encoding="utf-8") as fh:
        assert len(list(csv.DictReader(fh))) == 6


def test_run_stats_keep_constant_state(bridge, clock, released):
    bridge.regs[0x01:0x07] = b"\x80\x40\x00\x81\x00\x00"
    host, lines = make_host(bridge, clock)
    stats = host.run(max_samples=500)
    assert len(lines) == 500
    assert stats.capacitance_pf.count == 500
    assert stats.capacitance_pf.mean == pytest.approx(0.008)
    summary = stats.summary()
    assert summary["temperature_C_mean"] == pytest.approx(32.0)
    assert summary["temperature_C_std"] == pytest.approx(0.0, abs=1e-9)
    assert vars(stats.temperature_c).keys() == {"count", "mean", "m2"}


def test_running_stat_matches_sample_statistics():
    values = [1.0, 2.0, 4.0, 7.0]
    stat = RunningStat()
    for value in values:
        stat.add(value)
    assert stat.count == 4
    assert stat.mean == pytest.approx(3.5)
    assert stat.std == pytest.approx(2.6457513110645907)


def test_summary_skips_disabled_channel():
    stats = RunStats()
    stats.add(
        Sample(
            timestamp=0.0,
            capacitance_raw=0x800000,
            capacitance_f=0.0,
            temperature_raw=None,
            temperature_c=None,
        )
    )
    summary = stats.summary()
    assert summary["capacitance_pF_std"] == 0.0
    assert "temperature_C_mean" not in summary
