"""Command line interface for the capdaq package."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer

from .ad7746.bus import RegisterBus
from .ad7746.config import CapdaqConfig, load_config
from .ad7746.errors import Ad7746Error
from .ad7746.gpio import PORT_NAMES, read_gpio, set_led
from .ad7746.registers import Register, decode_status
from .ad7746.runner import AcquisitionHost
from .ad7746.transport import DeviceSession

logger = logging.getLogger(__name__)

app = typer.Typer(
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
    help="EVAL-AD7746EB capacitance/temperature acquisition.",
)

ConfigOption = typer.Option(None, "--config", "-c", help="JSON config file (defaults if omitted).")
OverrideOption = typer.Option(
    None, "--set", help="Override config keys, e.g. --set temperature=false --set poll.timeout_ms=500"
)


@app.callback()
def main(
    log_level: str = typer.Option("INFO", "--log-level", help="DEBUG, INFO, WARNING or ERROR."),
) -> None:
    level = getattr(logging, log_level.upper(), None)
    if not isinstance(level, int):
        raise typer.BadParameter(f"Unknown log level '{log_level}'", param_hint="--log-level")
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _load(config_path: Optional[Path], override: Optional[List[str]]) -> CapdaqConfig:
    try:
        return load_config(config_path, override or None)
    except (OSError, ValueError) as exc:
        raise typer.BadParameter(f"Invalid configuration: {exc}") from exc


@app.command()
def run(
    config_path: Optional[Path] = ConfigOption,
    override: Optional[List[str]] = OverrideOption,
    no_temperature: bool = typer.Option(False, "--no-temperature", help="Acquire capacitance only."),
    count: Optional[int] = typer.Option(None, "--count", "-n", min=1, help="Stop after N samples."),
    csv_path: Optional[Path] = typer.Option(None, "--csv", help="Also append samples to this CSV file."),
) -> None:
    """Configure the sensor and print one line per conversion."""

    cfg = _load(config_path, override)
    if no_temperature:
        cfg.temperature = False
    if csv_path is not None:
        cfg.output_csv = csv_path
    if not (cfg.capacitance or cfg.temperature):
        raise typer.BadParameter("Enable at least one of capacitance/temperature")
    host = AcquisitionHost(cfg, sink=typer.echo)
    try:
        host.run(max_samples=count)
    except Ad7746Error as exc:
        typer.echo(f"Acquisition failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc


@app.command()
def status(
    config_path: Optional[Path] = ConfigOption,
    override: Optional[List[str]] = OverrideOption,
) -> None:
    """Read and decode the STATUS register."""

    cfg = _load(config_path, override)
    try:
        with DeviceSession(cfg.usb) as transport:
            value = RegisterBus(transport, cfg.slave_addr).read_register(Register.STATUS)
    except Ad7746Error as exc:
        typer.echo(f"Status read failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    flags = decode_status(value)
    typer.echo(f"STATUS=0x{value:02X} " + " ".join(f"{k}={int(v)}" for k, v in flags.items()))


@app.command()
def dump(
    config_path: Optional[Path] = ConfigOption,
    override: Optional[List[str]] = OverrideOption,
) -> None:
    """Print the AD7746 register file."""

    cfg = _load(config_path, override)
    try:
        with DeviceSession(cfg.usb) as transport:
            registers = RegisterBus(transport, cfg.slave_addr).dump_registers()
    except Ad7746Error as exc:
        typer.echo(f"Register dump failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo("AD7746 Register dump:")
    for address, value in registers.items():
        typer.echo(f"{address:02x}: {value:02x}")


@app.command()
def gpio(
    config_path: Optional[Path] = ConfigOption,
    override: Optional[List[str]] = OverrideOption,
    led: Optional[bool] = typer.Option(None, "--led/--no-led", help="Switch the red LED before reading."),
) -> None:
    """Show the FX2 port snapshot, optionally switching the LED."""

    cfg = _load(config_path, override)
    try:
        with DeviceSession(cfg.usb) as transport:
            if led is not None:
                set_led(transport, led)
            ports = read_gpio(transport)
    except Ad7746Error as exc:
        typer.echo(f"GPIO access failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    for name, port in zip(PORT_NAMES, ports):
        typer.echo(f"port {name}: value=0x{port.value:02X} direction=0x{port.direction:02X}")


@app.command()
def plot(
    input_path: Path = typer.Option(..., "--in", exists=True, readable=True, help="CSV log from 'run --csv'."),
    out_dir: Path = typer.Option(Path("plots"), "--out", help="Directory for the PNG."),
) -> None:
    """Summarise and plot an acquisition log."""

    from .plotting import load_log, plot_log, summarize_log

    try:
        df = load_log(input_path)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--in") from exc
    for key, value in summarize_log(df).items():
        typer.echo(f"{key}: {value:.6g}")
    try:
        figure = plot_log(df, out_dir)
    except RuntimeError as exc:
        typer.echo(f"[warning] plotting skipped: {exc}")
        return
    typer.echo(f"Plot written to {figure}")


def run_app() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    run_app()
