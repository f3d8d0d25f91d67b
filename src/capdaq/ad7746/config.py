from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Sequence

from .registers import SLAVE_ADDR
from .sequencer import SensorSetup
from .transport import EVAL_AD7746EB_PID, EVAL_AD7746EB_VID, UsbSettings


@dataclass
class PollConfig:
    interval_ms: float = 10.0
    timeout_ms: float = 300.0


@dataclass
class CapdaqConfig:
    slave_addr: int = SLAVE_ADDR
    capacitance: bool = True
    temperature: bool = True
    output_csv: Path | None = None
    stats_log_interval: float = 60.0
    usb: UsbSettings = field(default_factory=UsbSettings)
    poll: PollConfig = field(default_factory=PollConfig)
    setup: SensorSetup = field(default_factory=SensorSetup)


def _load_json(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged: Dict[str, Any] = {**base}
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merged[key] = _merge(base[key], value)  # type: ignore[index]
        else:
            merged[key] = value
    return merged


def _as_int(value: Any) -> int:
    """Register values and USB ids may be written as ints or "0x.." strings."""
    if isinstance(value, str):
        return int(value, 0)
    return int(value)


def _as_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
        return value.strip().lower() == "true"
    raise ValueError(f"'{key}' must be true or false, got {value!r}")


def load_config(path: Path | str | None = None, overrides: Sequence[str] | None = None) -> CapdaqConfig:
    """
    Load acquisition settings from JSON and apply CLI-style overrides.

    Without a path the defaults are used. Overrides are dotted `key=value`
    pairs, e.g. ["temperature=false", "setup.config=0xF9", "poll.timeout_ms=500"].
    """
    data: Dict[str, Any] = _load_json(Path(path)) if path is not None else {}
    override_data: Dict[str, Any] = {}
    for override in overrides or []:
        key, raw_value = _parse_override(override)
        _assign_nested(override_data, key, raw_value)
    merged = _merge(data, override_data)
    usb_data = merged.get("usb") or {}
    poll_data = merged.get("poll") or {}
    setup_data = merged.get("setup") or {}
    defaults = SensorSetup()
    return CapdaqConfig(
        slave_addr=_as_int(merged.get("slave_addr", SLAVE_ADDR)),
        capacitance=_as_bool("capacitance", merged.get("capacitance", True)),
        temperature=_as_bool("temperature", merged.get("temperature", True)),
        output_csv=Path(merged["output_csv"]) if merged.get("output_csv") else None,
        stats_log_interval=float(merged.get("stats_log_interval", 60.0)),
        usb=UsbSettings(
            vid=_as_int(usb_data.get("vid", EVAL_AD7746EB_VID)),
            pid=_as_int(usb_data.get("pid", EVAL_AD7746EB_PID)),
            timeout_ms=int(usb_data.get("timeout_ms", 1000)),
        ),
        poll=PollConfig(
            interval_ms=float(poll_data.get("interval_ms", 10.0)),
            timeout_ms=float(poll_data.get("timeout_ms", 300.0)),
        ),
        setup=SensorSetup(
            exc_setup=_as_int(setup_data.get("exc_setup", defaults.exc_setup)),
            capdac_a=_as_int(setup_data.get("capdac_a", defaults.capdac_a)),
            capdac_b=_as_int(setup_data.get("capdac_b", defaults.capdac_b)),
            vt_setup=_as_int(setup_data.get("vt_setup", defaults.vt_setup)),
            cap_setup=_as_int(setup_data.get("cap_setup", defaults.cap_setup)),
            config=_as_int(setup_data.get("config", defaults.config)),
            reset_settle_s=float(setup_data.get("reset_settle_s", defaults.reset_settle_s)),
            first_sample_settle_s=float(
                setup_data.get("first_sample_settle_s", defaults.first_sample_settle_s)
            ),
        ),
    )


def _parse_override(item: str) -> tuple[str, Any]:
    if "=" not in item:
        raise ValueError(f"Override '{item}' must use key=value syntax")
    key, raw_value = item.split("=", 1)
    key = key.strip()
    if not key:
        raise ValueError("Override key may not be empty")
    return key, _coerce_value(raw_value.strip())


def _coerce_value(raw: str) -> Any:
    lowered = raw.lower()
    if lowered in {"true", "false"}:
        return lowered == "true"
    if lowered.startswith("0x"):
        return int(raw, 16)
    try:
        if "." in raw or "e" in lowered:
            return float(raw)
        return int(raw)
    except ValueError:
        return raw


def _assign_nested(target: Dict[str, Any], dotted_key: str, value: Any) -> None:
    cursor = target
    parts = dotted_key.split(".")
    for part in parts[:-1]:
        cursor = cursor.setdefault(part, {})
    cursor[parts[-1]] = value
