"""Post-processing helpers for acquisition CSV logs."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import numpy as np
import pandas as pd

from .ad7746.runner import CSV_FIELDS


def load_log(path: str | Path) -> pd.DataFrame:
    """Read a CSV written by the acquisition runner.

    Adds an `elapsed_s` column relative to the first sample.
    """
    df = pd.read_csv(path)
    missing = set(CSV_FIELDS) - set(df.columns)
    if missing:
        raise ValueError(f"Log {path} is missing columns: {sorted(missing)}")
    df["elapsed_s"] = df["timestamp"] - df["timestamp"].iloc[0] if len(df) else df["timestamp"]
    return df


def summarize_log(df: pd.DataFrame) -> Dict[str, float]:
    summary: Dict[str, float] = {"samples": float(len(df))}
    for column in ("capacitance_pF", "temperature_C"):
        values = df[column].dropna().to_numpy(dtype=float)
        if values.size == 0:
            continue
        summary[f"{column}_mean"] = float(np.mean(values))
        summary[f"{column}_std"] = float(np.std(values, ddof=1)) if values.size > 1 else 0.0
        summary[f"{column}_p2p"] = float(np.ptp(values))
    return summary


def plot_log(df: pd.DataFrame, output_dir: Path) -> Path:
    plt = _require_matplotlib()
    output_dir.mkdir(parents=True, exist_ok=True)
    has_temp = df["temperature_C"].notna().any()
    fig, ax1 = plt.subplots(figsize=(10, 5))
    ax1.plot(df["elapsed_s"], df["capacitance_pF"], color="tab:blue", label="capacitance [pF]")
    ax1.set_xlabel("Time [s]")
    ax1.set_ylabel("Capacitance [pF]", color="tab:blue")
    ax1.tick_params(axis="y", labelcolor="tab:blue")
    if has_temp:
        ax2 = ax1.twinx()
        ax2.plot(df["elapsed_s"], df["temperature_C"], color="tab:orange", label="temperature [°C]")
        ax2.set_ylabel("Temperature [°C]", color="tab:orange")
        ax2.tick_params(axis="y", labelcolor="tab:orange")
    fig.tight_layout()
    out_path = output_dir / "capdaq.png"
    fig.savefig(out_path, dpi=150)
    plt.close(fig)
    return out_path


def _require_matplotlib() -> Any:
    try:
        import matplotlib

        matplotlib.use("Agg", force=True)
        import matplotlib.pyplot as plt  # type: ignore
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError("matplotlib is required for plotting; install capdaq[plot]") from exc
    return plt
