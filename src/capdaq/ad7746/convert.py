"""
Raw code to physical unit conversion using the AD7746 data-sheet constants.

Capacitance is offset binary about mid-scale with a +/-4.096 pF span (8.192 pF
over 2**24 codes). Temperature is fixed point at 1/2048 degC per LSB with zero
at code 4096 * 2048. The functions accept Python integers or numpy arrays.
"""

from __future__ import annotations

from typing import Union

import numpy as np

CODE_BITS = 24
CODE_MAX = (1 << CODE_BITS) - 1

CAP_FULL_SCALE_F = 8.192e-12
CAP_ZERO_CODE = 1 << 23
CAP_LSB_F = CAP_FULL_SCALE_F / (1 << CODE_BITS)

TEMP_CODES_PER_C = 2048.0
TEMP_OFFSET_C = 4096.0

ArrayLike = Union[int, float, np.ndarray]


def capacitance_farads(raw: ArrayLike) -> ArrayLike:
    if isinstance(raw, np.ndarray):
        return CAP_LSB_F * (raw.astype(np.float64) - CAP_ZERO_CODE)
    return CAP_LSB_F * (raw - CAP_ZERO_CODE)


def temperature_celsius(raw: ArrayLike) -> ArrayLike:
    if isinstance(raw, np.ndarray):
        return raw.astype(np.float64) / TEMP_CODES_PER_C - TEMP_OFFSET_C
    return raw / TEMP_CODES_PER_C - TEMP_OFFSET_C


def capacitance_code(farads: ArrayLike) -> ArrayLike:
    """Inverse of capacitance_farads, rounded and clipped to the 24-bit range."""
    codes = np.clip(np.rint(np.asarray(farads, dtype=np.float64) / CAP_LSB_F) + CAP_ZERO_CODE, 0, CODE_MAX)
    if codes.ndim == 0:
        return int(codes)
    return codes.astype(np.int64)


def temperature_code(celsius: ArrayLike) -> ArrayLike:
    """Inverse of temperature_celsius, rounded and clipped to the 24-bit range."""
    codes = np.clip(np.rint((np.asarray(celsius, dtype=np.float64) + TEMP_OFFSET_C) * TEMP_CODES_PER_C), 0, CODE_MAX)
    if codes.ndim == 0:
        return int(codes)
    return codes.astype(np.int64)


def farads_to_picofarads(farads: ArrayLike) -> ArrayLike:
    return farads * 1e12
