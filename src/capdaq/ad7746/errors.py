from __future__ import annotations

from typing import Optional


class Ad7746Error(Exception):
    """Base class for every failure raised by the AD7746 driver."""


class InvalidArgumentError(Ad7746Error, ValueError):
    pass


class RegisterAccessError(Ad7746Error):
    pass


class TransportError(RegisterAccessError):
    """USB control transfer failed (device gone, request stalled, timeout)."""


class DeviceNotFoundError(TransportError):
    pass


class ShortTransferError(TransportError):
    def __init__(self, requested: int, transferred: int, what: str = "transfer") -> None:
        super().__init__(f"Short {what} ({transferred} of {requested} bytes)")
        self.requested = requested
        self.transferred = transferred


class AcquisitionTimeout(Ad7746Error, TimeoutError):
    def __init__(self, timeout_s: float, status: Optional[int] = None) -> None:
        detail = f" (last status=0x{status:02X})" if status is not None else ""
        super().__init__(f"Timeout waiting for ready after {timeout_s * 1000:.0f} ms{detail}")
        self.timeout_s = timeout_s
        self.status = status


class ConfigurationError(Ad7746Error):
    def __init__(self, status: int, reasons: Optional[list[str]] = None) -> None:
        text = f"Sensor configuration failed (status=0x{status:02X})"
        if reasons:
            text += ": " + "; ".join(reasons)
        super().__init__(text)
        self.status = status
        self.reasons = list(reasons or [])
