"""
Driver for the AD7746 capacitance-to-digital converter on the EVAL-AD7746EB.

The board's FX2 bridge exposes the sensor's I2C register file through USB
vendor control transfers. The subpackage layers register access, readiness
polling, burst acquisition and unit conversion on top of that transport.
"""

from .acquisition import Acquirer, Channels, RawSample, Sample, acquire, assemble_word
from .bus import RegisterBus
from .config import CapdaqConfig, PollConfig, load_config
from .convert import capacitance_code, capacitance_farads, temperature_celsius, temperature_code
from .errors import (
    AcquisitionTimeout,
    Ad7746Error,
    ConfigurationError,
    DeviceNotFoundError,
    InvalidArgumentError,
    RegisterAccessError,
    ShortTransferError,
    TransportError,
)
from .gpio import PortState, configure_board, read_gpio, set_led, write_gpio
from .poller import PollResult, ReadinessPoller
from .registers import Register
from .runner import AcquisitionHost, format_sample
from .sequencer import SensorSetup, configure_sensor
from .transport import DeviceSession, UsbSettings, UsbTransport, VendorRequest, open_device

__all__ = [
    "Acquirer",
    "Channels",
    "RawSample",
    "Sample",
    "acquire",
    "assemble_word",
    "RegisterBus",
    "CapdaqConfig",
    "PollConfig",
    "load_config",
    "capacitance_code",
    "capacitance_farads",
    "temperature_celsius",
    "temperature_code",
    "AcquisitionTimeout",
    "Ad7746Error",
    "ConfigurationError",
    "DeviceNotFoundError",
    "InvalidArgumentError",
    "RegisterAccessError",
    "ShortTransferError",
    "TransportError",
    "PortState",
    "configure_board",
    "read_gpio",
    "set_led",
    "write_gpio",
    "PollResult",
    "ReadinessPoller",
    "Register",
    "AcquisitionHost",
    "format_sample",
    "SensorSetup",
    "configure_sensor",
    "DeviceSession",
    "UsbSettings",
    "UsbTransport",
    "VendorRequest",
    "open_device",
]
