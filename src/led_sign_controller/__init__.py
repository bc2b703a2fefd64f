"""LED Sign Controller - content and layout control for IP-addressable LED signs.

This package talks to LED signs over their SignSvr SOAP interface. It pushes
departures and messages into pre-provisioned layouts, switches the visible
layout without needless flicker and keeps the sign's watchdog timer alive.
"""

__version__ = "0.1.0"

from led_sign_controller.config import LayoutConfig, Settings, SignConfig, load_settings
from led_sign_controller.device_client import DeviceClient, DeviceClientFactory
from led_sign_controller.exceptions import (
    CommunicationError,
    ConfigurationError,
    PayloadError,
    SerializationError,
    SignControllerError,
)
from led_sign_controller.models import DataItem, Departure, DeviceConnection, Layout
from led_sign_controller.sign import SignController
from led_sign_controller.soap import MockSignDevice, MockSignTransport, SignTransport, SoapTransport

__all__ = [
    "CommunicationError",
    "ConfigurationError",
    "DataItem",
    "Departure",
    "DeviceClient",
    "DeviceClientFactory",
    "DeviceConnection",
    "Layout",
    "LayoutConfig",
    "MockSignDevice",
    "MockSignTransport",
    "PayloadError",
    "SerializationError",
    "Settings",
    "SignConfig",
    "SignController",
    "SignControllerError",
    "SignTransport",
    "SoapTransport",
    "__version__",
    "load_settings",
]
