"""Shared pytest fixtures for sign controller tests."""

import pytest

from led_sign_controller.config import LayoutConfig, Settings, SignConfig
from led_sign_controller.device_client import DeviceClient
from led_sign_controller.models import Departure, DeviceConnection
from led_sign_controller.sign import SignController
from led_sign_controller.soap import MockSignDevice, MockSignTransport


@pytest.fixture
def mock_device() -> MockSignDevice:
    """Create a mock sign showing the two-line message layout."""
    return MockSignDevice(
        layouts={
            "TwoLineDepartures": False,
            "OneLineMessage": False,
            "TwoLineMessage": True,
        },
    )


@pytest.fixture
def connection() -> DeviceConnection:
    """Create a connection descriptor for a test sign."""
    return DeviceConnection(address="10.0.0.5", id="test-sign", timeout_ms=1000)


@pytest.fixture
def device_client(connection: DeviceConnection, mock_device: MockSignDevice) -> DeviceClient:
    """Create a device client talking to the mock sign."""
    return DeviceClient(connection, transport_factory=lambda _: MockSignTransport(mock_device))


@pytest.fixture
def sign_controller(device_client: DeviceClient) -> SignController:
    """Create a sign controller on top of the mock sign."""
    return SignController(device_client, name="Test Kiosk (STOP1)")


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        sign=SignConfig(address="10.0.0.5", id="test-sign", timeout_ms=1000),
        layouts=LayoutConfig(),
        mock=True,
    )


@pytest.fixture
def top_departure() -> Departure:
    """Create a sample top departure."""
    return Departure(route="22 Illini", time="5 min")


@pytest.fixture
def bottom_departure() -> Departure:
    """Create a sample bottom departure."""
    return Departure(route="5 Green", time="12 min")
