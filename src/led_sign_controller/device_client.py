"""Client for the primitives exposed by a single sign."""

import logging
from collections.abc import Mapping
from datetime import datetime

from led_sign_controller.exceptions import CommunicationError, PayloadError
from led_sign_controller.models import DeviceConnection, Layout
from led_sign_controller.payloads import parse_layouts, serialize_data_items
from led_sign_controller.soap import (
    PAUSE_TIMER,
    SET_DISPLAY_BRIGHTNESS,
    START_TIMER,
    STOP_TIMER,
    Response,
    SignTransport,
    SoapTransport,
    TransportFactory,
)

logger = logging.getLogger(__name__)

WATCHDOG_ITEM = "Time_Since_Last_Update"

MIN_BRIGHTNESS = 1
MAX_BRIGHTNESS = 127

SUCCESS = 1


def _field(response: Response, name: str) -> str | None:
    """Look up a response field, ignoring case."""
    lowered = name.lower()
    for key, value in response.items():
        if key.lower() == lowered:
            return value
    return None


def _succeeded(response: Response) -> bool:
    return (_field(response, "Result") or "").strip() == str(SUCCESS)


def _watchdog_timestamp(now: datetime) -> str:
    return f"{now.month}/{now.day} {now:%H:%M:%S}"


class DeviceClient:
    """Client for the remote procedures of one sign.

    Every operation opens a fresh transport, so nothing but the connection
    descriptor is kept between calls. Remote failures are logged and
    reported as ``False``/``None``; only invalid input and outgoing
    serialization problems raise.
    """

    def __init__(self, connection: DeviceConnection, transport_factory: TransportFactory | None = None) -> None:
        """Initialize the device client.

        Args:
            connection: Address, logical id and timeout of the sign.
            transport_factory: Builds a transport per operation (SOAP over HTTP by default).
        """
        self._connection = connection
        self._transport_factory: TransportFactory = transport_factory or SoapTransport

    @property
    def connection(self) -> DeviceConnection:
        """Connection descriptor of the sign."""
        return self._connection

    @property
    def device_id(self) -> str:
        """Logical identifier used in log records."""
        return self._connection.id

    def _open(self, method: str) -> SignTransport | None:
        try:
            return self._transport_factory(self._connection)
        except Exception:
            logger.exception("Failed to create transport for %s in %s", self.device_id, method)
            return None

    async def refresh_watchdog(self) -> bool:
        """Refresh the "Time_Since_Last_Update" data item.

        Stops the timer, sets the item to the current time and restarts the
        timer, strictly in that order. The sign blanks itself when this item
        goes stale.

        Returns:
            True if all three calls reported success.
        """
        transport = self._open("refresh_watchdog")
        if transport is None:
            return False

        try:
            async with transport:
                stop = await transport.call("SendCommand", commandId=STOP_TIMER, commandData=WATCHDOG_ITEM)
                update = await transport.call(
                    "UpdateDataItemValueByName",
                    dataItemName=WATCHDOG_ITEM,
                    dataItemValue=_watchdog_timestamp(datetime.now()),
                )
                start = await transport.call("SendCommand", commandId=START_TIMER, commandData=WATCHDOG_ITEM)
        except CommunicationError:
            logger.exception("Failed to refresh timer on %s", self.device_id)
            return False

        success = _succeeded(stop) and _succeeded(update) and _succeeded(start)
        if success:
            logger.debug("Refreshed timer on %s", self.device_id)
        else:
            logger.error(
                "Failed to refresh timer on %s (stop=%s, set=%s, start=%s)",
                self.device_id,
                _field(stop, "Result"),
                _field(update, "Result"),
                _field(start, "Result"),
            )
        return success

    async def pause_watchdog(self) -> bool:
        """Pause the watchdog timer without touching its data item."""
        return await self._send_command("pause_watchdog", PAUSE_TIMER, WATCHDOG_ITEM)

    async def push_data_items(self, items: Mapping[str, str]) -> bool:
        """Update several data items in one call.

        Args:
            items: Data item names mapped to their new values.

        Returns:
            True if the sign accepted the update.

        Raises:
            SerializationError: If the items cannot be serialized.
        """
        # serialization errors propagate, they are a caller bug
        xml = serialize_data_items(items)

        transport = self._open("push_data_items")
        if transport is None:
            return False

        try:
            async with transport:
                logger.debug("Updating %s data items: %s", self.device_id, xml)
                response = await transport.call("UpdateDataItemValues", dataItemValuesXml=xml)
        except CommunicationError:
            logger.exception("Failed to update data items %s on %s", dict(items), self.device_id)
            return False

        if not _succeeded(response):
            logger.warning("%s rejected data items %s", self.device_id, dict(items))
            return False
        return True

    async def push_data_item(self, name: str, value: str) -> bool:
        """Update a single data item."""
        transport = self._open("push_data_item")
        if transport is None:
            return False

        try:
            async with transport:
                logger.debug("Updating %s to %r on %s", name, value, self.device_id)
                response = await transport.call("UpdateDataItemValueByName", dataItemName=name, dataItemValue=value)
        except CommunicationError:
            logger.exception("push_data_item %s failed on %s", name, self.device_id)
            return False

        if not _succeeded(response):
            logger.warning("%s rejected data item %s", self.device_id, name)
            return False
        return True

    async def get_layout_by_name(self, name: str) -> Layout | None:
        """Fetch the descriptor of one layout.

        Returns:
            The layout, or None if the call failed or its answer could not be
            parsed into the named layout.
        """
        transport = self._open("get_layout_by_name")
        if transport is None:
            return None

        try:
            async with transport:
                response = await transport.call("GetLayoutByName", layoutName=name, flags=0)
        except CommunicationError:
            logger.exception("Failed to get layout %s on %s", name, self.device_id)
            return None

        try:
            layouts = parse_layouts(_field(response, "layoutInfoXml") or "")
        except PayloadError:
            logger.exception("Failed to parse GetLayoutByName response for %s on %s", name, self.device_id)
            return None

        layout = next((layout for layout in layouts if layout.name == name), None)
        if layout is None:
            logger.warning("%s did not describe layout %s", self.device_id, name)
        return layout

    async def list_layouts(self) -> list[Layout] | None:
        """Fetch all layouts provisioned on the sign, in device order.

        Returns:
            The layouts, or None if the call failed, was rejected or its
            answer could not be parsed. An empty list means the sign
            reported no layouts.
        """
        transport = self._open("list_layouts")
        if transport is None:
            return None

        try:
            async with transport:
                response = await transport.call("GetLayouts", flags=0)
        except CommunicationError:
            logger.exception("Failed to get layouts on %s", self.device_id)
            return None

        if not _succeeded(response):
            logger.warning("%s rejected GetLayouts (result=%s)", self.device_id, _field(response, "Result"))
            return None

        try:
            return parse_layouts(_field(response, "layoutInfoXml") or "")
        except PayloadError:
            logger.exception("Failed to parse GetLayouts response on %s", self.device_id)
            return None

    async def set_layout_enabled(self, name: str, enabled: bool) -> bool:
        """Enable or disable a layout."""
        transport = self._open("set_layout_enabled")
        if transport is None:
            return False

        try:
            async with transport:
                response = await transport.call("SetLayoutState", layoutName=name, state=int(enabled))
        except CommunicationError:
            logger.exception("Failed to set layout %s enabled=%s on %s", name, enabled, self.device_id)
            return False

        if not _succeeded(response):
            logger.warning("%s rejected layout %s enabled=%s", self.device_id, name, enabled)
            return False

        logger.debug("%s layout %s on %s", "Enabled" if enabled else "Disabled", name, self.device_id)
        return True

    async def set_brightness(self, level: int) -> bool:
        """Set the display brightness.

        Args:
            level: Brightness between 1 and 127.

        Raises:
            ValueError: If level is out of range (no call is made).
        """
        if not MIN_BRIGHTNESS <= level <= MAX_BRIGHTNESS:
            raise ValueError(f"brightness must be between {MIN_BRIGHTNESS} and {MAX_BRIGHTNESS}, got {level}")

        success = await self._send_command("set_brightness", SET_DISPLAY_BRIGHTNESS, str(level))
        if success:
            logger.debug("Updated %s brightness to %d", self.device_id, level)
        return success

    async def get_snapshot_uri(self) -> str | None:
        """Ask the sign to render a snapshot and build its URL.

        Returns:
            URL of the snapshot image, or None on failure.
        """
        transport = self._open("get_snapshot_uri")
        if transport is None:
            return None

        try:
            async with transport:
                response = await transport.call("GetScreenSnapshot")
        except CommunicationError:
            logger.exception("Failed to get screen snapshot for %s", self.device_id)
            return None

        file_name = (_field(response, "fileName") or "").strip()
        if not file_name:
            logger.warning("%s returned no snapshot file name", self.device_id)
            return None

        path = file_name.replace("\\", "/").lstrip("/")
        uri = f"{self._connection.base_url}/{path}"
        logger.debug("Built image link for %s: %s", self.device_id, uri)
        return uri

    async def _send_command(self, method: str, command: int, data: str) -> bool:
        transport = self._open(method)
        if transport is None:
            return False

        try:
            async with transport:
                response = await transport.call("SendCommand", commandId=command, commandData=data)
        except CommunicationError:
            logger.exception("Command %d (%s) failed on %s", command, data, self.device_id)
            return False

        if not _succeeded(response):
            logger.warning("%s rejected command %d (%s)", self.device_id, command, data)
            return False
        return True


class DeviceClientFactory:
    """Creates device clients sharing one timeout and transport."""

    def __init__(self, timeout_ms: int, transport_factory: TransportFactory | None = None) -> None:
        if timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {timeout_ms}")
        self._timeout_ms = timeout_ms
        self._transport_factory = transport_factory

    def create_client(self, address: str, device_id: str | None = None) -> DeviceClient:
        """Create a client for the sign at ``address``.

        Raises:
            pydantic.ValidationError: If the address is blank.
        """
        connection = DeviceConnection(address=address, id=device_id or "", timeout_ms=self._timeout_ms)
        return DeviceClient(connection, transport_factory=self._transport_factory)
