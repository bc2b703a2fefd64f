"""SOAP transports for the sign's SignSvr interface."""

import asyncio
import logging
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from collections.abc import Callable
from types import TracebackType
from typing import Self

import aiohttp

from led_sign_controller.exceptions import CommunicationError
from led_sign_controller.models import DeviceConnection, Layout

logger = logging.getLogger(__name__)

SOAP_ENV_NAMESPACE = "http://schemas.xmlsoap.org/soap/envelope/"
SERVICE_NAMESPACE = "urn:SignSvr"

# SendCommand codes
STOP_TIMER = 94
PAUSE_TIMER = 95
START_TIMER = 96
SET_DISPLAY_BRIGHTNESS = 130

ET.register_namespace("soap", SOAP_ENV_NAMESPACE)

Response = dict[str, str]


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def build_envelope(operation: str, params: dict[str, str | int], namespace: str = SERVICE_NAMESPACE) -> str:
    """Build a SOAP 1.1 request envelope for an operation.

    Args:
        operation: Operation name, e.g. ``SendCommand``.
        params: Parameter names mapped to their values, in wire order.
        namespace: Service namespace of the operation element.

    Returns:
        Envelope serialized as a string.
    """
    envelope = ET.Element(f"{{{SOAP_ENV_NAMESPACE}}}Envelope")
    body = ET.SubElement(envelope, f"{{{SOAP_ENV_NAMESPACE}}}Body")
    request = ET.SubElement(body, f"{{{namespace}}}{operation}")
    for key, value in params.items():
        ET.SubElement(request, key).text = str(value)
    return ET.tostring(envelope, encoding="unicode")


def parse_response(operation: str, text: str | bytes) -> Response:
    """Extract the fields of a SOAP response element.

    Args:
        operation: Operation the response belongs to (for error messages).
        text: Raw response body. Bytes are decoded by the XML parser.

    Returns:
        Response fields keyed by local element name.

    Raises:
        CommunicationError: If the body is malformed or carries a SOAP fault.
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise CommunicationError(f"{operation}: malformed SOAP response: {e}") from e

    body = next((child for child in root if _local(child.tag) == "Body"), None)
    if body is None:
        raise CommunicationError(f"{operation}: SOAP response has no Body")

    response = next(iter(body), None)
    if response is None:
        raise CommunicationError(f"{operation}: SOAP response Body is empty")

    if _local(response.tag) == "Fault":
        fault = {_local(child.tag): (child.text or "") for child in response}
        raise CommunicationError(f"{operation}: SOAP fault: {fault.get('faultstring', 'unknown')}")

    return {_local(child.tag): (child.text or "") for child in response}


class SignTransport(ABC):
    """Abstract transport carrying one or more SignSvr calls.

    Transports are opened per operation and closed afterwards.
    """

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    @abstractmethod
    async def call(self, operation: str, **params: str | int) -> Response:
        """Invoke a remote operation.

        Args:
            operation: SignSvr operation name.
            **params: Operation parameters, in wire order.

        Returns:
            Response fields keyed by name.

        Raises:
            CommunicationError: If the call fails for any reason.
        """

    async def close(self) -> None:
        """Release transport resources."""


class SoapTransport(SignTransport):
    """SOAP over HTTP transport backed by an aiohttp session.

    The timeout applies to the whole request as well as to its connect
    and read phases.
    """

    def __init__(self, connection: DeviceConnection, namespace: str = SERVICE_NAMESPACE) -> None:
        self._connection = connection
        self._namespace = namespace
        timeout = connection.timeout_seconds
        self._session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=timeout, connect=timeout, sock_connect=timeout, sock_read=timeout),
        )

    async def call(self, operation: str, **params: str | int) -> Response:
        envelope = build_envelope(operation, params, self._namespace)
        headers = {
            "Content-Type": "text/xml; charset=utf-8",
            "SOAPAction": f'"{self._namespace}#{operation}"',
        }

        logger.debug("POST %s %s on %s", self._connection.endpoint, operation, self._connection.id)
        try:
            async with self._session.post(
                self._connection.endpoint,
                data=envelope.encode("utf-8"),
                headers=headers,
            ) as response:
                status = response.status
                body = await response.read()
        except (aiohttp.ClientError, TimeoutError) as e:
            raise CommunicationError(f"{operation}: request to {self._connection.endpoint} failed: {e}") from e

        # faults arrive with status 500 and keep their faultstring
        try:
            fields = parse_response(operation, body)
        except CommunicationError as e:
            if status != 200:
                raise CommunicationError(f"{e} (HTTP {status})") from e
            raise

        if status != 200:
            raise CommunicationError(f"{operation}: sign returned HTTP {status}")
        return fields

    async def close(self) -> None:
        await self._session.close()


class MockSignDevice:
    """In-memory stand-in for a sign.

    Holds the state a real sign keeps (layouts, data items, watchdog timer,
    brightness) and records every call for inspection in tests.
    """

    def __init__(
        self,
        layouts: dict[str, bool] | None = None,
        snapshot_file: str = "snapshots\\screen.png",
        latency: float = 0.0,
    ) -> None:
        """Initialize the mock sign.

        Args:
            layouts: Layout names mapped to their enabled state, in device order.
            snapshot_file: File name reported by GetScreenSnapshot.
            latency: Simulated delay per call, in seconds.
        """
        self.layouts: dict[str, bool] = dict(layouts or {})
        self.data_items: dict[str, str] = {}
        self.timer_running = False
        self.brightness: int | None = None
        self.snapshot_file = snapshot_file
        self.latency = latency
        self.calls: list[tuple[str, dict[str, str]]] = []
        self._rules: list[tuple[str, dict[str, str], bool]] = []

    def fail_on(self, operation: str, **match: str | int) -> None:
        """Make matching calls raise CommunicationError."""
        self._rules.append((operation, {k: str(v) for k, v in match.items()}, True))

    def reject(self, operation: str, **match: str | int) -> None:
        """Make matching calls answer with a non-success result code."""
        self._rules.append((operation, {k: str(v) for k, v in match.items()}, False))

    def operations(self) -> list[str]:
        """Names of all operations called so far, in order."""
        return [operation for operation, _ in self.calls]

    def layout_info_xml(self, names: list[str]) -> str:
        entries = "".join(
            f'<Layout name="{name}" enabled="{1 if self.layouts[name] else 0}" />' for name in names
        )
        return f"<Layouts>{entries}</Layouts>"

    def _matching_rule(self, operation: str, params: dict[str, str]) -> bool | None:
        for rule_operation, match, raises in self._rules:
            if rule_operation == operation and all(params.get(k) == v for k, v in match.items()):
                return raises
        return None

    def handle(self, operation: str, params: dict[str, str]) -> Response:
        """Apply a call to the mock state and build its response."""
        self.calls.append((operation, params))

        rule = self._matching_rule(operation, params)
        if rule is True:
            raise CommunicationError(f"{operation}: simulated failure")
        if rule is False:
            return {"Result": "0"}

        match operation:
            case "SendCommand":
                return self._send_command(int(params["commandId"]), params.get("commandData", ""))
            case "UpdateDataItemValueByName":
                self.data_items[params["dataItemName"]] = params.get("dataItemValue", "")
                return {"Result": "1"}
            case "UpdateDataItemValues":
                root = ET.fromstring(params["dataItemValuesXml"])
                for item in root:
                    self.data_items[item.findtext("Name", "")] = item.findtext("Value", "")
                return {"Result": "1"}
            case "GetLayoutByName":
                name = params["layoutName"]
                if name not in self.layouts:
                    return {"Result": "0", "layoutInfoXml": ""}
                layout = Layout(name=name, enabled=self.layouts[name])
                return {
                    "Result": "1",
                    "layoutInfoXml": f'<Layout name="{layout.name}" enabled="{int(layout.enabled)}" />',
                }
            case "GetLayouts":
                return {"Result": "1", "layoutInfoXml": self.layout_info_xml(list(self.layouts))}
            case "SetLayoutState":
                name = params["layoutName"]
                if name not in self.layouts:
                    return {"Result": "0"}
                self.layouts[name] = params["state"] == "1"
                return {"Result": "1"}
            case "GetScreenSnapshot":
                return {"Result": "1", "fileName": self.snapshot_file}
            case _:
                raise CommunicationError(f"{operation}: unknown operation")

    def _send_command(self, command: int, data: str) -> Response:
        match command:
            case 94 | 95:
                self.timer_running = False
            case 96:
                self.timer_running = True
            case 130:
                self.brightness = int(data)
            case _:
                return {"Result": "0"}
        return {"Result": "1"}


class MockSignTransport(SignTransport):
    """Transport that answers calls from a MockSignDevice."""

    def __init__(self, device: MockSignDevice) -> None:
        self._device = device

    async def call(self, operation: str, **params: str | int) -> Response:
        await asyncio.sleep(self._device.latency)
        return self._device.handle(operation, {k: str(v) for k, v in params.items()})


TransportFactory = Callable[[DeviceConnection], SignTransport]


def create_transport_factory(mock: bool = False, device: MockSignDevice | None = None) -> TransportFactory:
    """Factory function selecting the transport implementation.

    Args:
        mock: If True, answer calls from an in-memory mock sign.
        device: Mock sign to use (a default one is created if omitted).

    Returns:
        Callable building a transport for a connection.
    """
    if mock:
        mock_device = device or MockSignDevice(
            layouts={"TwoLineDepartures": False, "OneLineMessage": False, "TwoLineMessage": True},
        )
        logger.info("Using mock sign transport with layouts: %s", ", ".join(mock_device.layouts))
        return lambda connection: MockSignTransport(mock_device)

    return SoapTransport
