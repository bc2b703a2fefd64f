"""Content operations and layout reconciliation for one sign."""

import asyncio
import logging

from led_sign_controller.config import LayoutConfig
from led_sign_controller.device_client import DeviceClient
from led_sign_controller.models import Departure

logger = logging.getLogger(__name__)

TOP_LEFT = "Top_Left"
TOP_RIGHT = "Top_Right"
TOP_CENTER = "Top_Center"
BOTTOM_LEFT = "Bottom_Left"
BOTTOM_RIGHT = "Bottom_Right"
BOTTOM_CENTER = "Bottom_Center"


class SignController:
    """Shows content on a sign through its pre-provisioned layouts.

    Each content update refreshes the watchdog, pushes the layout's data
    items and makes sure the matching layout is the one being shown. A
    failed step does not skip the later ones, but the update then reports
    failure.
    Switching layouts makes the sign flicker, so a switch is only issued
    when the target layout is not already enabled.

    Operations on one controller are serialized, so use a single
    controller per sign.
    """

    def __init__(self, client: DeviceClient, name: str | None = None, layouts: LayoutConfig | None = None) -> None:
        """Initialize the sign controller.

        Args:
            client: Device client for the sign.
            name: Human readable name used in logs (defaults to the device id).
            layouts: Names of the layouts provisioned on the sign.
        """
        self._client = client
        self._name = name or client.device_id
        self._layouts = layouts or LayoutConfig()
        self._lock = asyncio.Lock()

    @property
    def name(self) -> str:
        """Name used in log records."""
        return self._name

    @property
    def client(self) -> DeviceClient:
        """Device client used for remote calls."""
        return self._client

    @property
    def layouts(self) -> LayoutConfig:
        """Layout names used by the content operations."""
        return self._layouts

    async def ensure_layout_active(self, layout_name: str) -> bool:
        """Make ``layout_name`` the only enabled layout.

        Does nothing if the layout already reports enabled. Otherwise every
        enabled layout is disabled, in device order, before the target is
        enabled. The sequence stops at the first failed call and is not
        rolled back, so a failed enable can leave the sign blank until the
        next successful update.

        Returns:
            True if the layout is known to be active.
        """
        async with self._lock:
            return await self._ensure_layout_active(layout_name)

    async def _ensure_layout_active(self, layout_name: str) -> bool:
        layout = await self._client.get_layout_by_name(layout_name)
        if layout is None:
            logger.error("%s: could not read state of layout %s", self._name, layout_name)
            return False

        if layout.enabled:
            logger.debug("%s: %s is already enabled", self._name, layout_name)
            return True

        layouts = await self._client.list_layouts()
        if layouts is None:
            logger.error("%s: could not list layouts, not switching to %s", self._name, layout_name)
            return False

        for other in layouts:
            if not other.enabled:
                continue
            if not await self._client.set_layout_enabled(other.name, False):
                logger.error("%s: failed to disable %s while switching to %s", self._name, other.name, layout_name)
                return False

        if not await self._client.set_layout_enabled(layout_name, True):
            logger.error("%s: failed to enable %s, sign may be blank", self._name, layout_name)
            return False

        logger.info("%s: switched to layout %s", self._name, layout_name)
        return True

    async def _update(self, layout_name: str, items: dict[str, str]) -> bool:
        async with self._lock:
            refreshed = await self._client.refresh_watchdog()
            if not refreshed:
                logger.error("%s: watchdog refresh failed, updating content anyway", self._name)

            pushed = await self._client.push_data_items(items)
            if not pushed:
                logger.error("%s: failed to push content for %s", self._name, layout_name)

            activated = await self._ensure_layout_active(layout_name)
            return refreshed and pushed and activated

    async def show_departure_pair(self, top: Departure, bottom: Departure | None = None) -> bool:
        """Show one or two departures on the two-departure layout."""
        result = await self._update(
            self._layouts.two_departures,
            {
                TOP_LEFT: top.route,
                TOP_RIGHT: top.time,
                BOTTOM_LEFT: bottom.route if bottom else "",
                BOTTOM_RIGHT: bottom.time if bottom else "",
            },
        )
        logger.debug(
            "%s updated with %s: %s and %s (success=%s)",
            self._name,
            self._layouts.two_departures,
            top,
            bottom,
            result,
        )
        return result

    async def show_message_with_departure(self, message: str, departure: Departure | None = None) -> bool:
        """Show a message on the top line and an optional departure below it."""
        result = await self._update(
            self._layouts.one_message,
            {
                TOP_CENTER: message,
                BOTTOM_LEFT: departure.route if departure else "",
                BOTTOM_RIGHT: departure.time if departure else "",
            },
        )
        logger.debug(
            "%s updated with %s: %r and departure %s (success=%s)",
            self._name,
            self._layouts.one_message,
            message,
            departure,
            result,
        )
        return result

    async def show_two_line_message(self, top: str, bottom: str = "") -> bool:
        """Show one or two lines of free text."""
        result = await self._update(
            self._layouts.two_messages,
            {TOP_CENTER: top, BOTTOM_CENTER: bottom},
        )
        logger.debug(
            "%s updated with %s: %r and %r (success=%s)",
            self._name,
            self._layouts.two_messages,
            top,
            bottom,
            result,
        )
        return result

    async def blank(self) -> bool:
        """Blank the sign by showing two empty message lines."""
        result = await self.show_two_line_message("", "")
        logger.info("%s blanked (success=%s)", self._name, result)
        return result

    async def change_brightness(self, level: int) -> bool:
        """Set the display brightness (1-127).

        Raises:
            ValueError: If level is out of range.
        """
        result = await self._client.set_brightness(level)
        logger.info("%s brightness updated to %d (success=%s)", self._name, level, result)
        return result
