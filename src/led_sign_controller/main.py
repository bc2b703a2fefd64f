"""CLI entry point for the LED sign controller."""

import asyncio
import logging
import sys
from collections.abc import Coroutine
from pathlib import Path
from typing import Annotated, Any, TypeVar, cast

import typer

from led_sign_controller.config import Settings, load_settings
from led_sign_controller.device_client import DeviceClient
from led_sign_controller.exceptions import ConfigurationError
from led_sign_controller.models import Departure
from led_sign_controller.sign import SignController
from led_sign_controller.soap import create_transport_factory

T = TypeVar("T")

MOCK_ADDRESS = "mock-sign"

app = typer.Typer(
    name="led-sign",
    help="LED sign controller - push content to IP-addressable LED signs.",
    add_completion=False,
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application.

    Args:
        verbose: If True, set log level to DEBUG.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def create_client(settings: Settings) -> DeviceClient:
    """Build the device client described by the settings.

    Raises:
        ConfigurationError: If the sign address is missing or invalid.
    """
    if settings.mock and not settings.sign.address:
        settings.sign.address = MOCK_ADDRESS
    connection = settings.sign.to_connection()
    return DeviceClient(connection, transport_factory=create_transport_factory(mock=settings.mock))


def _settings(ctx: typer.Context) -> Settings:
    return cast(Settings, ctx.obj)


def _client(ctx: typer.Context) -> DeviceClient:
    try:
        return create_client(_settings(ctx))
    except ConfigurationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=2) from e


def _controller(ctx: typer.Context) -> SignController:
    return SignController(_client(ctx), layouts=_settings(ctx).layouts)


def _run(operation: Coroutine[Any, Any, T]) -> T:
    return asyncio.run(operation)


def _finish(success: bool, message: str) -> None:
    if not success:
        typer.echo(f"Failed: {message}", err=True)
        raise typer.Exit(code=1)
    typer.echo(message)


def _departure(route: str | None, time: str | None) -> Departure | None:
    if route is None and time is None:
        return None
    return Departure(route=route or "", time=time or "")


@app.callback()
def main(
    ctx: typer.Context,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to YAML configuration file.",
            exists=True,
            dir_okay=False,
            resolve_path=True,
        ),
    ] = None,
    address: Annotated[
        str | None,
        typer.Option(
            "--address",
            "-a",
            help="Sign address (overrides config file).",
            envvar="SIGN_ADDRESS",
        ),
    ] = None,
    sign_id: Annotated[
        str | None,
        typer.Option("--id", help="Logical sign identifier used in logs."),
    ] = None,
    mock: Annotated[
        bool,
        typer.Option("--mock", help="Talk to an in-memory mock sign instead of the network."),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose debug logging.",
        ),
    ] = False,
) -> None:
    """Control a single LED sign."""
    setup_logging(verbose=verbose)

    settings = load_settings(config)

    # Override from CLI arguments
    if address:
        settings.sign.address = address
    if sign_id:
        settings.sign.id = sign_id
    if mock:
        settings.mock = True

    logger.debug("Sign address: %s, mock: %s", settings.sign.address or "<unset>", settings.mock)
    ctx.obj = settings


@app.command()
def departures(
    ctx: typer.Context,
    route: Annotated[str, typer.Argument(help="Route of the top departure.")],
    time: Annotated[str, typer.Argument(help="Time of the top departure.")],
    bottom_route: Annotated[str | None, typer.Option(help="Route of the bottom departure.")] = None,
    bottom_time: Annotated[str | None, typer.Option(help="Time of the bottom departure.")] = None,
) -> None:
    """Show one or two departures."""
    controller = _controller(ctx)
    top = Departure(route=route, time=time)
    bottom = _departure(bottom_route, bottom_time)
    success = _run(controller.show_departure_pair(top, bottom))
    _finish(success, f"{controller.name}: showing {top}" + (f" and {bottom}" if bottom else ""))


@app.command()
def message(
    ctx: typer.Context,
    top: Annotated[str, typer.Argument(help="Top line.")],
    bottom: Annotated[str, typer.Argument(help="Bottom line.")] = "",
) -> None:
    """Show one or two lines of text."""
    controller = _controller(ctx)
    success = _run(controller.show_two_line_message(top, bottom))
    _finish(success, f"{controller.name}: showing message")


@app.command("message-departure")
def message_departure(
    ctx: typer.Context,
    text: Annotated[str, typer.Argument(help="Message on the top line.")],
    route: Annotated[str | None, typer.Option(help="Route of the departure below the message.")] = None,
    time: Annotated[str | None, typer.Option(help="Time of the departure below the message.")] = None,
) -> None:
    """Show a message above an optional departure."""
    controller = _controller(ctx)
    success = _run(controller.show_message_with_departure(text, _departure(route, time)))
    _finish(success, f"{controller.name}: showing message with departure")


@app.command()
def blank(ctx: typer.Context) -> None:
    """Blank the sign."""
    controller = _controller(ctx)
    _finish(_run(controller.blank()), f"{controller.name}: blanked")


@app.command()
def brightness(
    ctx: typer.Context,
    level: Annotated[int, typer.Argument(help="Brightness level, 1-127.")],
) -> None:
    """Change the display brightness."""
    controller = _controller(ctx)
    try:
        success = _run(controller.change_brightness(level))
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="LEVEL") from e
    _finish(success, f"{controller.name}: brightness set to {level}")


@app.command()
def refresh(ctx: typer.Context) -> None:
    """Refresh the watchdog timer without changing content."""
    client = _client(ctx)
    _finish(_run(client.refresh_watchdog()), f"{client.device_id}: watchdog refreshed")


@app.command()
def layouts(ctx: typer.Context) -> None:
    """List the layouts provisioned on the sign."""
    client = _client(ctx)
    found = _run(client.list_layouts())
    if found is None:
        typer.echo("Failed: could not list layouts", err=True)
        raise typer.Exit(code=1)
    for layout in found:
        typer.echo(f"{'*' if layout.enabled else ' '} {layout.name}")


@app.command()
def activate(
    ctx: typer.Context,
    layout_name: Annotated[str, typer.Argument(help="Layout to show.")],
) -> None:
    """Make a layout the only enabled one."""
    controller = _controller(ctx)
    _finish(_run(controller.ensure_layout_active(layout_name)), f"{controller.name}: {layout_name} active")


@app.command()
def snapshot(ctx: typer.Context) -> None:
    """Print the URL of a snapshot of the current screen."""
    client = _client(ctx)
    uri = _run(client.get_snapshot_uri())
    if uri is None:
        typer.echo("Failed: no snapshot available", err=True)
        raise typer.Exit(code=1)
    typer.echo(uri)


if __name__ == "__main__":
    app()
