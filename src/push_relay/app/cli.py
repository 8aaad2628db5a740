"""Command-line interface for push-relay."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

import click

from push_relay.app.runner import PushRunner, build_registry
from push_relay.app.state import StateStoreError
from push_relay.core.config import ConfigurationError, load_main_config
from push_relay.core.exceptions import PushError
from push_relay.types import Notification, PushResult, ResultKind
from push_relay.utils.http_client import AIOHTTPClient
from push_relay.utils.logging import configure_logging

DEFAULT_CONFIG_PATH = Path("config/push-relay.yaml")

try:
    __version__ = version("push-relay")
except PackageNotFoundError:
    __version__ = "unknown"


@dataclass(slots=True, frozen=True)
class CLIOptions:
    """Options of the root command shared with subcommands."""

    config_path: Path
    log_level: str | None
    enable_syslog: bool


def validate_config_path(
    ctx: click.Context,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    param: click.Parameter,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    value: Path,
) -> Path:
    """Validate configuration file path.

    Raises:
        click.BadParameter: If the path is a directory or not a YAML file
    """
    if value.exists() and value.is_dir():
        raise click.BadParameter("Configuration path must be a file, not a directory")

    valid_extensions = {".yaml", ".yml"}
    if value.suffix.lower() not in valid_extensions:
        extensions_str = ", ".join(sorted(valid_extensions))
        raise click.BadParameter(f"Invalid configuration file extension. Supported extensions: {extensions_str}")

    return value


def validate_log_level(
    ctx: click.Context,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    param: click.Parameter,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    value: str | None,
) -> str | None:
    """Validate and normalize log level.

    Raises:
        click.BadParameter: If the level is unknown
    """
    if value is None:
        return value

    normalized_value = value.upper().strip()
    valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR"}
    if normalized_value not in valid_levels:
        raise click.BadParameter(f'Invalid log level "{value}". Valid options: {", ".join(sorted(valid_levels))}')

    return normalized_value


def parse_data_pairs(
    ctx: click.Context,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    param: click.Parameter,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    value: Sequence[str],
) -> dict[str, str]:
    """Turn repeated ``key=value`` options into a notification map.

    Raises:
        click.BadParameter: If an item has no ``=`` or an empty key
    """
    data: dict[str, str] = {}
    for item in value:
        key, separator, item_value = item.partition("=")
        if not separator or not key:
            raise click.BadParameter(f'Expected key=value, got "{item}"')
        data[key] = item_value
    return data


def format_result(result: PushResult) -> str:
    """Render one push result as a single output line."""
    if result.kind is ResultKind.PROVIDER_UPDATED:
        return f"updated provider={result.provider.name}"
    if result.destination is None:
        return f"failed provider={result.provider.name} error={result.error}"
    target = f"subscriber={result.destination.subscriber} regid={result.destination.registration_id}"
    if result.kind is ResultKind.DELIVERED:
        return f"delivered {target} message_id={result.message_id}"
    return f"failed {target} error={result.error}"


async def run_send(
    options: CLIOptions,
    provider_name: str,
    destination_settings: Sequence[dict[str, str]],
    notification: Notification,
) -> tuple[PushResult, ...]:
    """Load configuration, configure logging, and push one notification."""
    config = load_main_config(options.config_path)
    configure_logging(
        log_level=options.log_level or config.application.log_level,
        enable_syslog=options.enable_syslog and config.application.syslog_enabled,
    )

    async with AIOHTTPClient(connection_limit=config.dispatch.connection_limit) as http_client:
        runner = PushRunner(config, http_client)
        destinations = runner.build_destinations(provider_name, destination_settings)
        return await runner.send(provider_name, destinations, notification)


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(path_type=Path),
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    callback=validate_config_path,
    help="Configuration file path (.yaml or .yml)",
)
@click.option(
    "--log-level",
    "-l",
    type=str,
    default=None,
    callback=validate_log_level,
    help="Override the configured log level (DEBUG, INFO, WARNING, ERROR)",
)
@click.option(
    "--no-syslog",
    is_flag=True,
    help="Disable syslog integration",
)
@click.version_option(version=__version__, prog_name="push-relay")
@click.pass_context
def cli(ctx: click.Context, config: Path, log_level: str | None, no_syslog: bool) -> None:
    """push-relay - deliver push notifications through device messaging gateways.

    Examples:

        # Push to one device of the provider "myapp"
        push-relay send myapp --regid amzn1.adm-registration.v3.XYZ --data msg=hello

        # List the supported push service types
        push-relay services
    """
    ctx.obj = CLIOptions(config_path=config, log_level=log_level, enable_syslog=not no_syslog)


@cli.command()
@click.argument("provider_name")
@click.option(
    "--regid",
    "-r",
    "regids",
    multiple=True,
    required=True,
    help="Registration ID of a destination device (repeatable)",
)
@click.option(
    "--subscriber",
    "-s",
    default="cli",
    show_default=True,
    help="Subscriber name reported for every destination",
)
@click.option(
    "--data",
    "-d",
    "data",
    multiple=True,
    callback=parse_data_pairs,
    help="Notification field as key=value (repeatable); msggroup and ttl control delivery",
)
@click.pass_obj
def send(
    options: CLIOptions,
    provider_name: str,
    regids: tuple[str, ...],
    subscriber: str,
    data: dict[str, str],
) -> None:
    """Push one notification to PROVIDER_NAME's devices.

    Prints one line per result and exits with status 1 when any result failed.
    """
    destination_settings = [{"subscriber": subscriber, "regid": regid} for regid in regids]
    try:
        results = asyncio.run(run_send(options, provider_name, destination_settings, Notification(data=data)))
    except ConfigurationError as e:
        raise click.ClickException(f"Configuration error:\n{e}") from e
    except KeyError as e:
        raise click.ClickException(str(e.args[0])) from e
    except (PushError, StateStoreError) as e:
        raise click.ClickException(str(e)) from e

    for result in results:
        click.echo(format_result(result))

    if any(result.failed for result in results):
        raise click.exceptions.Exit(1)


@cli.command()
def services() -> None:
    """List the push service types this installation supports."""
    registry = build_registry(AIOHTTPClient())
    for identifier in registry.get_identifiers():
        click.echo(identifier)
