"""Command-line interface for sending a single request with backoff."""

import asyncio
import sys
from pathlib import Path

import click

from .exceptions import BackoffError, ConfigurationError
from .http.client import BackoffClient
from .config.loader import ConfigLoader
from .logging import configure_logging
from .models import BackoffConfig


def _parse_headers(headers):
    parsed = {}
    for header in headers:
        name, sep, value = header.partition(":")
        if not sep or not name.strip():
            raise click.BadParameter(
                f"Expected 'Name: Value', got '{header}'", param_hint="--header"
            )
        parsed[name.strip()] = value.strip()
    return parsed


def _load_config(config_dir, config_name):
    loader = ConfigLoader(Path(config_dir))
    available = loader.list_available_configs()
    if config_name not in available:
        raise ConfigurationError(
            f"Configuration '{config_name}' not found in {config_dir}. "
            f"Available configurations: {', '.join(available) or 'none'}"
        )
    return loader.load_config(config_name)


async def _fetch(config, method, url, headers, data):
    async with BackoffClient(config) as client:
        response = await client.request(method, url, headers=headers or None, data=data)
        try:
            body = await response.text()
        finally:
            response.release()
        return response.status, body


@click.command()
@click.argument("url")
@click.option("--method", default="GET", show_default=True, help="HTTP method")
@click.option(
    "--header",
    "headers",
    multiple=True,
    help="Request header as 'Name: Value' (repeatable)",
)
@click.option("--data", help="Request body")
@click.option(
    "--config-dir",
    type=click.Path(exists=True, file_okay=False),
    help="Directory containing backoff configuration files (built-in tables when omitted)",
)
@click.option(
    "--config",
    "config_name",
    default="default-backoff",
    show_default=True,
    help="Backoff configuration to use (filename without .yaml)",
)
@click.option("--verbose", is_flag=True, help="Enable verbose logging")
def main(url, method, headers, data, config_dir, config_name, verbose):
    """Send a request to URL, waiting out Twitch, Google and YouTube rate limits.

    Prints the status code of the final response followed by its body.
    """
    configure_logging(level="DEBUG" if verbose else "WARNING", structured=False)

    parsed_headers = _parse_headers(headers)

    try:
        if config_dir:
            config = _load_config(config_dir, config_name)
        else:
            config = BackoffConfig()
        status, body = asyncio.run(_fetch(config, method, url, parsed_headers, data))
    except BackoffError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"HTTP {status}")
    click.echo(body)


if __name__ == "__main__":
    main()
