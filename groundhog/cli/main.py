"""Command line interface for groundhog.

Provides:
- ``relay``: run one end of an encrypted tunnel
- ``genkey``: generate key material
- ``default-config``: print a loopback listen address with a free port
"""

from __future__ import annotations

import asyncio
import logging
import secrets

import click
from rich.console import Console
from rich.table import Table

from groundhog.config.config import ConfigManager, generate_default_config
from groundhog.models import CipherMode, RelayMode
from groundhog.relay import EncryptedRelay
from groundhog.utils.exceptions import GroundhogError

logger = logging.getLogger(__name__)

console = Console()


@click.group()
@click.version_option(package_name="groundhog")
def cli() -> None:
    """Groundhog - stream-cipher tunnel for plaintext transports."""


@cli.command("relay")
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="Configuration file path",
)
@click.option(
    "--mode",
    type=click.Choice([m.value for m in RelayMode]),
    help="encrypt: plaintext in, ciphertext upstream; decrypt: the reverse",
)
@click.option("--listen-host", help="Listen host")
@click.option("--listen-port", type=int, help="Listen port")
@click.option("--upstream-host", help="Upstream host")
@click.option("--upstream-port", type=int, help="Upstream port")
@click.option(
    "--cipher",
    type=click.Choice([m.value for m in CipherMode]),
    help="Stream cipher mode",
)
@click.option("--encrypt-key", help="Encrypt key (hex)")
@click.option("--decrypt-key", help="Decrypt key (hex)")
@click.option("--encrypt-iv", help="Encrypt IV (hex)")
@click.option("--decrypt-iv", help="Decrypt IV (hex)")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Log level",
)
def relay(
    config_file: str | None,
    mode: str | None,
    listen_host: str | None,
    listen_port: int | None,
    upstream_host: str | None,
    upstream_port: int | None,
    cipher: str | None,
    encrypt_key: str | None,
    decrypt_key: str | None,
    encrypt_iv: str | None,
    decrypt_iv: str | None,
    log_level: str | None,
) -> None:
    """Run an encrypting or decrypting relay.

    The peer relay must use the swapped key pair: this side's encrypt
    key/IV are the other side's decrypt key/IV.
    """
    overrides = {
        "relay_mode": mode,
        "listen.host": listen_host,
        "listen.port": listen_port,
        "upstream.host": upstream_host,
        "upstream.port": upstream_port,
        "crypto.mode": cipher,
        "crypto.encrypt_key": encrypt_key,
        "crypto.decrypt_key": decrypt_key,
        "crypto.encrypt_iv": encrypt_iv,
        "crypto.decrypt_iv": decrypt_iv,
        "observability.log_level": log_level,
    }
    try:
        manager = ConfigManager(config_file, overrides)
    except GroundhogError as e:
        raise click.ClickException(str(e)) from e

    server = EncryptedRelay(manager.config)
    try:
        asyncio.run(server.serve_forever())
    except GroundhogError as e:
        raise click.ClickException(str(e)) from e
    except OSError as e:
        raise click.ClickException(f"Cannot start relay: {e}") from e
    except KeyboardInterrupt:
        console.print("[yellow]Relay stopped[/yellow]")


@cli.command("genkey")
@click.option(
    "--size",
    type=click.Choice(["16", "24", "32"]),
    default="32",
    show_default=True,
    help="Key size in bytes (use 32 for chacha20)",
)
def genkey(size: str) -> None:
    """Generate random key material for both directions."""
    key_size = int(size)
    table = Table(title="Key material")
    table.add_column("Field", style="cyan")
    table.add_column("Value (hex)")
    for field, length in (
        ("encrypt_key", key_size),
        ("encrypt_iv", 16),
        ("decrypt_key", key_size),
        ("decrypt_iv", 16),
    ):
        table.add_row(field, secrets.token_hex(length))
    console.print(table)


@cli.command("default-config")
def default_config() -> None:
    """Print a loopback listen address on a currently free port."""
    listen = generate_default_config()
    console.print(f"{listen.host}:{listen.port}")


def main() -> None:
    """Main CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
