"""
Command-line interface for envault.

This module provides the CLI entry point: it injects the configured sources
into the environment and then runs the wrapped command, passing its exit code
through.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import subprocess
import sys

from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import ConfigurationError, EnvaultConfig
from .inject import InjectionError, inject_with_cancellation
from .providers import Provider
from .providers.file import FileProvider
from .providers.hashicorp import VaultProvider

err_console = Console(stderr=True)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    try:
        return _main(argv)
    except KeyboardInterrupt:
        err_console.print("[yellow]Cancelled.[/yellow]")
        return 130
    except Exception as exc:
        err_console.print(f"[red]envault: {escape(str(exc))}[/red]")
        return 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="envault",
        description="Inject dotenv and Vault values into the environment, then run a command",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  envault -- ./server                              # Load ./.env, then run ./server
  envault --dotenv .env.local -- make test         # Use a different dotenv file
  envault --dotenv "" --vault-path kvv2/app/dev/env -- ./server
                                                   # Vault only (needs VAULT_ADDR)
  envault --list-providers                         # List available providers

Values already set in the environment are never overwritten, and the dotenv
file takes precedence over Vault.
        """,
    )

    parser.add_argument(
        "--config",
        help="Configuration file path (default: .envault.yaml if present)",
    )

    parser.add_argument(
        "--dotenv",
        default=None,
        help='Path to a dotenv file (default: .env, "" to skip)',
    )

    parser.add_argument(
        "--vault-path",
        default=None,
        help="Vault KV v2 secret path to read (default: skip)",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging on stderr (values are never logged)",
    )

    parser.add_argument(
        "--list-providers",
        action="store_true",
        help="List all available providers",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"envault {__version__}",
    )

    parser.add_argument(
        "command",
        nargs=argparse.REMAINDER,
        help="Command to run, after --",
    )

    return parser


def _main(argv: list[str] | None) -> int:
    parser = _build_parser()

    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        # --help and --version exit 0, usage errors exit 2
        return exc.code if isinstance(exc.code, int) else 2

    if args.list_providers:
        _display_providers()
        return 0

    command = list(args.command)
    if command and command[0] == "--":
        command = command[1:]
    if not command:
        parser.print_usage(sys.stderr)
        return 2

    try:
        config = EnvaultConfig.load(args.config)
    except ConfigurationError as exc:
        err_console.print(f"[red]envault: {escape(str(exc))}[/red]")
        return 2

    dotenv_path = config.dotenv if args.dotenv is None else args.dotenv
    vault_path = config.vault_path if args.vault_path is None else args.vault_path

    handler = _enable_logging() if args.verbose or config.verbose else None
    try:
        logging.getLogger(__name__).debug("verbose logging enabled")

        providers = gather_providers(dotenv_path, vault_path)
        try:
            asyncio.run(_inject(providers))
        except InjectionError as exc:
            err_console.print(f"[red]envault: {escape(str(exc))}[/red]")
            return 1

        return run_command(command)
    finally:
        if handler is not None:
            _disable_logging(handler)


def gather_providers(dotenv_path: str, vault_path: str) -> list[Provider]:
    """Build the providers in precedence order: dotenv first, then Vault."""
    providers: list[Provider] = []
    if dotenv_path:
        providers.append(FileProvider(dotenv_path))
    if vault_path:
        providers.append(VaultProvider(vault_path))
    return providers


async def _inject(providers: list[Provider]) -> None:
    """Inject all providers, cancelling on SIGINT or SIGTERM."""
    cancel = asyncio.Event()
    loop = asyncio.get_running_loop()
    installed: list[int] = []

    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, cancel.set)
        except (NotImplementedError, RuntimeError, ValueError):
            # Not supported on this platform or outside the main thread
            continue
        installed.append(signum)

    try:
        await inject_with_cancellation(cancel, *providers)
    finally:
        for signum in installed:
            loop.remove_signal_handler(signum)


def run_command(command: list[str]) -> int:
    """Run the command with inherited stdio and return its exit code."""
    try:
        completed = subprocess.run(command)
    except OSError as exc:
        err_console.print(
            f"[red]envault: failed to execute {escape(repr(command[0]))}: {escape(str(exc))}[/red]"
        )
        return 1

    # Killed by a signal: report it the way a shell does
    if completed.returncode < 0:
        return 128 - completed.returncode
    return completed.returncode


def _enable_logging() -> logging.Handler:
    handler = RichHandler(console=Console(stderr=True), show_path=False)
    logger = logging.getLogger("envault")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    return handler


def _disable_logging(handler: logging.Handler) -> None:
    logger = logging.getLogger("envault")
    logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


def _display_providers() -> None:
    """Display all available providers."""
    table = Table(title="Available Providers")
    table.add_column("Name", style="cyan")
    table.add_column("Description", style="green")

    for provider in (FileProvider, VaultProvider):
        table.add_row(provider.info.name, provider.info.description)

    rprint(table)
