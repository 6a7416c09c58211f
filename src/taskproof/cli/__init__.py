"""taskproof CLI - verify Merkle/Ed25519 proof artifacts.

Commands:
    verify  - Verify one artifact, or every artifact in a directory
"""
from __future__ import annotations

import logging

import click

from .. import __version__
from .verify import verify_command


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(asctime)s - %(levelname)s - %(message)s")
    logging.getLogger("taskproof").setLevel(level)


@click.group(invoke_without_command=True)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging on stderr")
@click.version_option(__version__, prog_name="taskproof")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Verify cryptographic proof artifacts without the source data."""
    _configure_logging(verbose)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)


cli.add_command(verify_command)


def main() -> None:
    """Entry point for the taskproof console script."""
    cli()


__all__ = ["cli", "main"]
