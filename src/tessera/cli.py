"""
Tessera CLI

Command-line interface for invoking the event-ticketing contract through a
user-controlled signing agent.

Commands:
  connect       - Detect the signing agent and request access
  whoami        - Show the agent's active address
  invoke        - Execute an arbitrary contract call
  create-event  - Create an event
  purchase      - Buy a ticket
  transfer      - Transfer a ticket
  status        - Re-query a submitted transaction
  keygen        - Create a key for the local development agent
  info          - Show configuration
"""

from __future__ import annotations

import os
import sys
from typing import Optional

import click

from .logging_utils import configure_logging
from .pneuma.network import TESSERA_ENV, NetworkContext, load_config
from .sigil.agent import get_agent_url


# ============ Constants ============

VERSION = "0.1.0"


# ============ Banner ============


def _print_banner() -> None:
    border = click.style("  ◆ ═══════════════════════════════════════ ◆", fg="cyan")
    click.echo()
    click.echo(border)
    click.echo()
    click.echo(
        click.style("        T E S S E R A", fg="bright_white", bold=True)
        + click.style(f"          v{VERSION}", dim=True)
    )
    click.secho("        ─── On-chain Event Ticketing ───", fg="cyan")
    click.echo()
    click.echo(border)
    click.echo()


# ============ Main CLI Group ============


@click.group(invoke_without_command=True)
@click.version_option(version=VERSION, prog_name="tessera")
@click.option("--log-level", envvar="TESSERA_LOG_LEVEL", default=None, help="Log level (default: WARNING)")
@click.pass_context
def cli(ctx: click.Context, log_level: Optional[str]) -> None:
    """Tessera: event ticketing on a smart-contract ledger."""
    load_config()
    configure_logging(log_level)
    if ctx.invoked_subcommand is None:
        _print_banner()
        click.echo(ctx.get_help())


# ============ Commands ============

from .theurgy.connect import connect, whoami
from .theurgy.invoke import invoke
from .theurgy.keygen import keygen
from .theurgy.status import status
from .theurgy.ticket import create_event, purchase, transfer

cli.add_command(connect)
cli.add_command(whoami)
cli.add_command(invoke)
cli.add_command(create_event)
cli.add_command(purchase)
cli.add_command(transfer)
cli.add_command(status)
cli.add_command(keygen)


# ============ Info ============


@cli.command()
def info() -> None:
    """Show configuration."""
    _print_banner()

    click.secho("  Configuration ──────────────────────────", fg="cyan")
    click.echo()

    try:
        network = NetworkContext.from_env()
    except ValueError as exc:
        click.secho(f"  {exc}", fg="red")
        sys.exit(1)

    rows = [
        ("Network: ", network.name),
        ("RPC:     ", network.rpc_url),
        ("Contract:", network.contract_id or click.style("not set (TESSERA_CONTRACT_ID)", fg="yellow")),
        ("Agent:   ", os.environ.get("TESSERA_AGENT", "http") + f" ({get_agent_url()})"),
        ("Config:  ", str(TESSERA_ENV)),
    ]
    for label, value in rows:
        click.echo(click.style(f"  {label} ", dim=True) + click.style(value, fg="bright_white"))
    click.echo()


# ============ Entry Points ============


def main() -> None:
    """Tessera CLI entry point."""
    # Ensure UTF-8 output on Windows (for Unicode box-drawing / symbols)
    if sys.platform == "win32":
        try:
            sys.stdout.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
            sys.stderr.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
        except (AttributeError, OSError):
            pass
    cli()


if __name__ == "__main__":
    main()
