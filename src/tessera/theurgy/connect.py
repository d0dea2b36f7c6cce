"""
Theurgy Connect - Detect the signing agent and request access.
"""

from __future__ import annotations

import asyncio
import sys
from typing import Optional

import click

from ..pneuma.errors import InvocationError
from ..sigil.probe import SignerProbe, SignerStatus
from .common import agent_option, close_transport, make_transport


@click.command()
@agent_option
def connect(agent: str, agent_url: Optional[str]) -> None:
    """Connect to the signing agent and grant access."""
    click.echo("=== Tessera Connect ===")
    click.echo("")

    transport = make_transport(agent, agent_url, assume_yes=True)

    async def _run() -> str:
        probe = SignerProbe(transport)
        try:
            return await probe.request_authorization()
        finally:
            await close_transport(transport)

    try:
        address = asyncio.run(_run())
    except InvocationError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        if agent == "http":
            click.echo("  Is the wallet extension bridge running? (TESSERA_AGENT_URL)")
        sys.exit(exc.exit_code)

    click.secho("Connected.", fg="green")
    click.echo(f"  Address: {address}")


@click.command()
@agent_option
def whoami(agent: str, agent_url: Optional[str]) -> None:
    """Show the signing agent's state and active address."""
    transport = make_transport(agent, agent_url, assume_yes=True)

    async def _run() -> SignerProbe:
        probe = SignerProbe(transport)
        try:
            await probe.probe_installed()
        finally:
            await close_transport(transport)
        return probe

    probe = asyncio.run(_run())
    session = probe.session

    if probe.status is SignerStatus.NOT_INSTALLED:
        click.echo("No signing agent found.")
        click.echo("Install a wallet extension or run 'tessera keygen' and use --agent keyfile.")
        sys.exit(1)
    if not session.authorized:
        click.echo("Signing agent found, access not granted.")
        click.echo("Run 'tessera connect'.")
        sys.exit(1)
    click.echo(f"Address: {session.active_address}")
