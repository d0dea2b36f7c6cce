"""
Theurgy Ticket - Ticketing contract write commands.

- create-event: publish a new event
- purchase:     buy a ticket for an event
- transfer:     hand a ticket to another address
"""

from __future__ import annotations

import sys
from typing import Any, Optional

import click

from .. import ticketing
from ..pneuma.errors import EncodingError
from .common import agent_option, make_network, make_transport, network_options, run_invocation


def _invocation_options(func: Any) -> Any:
    func = click.option("--caller", default=None, help="Caller address (default: agent's active address)")(func)
    func = click.option(
        "--timeout", "max_duration", default=60.0, type=float, help="Seconds to wait for confirmation"
    )(func)
    func = click.option("--yes", "-y", "assume_yes", is_flag=True, help="Sign without prompting (keyfile agent)")(func)
    func = network_options(func)
    func = agent_option(func)
    return func


@click.command("create-event")
@click.option("--name", required=True, help="Event name (stored as a 9-character symbol)")
@click.option("--description", required=True, help="Description (stored as a 9-character symbol)")
@click.option("--date", "when", required=True, help="Event date/time, ISO-8601 (e.g. 2025-01-01T00:00)")
@click.option("--tickets", "total_tickets", required=True, type=click.IntRange(min=1), help="Total tickets")
@click.option("--price", required=True, help="Ticket price in XLM")
@_invocation_options
def create_event(
    name: str,
    description: str,
    when: str,
    total_tickets: int,
    price: str,
    caller: Optional[str],
    max_duration: float,
    assume_yes: bool,
    network: str,
    rpc_url: Optional[str],
    contract: Optional[str],
    agent: str,
    agent_url: Optional[str],
) -> None:
    """Create a new event on the ticketing contract."""
    click.echo("=== Tessera Create Event ===")
    click.echo("")

    def build_args(organizer: str) -> list:
        return ticketing.create_event_args(organizer, name, description, when, total_tickets, price)

    # Reject bad input before the agent is involved
    try:
        preview = ticketing.event_fields(name, description, when, total_tickets, price)
        if caller:
            build_args(caller)
    except EncodingError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(exc.exit_code)

    click.echo(f"  Name: {preview[0].value}")
    click.echo(f"  Description: {preview[1].value}")
    click.echo(f"  Date: {preview[2].value}")
    click.echo(f"  Tickets: {total_tickets}")
    click.echo(f"  Price: {preview[4].value} stroops")

    run_invocation(
        ticketing.CREATE_EVENT,
        build_args,
        caller=caller,
        network_ctx=make_network(network, rpc_url, contract),
        transport=make_transport(agent, agent_url, assume_yes=assume_yes),
        max_duration=max_duration,
    )


@click.command()
@click.option("--event-id", required=True, type=click.IntRange(min=0), help="Event to buy a ticket for")
@_invocation_options
def purchase(
    event_id: int,
    caller: Optional[str],
    max_duration: float,
    assume_yes: bool,
    network: str,
    rpc_url: Optional[str],
    contract: Optional[str],
    agent: str,
    agent_url: Optional[str],
) -> None:
    """Purchase a ticket for an event."""
    click.echo("=== Tessera Purchase ===")
    click.echo("")

    run_invocation(
        ticketing.PURCHASE_TICKET,
        lambda buyer: ticketing.purchase_ticket_args(buyer, event_id),
        caller=caller,
        network_ctx=make_network(network, rpc_url, contract),
        transport=make_transport(agent, agent_url, assume_yes=assume_yes),
        max_duration=max_duration,
    )


@click.command()
@click.option("--ticket-id", required=True, type=click.IntRange(min=0), help="Ticket to transfer")
@click.option("--to", "recipient", required=True, help="Recipient address")
@_invocation_options
def transfer(
    ticket_id: int,
    recipient: str,
    caller: Optional[str],
    max_duration: float,
    assume_yes: bool,
    network: str,
    rpc_url: Optional[str],
    contract: Optional[str],
    agent: str,
    agent_url: Optional[str],
) -> None:
    """Transfer a ticket you own to another address."""
    click.echo("=== Tessera Transfer ===")
    click.echo("")

    run_invocation(
        ticketing.TRANSFER_TICKET,
        lambda sender: ticketing.transfer_ticket_args(sender, recipient, ticket_id),
        caller=caller,
        network_ctx=make_network(network, rpc_url, contract),
        transport=make_transport(agent, agent_url, assume_yes=assume_yes),
        max_duration=max_duration,
    )
