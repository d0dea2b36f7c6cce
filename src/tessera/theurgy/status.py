"""
Theurgy Status - Re-query a submitted transaction.

Use this after an invocation reports that confirmation was not observed in
time. It never resubmits.
"""

from __future__ import annotations

import asyncio
import sys
from typing import Optional

import click

from ..pneuma.errors import InvocationError
from ..pneuma.rpc import LedgerRpc
from ..pneuma.submit import Pending, get_transaction_status
from .common import make_network, network_options, report_result


@click.command()
@click.argument("tx_id")
@network_options
def status(tx_id: str, network: str, rpc_url: Optional[str], contract: Optional[str]) -> None:
    """Show the current status of transaction TX_ID."""
    network_ctx = make_network(network, rpc_url, contract)

    async def _run():
        async with LedgerRpc(network_ctx.rpc_url) as rpc:
            return await get_transaction_status(rpc, tx_id)

    try:
        outcome = asyncio.run(_run())
    except InvocationError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(exc.exit_code)

    if isinstance(outcome, Pending):
        click.secho("PENDING: Not yet included in a ledger.", fg="yellow")
        click.echo(f"  TX: {tx_id}")
        return
    report_result(outcome)
