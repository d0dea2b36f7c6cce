"""Shared plumbing for commands that talk to the ledger or the signing agent."""

from __future__ import annotations

import asyncio
import sys
from dataclasses import replace
from typing import Any, Callable, Optional, Sequence

import click

from ..pipeline import invoke
from ..pneuma.errors import InvocationError
from ..pneuma.network import NetworkContext
from ..pneuma.rpc import LedgerRpc
from ..pneuma.scval import TypedValue
from ..pneuma.submit import Failed, Success, TimedOut
from ..sigil.agent import AgentTransport, HttpAgentTransport
from ..sigil.keyfile import KeyfileAgent
from ..sigil.probe import SignerProbe, SignerStatus

EXIT_FAILED = 1
EXIT_TIMED_OUT = 9

AGENT_CHOICES = ("http", "keyfile")


def agent_option(func: Any) -> Any:
    func = click.option(
        "--agent",
        type=click.Choice(AGENT_CHOICES),
        envvar="TESSERA_AGENT",
        default="http",
        show_default=True,
        help="Signing agent: browser bridge (http) or local key file (keyfile)",
    )(func)
    func = click.option(
        "--agent-url",
        envvar="TESSERA_AGENT_URL",
        default=None,
        help="Signing agent bridge URL",
    )(func)
    return func


def network_options(func: Any) -> Any:
    func = click.option(
        "--network",
        type=click.Choice(["testnet", "mainnet"]),
        envvar="TESSERA_NETWORK",
        default="testnet",
        show_default=True,
        help="Ledger network",
    )(func)
    func = click.option("--rpc-url", envvar="TESSERA_RPC_URL", default=None, help="RPC endpoint override")(func)
    func = click.option("--contract", envvar="TESSERA_CONTRACT_ID", default=None, help="Contract identifier")(func)
    return func


def make_network(network: str, rpc_url: Optional[str], contract: Optional[str]) -> NetworkContext:
    ctx = NetworkContext.preset(network, contract_id=contract)
    if rpc_url:
        ctx = replace(ctx, rpc_url=rpc_url)
    return ctx


async def _confirm_signature(transaction: str, network_passphrase: str) -> bool:
    # click.confirm blocks on stdin; keep it off the event loop
    return await asyncio.to_thread(
        click.confirm, f"  Sign transaction on '{network_passphrase}'?", default=True
    )


def make_transport(agent: str, agent_url: Optional[str], *, assume_yes: bool = False) -> AgentTransport:
    if agent == "keyfile":
        try:
            return KeyfileAgent(
                approve=None if assume_yes else _confirm_signature,
                authorized=True,
            )
        except ValueError as exc:
            click.secho(f"ERROR: {exc}", fg="red")
            sys.exit(1)
    return HttpAgentTransport(agent_url)


async def close_transport(transport: AgentTransport) -> None:
    if isinstance(transport, HttpAgentTransport):
        await transport.aclose()


async def resolve_caller(transport: AgentTransport, caller: Optional[str]) -> str:
    """Use ``caller`` if given, else the agent's active address."""
    if caller:
        return caller
    probe = SignerProbe(transport)
    if await probe.probe_installed() is not SignerStatus.AUTHORIZED:
        raise click.ClickException("Signing agent not connected. Run 'tessera connect' first.")
    return await probe.current_address()


def report_result(result: Any) -> None:
    if isinstance(result, Success):
        click.secho("SUCCESS: Transaction confirmed!", fg="green")
        click.echo(f"  TX: {result.tx_id}")
        if "ledger" in result.effects:
            click.echo(f"  Ledger: {result.effects['ledger']}")
        return
    if isinstance(result, Failed):
        click.secho("FAILED: Transaction failed on-chain", fg="red")
        click.echo(f"  TX: {result.tx_id}")
        click.echo(f"  Reason: {result.reason}")
        sys.exit(EXIT_FAILED)
    if isinstance(result, TimedOut):
        click.secho("PENDING: Confirmation not observed in time", fg="yellow")
        click.echo(f"  TX: {result.tx_id}")
        click.echo(f"  Do not resubmit. Check later with: tessera status {result.tx_id}")
        sys.exit(EXIT_TIMED_OUT)


def run_invocation(
    function_name: str,
    build_args: Callable[[str], Sequence[TypedValue]],
    *,
    caller: Optional[str],
    network_ctx: NetworkContext,
    transport: AgentTransport,
    max_duration: float,
) -> None:
    """
    Run one invocation and exit with a status that reflects its outcome.

    ``build_args`` receives the resolved caller address, so arguments that
    embed it (organizer, buyer) always name the account that signs.
    """

    async def _run() -> Any:
        caller_address = await resolve_caller(transport, caller)
        click.echo(f"  Caller: {caller_address}")
        click.echo(f"  Contract: {network_ctx.contract_id}")
        click.echo(f"  Function: {function_name}")
        click.echo("")
        arguments = build_args(caller_address)
        async with LedgerRpc(network_ctx.rpc_url) as rpc:
            return await invoke(
                function_name,
                arguments,
                caller_address,
                rpc=rpc,
                transport=transport,
                network=network_ctx,
                max_duration=max_duration,
            )

    async def _run_and_close() -> Any:
        try:
            return await _run()
        finally:
            await close_transport(transport)

    try:
        network_ctx.require_contract()
        result = asyncio.run(_run_and_close())
    except InvocationError as exc:
        click.secho(f"Invocation failed: {exc}", fg="red")
        if exc.retryable:
            click.echo("  This failure is transient; running the command again is safe.")
        sys.exit(exc.exit_code)
    except ValueError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(1)

    report_result(result)
