"""
Theurgy Invoke - Execute an arbitrary contract call.

Arguments are given as a JSON array of typed values, e.g.::

    [{"type": "address", "value": "G..."}, {"type": "u32", "value": 7}]
"""

from __future__ import annotations

import json
import sys
from typing import Optional

import click

from ..pneuma.errors import EncodingError
from ..pneuma.scval import from_dict
from .common import agent_option, make_network, make_transport, network_options, run_invocation


@click.command()
@click.option("--function", "func_name", required=True, help="Contract function to call")
@click.option("--args", "args_json", default="[]", help="Typed arguments as a JSON array")
@click.option("--caller", default=None, help="Caller address (default: agent's active address)")
@click.option("--timeout", "max_duration", default=60.0, type=float, help="Seconds to wait for confirmation")
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Sign without prompting (keyfile agent)")
@network_options
@agent_option
def invoke(
    func_name: str,
    args_json: str,
    caller: Optional[str],
    max_duration: float,
    assume_yes: bool,
    network: str,
    rpc_url: Optional[str],
    contract: Optional[str],
    agent: str,
    agent_url: Optional[str],
) -> None:
    """
    Execute an on-chain contract call.

    Builds, simulates, signs through the agent, submits and waits.
    """
    click.echo("=== Tessera Invoke ===")
    click.echo("")

    try:
        raw = json.loads(args_json)
        if not isinstance(raw, list):
            raise ValueError("Args must be a JSON array")
        arguments = [from_dict(item) for item in raw]
    except (json.JSONDecodeError, ValueError) as exc:
        click.secho(f"ERROR: Invalid args: {exc}", fg="red")
        sys.exit(EncodingError.exit_code)

    run_invocation(
        func_name,
        lambda _caller: arguments,
        caller=caller,
        network_ctx=make_network(network, rpc_url, contract),
        transport=make_transport(agent, agent_url, assume_yes=assume_yes),
        max_duration=max_duration,
    )
