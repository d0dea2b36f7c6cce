"""
Invocation entry point.

``invoke`` runs one contract call end to end:

    probe signer -> fetch account -> build -> simulate -> prepare
                 -> sign -> submit -> await confirmation

Every stage's failure is raised as a stage-tagged ``InvocationError``.
Retrying is the caller's decision and always means calling ``invoke`` again,
which re-reads the account sequence. A ``TimedOut`` result must never be
retried this way; query the transaction id instead.
"""

from __future__ import annotations

from typing import Optional, Sequence

from loguru import logger

from .pneuma.errors import AgentUnavailable, AuthorizationDenied, SignerMismatch
from .pneuma.network import NetworkContext
from .pneuma.rpc import LedgerRpc
from .pneuma.scval import TypedValue
from .pneuma.submit import (
    DEFAULT_MAX_DURATION,
    DEFAULT_POLL_INTERVAL,
    ConfirmationResult,
    await_confirmation,
    submit,
)
from .pneuma.tx import InvocationRequest, build_invocation, fetch_account, prepare, simulate
from .sigil.agent import AgentTransport
from .sigil.probe import SignerProbe, SignerStatus
from .sigil.signer import sign


async def ensure_signer(probe: SignerProbe, caller_address: str) -> str:
    """Re-validate that the agent is present, authorized and signing as the caller."""
    status = await probe.probe_installed()
    if status is SignerStatus.NOT_INSTALLED:
        raise AgentUnavailable("No signing agent detected")
    if status is SignerStatus.UNAUTHORIZED:
        raise AuthorizationDenied("Signing agent has not granted access; connect first")
    active = await probe.current_address()
    if active != caller_address:
        raise SignerMismatch(caller_address, active)
    return active


async def invoke(
    function_name: str,
    arguments: Sequence[TypedValue],
    caller_address: str,
    *,
    rpc: LedgerRpc,
    transport: AgentTransport,
    network: NetworkContext,
    probe: Optional[SignerProbe] = None,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    max_attempts: Optional[int] = None,
    max_duration: Optional[float] = DEFAULT_MAX_DURATION,
) -> ConfirmationResult:
    """
    Invoke ``function_name`` on the configured contract and wait for the outcome.

    Returns:
        ``Success``, ``Failed`` or ``TimedOut``
    """
    request = InvocationRequest(
        function_name=function_name,
        arguments=tuple(arguments),
        caller_address=caller_address,
    )
    log = logger.bind(function=function_name, caller=caller_address)

    await ensure_signer(probe or SignerProbe(transport), caller_address)

    account = await fetch_account(rpc, request.caller_address)
    envelope = build_invocation(account, request, network)
    log.info("invoke.built function={} sequence={}", function_name, envelope.sequence)

    simulation = await simulate(rpc, envelope)
    prepared = prepare(envelope, simulation)
    log.info("invoke.prepared resource_fee={} fee={}", prepared.resource_fee, prepared.fee)

    signed = await sign(prepared, network, transport, expected_signer=caller_address)
    tx_id = await submit(rpc, signed)
    log.info("invoke.submitted tx_id={}", tx_id)

    return await await_confirmation(
        rpc,
        tx_id,
        poll_interval=poll_interval,
        max_attempts=max_attempts,
        max_duration=max_duration,
    )
