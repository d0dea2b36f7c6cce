"""
Submission & confirmation polling.

``submit`` hands a signed envelope to the node; ``await_confirmation`` polls
the node until the transaction reaches a terminal status or the polling bound
is hit. Running out of time yields ``TimedOut``, which is NOT a failure: the
transaction may still land, so callers must re-query with
``get_transaction_status`` rather than resubmit.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from loguru import logger
from stellar_sdk.soroban_rpc import (
    GetTransactionResponse,
    GetTransactionStatus,
    SendTransactionStatus,
)

from .errors import NetworkError, RpcError, SubmissionRejected
from .rpc import LedgerRpc
from .tx import SignedEnvelope

ACCEPTED_SEND_STATUSES = (SendTransactionStatus.PENDING, SendTransactionStatus.DUPLICATE)

DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_MAX_DURATION = 60.0


@dataclass(frozen=True)
class Success:
    tx_id: str
    effects: dict[str, Any] = field(default_factory=dict)
    status: str = field(default="SUCCESS", init=False)


@dataclass(frozen=True)
class Failed:
    tx_id: str
    reason: Any
    status: str = field(default="FAILED", init=False)


@dataclass(frozen=True)
class TimedOut:
    tx_id: str
    attempts: int
    elapsed: float
    last_error: Optional[str] = None
    status: str = field(default="TIMED_OUT", init=False)


@dataclass(frozen=True)
class Pending:
    tx_id: str
    status: str = field(default="PENDING", init=False)


ConfirmationResult = Union[Success, Failed, TimedOut]


async def submit(rpc: LedgerRpc, signed: SignedEnvelope) -> str:
    """
    Send a signed transaction.

    Returns:
        Transaction id (hash) reported by the node

    Raises:
        SubmissionRejected: If the node refuses the envelope outright
    """
    response = await rpc.send_transaction(signed.envelope())
    status = SendTransactionStatus(response.status)
    if status not in ACCEPTED_SEND_STATUSES:
        logger.warning("submit.rejected status={} result={}", status.value, response.error_result_xdr)
        raise SubmissionRejected(status.value, response.error_result_xdr)
    logger.info("submit.accepted tx_id={} status={}", response.hash, status.value)
    return response.hash


def _classify(tx_id: str, response: GetTransactionResponse) -> Union[Success, Failed, Pending]:
    status = GetTransactionStatus(response.status)
    payload = response.model_dump(mode="json", by_alias=True, exclude_none=True)
    if status is GetTransactionStatus.SUCCESS:
        effects = {k: v for k, v in payload.items() if k != "status"}
        return Success(tx_id=tx_id, effects=effects)
    if status is GetTransactionStatus.FAILED:
        return Failed(tx_id=tx_id, reason=payload)
    return Pending(tx_id=tx_id)


async def get_transaction_status(
    rpc: LedgerRpc, tx_id: str
) -> Union[Success, Failed, Pending]:
    """One-shot status lookup, e.g. to follow up on a ``TimedOut`` result."""
    return _classify(tx_id, await rpc.get_transaction(tx_id))


async def await_confirmation(
    rpc: LedgerRpc,
    tx_id: str,
    *,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    max_attempts: Optional[int] = None,
    max_duration: Optional[float] = DEFAULT_MAX_DURATION,
) -> ConfirmationResult:
    """
    Poll until the transaction is terminal or the bound is exceeded.

    At least one of ``max_attempts`` / ``max_duration`` must be set. A poll
    that fails in transport (connection error, HTTP status, unparseable
    reply) counts as an attempt that saw no status; it does not end the
    wait, since the transaction is already in flight.

    Raises:
        RpcError: If the node answers with a JSON-RPC error object (e.g. an
            invalid hash). Asking again would get the same answer.

    Cancelling the awaiting task stops polling. The submitted transaction is
    left as is.
    """
    if max_attempts is None and max_duration is None:
        raise ValueError("await_confirmation needs max_attempts or max_duration")
    if poll_interval < 0:
        raise ValueError("poll_interval must be non-negative")

    start = time.monotonic()
    attempts = 0
    last_error: Optional[str] = None

    try:
        while True:
            attempts += 1
            try:
                outcome = await get_transaction_status(rpc, tx_id)
            except RpcError as exc:
                logger.warning("confirm.poll.rejected tx_id={} code={} error={}", tx_id, exc.code, exc.rpc_message)
                raise
            except NetworkError as exc:
                last_error = str(exc)
                logger.warning("confirm.poll.error tx_id={} attempt={} error={}", tx_id, attempts, exc)
            else:
                if not isinstance(outcome, Pending):
                    logger.info("confirm.done tx_id={} status={} attempts={}", tx_id, outcome.status, attempts)
                    return outcome

            elapsed = time.monotonic() - start
            if max_attempts is not None and attempts >= max_attempts:
                break
            if max_duration is not None and elapsed + poll_interval > max_duration:
                break
            await asyncio.sleep(poll_interval)
    except asyncio.CancelledError:
        logger.info("confirm.cancelled tx_id={} attempts={}", tx_id, attempts)
        raise

    elapsed = time.monotonic() - start
    logger.warning("confirm.timeout tx_id={} attempts={} elapsed={:.1f}s", tx_id, attempts, elapsed)
    return TimedOut(tx_id=tx_id, attempts=attempts, elapsed=elapsed, last_error=last_error)
