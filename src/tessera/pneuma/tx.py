"""
Transaction Builder - Build, simulate and prepare contract invocations.

A transaction moves through immutable snapshots:

    UnsignedEnvelope -> PreparedEnvelope -> SignedEnvelope

Each snapshot holds the base64 XDR of a ``stellar_sdk.TransactionEnvelope``
plus the fields the pipeline reads back. ``envelope()`` parses a fresh, mutable
copy, so later stages can never alter an earlier snapshot. Retrying after a
failure still means starting over from ``fetch_account``: sequence numbers are
single-use and must be re-read for every attempt.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from loguru import logger
from stellar_sdk import Account, TransactionBuilder, TransactionEnvelope
from stellar_sdk import xdr as stellar_xdr

from ..utils import unix_now
from .errors import EncodingError, PreparationError, SimulationError
from .network import NetworkContext
from .rpc import LedgerRpc
from .scval import TypedValue


@dataclass(frozen=True)
class InvocationRequest:
    function_name: str
    arguments: tuple[TypedValue, ...]
    caller_address: str

    def __post_init__(self) -> None:
        if not self.function_name:
            raise EncodingError("function_name must not be empty")
        if not self.caller_address:
            raise EncodingError("caller_address must not be empty")
        # Accept any sequence but store a tuple
        object.__setattr__(self, "arguments", tuple(self.arguments))


@dataclass(frozen=True)
class AccountState:
    address: str
    sequence_number: int


@dataclass(frozen=True)
class TimeBounds:
    min_time: int
    max_time: int


@dataclass(frozen=True)
class UnsignedEnvelope:
    xdr: str
    network_passphrase: str
    source: str
    sequence: int
    fee: int
    time_bounds: TimeBounds
    contract_id: str
    function_name: str
    arguments: tuple[TypedValue, ...]

    def envelope(self) -> TransactionEnvelope:
        return TransactionEnvelope.from_xdr(self.xdr, self.network_passphrase)

    def to_xdr(self) -> str:
        return self.xdr

    def hash(self) -> str:
        """Hex transaction hash, the value a signature commits to."""
        return self.envelope().hash_hex()


@dataclass(frozen=True)
class SimulationResult:
    envelope_hash: str
    latest_ledger: int
    min_resource_fee: Optional[int]
    transaction_data: Optional[str]
    auth: tuple[str, ...] = ()
    return_value: Optional[str] = None
    source_sequence: Optional[int] = None
    restore_required: bool = False
    events: tuple[Any, ...] = field(default=(), compare=False)


@dataclass(frozen=True)
class PreparedEnvelope:
    base: UnsignedEnvelope
    xdr: str
    resource_fee: int

    @property
    def fee(self) -> int:
        return self.base.fee + self.resource_fee

    @property
    def sequence(self) -> int:
        return self.base.sequence

    @property
    def network_passphrase(self) -> str:
        return self.base.network_passphrase

    def envelope(self) -> TransactionEnvelope:
        return TransactionEnvelope.from_xdr(self.xdr, self.network_passphrase)

    def to_xdr(self) -> str:
        return self.xdr

    def hash(self) -> str:
        return self.envelope().hash_hex()


@dataclass(frozen=True)
class SignedEnvelope:
    """Signed envelope XDR (base64) returned by the signing agent."""

    prepared: PreparedEnvelope
    signed_xdr: str
    signer_address: Optional[str] = None

    def envelope(self) -> TransactionEnvelope:
        return TransactionEnvelope.from_xdr(self.signed_xdr, self.prepared.network_passphrase)


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------


async def fetch_account(rpc: LedgerRpc, address: str) -> AccountState:
    """Read the account's latest committed sequence number. Never cached."""
    loaded = await rpc.load_account(address)
    account = AccountState(address=address, sequence_number=loaded.sequence)
    logger.debug("tx.account address={} sequence={}", account.address, account.sequence_number)
    return account


def build_invocation(
    account: AccountState,
    request: InvocationRequest,
    network: NetworkContext,
    *,
    now: Optional[int] = None,
) -> UnsignedEnvelope:
    """
    Build a single-operation envelope invoking ``request.function_name``.

    Pure: the only input from the network is ``account``.

    Args:
        account: Freshly fetched source account
        request: Function name and typed arguments
        network: Passphrase, contract id, fee and validity window
        now: Build time in epoch seconds (default: current time)

    Returns:
        UnsignedEnvelope with sequence ``account.sequence_number + 1`` that
        expires ``network.tx_timeout`` seconds after ``now``
    """
    if account.address != request.caller_address:
        raise EncodingError(
            f"Account {account.address} does not match caller {request.caller_address}",
            stage="build",
        )
    if network.tx_timeout <= 0:
        raise EncodingError("Transactions must carry a bounded validity window", stage="build")

    try:
        contract_id = network.require_contract()
    except ValueError as exc:
        raise EncodingError(str(exc), stage="build") from exc

    now = unix_now() if now is None else now
    time_bounds = TimeBounds(min_time=0, max_time=now + network.tx_timeout)
    try:
        # TransactionBuilder bumps the sequence of the Account it is given
        envelope = (
            TransactionBuilder(
                Account(account.address, account.sequence_number),
                network.passphrase,
                base_fee=network.base_fee,
            )
            .add_time_bounds(time_bounds.min_time, time_bounds.max_time)
            .append_invoke_contract_function_op(
                contract_id=contract_id,
                function_name=request.function_name,
                parameters=[arg.to_sc_val() for arg in request.arguments],
            )
            .build()
        )
    except ValueError as exc:
        raise EncodingError(f"Cannot build invocation: {exc}", stage="build") from exc

    return UnsignedEnvelope(
        xdr=envelope.to_xdr(),
        network_passphrase=network.passphrase,
        source=account.address,
        sequence=envelope.transaction.sequence,
        fee=envelope.transaction.fee,
        time_bounds=time_bounds,
        contract_id=contract_id,
        function_name=request.function_name,
        arguments=request.arguments,
    )


async def simulate(rpc: LedgerRpc, envelope: UnsignedEnvelope) -> SimulationResult:
    """
    Dry-run the envelope without committing it.

    Raises:
        SimulationError: If the node reports the call would revert or exceed
            resource limits
    """
    response = await rpc.simulate_transaction(envelope.envelope())
    if response.error:
        logger.warning("tx.simulate.failed detail={}", response.error)
        raise SimulationError(response.error)

    first = response.results[0] if response.results else None
    return SimulationResult(
        envelope_hash=envelope.hash(),
        latest_ledger=response.latest_ledger,
        min_resource_fee=response.min_resource_fee,
        transaction_data=response.transaction_data,
        auth=tuple(first.auth or ()) if first else (),
        return_value=first.xdr if first else None,
        restore_required=response.restore_preamble is not None,
        events=tuple(response.events or ()),
    )


def prepare(
    envelope: UnsignedEnvelope,
    simulation: SimulationResult,
    *,
    now: Optional[int] = None,
) -> PreparedEnvelope:
    """
    Merge simulated resources and authorization entries into the envelope.

    Assembles the same way ``stellar_sdk``'s prepare/assemble does (resource
    fee added to the inclusion fee, ``SorobanTransactionData`` attached,
    auth entries copied when the operation has none) but from a stored
    simulation, so it makes no network call.

    Raises:
        PreparationError: If the simulation does not belong to this envelope,
            the account sequence has moved past it, the validity window has
            elapsed, ledger state must be restored first, or resource data is
            missing. Rebuild from ``fetch_account`` in every case.
    """
    if simulation.envelope_hash != envelope.hash():
        raise PreparationError("Simulation was computed for a different envelope")
    if simulation.source_sequence is not None and simulation.source_sequence >= envelope.sequence:
        raise PreparationError(
            f"Account sequence advanced to {simulation.source_sequence}; "
            f"envelope sequence {envelope.sequence} is stale"
        )
    now = unix_now() if now is None else now
    if now >= envelope.time_bounds.max_time:
        raise PreparationError("Validity window elapsed before preparation")
    if simulation.restore_required:
        raise PreparationError("Archived ledger entries must be restored before this call")
    if simulation.min_resource_fee is None or not simulation.transaction_data:
        raise PreparationError("Simulation returned no resource footprint")

    assembled = envelope.envelope()
    transaction = assembled.transaction
    try:
        transaction.soroban_data = stellar_xdr.SorobanTransactionData.from_xdr(
            simulation.transaction_data
        )
        operation = transaction.operations[0]
        if not operation.auth:
            operation.auth = [
                stellar_xdr.SorobanAuthorizationEntry.from_xdr(entry) for entry in simulation.auth
            ]
    except (ValueError, EOFError) as exc:
        raise PreparationError(f"Simulation returned undecodable XDR: {exc}") from exc
    transaction.fee = envelope.fee + simulation.min_resource_fee

    return PreparedEnvelope(
        base=envelope,
        xdr=assembled.to_xdr(),
        resource_fee=simulation.min_resource_fee,
    )
