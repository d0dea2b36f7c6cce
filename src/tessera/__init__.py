__all__ = [
    # Entry point
    "invoke",
    "ensure_signer",
    # Arguments
    "Address",
    "Symbol",
    "U32",
    "U64",
    "I128",
    "TypedValue",
    "encode_symbol",
    "encode_wide_int",
    "decode_wide_int",
    "encode_timestamp",
    "to_base_units",
    "encode_amount",
    # Network
    "NetworkContext",
    "LedgerRpc",
    # Stages
    "InvocationRequest",
    "AccountState",
    "UnsignedEnvelope",
    "PreparedEnvelope",
    "SignedEnvelope",
    "SimulationResult",
    "fetch_account",
    "build_invocation",
    "simulate",
    "prepare",
    "sign",
    "submit",
    "await_confirmation",
    "get_transaction_status",
    # Results
    "Success",
    "Failed",
    "TimedOut",
    "Pending",
    # Signer
    "AgentTransport",
    "HttpAgentTransport",
    "KeyfileAgent",
    "SignerProbe",
    "SignerStatus",
    "SigningAgentSession",
    # Errors
    "InvocationError",
    "EncodingError",
    "AccountNotFound",
    "AgentUnavailable",
    "AuthorizationDenied",
    "SignerMismatch",
    "SigningRejected",
    "SigningProtocolError",
    "NetworkError",
    "RpcError",
    "SimulationError",
    "PreparationError",
    "SubmissionRejected",
]

from loguru import logger

from .pipeline import ensure_signer, invoke
from .pneuma.errors import (
    AccountNotFound,
    AgentUnavailable,
    AuthorizationDenied,
    EncodingError,
    InvocationError,
    NetworkError,
    PreparationError,
    RpcError,
    SignerMismatch,
    SigningProtocolError,
    SigningRejected,
    SimulationError,
    SubmissionRejected,
)
from .pneuma.network import NetworkContext
from .pneuma.rpc import LedgerRpc
from .pneuma.scval import (
    I128,
    U32,
    U64,
    Address,
    Symbol,
    TypedValue,
    decode_wide_int,
    encode_amount,
    encode_symbol,
    encode_timestamp,
    encode_wide_int,
    to_base_units,
)
from .pneuma.submit import Failed, Pending, Success, TimedOut, await_confirmation, get_transaction_status, submit
from .pneuma.tx import (
    AccountState,
    InvocationRequest,
    PreparedEnvelope,
    SignedEnvelope,
    SimulationResult,
    UnsignedEnvelope,
    build_invocation,
    fetch_account,
    prepare,
    simulate,
)
from .sigil.agent import AgentTransport, HttpAgentTransport
from .sigil.keyfile import KeyfileAgent
from .sigil.probe import SignerProbe, SignerStatus, SigningAgentSession
from .sigil.signer import sign

# Silent unless an application opts in (see logging_utils.configure_logging)
logger.disable("tessera")
