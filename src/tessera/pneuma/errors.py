"""
Invocation error taxonomy.

Every failure in the invocation pipeline is an ``InvocationError`` tagged with
the stage that raised it, so a caller can tell a rejected signature from an
unreachable RPC node without parsing messages.

Classification:
- caller bugs (``EncodingError``) are never retried
- user or setup state (``AccountNotFound``, ``AgentUnavailable``,
  ``AuthorizationDenied``, ``SigningRejected``) is surfaced verbatim
- environmental failures (``NetworkError``, ``SimulationError``,
  ``PreparationError``, ``SubmissionRejected``) are safe to retry, but only by
  re-running the whole chain from the account fetch
"""

from __future__ import annotations

from typing import Any, Optional

STAGES = (
    "encode",
    "probe",
    "account",
    "build",
    "simulate",
    "prepare",
    "sign",
    "submit",
    "poll",
)


class InvocationError(RuntimeError):
    stage: str = "build"
    retryable: bool = False
    exit_code: int = 1

    def __init__(self, message: str, *, stage: Optional[str] = None) -> None:
        super().__init__(message)
        if stage is not None:
            if stage not in STAGES:
                raise ValueError(f"Unknown pipeline stage: {stage}")
            self.stage = stage

    def __str__(self) -> str:
        return f"[{self.stage}] {super().__str__()}"


class EncodingError(InvocationError, ValueError):
    stage = "encode"
    exit_code = 2


class AccountNotFound(InvocationError):
    stage = "account"
    exit_code = 3

    def __init__(self, address: str) -> None:
        super().__init__(f"Account {address} does not exist on the network (unfunded?)")
        self.address = address


class AgentUnavailable(InvocationError):
    stage = "probe"
    exit_code = 4


class AuthorizationDenied(InvocationError):
    stage = "probe"
    exit_code = 4


class SignerMismatch(AuthorizationDenied):
    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(
            f"Active signer {actual} does not match caller {expected}",
            stage="probe",
        )
        self.expected = expected
        self.actual = actual


class SigningRejected(InvocationError):
    stage = "sign"
    exit_code = 5


class SigningProtocolError(InvocationError):
    stage = "sign"
    exit_code = 5


class NetworkError(InvocationError):
    retryable = True
    exit_code = 6


class RpcError(NetworkError):
    """
    JSON-RPC error object returned by the node.

    The node answered, so repeating the same request gets the same answer.
    Only internal (-32603) and server-defined (-32000..-32099) errors are
    marked retryable.
    """

    def __init__(
        self,
        method: str,
        code: int,
        message: str,
        *,
        data: Any = None,
        stage: Optional[str] = None,
    ) -> None:
        super().__init__(f"RPC {method} error {code}: {message}", stage=stage)
        self.method = method
        self.code = code
        self.rpc_message = message
        self.data = data
        self.retryable = code == -32603 or -32099 <= code <= -32000


class SimulationError(InvocationError):
    stage = "simulate"
    retryable = True
    exit_code = 7

    def __init__(self, detail: Any) -> None:
        super().__init__(f"Simulation failed: {detail}")
        self.detail = detail


class PreparationError(InvocationError):
    stage = "prepare"
    retryable = True
    exit_code = 7


class SubmissionRejected(InvocationError):
    stage = "submit"
    retryable = True
    exit_code = 8

    def __init__(self, status: str, error_result: Any = None) -> None:
        super().__init__(f"Network refused transaction: status={status} result={error_result}")
        self.status = status
        self.error_result = error_result


__all__ = [
    "STAGES",
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
