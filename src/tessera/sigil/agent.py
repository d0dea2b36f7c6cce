"""
Signing agent boundary.

The signing agent (a browser wallet extension or a local stand-in) owns the
user's key. Tessera only ever talks to it through ``AgentTransport``: ask
whether it is there, ask for access, ask for the active address, and hand it
the prepared envelope XDR to sign.

Every call answers with a dict. Failures are reported in-band as
``{"error": {"code": ..., "message": ...}}``. Connectivity problems are raised
as ``AgentTransportError`` and a reply that is not JSON at all as
``SigningProtocolError``.
"""

from __future__ import annotations

import os
import struct
from typing import Any, Optional, Protocol

import httpx
from loguru import logger

from ..pneuma.errors import SigningProtocolError
from ..spec.schemas import SchemaRegistry, SchemaValidationError

DEFAULT_AGENT_URL = "http://127.0.0.1:7777"

USER_DECLINED = "USER_DECLINED"
NOT_CONNECTED = "NOT_CONNECTED"
UNAVAILABLE = "UNAVAILABLE"

# Freighter reports a declined prompt as code -4
DECLINED_CODES = {USER_DECLINED, -4, "-4"}
UNAVAILABLE_CODES = {NOT_CONNECTED, UNAVAILABLE}

# Decoding truncated or garbled envelope XDR surfaces as one of these
XDR_DECODE_ERRORS = (ValueError, TypeError, IndexError, EOFError, struct.error)


class AgentTransportError(ConnectionError):
    """The agent could not be reached at all."""


class AgentTransport(Protocol):
    async def is_connected(self) -> dict[str, Any]: ...

    async def request_access(self) -> dict[str, Any]: ...

    async def get_address(self) -> dict[str, Any]: ...

    async def sign_transaction(self, transaction: str, network_passphrase: str) -> dict[str, Any]: ...


def get_agent_url() -> str:
    """Get the agent bridge URL from environment or default."""
    return os.environ.get("TESSERA_AGENT_URL", DEFAULT_AGENT_URL)


def check_response(payload: Any, *, stage: str) -> dict[str, Any]:
    """Schema-check an agent response, raising ``SigningProtocolError``."""
    try:
        SchemaRegistry.default().validate_named(payload, "agent")
    except SchemaValidationError as exc:
        raise SigningProtocolError(f"Malformed agent response: {exc}", stage=stage) from exc
    return payload


def agent_error(payload: dict[str, Any]) -> Optional[tuple[Any, str]]:
    """Return ``(code, message)`` if the payload carries an error."""
    error = payload.get("error")
    if not error:
        return None
    return error.get("code"), error.get("message", "")


class HttpAgentTransport:
    """
    Reach the agent through a local HTTP bridge.

    The bridge exposes ``POST /isConnected``, ``/requestAccess``,
    ``/getAddress`` and ``/signTransaction`` and answers with the payloads
    described in this module. Signing waits for the user with no timeout;
    cancel the awaiting task to give up.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = (base_url or get_agent_url()).rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _post(
        self,
        path: str,
        body: Optional[dict[str, Any]] = None,
        *,
        stage: str = "probe",
        **kwargs: Any,
    ) -> Any:
        try:
            response = await self._client.post(f"{self.base_url}{path}", json=body or {}, **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.debug("agent.unreachable path={} error={}", path, exc)
            raise AgentTransportError(f"Signing agent unreachable at {self.base_url}: {exc}") from exc
        try:
            return response.json()
        except ValueError as exc:
            logger.debug("agent.non_json path={} status={}", path, response.status_code)
            raise SigningProtocolError(f"Signing agent at {self.base_url} sent a non-JSON reply", stage=stage) from exc

    async def is_connected(self) -> dict[str, Any]:
        return await self._post("/isConnected")

    async def request_access(self) -> dict[str, Any]:
        return await self._post("/requestAccess", timeout=None)

    async def get_address(self) -> dict[str, Any]:
        return await self._post("/getAddress")

    async def sign_transaction(self, transaction: str, network_passphrase: str) -> dict[str, Any]:
        return await self._post(
            "/signTransaction",
            {"transaction": transaction, "networkPassphrase": network_passphrase},
            stage="sign",
            timeout=None,
        )
