"""
Async Soroban RPC access for the invocation pipeline.

``LedgerRpc`` wraps ``stellar_sdk.SorobanServerAsync`` and covers the calls
the pipeline needs: account lookup, simulation, submission and status
lookup. HTTP goes through ``HttpxClient``, an ``httpx.AsyncClient`` behind
the SDK's async client interface, so every call is a suspend point for the
event loop and tests can swap in ``httpx.MockTransport``.

Every SDK failure leaves this module as a stage-tagged ``NetworkError``
(``RpcError`` when the node answered with a JSON-RPC error object).
"""

from __future__ import annotations

from typing import Any, AsyncGenerator, Awaitable, Dict, Optional, TypeVar

import httpx
from loguru import logger
from stellar_sdk import Account, SorobanServerAsync, StrKey, TransactionEnvelope
from stellar_sdk.client.base_async_client import BaseAsyncClient
from stellar_sdk.client.response import Response
from stellar_sdk.exceptions import AccountNotFoundException
from stellar_sdk.exceptions import BaseRequestError, SorobanRpcErrorResponse
from stellar_sdk.exceptions import ConnectionError as StellarConnectionError
from stellar_sdk.soroban_rpc import (
    GetTransactionResponse,
    SendTransactionResponse,
    SimulateTransactionResponse,
)

from .errors import AccountNotFound, EncodingError, NetworkError, RpcError

T = TypeVar("T")


class HttpxClient(BaseAsyncClient):
    """``stellar_sdk`` async HTTP client backed by ``httpx``."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, *, timeout: float = 30.0) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def _send(self, method: str, url: str, **kwargs: Any) -> Response:
        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise StellarConnectionError(f"HTTP {exc.response.status_code} from {url}") from exc
        except httpx.HTTPError as exc:
            raise StellarConnectionError(str(exc)) from exc
        return Response(
            status_code=response.status_code,
            text=response.text,
            headers=dict(response.headers),
            url=str(response.url),
        )

    async def get(
        self,
        url: str,
        params: Optional[Dict[str, str]] = None,
        max_content_size: Optional[int] = None,
    ) -> Response:
        return await self._send("GET", url, params=params)

    async def post(
        self,
        url: str,
        data: Optional[Dict[str, str]] = None,
        json_data: Optional[Dict[str, Any]] = None,
    ) -> Response:
        return await self._send("POST", url, data=data, json=json_data)

    async def stream(
        self, url: str, params: Optional[Dict[str, str]] = None
    ) -> AsyncGenerator[Dict[str, Any], None]:
        raise NotImplementedError("Streaming is not used against Soroban RPC")
        yield {}  # pragma: no cover

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class LedgerRpc:
    """Soroban RPC session bound to one node endpoint."""

    def __init__(
        self,
        rpc_url: str,
        *,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.server = SorobanServerAsync(rpc_url, client=HttpxClient(client, timeout=timeout))

    async def __aenter__(self) -> "LedgerRpc":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.server.close()

    async def _call(self, method: str, stage: str, pending: Awaitable[T]) -> T:
        """
        Await an SDK call, translating its failures.

        Raises:
            RpcError: If the node returned an error object
            NetworkError: On transport failure or a response the SDK
                could not parse
        """
        logger.debug("rpc.call method={}", method)
        try:
            return await pending
        except SorobanRpcErrorResponse as exc:
            raise RpcError(
                method,
                int(getattr(exc, "code", -32603)),
                str(getattr(exc, "message", None) or exc),
                data=getattr(exc, "data", None),
                stage=stage,
            ) from exc
        except BaseRequestError as exc:
            raise NetworkError(f"RPC {method} transport failure: {exc}", stage=stage) from exc
        except ValueError as exc:
            # json and pydantic validation errors are both ValueErrors
            raise NetworkError(f"Malformed {method} response: {exc}", stage=stage) from exc

    async def load_account(self, address: str) -> Account:
        """
        Read an account's current sequence number via ``getLedgerEntries``.

        Raises:
            EncodingError: If ``address`` is not an account public key
            AccountNotFound: If the address has never been funded
        """
        if not StrKey.is_valid_ed25519_public_key(address):
            raise EncodingError(f"Invalid account address: {address!r}", stage="account")
        try:
            return await self._call("getLedgerEntries", "account", self.server.load_account(address))
        except AccountNotFoundException as exc:
            raise AccountNotFound(address) from exc

    async def simulate_transaction(self, envelope: TransactionEnvelope) -> SimulateTransactionResponse:
        return await self._call(
            "simulateTransaction", "simulate", self.server.simulate_transaction(envelope)
        )

    async def send_transaction(self, envelope: TransactionEnvelope) -> SendTransactionResponse:
        return await self._call("sendTransaction", "submit", self.server.send_transaction(envelope))

    async def get_transaction(self, tx_hash: str) -> GetTransactionResponse:
        return await self._call("getTransaction", "poll", self.server.get_transaction(tx_hash))
