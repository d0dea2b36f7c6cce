"""
Shared fakes for the ledger node and the signing agent.

``FakeLedger`` answers Soroban JSON-RPC calls through ``httpx.MockTransport``
with real XDR payloads and records every method it served. ``FakeAgent``
implements the agent transport protocol in memory and signs with a real
keypair.
"""

from __future__ import annotations

import json
from typing import Any, Optional

import httpx
import pytest
from stellar_sdk import Keypair, SorobanDataBuilder, StrKey, TransactionEnvelope, scval
from stellar_sdk import Address as StellarAddress
from stellar_sdk import xdr as stellar_xdr

from tessera.pneuma.network import TESTNET_PASSPHRASE, NetworkContext
from tessera.pneuma.rpc import LedgerRpc
from tessera.pneuma.scval import U32
from tessera.pneuma.tx import (
    AccountState,
    InvocationRequest,
    PreparedEnvelope,
    SignedEnvelope,
    SimulationResult,
    build_invocation,
    prepare,
)
from tessera.sigil.agent import AgentTransportError

CALLER_KEYPAIR = Keypair.from_raw_ed25519_seed(bytes(range(32)))
CALLER = CALLER_KEYPAIR.public_key
OTHER_KEYPAIR = Keypair.from_raw_ed25519_seed(bytes(range(32, 64)))
OTHER = OTHER_KEYPAIR.public_key
CONTRACT_ID = StrKey.encode_contract(b"\x07" * 32)

TX_ID = "f00dfeed" * 8
RESOURCE_FEE = 52_000
CLOSE_TIME = "1700000000"
NOW = 1_700_000_000
FAILED_RESULT_XDR = "AAAAAAAAAGT////7AAAAAA=="


def transaction_data_xdr(resource_fee: int = RESOURCE_FEE) -> str:
    return SorobanDataBuilder().set_resource_fee(resource_fee).build().to_xdr()


def source_auth_entry_xdr(function_name: str = "purchase_ticket") -> str:
    """Authorization entry covered by the source account's own signature."""
    entry = stellar_xdr.SorobanAuthorizationEntry(
        credentials=stellar_xdr.SorobanCredentials(
            stellar_xdr.SorobanCredentialsType.SOROBAN_CREDENTIALS_SOURCE_ACCOUNT
        ),
        root_invocation=stellar_xdr.SorobanAuthorizedInvocation(
            function=stellar_xdr.SorobanAuthorizedFunction(
                stellar_xdr.SorobanAuthorizedFunctionType.SOROBAN_AUTHORIZED_FUNCTION_TYPE_CONTRACT_FN,
                contract_fn=stellar_xdr.InvokeContractArgs(
                    contract_address=StellarAddress(CONTRACT_ID).to_xdr_sc_address(),
                    function_name=stellar_xdr.SCSymbol(function_name.encode()),
                    args=[],
                ),
            ),
            sub_invocations=[],
        ),
    )
    return entry.to_xdr()


def account_entry_xdr(sequence: int) -> str:
    # Only the sequence number is read back from the entry
    entry = stellar_xdr.AccountEntry(
        account_id=CALLER_KEYPAIR.xdr_account_id(),
        balance=stellar_xdr.Int64(10_000 * 10_000_000),
        seq_num=stellar_xdr.SequenceNumber(stellar_xdr.Int64(sequence)),
        num_sub_entries=stellar_xdr.Uint32(0),
        inflation_dest=None,
        flags=stellar_xdr.Uint32(0),
        home_domain=stellar_xdr.String32(b""),
        thresholds=stellar_xdr.Thresholds(b"\x01\x00\x00\x00"),
        signers=[],
        ext=stellar_xdr.AccountEntryExt(0),
    )
    data = stellar_xdr.LedgerEntryData(stellar_xdr.LedgerEntryType.ACCOUNT, account=entry)
    return data.to_xdr()


def default_simulation() -> dict[str, Any]:
    return {
        "latestLedger": 1000,
        "minResourceFee": str(RESOURCE_FEE),
        "transactionData": transaction_data_xdr(),
        "results": [{"auth": [source_auth_entry_xdr()], "xdr": scval.to_void().to_xdr()}],
    }


def prepared_envelope(network: NetworkContext, caller: str = CALLER, *, sequence: int = 5) -> PreparedEnvelope:
    """purchase_ticket envelope with the default simulation merged in."""
    request = InvocationRequest("purchase_ticket", [U32(1)], caller)
    envelope = build_invocation(AccountState(caller, sequence), request, network, now=NOW)
    simulation = SimulationResult(
        envelope_hash=envelope.hash(),
        latest_ledger=1000,
        min_resource_fee=RESOURCE_FEE,
        transaction_data=transaction_data_xdr(),
        auth=(source_auth_entry_xdr(),),
    )
    return prepare(envelope, simulation, now=NOW + 1)


def signed_envelope(network: NetworkContext, keypair: Keypair = CALLER_KEYPAIR) -> SignedEnvelope:
    prepared = prepared_envelope(network, keypair.public_key)
    envelope = prepared.envelope()
    envelope.sign(keypair)
    return SignedEnvelope(prepared=prepared, signed_xdr=envelope.to_xdr(), signer_address=keypair.public_key)


class FakeLedger:
    def __init__(
        self,
        *,
        sequence: int = 100,
        account_exists: bool = True,
        simulation: Optional[dict[str, Any]] = None,
        send_status: str = "PENDING",
        statuses: Optional[list[str]] = None,
    ) -> None:
        self.sequence = sequence
        self.account_exists = account_exists
        self.simulation = simulation or default_simulation()
        self.send_status = send_status
        self.statuses = list(statuses or ["SUCCESS"])
        self.calls: list[str] = []
        self.params: dict[str, list[Any]] = {}
        # method -> number of upcoming calls that fail with HTTP 503
        self.failures: dict[str, int] = {}
        # method -> JSON-RPC error object returned instead of a result
        self.errors: dict[str, dict[str, Any]] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method = body["method"]
        self.calls.append(method)
        self.params.setdefault(method, []).append(body.get("params"))

        if self.failures.get(method):
            self.failures[method] -= 1
            return httpx.Response(503, json={"message": "unavailable"})
        if method in self.errors:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": self.errors[method]})

        result = getattr(self, f"_{method}")(body.get("params") or {})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    def _getLedgerEntries(self, params: dict[str, Any]) -> dict[str, Any]:
        entries = []
        if self.account_exists:
            entries.append(
                {
                    "key": params["keys"][0],
                    "xdr": account_entry_xdr(self.sequence),
                    "lastModifiedLedgerSeq": 990,
                }
            )
        return {"entries": entries, "latestLedger": 1000}

    def _simulateTransaction(self, params: dict[str, Any]) -> dict[str, Any]:
        return self.simulation

    def _sendTransaction(self, params: dict[str, Any]) -> dict[str, Any]:
        result: dict[str, Any] = {
            "hash": TX_ID,
            "status": self.send_status,
            "latestLedger": 1000,
            "latestLedgerCloseTime": CLOSE_TIME,
        }
        if self.send_status == "ERROR":
            result["errorResultXdr"] = FAILED_RESULT_XDR
        return result

    def _getTransaction(self, params: dict[str, Any]) -> dict[str, Any]:
        status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        result: dict[str, Any] = {
            "status": status,
            "txHash": params["hash"],
            "latestLedger": 1002,
            "latestLedgerCloseTime": CLOSE_TIME,
            "oldestLedger": 1,
            "oldestLedgerCloseTime": "1600000000",
        }
        if status == "SUCCESS":
            result.update(ledger=1001, createdAt=CLOSE_TIME)
        if status == "FAILED":
            result.update(ledger=1001, createdAt=CLOSE_TIME, resultXdr=FAILED_RESULT_XDR)
        return result

    def rpc(self) -> LedgerRpc:
        client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return LedgerRpc("http://ledger.test/rpc", client=client)

    def sent_envelope(self, method: str = "simulateTransaction", index: int = 0) -> TransactionEnvelope:
        return TransactionEnvelope.from_xdr(self.params[method][index]["transaction"], TESTNET_PASSPHRASE)


class FakeAgent:
    def __init__(
        self,
        keypair: Keypair = CALLER_KEYPAIR,
        *,
        address: Optional[str] = None,
        installed: bool = True,
        authorized: bool = True,
        decline_access: bool = False,
        unreachable: bool = False,
        sign_response: Optional[dict[str, Any]] = None,
    ) -> None:
        self.keypair = keypair
        self.address = address or keypair.public_key
        self.installed = installed
        self.authorized = authorized
        self.decline_access = decline_access
        self.unreachable = unreachable
        self.sign_response = sign_response
        self.signed: list[str] = []

    def _reach(self) -> None:
        if self.unreachable:
            raise AgentTransportError("connection refused")

    async def is_connected(self) -> dict[str, Any]:
        self._reach()
        return {"isConnected": self.installed}

    async def request_access(self) -> dict[str, Any]:
        self._reach()
        if self.decline_access:
            return {"error": {"code": "USER_DECLINED", "message": "User declined access"}}
        self.authorized = True
        return {"address": self.address}

    async def get_address(self) -> dict[str, Any]:
        self._reach()
        return {"address": self.address if self.authorized else ""}

    async def sign_transaction(self, transaction: str, network_passphrase: str) -> dict[str, Any]:
        self._reach()
        self.signed.append(transaction)
        if self.sign_response is not None:
            return self.sign_response
        envelope = TransactionEnvelope.from_xdr(transaction, network_passphrase)
        envelope.sign(self.keypair)
        return {"signedTxXdr": envelope.to_xdr(), "signerAddress": self.address}


@pytest.fixture()
def network() -> NetworkContext:
    return NetworkContext.preset("testnet", contract_id=CONTRACT_ID)


@pytest.fixture()
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture()
def agent() -> FakeAgent:
    return FakeAgent()
