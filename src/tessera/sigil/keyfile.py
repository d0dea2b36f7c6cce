"""
Local development signing agent.

Stands in for the browser wallet on development networks. It holds an
ed25519 Stellar secret seed (``TESSERA_SECRET_KEY`` in the environment or in
``~/.tessera/.env``) and speaks the same ``AgentTransport`` protocol: it
receives envelope XDR and answers with the signed envelope XDR, like a
wallet extension would.
"""

from __future__ import annotations

import inspect
import os
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Union

from dotenv import dotenv_values, set_key
from stellar_sdk import Keypair, TransactionEnvelope

from ..pneuma.network import TESSERA_ENV
from .agent import NOT_CONNECTED, USER_DECLINED, XDR_DECODE_ERRORS

SECRET_KEY_VAR = "TESSERA_SECRET_KEY"

Approver = Callable[[str, str], Union[bool, Awaitable[bool]]]


def generate_key() -> tuple[str, str]:
    """
    Generate a random Stellar keypair.

    Returns:
        Tuple of (secret_seed, public_key)
    """
    keypair = Keypair.random()
    return keypair.secret, keypair.public_key


def save_secret_key(secret: str, env_path: Optional[Path] = None) -> Path:
    """Write ``TESSERA_SECRET_KEY`` into the .env file, keeping other entries."""
    env_path = env_path or TESSERA_ENV
    env_path.parent.mkdir(parents=True, exist_ok=True)
    env_path.touch(mode=0o600, exist_ok=True)
    set_key(str(env_path), SECRET_KEY_VAR, secret, quote_mode="never")
    if os.name != "nt":
        env_path.chmod(0o600)
    return env_path


def load_secret_key(env_path: Optional[Path] = None) -> str:
    """
    Read the secret seed. The process environment wins over the .env file.

    Raises:
        ValueError: If no key is configured
    """
    env_path = env_path or TESSERA_ENV
    secret = os.environ.get(SECRET_KEY_VAR)
    if not secret and env_path.exists():
        secret = dotenv_values(env_path).get(SECRET_KEY_VAR)
    if not secret:
        raise ValueError(
            f"{SECRET_KEY_VAR} not found. Run 'tessera keygen' or set {SECRET_KEY_VAR} in {env_path}"
        )
    return secret


class KeyfileAgent:
    """
    ``AgentTransport`` backed by a local Stellar keypair.

    Args:
        secret: ``S...`` secret seed; loaded via ``load_secret_key`` when omitted
        approve: Called with (transaction_xdr, network_passphrase) before
            each signature; returning False declines. May be a coroutine
            function. Approves everything when omitted.
        authorized: Start with access already granted
    """

    def __init__(
        self,
        secret: Optional[str] = None,
        *,
        approve: Optional[Approver] = None,
        authorized: bool = False,
    ) -> None:
        self._keypair = Keypair.from_secret(secret or load_secret_key())
        self._approve = approve
        self._authorized = authorized

    @property
    def address(self) -> str:
        return self._keypair.public_key

    async def is_connected(self) -> dict[str, Any]:
        return {"isConnected": True}

    async def request_access(self) -> dict[str, Any]:
        self._authorized = True
        return {"address": self.address}

    async def get_address(self) -> dict[str, Any]:
        return {"address": self.address if self._authorized else ""}

    async def sign_transaction(self, transaction: str, network_passphrase: str) -> dict[str, Any]:
        if not self._authorized:
            return {"error": {"code": NOT_CONNECTED, "message": "Access not granted"}}

        try:
            envelope = TransactionEnvelope.from_xdr(transaction, network_passphrase)
        except XDR_DECODE_ERRORS as exc:
            return {"error": {"code": "INVALID_TRANSACTION", "message": str(exc) or type(exc).__name__}}

        if self._approve is not None:
            approved = self._approve(transaction, network_passphrase)
            if inspect.isawaitable(approved):
                approved = await approved
            if not approved:
                return {"error": {"code": USER_DECLINED, "message": "User declined to sign"}}

        envelope.sign(self._keypair)
        return {"signedTxXdr": envelope.to_xdr(), "signerAddress": self.address}
