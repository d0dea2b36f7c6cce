"""
Network selection and configuration.

Settings come from the environment, optionally seeded from
``~/.tessera/.env``:

- ``TESSERA_NETWORK``: ``testnet`` (default) or ``mainnet``
- ``TESSERA_RPC_URL``: override the preset RPC endpoint
- ``TESSERA_CONTRACT_ID``: deployed contract to invoke
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from stellar_sdk import Network

TESSERA_DIR = Path.home() / ".tessera"
TESSERA_ENV = TESSERA_DIR / ".env"

TESTNET_PASSPHRASE = Network.TESTNET_NETWORK_PASSPHRASE
PUBLIC_PASSPHRASE = Network.PUBLIC_NETWORK_PASSPHRASE

NETWORKS = {
    "testnet": ("https://soroban-testnet.stellar.org", TESTNET_PASSPHRASE),
    "mainnet": ("https://soroban-rpc.mainnet.stellar.org", PUBLIC_PASSPHRASE),
}
DEFAULT_NETWORK = "testnet"

# Nominal fee ceiling in base units before resource fees are added
DEFAULT_BASE_FEE = 100
# Seconds a built transaction stays valid
DEFAULT_TX_TIMEOUT = 30


@dataclass(frozen=True)
class NetworkContext:
    name: str
    rpc_url: str
    passphrase: str
    contract_id: Optional[str] = None
    base_fee: int = DEFAULT_BASE_FEE
    tx_timeout: int = DEFAULT_TX_TIMEOUT

    @classmethod
    def preset(cls, name: str, contract_id: Optional[str] = None) -> "NetworkContext":
        if name not in NETWORKS:
            raise ValueError(f"Unknown network {name!r}; expected one of {sorted(NETWORKS)}")
        rpc_url, passphrase = NETWORKS[name]
        return cls(name=name, rpc_url=rpc_url, passphrase=passphrase, contract_id=contract_id)

    @classmethod
    def from_env(cls, env_path: Optional[Path] = None) -> "NetworkContext":
        load_config(env_path)
        ctx = cls.preset(
            os.environ.get("TESSERA_NETWORK", DEFAULT_NETWORK),
            contract_id=os.environ.get("TESSERA_CONTRACT_ID") or None,
        )
        rpc_url = os.environ.get("TESSERA_RPC_URL")
        if rpc_url:
            ctx = replace(ctx, rpc_url=rpc_url)
        return ctx

    def require_contract(self) -> str:
        if not self.contract_id:
            raise ValueError(
                "No contract configured. Set TESSERA_CONTRACT_ID or pass --contract."
            )
        return self.contract_id


def load_config(env_path: Optional[Path] = None) -> None:
    """Load ``~/.tessera/.env`` into the environment without overriding it."""
    env_path = env_path or TESSERA_ENV
    if env_path.exists():
        load_dotenv(env_path, override=False)
