"""
Chain and harness configuration.

Endpoints default to the local two-chain osmosis network and can be
overridden per chain through environment variables (or a .env file):

    IBC_HOST            - host every default endpoint points at
    OSMO_A_RPC_URL      - Tendermint RPC of chain A
    OSMO_A_WS_URL       - Tendermint websocket of chain A
    OSMO_A_REST_URL     - LCD/REST endpoint of chain A (same for OSMO_B_*)
    HARNESS_MNEMONIC    - mnemonic of the account driving the tests
    RELAYER_MNEMONIC    - mnemonic of the relayer account
    HERMES_BIN          - relayer binary
    IBC_CACHE_DIR       - directory holding <chain_id>.cache.json files
    CONTRACTS_DIR       - directory holding andromeda_<name>@<version>.wasm files
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

IBC_HOST = os.getenv("IBC_HOST", "localhost")

FAUCET_MNEMONIC = (
    "notice oak worry limit wrap speak medal online prefer cluster roof addict "
    "wrist behave treat actual wasp year salad speed social layer crew genius"
)

HARNESS_MNEMONIC = os.getenv("HARNESS_MNEMONIC", FAUCET_MNEMONIC)

RELAYER_MNEMONIC = os.getenv(
    "RELAYER_MNEMONIC",
    "black frequent sponsor nice claim rally hunt suit parent size stumble expire "
    "forest avocado mistake agree trend witness lounge shiver image smoke stool chicken",
)

HERMES_BIN = os.getenv("HERMES_BIN", "hermes")
CACHE_DIR = Path(os.getenv("IBC_CACHE_DIR", ".cache"))
CONTRACTS_DIR = Path(os.getenv("CONTRACTS_DIR", "contracts"))

# Pre-existing ICS-20 transfer channel and connection on the local network
ICS20_CHANNEL = "channel-0"
EXISTING_CONNECTION = "connection-0"
KERNEL_CHANNEL_VERSION = "andr-kernel-1"

# Readiness and broadcast waits
POLL_INTERVAL = 1.0
POLL_ATTEMPTS = 60
BROADCAST_TIMEOUT = 15.0


@dataclass(frozen=True)
class Faucet:
    mnemonic: str
    address: str


@dataclass(frozen=True)
class ChainDefinition:
    """Static description of one chain. Loaded once, never mutated."""

    name: str
    chain_id: str
    prefix: str
    denom_fee: str
    denom_staking: str
    min_fee: str
    rpc_url: str
    ws_url: str
    rest_url: str
    faucet: Faucet
    ics20_port: str = "transfer"
    block_time: float = 5.0

    @property
    def gas_price(self) -> float:
        """Numeric part of ``min_fee`` (``0.25uosmo`` -> 0.25)."""
        amount = self.min_fee[: len(self.min_fee) - len(self.denom_fee)]
        return float(amount)


def _endpoint(env_name: str, scheme: str, port: int) -> str:
    return os.getenv(env_name, f"{scheme}://{IBC_HOST}:{port}")


CHAINS = {
    "osmo-a": ChainDefinition(
        name="osmo-a",
        chain_id="localosmosis-1",
        prefix="osmo",
        denom_fee="uosmo",
        denom_staking="stake",
        min_fee="0.25uosmo",
        rpc_url=_endpoint("OSMO_A_RPC_URL", "http", 20121),
        ws_url=_endpoint("OSMO_A_WS_URL", "ws", 20121),
        rest_url=_endpoint("OSMO_A_REST_URL", "http", 20221),
        faucet=Faucet(FAUCET_MNEMONIC, "osmo19wpkq20hq9r08qht3qhrvya7fm00cflvrhu6s3"),
    ),
    "osmo-b": ChainDefinition(
        name="osmo-b",
        chain_id="localosmosis-2",
        prefix="osmo",
        denom_fee="uosmo",
        denom_staking="stake",
        min_fee="0.25uosmo",
        rpc_url=_endpoint("OSMO_B_RPC_URL", "http", 20122),
        ws_url=_endpoint("OSMO_B_WS_URL", "ws", 20122),
        rest_url=_endpoint("OSMO_B_REST_URL", "http", 20222),
        faucet=Faucet(FAUCET_MNEMONIC, "osmo19wpkq20hq9r08qht3qhrvya7fm00cflvrhu6s3"),
    ),
}


def get_chain(name: str) -> ChainDefinition:
    if name not in CHAINS:
        raise ValueError(f"Unknown chain: {name}. Supported: {list(CHAINS.keys())}")
    return CHAINS[name]
