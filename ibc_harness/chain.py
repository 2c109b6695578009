"""
Chain client boundary, contract handles and per-chain runtime state.

``ChainClient`` is the collaborator the rest of the harness talks to.
``CosmpyChainClient`` implements it against a live node with cosmpy; unit
tests substitute an in-memory fake.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Sequence

import structlog
from cosmpy.aerial.client import LedgerClient, NetworkConfig
from cosmpy.aerial.contract import LedgerContract
from cosmpy.aerial.wallet import LocalWallet
from cosmpy.crypto.address import Address

from ibc_harness.amp import Coin, CoinLike, to_coins
from ibc_harness.config import BROADCAST_TIMEOUT, POLL_INTERVAL, ChainDefinition
from ibc_harness.errors import ContractError
from ibc_harness.messages import to_json

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TxResult:
    transaction_hash: str


class ChainClient(Protocol):
    sender_address: str

    def upload(self, wasm_path: Path, label: str) -> int: ...

    def instantiate(self, code_id: int, init_msg: Dict[str, Any], label: str) -> str: ...

    def execute(self, address: str, msg: Dict[str, Any], funds: Sequence[Coin] = ()) -> TxResult: ...

    def query(self, address: str, msg: Dict[str, Any]) -> Any: ...

    def get_balance(self, address: str, denom: str) -> Coin: ...

    def get_chain_id(self) -> str: ...

    def send_tokens(self, recipient: str, funds: Sequence[Coin]) -> TxResult: ...


def random_address(prefix: str) -> str:
    """A fresh bech32 account address nobody holds the key for."""
    return str(Address(os.urandom(20), prefix))


def _funds_string(funds: Sequence[Coin]) -> Optional[str]:
    if not funds:
        return None
    return ",".join(f"{coin.amount}{coin.denom}" for coin in funds)


class CosmpyChainClient:
    """Signing and query client for one chain, backed by cosmpy."""

    def __init__(self, definition: ChainDefinition, ledger: LedgerClient, wallet: LocalWallet):
        self.definition = definition
        self.ledger = ledger
        self.wallet = wallet
        self.sender_address = str(wallet.address())

    @classmethod
    def connect(cls, definition: ChainDefinition, mnemonic: str) -> "CosmpyChainClient":
        cfg = NetworkConfig(
            chain_id=definition.chain_id,
            url=f"rest+{definition.rest_url}",
            fee_minimum_gas_price=definition.gas_price,
            fee_denomination=definition.denom_fee,
            staking_denomination=definition.denom_staking,
        )
        wallet = LocalWallet.from_mnemonic(mnemonic, prefix=definition.prefix)
        client = cls(definition, LedgerClient(cfg), wallet)
        logger.info("chain_client_connected", chain=definition.name, sender=client.sender_address)
        return client

    def _wait(self, tx) -> TxResult:
        tx.wait_to_complete(timeout=BROADCAST_TIMEOUT, poll_period=POLL_INTERVAL)
        tx.response.ensure_successful()
        return TxResult(transaction_hash=tx.tx_hash)

    def upload(self, wasm_path: Path, label: str) -> int:
        try:
            contract = LedgerContract(str(wasm_path), self.ledger)
            code_id = contract.store(self.wallet, memo=f"Upload {label}")
        except Exception as e:
            raise ContractError(label, f"upload failed: {e}") from e
        logger.debug("contract_uploaded", chain=self.definition.name, contract=label, code_id=code_id)
        return code_id

    def instantiate(self, code_id: int, init_msg: Dict[str, Any], label: str) -> str:
        try:
            contract = LedgerContract(None, self.ledger, code_id=code_id)
            address = contract.instantiate(
                init_msg, self.wallet, label=label, admin_address=self.wallet.address()
            )
        except Exception as e:
            raise ContractError(label, f"instantiate failed: {e}") from e
        logger.debug("contract_instantiated", chain=self.definition.name, contract=label, address=str(address))
        return str(address)

    def execute(self, address: str, msg: Dict[str, Any], funds: Sequence[Coin] = ()) -> TxResult:
        try:
            contract = LedgerContract(None, self.ledger, address=Address(address))
            tx = contract.execute(msg, self.wallet, funds=_funds_string(funds))
            return self._wait(tx)
        except Exception as e:
            raise ContractError(address, f"execute {list(msg)} failed: {e}") from e

    def query(self, address: str, msg: Dict[str, Any]) -> Any:
        try:
            contract = LedgerContract(None, self.ledger, address=Address(address))
            return contract.query(msg)
        except Exception as e:
            raise ContractError(address, f"query {list(msg)} failed: {e}") from e

    def get_balance(self, address: str, denom: str) -> Coin:
        amount = self.ledger.query_bank_balance(Address(address), denom=denom)
        return Coin(amount=str(amount), denom=denom)

    def get_chain_id(self) -> str:
        return self.definition.chain_id

    def send_tokens(self, recipient: str, funds: Sequence[Coin]) -> TxResult:
        result = None
        for coin in funds:
            tx = self.ledger.send_tokens(Address(recipient), int(coin.amount), coin.denom, self.wallet)
            result = self._wait(tx)
        return result


def fund_account(definition: ChainDefinition, address: str, amount: str, denom: Optional[str] = None) -> TxResult:
    """Send ``amount`` of ``denom`` (the fee denom by default) from the chain faucet."""
    denom = denom or definition.denom_fee
    faucet = CosmpyChainClient.connect(definition, definition.faucet.mnemonic)
    logger.info("funding_account", chain=definition.name, address=address, amount=amount, denom=denom)
    return faucet.send_tokens(address, [Coin(amount=amount, denom=denom)])


@dataclass(frozen=True)
class Contract:
    """A deployed contract. The address is its durable identity."""

    address: str
    code_id: Optional[int] = None

    @classmethod
    def from_address(cls, address: str) -> "Contract":
        return cls(address=address)

    @classmethod
    def from_code_id(cls, code_id: int, init_msg: Dict[str, Any], client: ChainClient, label: str = "contract") -> "Contract":
        address = client.instantiate(code_id, init_msg, label)
        return cls(address=address, code_id=code_id)

    def execute(self, msg, client: ChainClient, funds: Sequence[CoinLike] = ()) -> TxResult:
        return client.execute(self.address, to_json(msg), to_coins(funds))

    def query(self, msg, client: ChainClient) -> Any:
        return client.query(self.address, to_json(msg))

    def get_port(self) -> str:
        """IBC port a CosmWasm contract binds to."""
        return f"wasm.{self.address}"


@dataclass
class ChainEndpoint:
    """Runtime state of one chain for the duration of a run."""

    name: str
    definition: ChainDefinition
    client: ChainClient
    contracts: Dict[str, Contract] = field(default_factory=dict)
    ics20_channel: str = ""
    direct_channel: str = ""
    ibc_denom: str = ""

    @property
    def kernel(self) -> Contract:
        if "kernel" not in self.contracts:
            raise KeyError(f"Kernel not deployed on {self.name}")
        return self.contracts["kernel"]

    @property
    def adodb(self) -> Contract:
        if "adodb" not in self.contracts:
            raise KeyError(f"ADO database not deployed on {self.name}")
        return self.contracts["adodb"]

    def set_addresses(self, addresses: Dict[str, str]):
        for name, address in addresses.items():
            self.contracts[name] = Contract.from_address(address)

    def balance(self, address: str, denom: str) -> Coin:
        return self.client.get_balance(address, denom)
