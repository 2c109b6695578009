"""
Shared pytest fixtures for the IBC harness.

Provides in-memory stand-ins for the chain client and the relayer, chain
definitions and endpoints, and helpers for building acknowledgements.
"""

import itertools
import json
from pathlib import Path

import pytest

from ibc_harness.amp import Coin
from ibc_harness.chain import ChainEndpoint, TxResult
from ibc_harness.config import ChainDefinition, Faucet
from ibc_harness.errors import ContractError
from ibc_harness.link import ChannelEnd, ChannelPair, Link
from ibc_harness.relay import Ack, RelayInfo

OS_NAMES = ("kernel", "vfs", "economics", "adodb")


class FakeChainClient:
    """Chain client keeping contracts, kernel registrations and balances in memory."""

    def __init__(self, chain_id: str, sender_address: str = "osmo1sender"):
        self.chain_id = chain_id
        self.sender_address = sender_address
        self.calls = []
        self.fail_on = set()
        self.key_addresses = {}
        self.channel_info = {}
        self.recoveries = {}
        self.code_ids = {}
        self.balances = {}
        self._code_ids = itertools.count(1)
        self._addresses = itertools.count(1)
        self._tx = itertools.count(1)

    def _maybe_fail(self, op: str, target: str):
        if (op, target) in self.fail_on:
            raise ContractError(target, f"{op} failed")

    def upload(self, wasm_path, label):
        self.calls.append(("upload", label))
        self._maybe_fail("upload", label)
        code_id = next(self._code_ids)
        self.code_ids[label] = code_id
        return code_id

    def instantiate(self, code_id, init_msg, label):
        self.calls.append(("instantiate", label, init_msg))
        self._maybe_fail("instantiate", label)
        return f"osmo1{label}{next(self._addresses)}"

    def execute(self, address, msg, funds=()):
        self.calls.append(("execute", address, msg, list(funds)))
        (tag, body), = msg.items()
        self._maybe_fail("execute", tag)
        if tag == "upsert_key_address":
            self.key_addresses[body["key"]] = body["value"]
        elif tag == "assign_channels":
            self.channel_info[body["chain"]] = {
                "ics20": body["ics20_channel_id"],
                "direct": body["direct_channel_id"],
            }
        elif tag == "recover":
            self.recoveries.pop(self.sender_address, None)
        return TxResult(transaction_hash=f"TX{next(self._tx)}")

    def query(self, address, msg):
        self.calls.append(("query", address, msg))
        (tag, body), = msg.items()
        if tag == "key_address":
            return self.key_addresses[body["key"]]
        if tag == "channel_info":
            return self.channel_info[body["chain"]]
        if tag == "recoveries":
            return self.recoveries.get(body["addr"], [])
        if tag == "code_id":
            return self.code_ids[body["key"]]
        raise ContractError(address, f"unknown query {tag}")

    def get_balance(self, address, denom):
        return Coin(amount=str(self.balances.get((address, denom), 0)), denom=denom)

    def get_chain_id(self):
        return self.chain_id

    def send_tokens(self, recipient, funds):
        for coin in funds:
            key = (recipient, coin.denom)
            self.balances[key] = self.balances.get(key, 0) + int(coin.amount)
        return TxResult(transaction_hash=f"TX{next(self._tx)}")

    def count(self, op: str) -> int:
        return sum(1 for call in self.calls if call[0] == op)


class FakeRelayer:
    """Relayer replaying scripted outcomes. Exceptions in a script are raised in turn."""

    def __init__(self):
        self.relay_script = []
        self.channel_script = []
        self.connection_script = []
        self.ready_script = []
        self.relay_calls = 0
        self.channel_calls = 0
        self.connection_calls = 0

    @staticmethod
    def _next(script, default):
        outcome = script.pop(0) if script else default
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def create_connection(self, chain_a, chain_b):
        self.connection_calls += 1
        return self._next(self.connection_script, ("connection-1", "connection-1"))

    def create_channel(self, link, side, port_a, port_b, ordering, version):
        self.channel_calls += 1
        default = ChannelPair(ChannelEnd(port_a, "channel-1"), ChannelEnd(port_b, "channel-2"))
        return self._next(self.channel_script, default)

    def relay_all(self, link):
        self.relay_calls += 1
        return self._next(self.relay_script, RelayInfo())

    def is_ready(self):
        return self._next(self.ready_script, True)


def make_ack(result=None, error=None) -> Ack:
    body = {}
    if result is not None:
        body["result"] = result
    if error is not None:
        body["error"] = error
    return Ack(acknowledgement=json.dumps(body).encode("utf-8"))


def make_definition(name: str, chain_id: str) -> ChainDefinition:
    return ChainDefinition(
        name=name,
        chain_id=chain_id,
        prefix="osmo",
        denom_fee="uosmo",
        denom_staking="stake",
        min_fee="0.25uosmo",
        rpc_url="http://localhost:26657",
        ws_url="ws://localhost:26657",
        rest_url="http://localhost:1317",
        faucet=Faucet("mnemonic", "osmo1faucet"),
    )


@pytest.fixture
def definition_a():
    return make_definition("osmo-a", "localosmosis-1")


@pytest.fixture
def definition_b():
    return make_definition("osmo-b", "localosmosis-2")


@pytest.fixture
def client_a():
    return FakeChainClient("localosmosis-1", "osmo1sendera")


@pytest.fixture
def client_b():
    return FakeChainClient("localosmosis-2", "osmo1senderb")


@pytest.fixture
def relayer():
    return FakeRelayer()


@pytest.fixture
def link(definition_a, definition_b, relayer):
    return Link(definition_a, definition_b, "connection-0", "connection-0", relayer)


@pytest.fixture
def contract_set(tmp_path) -> dict:
    """One placeholder wasm file per OS contract"""
    contracts = {}
    for name in OS_NAMES:
        path = tmp_path / "contracts" / f"andromeda_{name}@1.0.0.wasm"
        path.parent.mkdir(exist_ok=True)
        path.write_bytes(b"\0asm")
        contracts[name] = path
    return contracts


@pytest.fixture
def cache_dir(tmp_path) -> Path:
    return tmp_path / "cache"


@pytest.fixture
def endpoint_a(definition_a, client_a):
    return ChainEndpoint(name="osmo-a", definition=definition_a, client=client_a, ics20_channel="channel-0")


@pytest.fixture
def endpoint_b(definition_b, client_b):
    return ChainEndpoint(name="osmo-b", definition=definition_b, client=client_b, ics20_channel="channel-0")
