"""
Assertions over relay results and their on-chain effects.

Every check raises AssertionError with a message naming what differed.
Malformed acknowledgements raise ProtocolViolationError instead.
"""

from typing import Any, Iterable, Union

import structlog

from ibc_harness.amp import Coin, CoinLike, decode_ack, decode_binary, to_coins
from ibc_harness.chain import ChainEndpoint
from ibc_harness.link import Side
from ibc_harness.messages import Recoveries
from ibc_harness.relay import Ack, RelayInfo

logger = structlog.get_logger(__name__)


def assert_ack_success(acks: Iterable[Ack]):
    """Every ack must carry a result."""
    for ack in acks:
        decoded = decode_ack(ack.acknowledgement)
        if not decoded.ok:
            raise AssertionError(f"Unexpected error in ack: {decoded.payload}")


def assert_ack_errors(acks: Iterable[Ack]):
    """Every ack must carry an error."""
    for ack in acks:
        decoded = decode_ack(ack.acknowledgement)
        if decoded.ok:
            raise AssertionError(f"Ack result unexpectedly set: {decoded.payload}")


def assert_directional(relay: RelayInfo, count: int, success: bool, direction: Union[Side, str]):
    """
    Packets sent from ``direction`` and the acks written on the other chain.

    Both counts must equal ``count`` and the acks must be all results
    (``success``) or all errors. A mixed batch always fails.
    """
    if Side(direction) is Side.A:
        packets, acks = relay.packets_from_a, relay.acks_from_b
    else:
        packets, acks = relay.packets_from_b, relay.acks_from_a

    if packets != count:
        raise AssertionError(f"Expected {count} packets, got {packets}")
    if len(acks) != count:
        raise AssertionError(f"Expected {count} acks, got {len(acks)}")
    if success:
        assert_ack_success(acks)
    else:
        assert_ack_errors(acks)


def assert_packets_from_a(relay: RelayInfo, count: int, success: bool):
    assert_directional(relay, count, success, Side.A)


def assert_packets_from_b(relay: RelayInfo, count: int, success: bool):
    assert_directional(relay, count, success, Side.B)


def assert_relay(first_attempt: bool, relay: RelayInfo, count: int, success: bool, direction: Union[Side, str]) -> bool:
    """
    Apply ``assert_directional`` only to a relay that succeeded first time.

    A retried relay may have moved packets on an attempt whose result was
    lost, so its counts are not checked. Returns whether the check ran.
    """
    if not first_attempt:
        logger.warning("relay_assertion_skipped", direction=Side(direction).value, expected=count)
        return False
    assert_directional(relay, count, success, direction)
    return True


def parse_acknowledgement_success(ack: Ack) -> Any:
    decoded = decode_ack(ack.acknowledgement)
    if not decoded.ok:
        raise AssertionError(f"Unexpected error in ack: {decoded.payload}")
    return decode_binary(decoded.payload)


def assert_balance(endpoint: ChainEndpoint, address: str, expected: CoinLike):
    (coin,) = to_coins([expected])
    balance = endpoint.balance(address, coin.denom)
    if balance.amount != coin.amount:
        raise AssertionError(
            f"Balance is incorrect on {endpoint.name}: {address} holds {balance.amount}{coin.denom}, "
            f"expected {coin.amount}{coin.denom}"
        )


def query_recoveries(endpoint: ChainEndpoint, address: str):
    raw = endpoint.kernel.query(Recoveries(addr=address), endpoint.client)
    return to_coins(raw or [])


def assert_single_recovery(endpoint: ChainEndpoint, address: str, expected: CoinLike) -> Coin:
    """Exactly one recovery record for ``address``, matching ``expected``."""
    (coin,) = to_coins([expected])
    recoveries = query_recoveries(endpoint, address)
    if len(recoveries) != 1:
        raise AssertionError(f"Expected 1 recovery for {address}, found {len(recoveries)}")
    if recoveries[0].amount != coin.amount:
        raise AssertionError(f"Incorrect amount: {recoveries[0].amount}")
    if recoveries[0].denom != coin.denom:
        raise AssertionError(f"Incorrect denom: {recoveries[0].denom}")
    return recoveries[0]
