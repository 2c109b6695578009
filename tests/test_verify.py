"""
Tests for relay outcome and balance assertions.
"""

import pytest

from ibc_harness.amp import Coin, encode_binary
from ibc_harness.errors import ProtocolViolationError
from ibc_harness.relay import Ack, RelayInfo
from ibc_harness.verify import (
    assert_ack_errors,
    assert_ack_success,
    assert_balance,
    assert_directional,
    assert_packets_from_a,
    assert_packets_from_b,
    assert_relay,
    assert_single_recovery,
    parse_acknowledgement_success,
)

from conftest import make_ack


def successes(n):
    return [make_ack(result=encode_binary({"ok": i})) for i in range(n)]


def errors(n):
    return [make_ack(error=f"failure {i}") for i in range(n)]


class TestAssertDirectional:
    """Test direction, count and outcome checks"""

    @pytest.mark.parametrize("n", [1, 2, 5])
    def test_all_success_from_a(self, n):
        relay = RelayInfo(packets_from_a=n, acks_from_b=successes(n))
        assert_directional(relay, n, True, "A")

    def test_one_error_fails_success_check(self):
        acks = successes(3)
        acks[1] = make_ack(error="boom")
        relay = RelayInfo(packets_from_a=3, acks_from_b=acks)
        with pytest.raises(AssertionError, match="Unexpected error in ack: boom"):
            assert_directional(relay, 3, True, "A")

    def test_one_result_fails_error_check(self):
        acks = errors(3)
        acks[2] = make_ack(result="AQ==")
        relay = RelayInfo(packets_from_a=3, acks_from_b=acks)
        with pytest.raises(AssertionError, match="result unexpectedly set"):
            assert_directional(relay, 3, False, "A")

    def test_all_errors_from_b(self):
        relay = RelayInfo(packets_from_b=2, acks_from_a=errors(2))
        assert_directional(relay, 2, False, "B")

    def test_packet_count_mismatch(self):
        relay = RelayInfo(packets_from_a=0, acks_from_b=[])
        with pytest.raises(AssertionError, match="Expected 1 packets, got 0"):
            assert_packets_from_a(relay, 1, True)

    def test_ack_count_mismatch(self):
        relay = RelayInfo(packets_from_b=1, acks_from_a=[])
        with pytest.raises(AssertionError, match="Expected 1 acks, got 0"):
            assert_packets_from_b(relay, 1, True)

    def test_direction_picks_opposite_acks(self):
        """Packets from A are acknowledged on B"""
        relay = RelayInfo(packets_from_a=1, acks_from_a=errors(1), acks_from_b=successes(1))
        assert_packets_from_a(relay, 1, True)

    def test_malformed_ack_is_violation(self):
        relay = RelayInfo(packets_from_a=1, acks_from_b=[Ack(acknowledgement=b'{"result":"AQ==","error":"x"}')])
        with pytest.raises(ProtocolViolationError):
            assert_directional(relay, 1, True, "A")

    def test_empty_batch(self):
        assert_ack_success([])
        assert_ack_errors([])


class TestAssertRelay:
    """Test the first-attempt gate"""

    def test_first_attempt_checked(self):
        with pytest.raises(AssertionError):
            assert_relay(True, RelayInfo(), 1, True, "A")

    def test_retried_relay_skipped(self):
        assert assert_relay(False, RelayInfo(), 1, True, "A") is False

    def test_returns_true_when_checked(self):
        relay = RelayInfo(packets_from_a=1, acks_from_b=successes(1))
        assert assert_relay(True, relay, 1, True, "A") is True


class TestParseAcknowledgement:
    def test_success_payload_decoded(self):
        assert parse_acknowledgement_success(make_ack(result=encode_binary({"msg": "hi"}))) == {"msg": "hi"}

    def test_error_payload_rejected(self):
        with pytest.raises(AssertionError):
            parse_acknowledgement_success(make_ack(error="nope"))


class TestBalancesAndRecoveries:
    """Test on-chain effect checks"""

    def test_balance(self, endpoint_a, client_a):
        client_a.balances[("osmo1r", "uosmo")] = 100
        assert_balance(endpoint_a, "osmo1r", {"amount": "100", "denom": "uosmo"})

    def test_balance_mismatch(self, endpoint_a):
        with pytest.raises(AssertionError, match="Balance is incorrect"):
            assert_balance(endpoint_a, "osmo1r", Coin("100", "uosmo"))

    def test_single_recovery(self, endpoint_a, client_a):
        endpoint_a.set_addresses({"kernel": "osmo1kernel"})
        client_a.recoveries["osmo1rec"] = [{"amount": "100", "denom": "uosmo"}]
        assert assert_single_recovery(endpoint_a, "osmo1rec", Coin("100", "uosmo")) == Coin("100", "uosmo")

    def test_no_recovery(self, endpoint_a):
        endpoint_a.set_addresses({"kernel": "osmo1kernel"})
        with pytest.raises(AssertionError, match="found 0"):
            assert_single_recovery(endpoint_a, "osmo1rec", Coin("100", "uosmo"))

    def test_recovery_wrong_denom(self, endpoint_a, client_a):
        endpoint_a.set_addresses({"kernel": "osmo1kernel"})
        client_a.recoveries["osmo1rec"] = [{"amount": "100", "denom": "ibc/ABC"}]
        with pytest.raises(AssertionError, match="Incorrect denom"):
            assert_single_recovery(endpoint_a, "osmo1rec", Coin("100", "uosmo"))
