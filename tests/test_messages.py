"""
Tests for contract message serialization.
"""

import pytest

from ibc_harness.amp import create_amp_msg, create_amp_packet
from ibc_harness.messages import (
    AmpReceive,
    AssignChannels,
    ChannelInfo,
    CodeId,
    KernelInstantiate,
    KeyAddress,
    Publish,
    Recover,
    Recoveries,
    Send,
    SiblingInstantiate,
    SplitterInstantiate,
    SplitterRecipient,
    UpsertKeyAddress,
    to_json,
)


class TestKernelExecute:
    """Test kernel execute bodies"""

    def test_send(self):
        msg = create_amp_msg("/osmo1r")
        assert to_json(Send(message=msg)) == {"send": {"message": msg.to_dict()}}

    def test_amp_receive(self):
        packet = create_amp_packet("osmo1s", [create_amp_msg("/osmo1r")])
        assert to_json(AmpReceive(packet=packet)) == {"amp_receive": packet.to_dict()}

    def test_recover(self):
        assert to_json(Recover()) == {"recover": {}}

    def test_assign_channels(self):
        msg = AssignChannels(
            ics20_channel_id="channel-0",
            kernel_address="osmo1kernel",
            chain="osmo-b",
            direct_channel_id="channel-1",
        )
        assert to_json(msg) == {
            "assign_channels": {
                "ics20_channel_id": "channel-0",
                "kernel_address": "osmo1kernel",
                "chain": "osmo-b",
                "direct_channel_id": "channel-1",
            }
        }

    def test_upsert_key_address(self):
        assert to_json(UpsertKeyAddress(key="vfs", value="osmo1vfs")) == {
            "upsert_key_address": {"key": "vfs", "value": "osmo1vfs"}
        }


class TestQueries:
    """Test query bodies"""

    def test_kernel_queries(self):
        assert to_json(KeyAddress(key="adodb")) == {"key_address": {"key": "adodb"}}
        assert to_json(ChannelInfo(chain="osmo-a")) == {"channel_info": {"chain": "osmo-a"}}
        assert to_json(Recoveries(addr="osmo1x")) == {"recoveries": {"addr": "osmo1x"}}

    def test_adodb(self):
        assert to_json(CodeId(key="splitter")) == {"code_id": {"key": "splitter"}}
        assert to_json(Publish(code_id=7, ado_type="splitter", version="1.0.0")) == {
            "publish": {"code_id": 7, "ado_type": "splitter", "version": "1.0.0"}
        }


class TestToJson:
    """Test dispatch"""

    def test_dict_passes_through(self):
        assert to_json({"not_a_valid_message": {}}) == {"not_a_valid_message": {}}

    def test_unknown_type_rejected(self):
        with pytest.raises(TypeError, match="Not a contract message"):
            to_json(object())

    def test_single_key(self):
        assert len(to_json(Recover())) == 1


class TestInstantiate:
    """Test instantiation bodies"""

    def test_kernel(self):
        assert KernelInstantiate("osmo-a").to_json() == {"chain_name": "osmo-a", "owner": None}

    def test_sibling(self):
        assert SiblingInstantiate("osmo1kernel").to_json() == {"kernel_address": "osmo1kernel", "owner": None}

    def test_splitter_minimal_recipient(self):
        msg = SplitterInstantiate("osmo1kernel", [SplitterRecipient(address="ibc://osmo-a/osmo1r")])
        assert msg.to_json() == {
            "kernel_address": "osmo1kernel",
            "recipients": [{"recipient": {"address": "ibc://osmo-a/osmo1r"}, "percent": "1"}],
        }

    def test_splitter_recipient_with_recovery(self):
        recipient = SplitterRecipient(address="ibc://osmo-a/osmo1r", msg="eyJzZW5kIjp7fX0=", ibc_recovery_address="osmo1rec")
        assert recipient.to_json()["recipient"] == {
            "address": "ibc://osmo-a/osmo1r",
            "msg": "eyJzZW5kIjp7fX0=",
            "ibc_recovery_address": "osmo1rec",
        }
