"""
Execute and query bodies sent to the OS contracts.

Every message is a dataclass tagged with its wire key; ``to_json`` turns it
into the single-key object the contracts expect, e.g.
``UpsertKeyAddress("vfs", addr)`` -> ``{"upsert_key_address": {"key": "vfs", "value": addr}}``.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Union

from ibc_harness.amp import AMPMsg, AMPPacket


# Kernel execute surface

@dataclass(frozen=True)
class Send:
    TAG: ClassVar[str] = "send"
    message: AMPMsg

    def body(self) -> Dict[str, Any]:
        return {"message": self.message.to_dict()}


@dataclass(frozen=True)
class AmpReceive:
    TAG: ClassVar[str] = "amp_receive"
    packet: AMPPacket

    def body(self) -> Dict[str, Any]:
        return self.packet.to_dict()


@dataclass(frozen=True)
class Recover:
    TAG: ClassVar[str] = "recover"

    def body(self) -> Dict[str, Any]:
        return {}


@dataclass(frozen=True)
class AssignChannels:
    TAG: ClassVar[str] = "assign_channels"
    ics20_channel_id: Optional[str]
    kernel_address: str
    chain: str
    direct_channel_id: Optional[str]

    def body(self) -> Dict[str, Any]:
        return {
            "ics20_channel_id": self.ics20_channel_id,
            "kernel_address": self.kernel_address,
            "chain": self.chain,
            "direct_channel_id": self.direct_channel_id,
        }


@dataclass(frozen=True)
class UpsertKeyAddress:
    TAG: ClassVar[str] = "upsert_key_address"
    key: str
    value: str

    def body(self) -> Dict[str, Any]:
        return {"key": self.key, "value": self.value}


KernelExecuteMsg = Union[Send, AmpReceive, Recover, AssignChannels, UpsertKeyAddress]


# Kernel query surface

@dataclass(frozen=True)
class KeyAddress:
    TAG: ClassVar[str] = "key_address"
    key: str

    def body(self) -> Dict[str, Any]:
        return {"key": self.key}


@dataclass(frozen=True)
class ChannelInfo:
    TAG: ClassVar[str] = "channel_info"
    chain: str

    def body(self) -> Dict[str, Any]:
        return {"chain": self.chain}


@dataclass(frozen=True)
class Recoveries:
    TAG: ClassVar[str] = "recoveries"
    addr: str

    def body(self) -> Dict[str, Any]:
        return {"addr": self.addr}


KernelQueryMsg = Union[KeyAddress, ChannelInfo, Recoveries]


# ADO database surface

@dataclass(frozen=True)
class Publish:
    TAG: ClassVar[str] = "publish"
    code_id: int
    ado_type: str
    version: str

    def body(self) -> Dict[str, Any]:
        return {"code_id": self.code_id, "ado_type": self.ado_type, "version": self.version}


@dataclass(frozen=True)
class CodeId:
    TAG: ClassVar[str] = "code_id"
    key: str

    def body(self) -> Dict[str, Any]:
        return {"key": self.key}


AdoDbExecuteMsg = Publish
AdoDbQueryMsg = CodeId

ContractMsg = Union[KernelExecuteMsg, KernelQueryMsg, AdoDbExecuteMsg, AdoDbQueryMsg]

_MESSAGE_TYPES = (
    Send, AmpReceive, Recover, AssignChannels, UpsertKeyAddress,
    KeyAddress, ChannelInfo, Recoveries,
    Publish, CodeId,
)


def to_json(msg: Union[ContractMsg, Dict[str, Any]]) -> Dict[str, Any]:
    """Serialize a message into its tagged wire form. Plain dicts pass through."""
    if isinstance(msg, dict):
        return msg
    if not isinstance(msg, _MESSAGE_TYPES):
        raise TypeError(f"Not a contract message: {type(msg).__name__}")
    return {msg.TAG: msg.body()}


# Instantiation bodies

@dataclass(frozen=True)
class KernelInstantiate:
    chain_name: str
    owner: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        return {"chain_name": self.chain_name, "owner": self.owner}


@dataclass(frozen=True)
class SiblingInstantiate:
    """Body for every OS contract other than the kernel."""

    kernel_address: str
    owner: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        return {"kernel_address": self.kernel_address, "owner": self.owner}


@dataclass(frozen=True)
class SplitterRecipient:
    address: str
    msg: Optional[str] = None
    ibc_recovery_address: Optional[str] = None
    percent: str = "1"

    def to_json(self) -> Dict[str, Any]:
        recipient: Dict[str, Any] = {"address": self.address}
        if self.msg is not None:
            recipient["msg"] = self.msg
        if self.ibc_recovery_address is not None:
            recipient["ibc_recovery_address"] = self.ibc_recovery_address
        return {"recipient": recipient, "percent": self.percent}


@dataclass(frozen=True)
class SplitterInstantiate:
    kernel_address: str
    recipients: List[SplitterRecipient] = field(default_factory=list)

    def to_json(self) -> Dict[str, Any]:
        return {
            "kernel_address": self.kernel_address,
            "recipients": [recipient.to_json() for recipient in self.recipients],
        }
