"""
AMP (Andromeda Message Protocol) envelope construction.

An AMP message routes funds and an optional sub-call to a recipient path.
Recipients of the form ``ibc://<chain-name>/<path>`` are delivered on the
named remote chain; anything else is delivered on the local chain.
"""

import base64
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

from ibc_harness.errors import ProtocolViolationError

IBC_SCHEME = "ibc://"


class ReplyOn(str, Enum):
    ERROR = "error"
    ALWAYS = "always"
    NEVER = "never"
    SUCCESS = "success"


@dataclass(frozen=True)
class Coin:
    amount: str
    denom: str

    def to_dict(self) -> Dict[str, str]:
        return {"amount": self.amount, "denom": self.denom}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Coin":
        return cls(amount=str(data["amount"]), denom=data["denom"])


CoinLike = Union[Coin, Dict[str, Any]]


def to_coins(funds: Sequence[CoinLike]) -> List[Coin]:
    return [coin if isinstance(coin, Coin) else Coin.from_dict(coin) for coin in funds]


@dataclass(frozen=True)
class IBCConfig:
    recovery_addr: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.recovery_addr is None:
            return {}
        return {"recovery_addr": self.recovery_addr}


@dataclass(frozen=True)
class AMPMsgConfig:
    reply_on: ReplyOn = ReplyOn.ERROR
    exit_at_error: bool = False
    direct: bool = True
    gas_limit: Optional[int] = None
    ibc_config: Optional[IBCConfig] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "reply_on": self.reply_on.value,
            "exit_at_error": self.exit_at_error,
            "direct": self.direct,
        }
        if self.gas_limit is not None:
            data["gas_limit"] = self.gas_limit
        if self.ibc_config is not None:
            data["ibc_config"] = self.ibc_config.to_dict()
        return data


@dataclass(frozen=True)
class AMPMsg:
    recipient: str
    message: str = ""
    funds: List[Coin] = field(default_factory=list)
    config: AMPMsgConfig = field(default_factory=AMPMsgConfig)

    @property
    def is_remote(self) -> bool:
        return self.recipient.startswith(IBC_SCHEME)

    @property
    def has_sub_call(self) -> bool:
        return self.message != ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recipient": self.recipient,
            "message": self.message,
            "funds": [coin.to_dict() for coin in self.funds],
            "config": self.config.to_dict(),
        }


@dataclass(frozen=True)
class AMPCtx:
    origin: str
    previous_sender: str
    id: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"origin": self.origin, "previous_sender": self.previous_sender, "id": self.id}


@dataclass(frozen=True)
class AMPPacket:
    messages: List[AMPMsg]
    ctx: AMPCtx

    def to_dict(self) -> Dict[str, Any]:
        return {
            "messages": [msg.to_dict() for msg in self.messages],
            "ctx": self.ctx.to_dict(),
        }


def encode_binary(data: Any) -> str:
    """JSON-encode ``data`` and wrap it in base64, the contract ``Binary`` format."""
    raw = json.dumps(data, separators=(",", ":"))
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def decode_binary(data: str) -> Any:
    return json.loads(base64.b64decode(data).decode("utf-8"))


def remote_recipient(chain_name: str, path: str) -> str:
    """Build ``ibc://<chain_name>/<path>``."""
    return f"{IBC_SCHEME}{chain_name}/{path.lstrip('/')}"


def split_recipient(recipient: str):
    """Return ``(chain_name, path)``; chain_name is None for same-chain recipients."""
    if not recipient.startswith(IBC_SCHEME):
        return None, recipient
    chain_name, _, path = recipient[len(IBC_SCHEME):].partition("/")
    return chain_name, path


def create_amp_msg(
    recipient: str,
    msg: Union[Dict[str, Any], str, None] = None,
    funds: Sequence[CoinLike] = (),
    ibc_config: Optional[IBCConfig] = None,
) -> AMPMsg:
    """
    Build a direct AMP message.

    Without ``msg`` the message is a plain value transfer. Routed messages
    reply on error and never exit at error, so one failing sub-call does not
    unwind the rest of the packet.
    """
    return AMPMsg(
        recipient=recipient,
        message=encode_binary(msg) if msg else "",
        funds=to_coins(funds),
        config=AMPMsgConfig(
            reply_on=ReplyOn.ERROR,
            exit_at_error=False,
            direct=True,
            ibc_config=ibc_config,
        ),
    )


def create_amp_packet(sender: str, messages: Sequence[AMPMsg]) -> AMPPacket:
    return AMPPacket(
        messages=list(messages),
        ctx=AMPCtx(origin=sender, previous_sender=sender, id=0),
    )


@dataclass(frozen=True)
class AckResult:
    ok: bool
    payload: str


def decode_ack(ack: Union[bytes, str]) -> AckResult:
    """
    Decode an acknowledgement of the form ``{"result": <b64>}`` or ``{"error": <str>}``.

    Raises ProtocolViolationError when the payload is not JSON or carries
    both or neither of the two fields. A field present with a null value
    still counts as present, and a null result or error is itself rejected.
    """
    if isinstance(ack, bytes):
        try:
            ack = ack.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ProtocolViolationError(f"Acknowledgement is not UTF-8: {e}") from e
    try:
        parsed = json.loads(ack)
    except json.JSONDecodeError as e:
        raise ProtocolViolationError(f"Acknowledgement is not JSON: {ack!r}") from e
    if not isinstance(parsed, dict):
        raise ProtocolViolationError(f"Acknowledgement is not an object: {ack!r}")

    has_result = "result" in parsed
    has_error = "error" in parsed
    if has_result == has_error:
        raise ProtocolViolationError(
            f"Acknowledgement must carry exactly one of result/error: {ack!r}"
        )
    key = "result" if has_result else "error"
    if parsed[key] is None:
        raise ProtocolViolationError(f"Acknowledgement {key} is null: {ack!r}")
    if has_result:
        return AckResult(ok=True, payload=parsed["result"])
    return AckResult(ok=False, payload=parsed["error"])
