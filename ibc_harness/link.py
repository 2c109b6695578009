"""
Connections and channels between two chains.

A ``Link`` is a pair of connection ends plus the channels opened over them.
Handshakes are delegated to a ``Relayer``; this module only decides when to
reuse, when to retry, and records the result.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Protocol, Tuple, TYPE_CHECKING

import structlog

from ibc_harness.config import ChainDefinition
from ibc_harness.errors import ChannelHandshakeError, RelayError

if TYPE_CHECKING:
    from ibc_harness.relay import RelayInfo

logger = structlog.get_logger(__name__)

CHANNEL_ATTEMPTS = 5
CHANNEL_BACKOFF = 1.0


class Order(str, Enum):
    UNORDERED = "unordered"
    ORDERED = "ordered"


class Side(str, Enum):
    A = "A"
    B = "B"


@dataclass(frozen=True)
class ChannelEnd:
    port_id: str
    channel_id: str


@dataclass(frozen=True)
class ChannelPair:
    src: ChannelEnd
    dest: ChannelEnd


@dataclass
class Link:
    chain_a: ChainDefinition
    chain_b: ChainDefinition
    connection_a: str
    connection_b: str
    relayer: "Relayer"
    # Oriented so that src is always the chain A end
    channels: List[ChannelPair] = field(default_factory=list)

    def relay_all(self) -> "RelayInfo":
        return self.relayer.relay_all(self)

    def ends(self, side: Side) -> Tuple[ChainDefinition, ChainDefinition]:
        """``(source, destination)`` chain definitions for a handshake started on ``side``."""
        if Side(side) is Side.A:
            return self.chain_a, self.chain_b
        return self.chain_b, self.chain_a


class Relayer(Protocol):
    def create_connection(self, chain_a: ChainDefinition, chain_b: ChainDefinition) -> Tuple[str, str]: ...

    def create_channel(
        self, link: Link, side: Side, port_a: str, port_b: str, ordering: Order, version: str
    ) -> ChannelPair: ...

    def relay_all(self, link: Link) -> "RelayInfo": ...

    def is_ready(self) -> bool: ...


def establish_link(
    relayer: Relayer,
    chain_a: ChainDefinition,
    chain_b: ChainDefinition,
    connection_a: Optional[str] = None,
    connection_b: Optional[str] = None,
    attempts: int = CHANNEL_ATTEMPTS,
    backoff: float = CHANNEL_BACKOFF,
    sleep: Callable[[float], None] = time.sleep,
) -> Link:
    """Wrap existing connection ids in a Link, or negotiate a new connection pair."""
    if connection_a and connection_b:
        logger.info("link_reused", chain_a=chain_a.name, chain_b=chain_b.name,
                    connection_a=connection_a, connection_b=connection_b)
        return Link(chain_a, chain_b, connection_a, connection_b, relayer)

    last_error = None
    for attempt in range(1, attempts + 1):
        try:
            connection_a, connection_b = relayer.create_connection(chain_a, chain_b)
            break
        except RelayError as e:
            last_error = e
            logger.warning("connection_retry", attempt=attempt, error=str(e))
            if attempt < attempts:
                sleep(backoff)
    else:
        raise ChannelHandshakeError(
            f"Connection {chain_a.name} <-> {chain_b.name} failed after {attempts} attempts: {last_error}"
        ) from last_error

    logger.info("link_created", chain_a=chain_a.name, chain_b=chain_b.name,
                connection_a=connection_a, connection_b=connection_b)
    return Link(chain_a, chain_b, connection_a, connection_b, relayer)


def create_channel(
    link: Link,
    side: Side,
    port_a: str,
    port_b: str,
    ordering: Order = Order.UNORDERED,
    version: str = "",
    attempts: int = CHANNEL_ATTEMPTS,
    backoff: float = CHANNEL_BACKOFF,
    sleep: Callable[[float], None] = time.sleep,
) -> ChannelPair:
    """
    Open a channel with a full init/try/ack/confirm handshake.

    The handshake is retried as a whole; a partially completed attempt is
    abandoned and the next attempt starts again from init.
    """
    last_error = None
    for attempt in range(1, attempts + 1):
        try:
            channel = link.relayer.create_channel(link, Side(side), port_a, port_b, Order(ordering), version)
        except RelayError as e:
            last_error = e
            logger.warning("channel_handshake_retry", attempt=attempt, port_a=port_a, port_b=port_b, error=str(e))
            if attempt < attempts:
                sleep(backoff)
            continue
        if Side(side) is Side.A:
            link.channels.append(channel)
        else:
            link.channels.append(ChannelPair(src=channel.dest, dest=channel.src))
        logger.info("channel_created", src=channel.src.channel_id, dest=channel.dest.channel_id)
        return channel

    raise ChannelHandshakeError(
        f"Channel {port_a} <-> {port_b} failed after {attempts} attempts: {last_error}"
    ) from last_error
