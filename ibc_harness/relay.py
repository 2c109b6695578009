"""
Packet relaying with bounded retry.

Relaying under test is flaky: the harness and the relayer broadcast from
racing accounts, and the two chains drift in block height. Those two
failure kinds are retried cheaply; anything else the relayer reports costs
more of the budget but is still retried.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, List, Tuple

import structlog

from ibc_harness.errors import RelayError
from ibc_harness.link import Link

logger = structlog.get_logger(__name__)

RELAY_BUDGET = 6
RELAY_DELAY = 1.0
TRANSIENT_COST = 1
OTHER_COST = 2


@dataclass(frozen=True)
class Ack:
    """An acknowledgement written on the receiving chain."""

    acknowledgement: bytes
    src_channel: str = ""
    dest_channel: str = ""
    sequence: int = 0


@dataclass
class RelayInfo:
    packets_from_a: int = 0
    packets_from_b: int = 0
    acks_from_a: List[Ack] = field(default_factory=list)
    acks_from_b: List[Ack] = field(default_factory=list)

    def merge(self, other: "RelayInfo") -> "RelayInfo":
        return RelayInfo(
            packets_from_a=self.packets_from_a + other.packets_from_a,
            packets_from_b=self.packets_from_b + other.packets_from_b,
            acks_from_a=self.acks_from_a + other.acks_from_a,
            acks_from_b=self.acks_from_b + other.acks_from_b,
        )


def relay_all(
    link: Link,
    budget: int = RELAY_BUDGET,
    delay: float = RELAY_DELAY,
    sleep: Callable[[float], None] = time.sleep,
) -> Tuple[bool, RelayInfo]:
    """
    Flush every queued packet on both ends of ``link``.

    Returns ``(first_attempt, info)``. When ``first_attempt`` is False an
    earlier failed sweep may already have moved some packets, so ``info``
    only describes the final sweep and exact packet counts cannot be
    asserted against it. Raises the last RelayError once the weighted
    failure count reaches ``budget``.
    """
    spent = 0
    while True:
        try:
            info = link.relay_all()
        except RelayError as e:
            spent += TRANSIENT_COST if e.kind.is_transient else OTHER_COST
            if spent >= budget:
                logger.error("relay_failed", spent=spent, kind=e.kind.name, error=e.message)
                raise
            logger.debug("relay_retry", spent=spent, kind=e.kind.name, error=e.message)
            sleep(delay)
            continue
        return spent == 0, info
