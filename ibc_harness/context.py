"""
Run-wide state shared by every scenario step.

One TestContext is built per run and passed explicitly to each step.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

import structlog

from ibc_harness.chain import ChainClient, ChainEndpoint, CosmpyChainClient
from ibc_harness.config import EXISTING_CONNECTION, ICS20_CHANNEL, ChainDefinition
from ibc_harness.denom import ibc_denom
from ibc_harness.link import ChannelEnd, ChannelPair, Link, Relayer, Side, establish_link

logger = structlog.get_logger(__name__)


def await_multi(*calls: Callable[[], Any]) -> List[Any]:
    """
    Run independent per-chain calls concurrently and wait for all of them.

    Results come back in call order. Once every call has finished, the
    exception of the first failed call (in call order) is re-raised.
    """
    with ThreadPoolExecutor(max_workers=max(len(calls), 1)) as pool:
        futures = [pool.submit(call) for call in calls]
    return [future.result() for future in futures]


@dataclass
class TestContext:
    chain_a: ChainEndpoint
    chain_b: ChainEndpoint
    link: Optional[Link] = None
    channel: Optional[ChannelPair] = None

    __test__ = False  # not a pytest class

    def endpoint(self, side: Side) -> ChainEndpoint:
        return self.chain_a if Side(side) is Side.A else self.chain_b

    def counterparty(self, side: Side) -> ChainEndpoint:
        return self.chain_b if Side(side) is Side.A else self.chain_a


def _endpoint(definition: ChainDefinition, client: ChainClient, counterparty: ChainDefinition) -> ChainEndpoint:
    return ChainEndpoint(
        name=definition.name,
        definition=definition,
        client=client,
        ics20_channel=ICS20_CHANNEL,
        # Native fee token of the counterparty, as it arrives over our ICS-20 channel
        ibc_denom=ibc_denom(definition.ics20_port, ICS20_CHANNEL, counterparty.denom_fee),
    )


def build_context(
    definition_a: ChainDefinition,
    definition_b: ChainDefinition,
    relayer: Relayer,
    mnemonic: str,
    connect: Callable[[ChainDefinition, str], ChainClient] = CosmpyChainClient.connect,
    connection_a: Optional[str] = EXISTING_CONNECTION,
    connection_b: Optional[str] = EXISTING_CONNECTION,
) -> TestContext:
    """Connect both chains, wrap the connection pair in a Link and register the ICS-20 channel."""
    client_a, client_b = await_multi(
        lambda: connect(definition_a, mnemonic),
        lambda: connect(definition_b, mnemonic),
    )
    ctx = TestContext(
        chain_a=_endpoint(definition_a, client_a, definition_b),
        chain_b=_endpoint(definition_b, client_b, definition_a),
    )
    ctx.link = establish_link(relayer, definition_a, definition_b, connection_a, connection_b)
    ctx.link.channels.append(ChannelPair(
        src=ChannelEnd(definition_a.ics20_port, ctx.chain_a.ics20_channel),
        dest=ChannelEnd(definition_b.ics20_port, ctx.chain_b.ics20_channel),
    ))
    logger.info("context_ready", chain_a=definition_a.name, chain_b=definition_b.name)
    return ctx
