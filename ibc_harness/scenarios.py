"""
Ordered scenario steps: deploy, link, assign channels, transfer, verify.

Each step takes the run's TestContext and leaves its results on it.
"""

from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

import structlog

from ibc_harness.amp import Coin, CoinLike, IBCConfig, create_amp_msg, encode_binary, remote_recipient, to_coins
from ibc_harness.bootstrap import (
    get_all_ado_names,
    setup_os,
    upload_all_ados,
    verify_code_ids_match,
    verify_os_consistency,
)
from ibc_harness.chain import ChainEndpoint, Contract, random_address
from ibc_harness.config import CACHE_DIR, CONTRACTS_DIR, KERNEL_CHANNEL_VERSION
from ibc_harness.context import TestContext, await_multi
from ibc_harness.link import ChannelPair, Order, Side, create_channel
from ibc_harness.messages import (
    AssignChannels,
    ChannelInfo,
    CodeId,
    Recover,
    Send,
    SplitterInstantiate,
    SplitterRecipient,
)
from ibc_harness.relay import relay_all
from ibc_harness.verify import assert_balance, assert_relay, assert_single_recovery, query_recoveries

logger = structlog.get_logger(__name__)

# A splitter forwarding {"send": {}} to its recipient
SEND_MSG = encode_binary({"send": {}})


def deploy_os(ctx: TestContext, contract_set: Mapping[str, Path], cache_dir: Optional[Path] = CACHE_DIR):
    a, b = ctx.chain_a, ctx.chain_b
    addresses_a, addresses_b = await_multi(
        lambda: setup_os(a.client, a.name, contract_set, cache_dir),
        lambda: setup_os(b.client, b.name, contract_set, cache_dir),
    )
    a.set_addresses(addresses_a)
    b.set_addresses(addresses_b)
    verify_os_consistency(a, b)


def create_kernel_channel(ctx: TestContext) -> ChannelPair:
    a, b = ctx.chain_a, ctx.chain_b
    channel = create_channel(
        ctx.link, Side.A, a.kernel.get_port(), b.kernel.get_port(), Order.UNORDERED, KERNEL_CHANNEL_VERSION
    )
    ctx.channel = channel
    a.direct_channel = channel.src.channel_id
    b.direct_channel = channel.dest.channel_id
    return channel


def assign_channels(local: ChainEndpoint, remote: ChainEndpoint):
    """Tell ``local``'s kernel how to reach ``remote`` and read the assignment back."""
    local.kernel.execute(
        AssignChannels(
            ics20_channel_id=local.ics20_channel,
            kernel_address=remote.kernel.address,
            chain=remote.name,
            direct_channel_id=local.direct_channel,
        ),
        local.client,
    )
    assigned = local.kernel.query(ChannelInfo(chain=remote.name), local.client)
    if assigned["ics20"] != local.ics20_channel:
        raise AssertionError(f"ICS-20 channel on {local.name} is {assigned['ics20']}")
    if assigned["direct"] != local.direct_channel:
        raise AssertionError(f"Direct channel on {local.name} is {assigned['direct']}")


def assign_all_channels(ctx: TestContext):
    assign_channels(ctx.chain_a, ctx.chain_b)
    assign_channels(ctx.chain_b, ctx.chain_a)


def publish_ados(ctx: TestContext, contracts_dir: Path = CONTRACTS_DIR, cache_dir: Optional[Path] = CACHE_DIR) -> List[str]:
    a, b = ctx.chain_a, ctx.chain_b
    await_multi(
        lambda: upload_all_ados(a.client, a.adodb, contracts_dir, cache_dir),
        lambda: upload_all_ados(b.client, b.adodb, contracts_dir, cache_dir),
    )
    names = get_all_ado_names(contracts_dir)
    verify_code_ids_match(a, b, names)
    return names


def send(endpoint: ChainEndpoint, recipient: str, funds: Sequence[CoinLike], msg: Optional[Dict] = None,
         ibc_config: Optional[IBCConfig] = None) -> str:
    """Route ``funds`` through ``endpoint``'s kernel. Returns the transaction hash."""
    coins = to_coins(funds)
    amp_msg = create_amp_msg(recipient, msg, coins, ibc_config)
    result = endpoint.kernel.execute(Send(message=amp_msg), endpoint.client, coins)
    if not result.transaction_hash:
        raise AssertionError("Kernel send returned no transaction hash")
    return result.transaction_hash


def send_local(endpoint: ChainEndpoint, funds: CoinLike) -> str:
    """Send to a fresh address on the same chain and check it arrived."""
    (coin,) = to_coins([funds])
    receiver = random_address(endpoint.definition.prefix)
    send(endpoint, f"/{receiver}", [coin])
    assert_balance(endpoint, receiver, coin)
    return receiver


def send_remote(ctx: TestContext, side: Side, funds: CoinLike) -> str:
    """Send to a fresh address on the other chain, relay, and check the IBC denom arrived."""
    source, dest = ctx.endpoint(side), ctx.counterparty(side)
    (coin,) = to_coins([funds])
    receiver = random_address(dest.definition.prefix)
    send(source, remote_recipient(dest.name, receiver), [coin])

    first_attempt, info = relay_all(ctx.link)
    assert_relay(first_attempt, info, 1, True, side)
    assert_balance(dest, receiver, Coin(amount=coin.amount, denom=dest.ibc_denom))
    return receiver


def instantiate_splitter(endpoint: ChainEndpoint, recipients: Sequence[SplitterRecipient]) -> Contract:
    code_id = endpoint.adodb.query(CodeId(key="splitter"), endpoint.client)
    init_msg = SplitterInstantiate(kernel_address=endpoint.kernel.address, recipients=list(recipients))
    return Contract.from_code_id(code_id, init_msg.to_json(), endpoint.client, label="splitter")


def send_round_trip(ctx: TestContext, funds: CoinLike) -> str:
    """A -> splitter on B -> fresh address on A; the native denom comes home."""
    a, b = ctx.chain_a, ctx.chain_b
    (coin,) = to_coins([funds])
    receiver = random_address(a.definition.prefix)
    splitter = instantiate_splitter(b, [SplitterRecipient(address=remote_recipient(a.name, receiver))])

    send(a, remote_recipient(b.name, splitter.address), [coin], {"send": {}})
    first_attempt, info = relay_all(ctx.link)
    assert_relay(first_attempt, info, 1, True, Side.A)
    relay_all(ctx.link)
    assert_balance(a, receiver, coin)
    return receiver


def recover(endpoint: ChainEndpoint, address: str):
    """Withdraw ``address``'s recoveries and check nothing is left to withdraw."""
    result = endpoint.kernel.execute(Recover(), endpoint.client)
    if not result.transaction_hash:
        raise AssertionError("Recover returned no transaction hash")
    remaining = query_recoveries(endpoint, address)
    if remaining:
        raise AssertionError(f"Recoveries left for {address} after recover: {remaining}")


def send_failing_sub_call(ctx: TestContext, funds: CoinLike) -> str:
    """
    A routed message whose sub-call the remote splitter rejects.

    Funds must not stay with the splitter on B; they come back to A and
    are held for the explicit recovery address until recovered.
    """
    a, b = ctx.chain_a, ctx.chain_b
    (coin,) = to_coins([funds])
    receiver = random_address(a.definition.prefix)
    recovery_addr = a.client.sender_address
    splitter = instantiate_splitter(b, [SplitterRecipient(address=remote_recipient(a.name, receiver))])

    send(
        a,
        remote_recipient(b.name, splitter.address),
        [coin],
        {"not_a_valid_message": {}},
        IBCConfig(recovery_addr=recovery_addr),
    )
    first_attempt, info = relay_all(ctx.link)
    assert_relay(first_attempt, info, 1, False, Side.A)

    assert_balance(b, splitter.address, Coin(amount="0", denom=b.ibc_denom))
    assert_single_recovery(a, recovery_addr, coin)
    recover(a, recovery_addr)
    return recovery_addr


def send_failing_return_leg(ctx: TestContext, funds: CoinLike) -> str:
    """
    A -> splitter on B whose onward message to A fails on A.

    The IBC denom is recovered on B for the splitter recipient's recovery address.
    """
    a, b = ctx.chain_a, ctx.chain_b
    (coin,) = to_coins([funds])
    receiver = random_address(a.definition.prefix)
    recovery_addr = b.client.sender_address
    splitter = instantiate_splitter(b, [SplitterRecipient(
        address=remote_recipient(a.name, receiver), msg=SEND_MSG, ibc_recovery_address=recovery_addr,
    )])

    send(a, remote_recipient(b.name, splitter.address), [coin], {"send": {}}, IBCConfig(recovery_addr=recovery_addr))
    first_attempt, info = relay_all(ctx.link)
    assert_relay(first_attempt, info, 1, True, Side.A)
    relay_all(ctx.link)

    assert_single_recovery(b, recovery_addr, Coin(amount=coin.amount, denom=b.ibc_denom))
    recover(b, recovery_addr)
    return recovery_addr


def send_default_recovery(ctx: TestContext, funds: CoinLike) -> str:
    """Without a recovery address the original sender becomes the recovery address."""
    a, b = ctx.chain_a, ctx.chain_b
    (coin,) = to_coins([funds])
    receiver = random_address(a.definition.prefix)
    sender = b.client.sender_address
    splitter = instantiate_splitter(b, [SplitterRecipient(address=remote_recipient(a.name, receiver), msg=SEND_MSG)])

    send(b, splitter.address, [coin], {"send": {}})
    first_attempt, info = relay_all(ctx.link)
    assert_relay(first_attempt, info, 1, False, Side.B)

    assert_single_recovery(b, sender, coin)
    recover(b, sender)
    return sender
