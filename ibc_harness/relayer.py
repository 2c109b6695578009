"""
Relayer backed by the hermes CLI.

Every command runs with ``--json``; hermes prints one JSON object per line
and the last one carries ``status`` and ``result``. A non-zero exit or an
``error`` status becomes a RelayError classified from its message, so
callers never look at the text themselves.
"""

import json
import subprocess
from typing import Any, Callable, Dict, Iterator, List, Tuple

import structlog

from ibc_harness.config import HERMES_BIN, ChainDefinition
from ibc_harness.errors import RelayError
from ibc_harness.link import ChannelEnd, ChannelPair, Link, Order, Side
from ibc_harness.relay import Ack, RelayInfo

logger = structlog.get_logger(__name__)


def _ack_bytes(value: Any) -> bytes:
    if isinstance(value, list):
        return bytes(value)
    if isinstance(value, str):
        try:
            return bytes.fromhex(value)
        except ValueError:
            return value.encode("utf-8")
    raise RelayError.from_message(f"Unrecognised acknowledgement encoding: {value!r}")


def _find_events(node: Any, name: str) -> Iterator[Dict[str, Any]]:
    """Yield every ``{name: {...}}`` payload nested anywhere in ``node``."""
    if isinstance(node, dict):
        for key, value in node.items():
            if key == name and isinstance(value, dict):
                yield value
            else:
                yield from _find_events(value, name)
    elif isinstance(node, list):
        for item in node:
            yield from _find_events(item, name)


class HermesRelayer:
    def __init__(self, binary: str = HERMES_BIN, runner: Callable[..., subprocess.CompletedProcess] = subprocess.run):
        self.binary = binary
        self.runner = runner

    def _run(self, *args: str) -> Any:
        cmd = [self.binary, "--json", *args]
        logger.debug("hermes_command", cmd=" ".join(cmd))
        proc = self.runner(cmd, capture_output=True, text=True)

        lines = [line for line in proc.stdout.splitlines() if line.strip().startswith("{")]
        final = None
        if lines:
            try:
                final = json.loads(lines[-1])
            except json.JSONDecodeError:
                final = None

        if proc.returncode != 0 or final is None or final.get("status") == "error":
            detail = final.get("result") if final else None
            message = str(detail) if detail else (proc.stderr or proc.stdout).strip()
            raise RelayError.from_message(message or f"hermes exited with {proc.returncode}")
        return final.get("result")

    def is_ready(self) -> bool:
        try:
            self._run("health-check")
        except (RelayError, OSError):
            return False
        return True

    def create_connection(self, chain_a: ChainDefinition, chain_b: ChainDefinition) -> Tuple[str, str]:
        result = self._run("create", "connection", "--a-chain", chain_a.chain_id, "--b-chain", chain_b.chain_id)
        try:
            return result["a_side"]["connection_id"], result["b_side"]["connection_id"]
        except (KeyError, TypeError) as e:
            raise RelayError.from_message(f"Unexpected connection result: {result!r}") from e

    def create_channel(
        self, link: Link, side: Side, port_a: str, port_b: str, ordering: Order, version: str
    ) -> ChannelPair:
        src, dest = link.ends(side)
        connection = link.connection_a if Side(side) is Side.A else link.connection_b
        args = [
            "create", "channel",
            "--a-chain", src.chain_id,
            "--a-connection", connection,
            "--a-port", port_a,
            "--b-port", port_b,
            "--order", Order(ordering).value,
        ]
        if version:
            args += ["--channel-version", version]
        result = self._run(*args)
        try:
            return ChannelPair(
                src=ChannelEnd(port_a, result["a_side"]["channel_id"]),
                dest=ChannelEnd(port_b, result["b_side"]["channel_id"]),
            )
        except (KeyError, TypeError) as e:
            raise RelayError.from_message(f"Unexpected channel result on {dest.chain_id}: {result!r}") from e

    def _relay_direction(
        self, src: ChainDefinition, dest: ChainDefinition, end: ChannelEnd, counterparty: ChannelEnd
    ) -> Tuple[int, List[Ack]]:
        """Deliver queued packets from ``src`` to ``dest`` and carry the acks back."""
        result = self._run(
            "tx", "packet-recv",
            "--dst-chain", dest.chain_id,
            "--src-chain", src.chain_id,
            "--src-port", end.port_id,
            "--src-channel", end.channel_id,
        )
        acks = []
        for event in _find_events(result, "WriteAcknowledgement"):
            packet = event.get("packet", {})
            acks.append(Ack(
                acknowledgement=_ack_bytes(event.get("ack", [])),
                src_channel=packet.get("source_channel", end.channel_id),
                dest_channel=packet.get("destination_channel", counterparty.channel_id),
                sequence=int(packet.get("sequence", 0)),
            ))
        received = len(list(_find_events(result, "ReceivePacket"))) or len(acks)
        if acks:
            self._run(
                "tx", "packet-ack",
                "--dst-chain", src.chain_id,
                "--src-chain", dest.chain_id,
                "--src-port", counterparty.port_id,
                "--src-channel", counterparty.channel_id,
            )
        return received, acks

    def relay_all(self, link: Link) -> RelayInfo:
        info = RelayInfo()
        for channel in link.channels:
            from_a, acks_b = self._relay_direction(link.chain_a, link.chain_b, channel.src, channel.dest)
            from_b, acks_a = self._relay_direction(link.chain_b, link.chain_a, channel.dest, channel.src)
            info = info.merge(RelayInfo(from_a, from_b, acks_a, acks_b))
        return info
