"""Bounded readiness polls for chains and the relayer."""

import time
from typing import Callable

import requests
import structlog

from ibc_harness.config import POLL_ATTEMPTS, POLL_INTERVAL
from ibc_harness.errors import ChainNotReadyError, RelayerNotReadyError
from ibc_harness.link import Relayer

logger = structlog.get_logger(__name__)


def latest_block_height(rpc_url: str, timeout: float = 5.0) -> int:
    response = requests.get(f"{rpc_url.rstrip('/')}/status", timeout=timeout)
    response.raise_for_status()
    return int(response.json()["result"]["sync_info"]["latest_block_height"])


def wait_for_chain(
    rpc_url: str,
    attempts: int = POLL_ATTEMPTS,
    interval: float = POLL_INTERVAL,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Poll ``rpc_url`` until it has produced a block. Returns the height seen."""
    for attempt in range(1, attempts + 1):
        try:
            height = latest_block_height(rpc_url)
            if height >= 1:
                logger.info("chain_ready", rpc_url=rpc_url, height=height)
                return height
        except (requests.RequestException, KeyError, ValueError) as e:
            logger.debug("chain_not_ready", rpc_url=rpc_url, attempt=attempt, error=str(e))
        sleep(interval)
    raise ChainNotReadyError(f"Chain at {rpc_url} not ready after {attempts} attempts")


def wait_for_relayer(
    relayer: Relayer,
    attempts: int = POLL_ATTEMPTS,
    interval: float = POLL_INTERVAL,
    sleep: Callable[[float], None] = time.sleep,
):
    for attempt in range(1, attempts + 1):
        if relayer.is_ready():
            logger.info("relayer_ready", attempt=attempt)
            return
        sleep(interval)
    raise RelayerNotReadyError(f"Relayer not ready after {attempts} attempts")
