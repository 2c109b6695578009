"""
Operating system bootstrap.

Uploads the OS contracts, instantiates the kernel first and every sibling
against it, then registers each sibling in the kernel under its name.
The result is cached per chain id so later runs skip the whole sequence.
"""

from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

import structlog

from ibc_harness.cache import OSCache, is_cache_complete, load_cache, save_cache
from ibc_harness.chain import ChainClient, ChainEndpoint, Contract
from ibc_harness.config import CACHE_DIR, CONTRACTS_DIR
from ibc_harness.errors import BootstrapError, ContractError
from ibc_harness.messages import (
    CodeId,
    KernelInstantiate,
    KeyAddress,
    Publish,
    SiblingInstantiate,
    UpsertKeyAddress,
    to_json,
)

logger = structlog.get_logger(__name__)

KERNEL = "kernel"
OS_CONTRACT_NAMES = ("kernel", "vfs", "economics", "adodb")


# Wasm files are named andromeda_<name>@<version>.wasm

def get_file_name(path) -> str:
    return Path(path).name.split("@")[0].replace("andromeda_", "")


def get_file_version(path) -> str:
    return Path(path).name.split("@")[-1].replace(".wasm", "")


def _wasm_files(contracts_dir: Path) -> List[Path]:
    return sorted(Path(contracts_dir).glob("*.wasm"))


def get_ado_path(name: str, contracts_dir: Path = CONTRACTS_DIR) -> Path:
    for path in _wasm_files(contracts_dir):
        if get_file_name(path) == name:
            return path
    raise FileNotFoundError(f"No wasm file for {name} in {contracts_dir}")


def get_all_ado_names(contracts_dir: Path = CONTRACTS_DIR, exclude: Iterable[str] = OS_CONTRACT_NAMES) -> List[str]:
    excluded = set(exclude)
    return [get_file_name(path) for path in _wasm_files(contracts_dir) if get_file_name(path) not in excluded]


def os_contract_set(contracts_dir: Path = CONTRACTS_DIR, names: Iterable[str] = OS_CONTRACT_NAMES) -> Dict[str, Path]:
    return {name: get_ado_path(name, contracts_dir) for name in names}


def setup_os(
    client: ChainClient,
    chain_name: str,
    contract_set: Mapping[str, Path],
    cache_dir: Optional[Path] = CACHE_DIR,
    use_cache: bool = True,
) -> Dict[str, str]:
    """
    Deploy the OS on the client's chain and return ``{name: address}``.

    Idempotent through the cache: when the chain id's cache already holds an
    address for every name in ``contract_set`` it is returned untouched and
    nothing is uploaded. Otherwise the whole sequence runs and any failure
    aborts it without writing the cache.

    Pass ``use_cache=False`` to deploy fresh and replace the cached entry,
    or ``cache_dir=None`` to neither read nor write a cache.
    """
    if KERNEL not in contract_set:
        raise ValueError("Contract set must include the kernel")

    chain_id = client.get_chain_id()
    if cache_dir is not None and use_cache:
        cache = load_cache(cache_dir, chain_id)
        if is_cache_complete(cache, contract_set):
            logger.info("os_cache_hit", chain=chain_name, chain_id=chain_id)
            return {name: cache.os[name] for name in contract_set}

    logger.info("os_deploying", chain=chain_name, chain_id=chain_id, contracts=list(contract_set))
    try:
        code_ids = {name: client.upload(path, name) for name, path in contract_set.items()}

        addresses = {
            KERNEL: client.instantiate(code_ids[KERNEL], KernelInstantiate(chain_name).to_json(), KERNEL),
        }
        kernel_address = addresses[KERNEL]
        siblings = [name for name in contract_set if name != KERNEL]
        for name in siblings:
            addresses[name] = client.instantiate(
                code_ids[name], SiblingInstantiate(kernel_address).to_json(), name
            )

        for name in siblings:
            client.execute(kernel_address, to_json(UpsertKeyAddress(key=name, value=addresses[name])))
    except ContractError as e:
        logger.error("os_deploy_failed", chain=chain_name, chain_id=chain_id, error=str(e))
        raise BootstrapError(chain_id, e) from e

    if cache_dir is not None:
        save_cache(cache_dir, chain_id, OSCache(os=addresses, client=client.sender_address))
    logger.info("os_deployed", chain=chain_name, kernel=kernel_address)
    return addresses


def upload_ado(name: str, client: ChainClient, adodb: Contract, contracts_dir: Path = CONTRACTS_DIR) -> int:
    """Upload one ADO and publish its code id in the ADO database."""
    path = get_ado_path(name, contracts_dir)
    code_id = client.upload(path, name)
    adodb.execute(Publish(code_id=code_id, ado_type=name, version=get_file_version(path)), client)
    return code_id


def upload_all_ados(
    client: ChainClient,
    adodb: Contract,
    contracts_dir: Path = CONTRACTS_DIR,
    cache_dir: Optional[Path] = CACHE_DIR,
) -> Dict[str, int]:
    code_ids = {name: upload_ado(name, client, adodb, contracts_dir) for name in get_all_ado_names(contracts_dir)}

    if cache_dir is not None:
        chain_id = client.get_chain_id()
        cache = load_cache(cache_dir, chain_id) or OSCache(client=client.sender_address)
        cache.all_ado.update(code_ids)
        save_cache(cache_dir, chain_id, cache)
    return code_ids


def verify_key_addresses(endpoint: ChainEndpoint):
    """Check the kernel resolves every sibling name to the address we deployed."""
    kernel = endpoint.kernel
    for name, contract in endpoint.contracts.items():
        if name == KERNEL:
            continue
        registered = kernel.query(KeyAddress(key=name), endpoint.client)
        if registered != contract.address:
            raise AssertionError(
                f"{endpoint.name}: kernel maps {name} to {registered}, expected {contract.address}"
            )


def verify_os_consistency(endpoint_a: ChainEndpoint, endpoint_b: ChainEndpoint):
    """Both chains carry the same OS contract set, each correctly registered."""
    if set(endpoint_a.contracts) != set(endpoint_b.contracts):
        raise AssertionError(
            f"OS contract sets differ: {sorted(endpoint_a.contracts)} vs {sorted(endpoint_b.contracts)}"
        )
    verify_key_addresses(endpoint_a)
    verify_key_addresses(endpoint_b)


def verify_code_ids_match(endpoint_a: ChainEndpoint, endpoint_b: ChainEndpoint, names: Iterable[str]):
    for name in names:
        code_a = endpoint_a.adodb.query(CodeId(key=name), endpoint_a.client)
        code_b = endpoint_b.adodb.query(CodeId(key=name), endpoint_b.client)
        if code_a != code_b:
            raise AssertionError(f"Code id for {name} differs: {code_a} vs {code_b}")
