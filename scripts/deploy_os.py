#!/usr/bin/env python3
"""
Operating System Deployment

Deploys the kernel, vfs, economics and adodb contracts on each requested
chain and registers the siblings in the kernel. Chains whose cache already
lists every contract are skipped.

Usage:
    python scripts/deploy_os.py osmo-a osmo-b
    python scripts/deploy_os.py osmo-a --fresh --publish

Environment variables:
    HARNESS_MNEMONIC - Mnemonic of the deploying account
    CONTRACTS_DIR    - Directory holding andromeda_<name>@<version>.wasm files
    IBC_CACHE_DIR    - Directory holding <chain_id>.cache.json files
"""

import argparse
import sys

from ibc_harness.bootstrap import os_contract_set, setup_os, upload_all_ados, verify_key_addresses
from ibc_harness.chain import ChainEndpoint, CosmpyChainClient, fund_account
from ibc_harness.config import CACHE_DIR, CONTRACTS_DIR, HARNESS_MNEMONIC, get_chain
from ibc_harness.errors import HarnessError
from ibc_harness.readiness import wait_for_chain


def deploy(chain_name: str, fresh: bool, publish: bool, fund: str):
    definition = get_chain(chain_name)
    print(f"\n[*] {chain_name} ({definition.chain_id})")

    wait_for_chain(definition.rpc_url)
    client = CosmpyChainClient.connect(definition, HARNESS_MNEMONIC)
    print(f"    Sender: {client.sender_address}")

    if fund:
        fund_account(definition, client.sender_address, fund)
        print(f"    Funded with {fund}{definition.denom_fee}")

    addresses = setup_os(client, chain_name, os_contract_set(CONTRACTS_DIR), CACHE_DIR, use_cache=not fresh)
    endpoint = ChainEndpoint(name=chain_name, definition=definition, client=client)
    endpoint.set_addresses(addresses)
    verify_key_addresses(endpoint)

    for name, address in addresses.items():
        print(f"    {name:<10} {address}")

    if publish:
        code_ids = upload_all_ados(client, endpoint.adodb, CONTRACTS_DIR, CACHE_DIR)
        print(f"    Published {len(code_ids)} ADOs")
        for name, code_id in code_ids.items():
            print(f"      {name:<24} code {code_id}")


def main():
    parser = argparse.ArgumentParser(description="Deploy the Andromeda OS on local IBC chains")
    parser.add_argument("chains", nargs="+", help="Chain names (osmo-a, osmo-b)")
    parser.add_argument("--fresh", action="store_true", help="Ignore and overwrite the cache")
    parser.add_argument("--publish", action="store_true", help="Upload and publish every ADO afterwards")
    parser.add_argument("--fund", default="", help="Fund the deployer from the faucet with this amount first")

    args = parser.parse_args()

    print("=" * 50)
    print("Andromeda OS Deployment")
    print("=" * 50)

    failed = []
    for chain_name in args.chains:
        try:
            deploy(chain_name, args.fresh, args.publish, args.fund)
        except (HarnessError, ValueError, FileNotFoundError) as e:
            print(f"[ERROR] {chain_name}: {e}")
            failed.append(chain_name)

    print()
    print("=" * 50)
    if failed:
        print(f"Failed: {', '.join(failed)}")
        sys.exit(1)
    print("All chains deployed")


if __name__ == "__main__":
    main()
