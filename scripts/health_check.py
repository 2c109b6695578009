#!/usr/bin/env python3
"""
IBC Harness Health Check

Reports readiness of every configured chain and of the relayer:
- Tendermint RPC reachable and producing blocks
- hermes health-check passing

Usage:
    python scripts/health_check.py [text|json]
"""

import json
import sys
import time

import requests

from ibc_harness.config import CHAINS, HERMES_BIN
from ibc_harness.readiness import latest_block_height
from ibc_harness.relayer import HermesRelayer


def check_chain(definition):
    """Check one chain's RPC endpoint"""
    result = {
        "check": f"chain:{definition.name}",
        "status": "unknown",
        "details": {"chain_id": definition.chain_id, "rpc_url": definition.rpc_url},
    }

    try:
        height = latest_block_height(definition.rpc_url)
        result["status"] = "healthy" if height >= 1 else "degraded"
        result["details"]["block_height"] = height
    except (requests.RequestException, KeyError, ValueError) as e:
        result["status"] = "unhealthy"
        result["details"]["error"] = str(e)

    return result


def check_relayer():
    """Check the relayer answers its own health check"""
    relayer = HermesRelayer(HERMES_BIN)
    return {
        "check": "relayer",
        "status": "healthy" if relayer.is_ready() else "unhealthy",
        "details": {"binary": HERMES_BIN},
    }


def main():
    output_format = sys.argv[1] if len(sys.argv) > 1 else "text"

    checks = [check_chain(definition) for definition in CHAINS.values()]
    checks.append(check_relayer())
    all_healthy = all(c["status"] == "healthy" for c in checks)

    if output_format == "json":
        output = {
            "timestamp": int(time.time()),
            "checks": checks,
            "overall_status": "healthy" if all_healthy else "degraded",
        }
        print(json.dumps(output, indent=2))
    else:
        print("=" * 50)
        print("IBC Harness Health Check")
        print("=" * 50)
        print()

        for check in checks:
            status = check["status"].upper()
            status_icon = "[OK]" if status == "HEALTHY" else "[WARN]" if status == "DEGRADED" else "[FAIL]"
            print(f"{status_icon} {check['check']}: {status}")
            for key, value in check["details"].items():
                print(f"      {key}: {value}")
            print()

        print("=" * 50)
        print(f"Overall Status: {'HEALTHY' if all_healthy else 'DEGRADED/UNHEALTHY'}")

    if not all_healthy:
        sys.exit(1)


if __name__ == "__main__":
    main()
