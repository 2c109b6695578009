"""
IBC denomination derivation.

A token that crossed one or more channels is known on the receiving chain
as ``ibc/<HASH>`` where HASH is the uppercase hex SHA-256 of its full trace,
e.g. ``transfer/channel-0/uosmo``. Both ends derive it independently, so the
hashing must match the chain's own exactly.
"""

import hashlib


def denom_trace(*hops: str, base_denom: str) -> str:
    """Compose a trace from ``port/channel`` hops, outermost hop first."""
    parts = [hop.strip("/") for hop in hops]
    parts.append(base_denom)
    return "/".join(parts)


def ibc_denom_from_trace(trace: str) -> str:
    """Derive the ``ibc/`` denom for an already composed trace string."""
    digest = hashlib.sha256(trace.encode("utf-8")).hexdigest()
    return f"ibc/{digest.upper()}"


def ibc_denom(port_id: str, channel_id: str, base_denom: str) -> str:
    """Derive the denom of ``base_denom`` after a single hop over ``port_id/channel_id``."""
    return ibc_denom_from_trace(f"{port_id}/{channel_id}/{base_denom}")
