"""
Per-chain bootstrap cache stored as ``<chain_id>.cache.json``.

Layout::

    {"OS": {contract_name: address}, "ALL_ADO": {ado_name: code_id}, "client": sender}

A single process owns each chain id's file. It is read once and rewritten
in full; there is no locking.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Optional

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class OSCache:
    os: Dict[str, str] = field(default_factory=dict)
    all_ado: Dict[str, int] = field(default_factory=dict)
    client: str = ""

    def to_dict(self) -> dict:
        return {"OS": dict(self.os), "ALL_ADO": dict(self.all_ado), "client": self.client}

    @classmethod
    def from_dict(cls, data: dict) -> "OSCache":
        os_table = data.get("OS")
        ado_table = data.get("ALL_ADO")
        return cls(
            os=dict(os_table) if isinstance(os_table, dict) else {},
            all_ado=dict(ado_table) if isinstance(ado_table, dict) else {},
            client=data.get("client") or "",
        )


def cache_path(cache_dir: Path, chain_id: str) -> Path:
    return Path(cache_dir) / f"{chain_id}.cache.json"


def load_cache(cache_dir: Path, chain_id: str) -> Optional[OSCache]:
    """Read the cache for ``chain_id``. A missing or unreadable file is a miss."""
    path = cache_path(cache_dir, chain_id)
    if not path.exists():
        return None
    try:
        with open(path) as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("cache_unreadable", path=str(path), error=str(e))
        return None
    if not isinstance(data, dict):
        return None
    return OSCache.from_dict(data)


def is_cache_complete(cache: Optional[OSCache], expected_names: Iterable[str]) -> bool:
    """True when the cache holds a non-empty address for every expected contract."""
    if cache is None:
        return False
    return all(cache.os.get(name) for name in expected_names)


def save_cache(cache_dir: Path, chain_id: str, cache: OSCache) -> Path:
    path = cache_path(cache_dir, chain_id)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(cache.to_dict(), f, indent=2)
    logger.debug("cache_saved", path=str(path))
    return path
