# src/pangi/runtime/state_invariants.py
from __future__ import annotations

"""Snapshot normalization.

A snapshot is the JSON-like dict the dispatcher hands to apply modules:

    tax_config     Optional[TaxConfig json]
    nft_global     Optional[NftGlobalConfig json]
    hatchlings     {nft_mint: Hatchling json}
    distribution   Optional[DistributionConfig json]
    allocations    {nft_mint: NftAllocation json}
    vault          Optional[VaultConfig json]
    stakes         {stake_id: StakeRecord json}

Singleton records are absent until their INITIALIZE_* instruction runs;
keyed containers are always present after ensure_snapshot().
"""

from collections.abc import MutableMapping
from typing import Any, Dict

Json = Dict[str, Any]

SINGLETON_KEYS = ("tax_config", "nft_global", "distribution", "vault")
CONTAINER_KEYS = ("hatchlings", "allocations", "stakes")


def ensure_snapshot(st: Any) -> Json:
    """Ensure `st` is a dict with every keyed container present.

    Returns the (possibly mutated) dict.

    Raises:
        TypeError: if st, a container or a singleton has the wrong type
    """
    if not isinstance(st, MutableMapping):
        raise TypeError(f"snapshot must be MutableMapping, got {type(st)}")

    for key in CONTAINER_KEYS:
        v = st.get(key)
        if v is None:
            st[key] = {}
        elif not isinstance(v, dict):
            # Fail closed: do not attempt to coerce arbitrary types.
            raise TypeError(f"snapshot[{key!r}] must be dict, got {type(v)}")

    for key in SINGLETON_KEYS:
        v = st.get(key)
        if v is not None and not isinstance(v, dict):
            raise TypeError(f"snapshot[{key!r}] must be dict or absent, got {type(v)}")

    return st  # type: ignore[return-value]


__all__ = ["CONTAINER_KEYS", "SINGLETON_KEYS", "ensure_snapshot"]
