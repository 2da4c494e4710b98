# src/pangi/runtime/apply/nft.py
from __future__ import annotations

from typing import Any, Dict, Optional

from pangi.engine.evolution import evolve, lock, new_hatchling, reward_for, unlock
from pangi.ledger.types import Hatchling, NftGlobalConfig
from pangi.runtime.engine_config import EngineConfig
from pangi.runtime.errors import EngineError
from pangi.runtime.ix_schema import (
    HatchlingRefPayload,
    InitializeHatchlingPayload,
    InitializeNftCollectionPayload,
    parse_payload,
)
from pangi.runtime.ix_types import IxEnvelope

Json = Dict[str, Any]

NFT_IX_TYPES = frozenset(
    {
        "INITIALIZE_NFT_COLLECTION",
        "INITIALIZE_HATCHLING",
        "EVOLVE_HATCHLING",
        "LOCK_HATCHLING",
        "UNLOCK_HATCHLING",
    }
)


def _load_collection(snapshot: Json) -> NftGlobalConfig:
    raw = snapshot.get("nft_global")
    if not isinstance(raw, dict):
        raise EngineError("MissingRecord", "nft_collection_not_initialized", {"key": "nft_global"})
    return NftGlobalConfig.from_json(raw)


def _load_owned_hatchling(snapshot: Json, env: IxEnvelope, nft_mint: str) -> Hatchling:
    raw = snapshot["hatchlings"].get(nft_mint)
    if not isinstance(raw, dict):
        raise EngineError("MissingRecord", "hatchling_not_found", {"nft_mint": nft_mint})
    h = Hatchling.from_json(raw)
    if not h.authority or env.signer != h.authority:
        raise EngineError("Unauthorized", "signer_is_not_hatchling_authority", {"signer": env.signer, "nft_mint": nft_mint})
    return h


def _apply_initialize_nft_collection(snapshot: Json, env: IxEnvelope, cfg: EngineConfig) -> Json:
    p: InitializeNftCollectionPayload = parse_payload(env.ix_type, env.payload)  # type: ignore[assignment]
    if snapshot.get("nft_global") is not None:
        raise EngineError("RecordExists", "nft_collection_already_initialized", {"key": "nft_global"})

    max_supply = cfg.max_total_nfts if p.max_supply is None else p.max_supply
    if max_supply > cfg.max_total_nfts:
        raise EngineError("AmountTooLarge", "max_supply_above_cap", {"max_supply": max_supply, "cap": cfg.max_total_nfts})

    coll = NftGlobalConfig(authority=env.signer, total_minted=0, max_supply=max_supply, mint_paused=p.mint_paused)
    snapshot["nft_global"] = coll.to_json()
    return {"applied": "INITIALIZE_NFT_COLLECTION", "nft_global": coll.to_json()}


def _apply_initialize_hatchling(snapshot: Json, env: IxEnvelope, cfg: EngineConfig) -> Json:
    p: InitializeHatchlingPayload = parse_payload(env.ix_type, env.payload)  # type: ignore[assignment]
    coll = _load_collection(snapshot)
    if p.nft_mint in snapshot["hatchlings"]:
        raise EngineError("RecordExists", "hatchling_already_exists", {"nft_mint": p.nft_mint})

    h, coll2 = new_hatchling(
        coll,
        nft_mint=p.nft_mint,
        authority=env.signer,
        evolution_cooldown=p.evolution_cooldown,
        now=env.now,
        min_cooldown=cfg.min_evolution_cooldown,
        max_cooldown=cfg.max_evolution_cooldown,
    )
    snapshot["hatchlings"][h.nft_mint] = h.to_json()
    snapshot["nft_global"] = coll2.to_json()
    return {"applied": "INITIALIZE_HATCHLING", "hatchling": h.to_json(), "total_minted": coll2.total_minted}


def _apply_evolve_hatchling(snapshot: Json, env: IxEnvelope, cfg: EngineConfig) -> Json:
    p: HatchlingRefPayload = parse_payload(env.ix_type, env.payload)  # type: ignore[assignment]
    h = _load_owned_hatchling(snapshot, env, p.nft_mint)

    evolved = evolve(h, env.now)
    snapshot["hatchlings"][evolved.nft_mint] = evolved.to_json()
    return {
        "applied": "EVOLVE_HATCHLING",
        "nft_mint": evolved.nft_mint,
        "from_stage": h.stage,
        "to_stage": evolved.stage,
        "evolution_count": evolved.evolution_count,
        "reward": reward_for(evolved.evolution_count),
    }


def _apply_lock_hatchling(snapshot: Json, env: IxEnvelope, cfg: EngineConfig) -> Json:
    p: HatchlingRefPayload = parse_payload(env.ix_type, env.payload)  # type: ignore[assignment]
    h = lock(_load_owned_hatchling(snapshot, env, p.nft_mint))
    snapshot["hatchlings"][h.nft_mint] = h.to_json()
    return {"applied": "LOCK_HATCHLING", "nft_mint": h.nft_mint}


def _apply_unlock_hatchling(snapshot: Json, env: IxEnvelope, cfg: EngineConfig) -> Json:
    p: HatchlingRefPayload = parse_payload(env.ix_type, env.payload)  # type: ignore[assignment]
    h = unlock(_load_owned_hatchling(snapshot, env, p.nft_mint))
    snapshot["hatchlings"][h.nft_mint] = h.to_json()
    return {"applied": "UNLOCK_HATCHLING", "nft_mint": h.nft_mint}


def apply_nft(snapshot: Json, env: IxEnvelope, cfg: EngineConfig) -> Optional[Json]:
    t = env.ix_type
    if t not in NFT_IX_TYPES:
        return None

    if t == "INITIALIZE_NFT_COLLECTION":
        return _apply_initialize_nft_collection(snapshot, env, cfg)
    if t == "INITIALIZE_HATCHLING":
        return _apply_initialize_hatchling(snapshot, env, cfg)
    if t == "EVOLVE_HATCHLING":
        return _apply_evolve_hatchling(snapshot, env, cfg)
    if t == "LOCK_HATCHLING":
        return _apply_lock_hatchling(snapshot, env, cfg)
    if t == "UNLOCK_HATCHLING":
        return _apply_unlock_hatchling(snapshot, env, cfg)

    return None


__all__ = ["NFT_IX_TYPES", "apply_nft"]
