# src/pangi/runtime/apply/distribution.py
from __future__ import annotations

from typing import Any, Dict, Optional

from pangi.engine.distribution import (
    claim_allocation,
    deactivate,
    deactivate_allocation,
    disburse,
    new_distribution,
    register_allocation,
)
from pangi.ledger.constants import TOTAL_DISTRIBUTION_SUPPLY
from pangi.ledger.types import DistributionConfig, NftAllocation
from pangi.runtime.engine_config import EngineConfig
from pangi.runtime.errors import EngineError
from pangi.runtime.ix_schema import (
    AllocationRefPayload,
    DistributeToVaultPayload,
    InitializeDistributionPayload,
    RegisterSpecialNftPayload,
    parse_payload,
)
from pangi.runtime.ix_types import IxEnvelope

Json = Dict[str, Any]

DISTRIBUTION_IX_TYPES = frozenset(
    {
        "INITIALIZE_DISTRIBUTION",
        "DISTRIBUTE_TO_VAULT",
        "REGISTER_SPECIAL_NFT",
        "CLAIM_ALLOCATION",
        "DEACTIVATE_DISTRIBUTION",
        "DEACTIVATE_ALLOCATION",
    }
)


def _load_distribution(snapshot: Json) -> DistributionConfig:
    raw = snapshot.get("distribution")
    if not isinstance(raw, dict):
        raise EngineError("MissingRecord", "distribution_not_initialized", {"key": "distribution"})
    return DistributionConfig.from_json(raw)


def _require_authority(config: DistributionConfig, env: IxEnvelope) -> None:
    if not config.authority or env.signer != config.authority:
        raise EngineError("Unauthorized", "signer_is_not_distribution_authority", {"signer": env.signer})


def _load_allocation(snapshot: Json, nft_mint: str) -> NftAllocation:
    raw = snapshot["allocations"].get(nft_mint)
    if not isinstance(raw, dict):
        raise EngineError("MissingRecord", "allocation_not_found", {"nft_mint": nft_mint})
    return NftAllocation.from_json(raw)


def _apply_initialize_distribution(snapshot: Json, env: IxEnvelope, cfg: EngineConfig) -> Json:
    p: InitializeDistributionPayload = parse_payload(env.ix_type, env.payload)  # type: ignore[assignment]
    if snapshot.get("distribution") is not None:
        raise EngineError("RecordExists", "distribution_already_initialized", {"key": "distribution"})

    dc = new_distribution(
        authority=env.signer,
        total_supply=TOTAL_DISTRIBUTION_SUPPLY if p.total_supply is None else p.total_supply,
        start=p.distribution_start,
        end=p.distribution_end,
        now=env.now,
    )
    snapshot["distribution"] = dc.to_json()
    return {"applied": "INITIALIZE_DISTRIBUTION", "distribution": dc.to_json()}


def _apply_distribute_to_vault(snapshot: Json, env: IxEnvelope, cfg: EngineConfig) -> Json:
    p: DistributeToVaultPayload = parse_payload(env.ix_type, env.payload)  # type: ignore[assignment]
    dc = _load_distribution(snapshot)
    _require_authority(dc, env)

    alloc, dc2 = disburse(
        dc,
        p.amount,
        env.now,
        burn_bps=cfg.distribution_burn_bps,
        vest_bps=cfg.distribution_vest_bps,
    )
    snapshot["distribution"] = dc2.to_json()
    return {
        "applied": "DISTRIBUTE_TO_VAULT",
        "vault": p.vault,
        "amount": p.amount,
        "allocation": alloc.to_json(),
        "total_distributed": dc2.distributed_amount,
    }


def _apply_register_special_nft(snapshot: Json, env: IxEnvelope, cfg: EngineConfig) -> Json:
    p: RegisterSpecialNftPayload = parse_payload(env.ix_type, env.payload)  # type: ignore[assignment]
    dc = _load_distribution(snapshot)
    _require_authority(dc, env)
    if p.nft_mint in snapshot["allocations"]:
        raise EngineError("RecordExists", "allocation_already_registered", {"nft_mint": p.nft_mint})

    rec, dc2 = register_allocation(dc, nft_mint=p.nft_mint, owner=p.owner, allocation=p.allocation)
    snapshot["allocations"][rec.nft_mint] = rec.to_json()
    snapshot["distribution"] = dc2.to_json()
    return {"applied": "REGISTER_SPECIAL_NFT", "allocation": rec.to_json(), "nft_count": dc2.nft_count}


def _apply_claim_allocation(snapshot: Json, env: IxEnvelope, cfg: EngineConfig) -> Json:
    p: AllocationRefPayload = parse_payload(env.ix_type, env.payload)  # type: ignore[assignment]
    dc = _load_distribution(snapshot)
    rec = _load_allocation(snapshot, p.nft_mint)

    amount, rec2, dc2 = claim_allocation(dc, rec, claimant=env.signer, now=env.now)
    snapshot["allocations"][rec2.nft_mint] = rec2.to_json()
    snapshot["distribution"] = dc2.to_json()
    return {
        "applied": "CLAIM_ALLOCATION",
        "nft_mint": rec2.nft_mint,
        "amount": amount,
        "claimed_amount": rec2.claimed_amount,
        "total_distributed": dc2.distributed_amount,
    }


def _apply_deactivate_distribution(snapshot: Json, env: IxEnvelope, cfg: EngineConfig) -> Json:
    parse_payload(env.ix_type, env.payload)
    dc = _load_distribution(snapshot)
    _require_authority(dc, env)

    snapshot["distribution"] = deactivate(dc).to_json()
    return {"applied": "DEACTIVATE_DISTRIBUTION"}


def _apply_deactivate_allocation(snapshot: Json, env: IxEnvelope, cfg: EngineConfig) -> Json:
    p: AllocationRefPayload = parse_payload(env.ix_type, env.payload)  # type: ignore[assignment]
    dc = _load_distribution(snapshot)
    _require_authority(dc, env)
    rec = deactivate_allocation(_load_allocation(snapshot, p.nft_mint))

    snapshot["allocations"][rec.nft_mint] = rec.to_json()
    return {"applied": "DEACTIVATE_ALLOCATION", "nft_mint": rec.nft_mint}


def apply_distribution(snapshot: Json, env: IxEnvelope, cfg: EngineConfig) -> Optional[Json]:
    t = env.ix_type
    if t not in DISTRIBUTION_IX_TYPES:
        return None

    if t == "INITIALIZE_DISTRIBUTION":
        return _apply_initialize_distribution(snapshot, env, cfg)
    if t == "DISTRIBUTE_TO_VAULT":
        return _apply_distribute_to_vault(snapshot, env, cfg)
    if t == "REGISTER_SPECIAL_NFT":
        return _apply_register_special_nft(snapshot, env, cfg)
    if t == "CLAIM_ALLOCATION":
        return _apply_claim_allocation(snapshot, env, cfg)
    if t == "DEACTIVATE_DISTRIBUTION":
        return _apply_deactivate_distribution(snapshot, env, cfg)
    if t == "DEACTIVATE_ALLOCATION":
        return _apply_deactivate_allocation(snapshot, env, cfg)

    return None


__all__ = ["DISTRIBUTION_IX_TYPES", "apply_distribution"]
