# src/pangi/engine/distribution.py
from __future__ import annotations

"""Windowed special distribution.

A fixed pool (at most 63M PANGI) is released to per-NFT vaults between
distribution_start and distribution_end. Each disbursement splits into
burn / vest / liquid buckets; the liquid bucket is the remainder, so the
three always sum to the disbursed amount with no rounding loss.

Special-edition NFTs may additionally hold a linearly vesting allocation
that their owner claims over the same window.
"""

from dataclasses import replace
from typing import Tuple

from pangi.ledger.constants import (
    DISTRIBUTION_BURN_BPS,
    DISTRIBUTION_VEST_BPS,
    MAX_DISTRIBUTION_PERIOD,
    MAX_SPECIAL_NFTS,
    MIN_DISTRIBUTION_PERIOD,
    TOTAL_DISTRIBUTION_SUPPLY,
)
from pangi.ledger.fixed_point import basis_points, checked_add, checked_sub, mul_div_floor
from pangi.ledger.types import DistributionConfig, NftAllocation, VaultAllocation
from pangi.runtime.errors import EngineError


def is_active(config: DistributionConfig, now: int) -> bool:
    """Inclusive at both ends of the window."""
    t = int(now)
    return bool(config.is_active) and config.distribution_start <= t <= config.distribution_end


def _require_window(config: DistributionConfig, now: int) -> None:
    if not config.is_active:
        raise EngineError("DistributionInactive", "distribution_deactivated", {})
    t = int(now)
    if t < config.distribution_start:
        raise EngineError("DistributionNotStarted", "before_window", {"now": t, "start": config.distribution_start})
    if t > config.distribution_end:
        raise EngineError("DistributionEnded", "after_window", {"now": t, "end": config.distribution_end})


def split(
    amount: int,
    *,
    burn_bps: int = DISTRIBUTION_BURN_BPS,
    vest_bps: int = DISTRIBUTION_VEST_BPS,
) -> VaultAllocation:
    burned = basis_points(amount, burn_bps)
    vested = basis_points(amount, vest_bps)
    liquid = checked_sub(checked_sub(amount, burned), vested)
    return VaultAllocation(burned=burned, vested=vested, liquid=liquid)


def disburse(
    config: DistributionConfig,
    amount: int,
    now: int,
    *,
    burn_bps: int = DISTRIBUTION_BURN_BPS,
    vest_bps: int = DISTRIBUTION_VEST_BPS,
) -> Tuple[VaultAllocation, DistributionConfig]:
    amt = int(amount)
    if amt <= 0:
        raise EngineError("AmountTooSmall", "amount_must_be_positive", {"amount": amt})
    _require_window(config, now)

    new_distributed = checked_add(config.distributed_amount, amt)
    if new_distributed > config.total_supply:
        raise EngineError(
            "InsufficientDistributionFunds",
            "exceeds_remaining_supply",
            {"amount": amt, "remaining": config.remaining},
        )

    alloc = split(amt, burn_bps=burn_bps, vest_bps=vest_bps)
    return alloc, replace(config, distributed_amount=new_distributed)


def vested_amount(total_vested: int, start: int, end: int, now: int) -> int:
    """Linear release: 0 at or before start, exactly total_vested at or after end."""
    duration = int(end) - int(start)
    if duration <= 0:
        raise EngineError("InvalidDistributionWindow", "end_must_follow_start", {"start": start, "end": end})
    elapsed = min(max(int(now) - int(start), 0), duration)
    return mul_div_floor(total_vested, elapsed, duration)


def new_distribution(
    *,
    authority: str,
    total_supply: int,
    start: int,
    end: int,
    now: int,
    min_period: int = MIN_DISTRIBUTION_PERIOD,
    max_period: int = MAX_DISTRIBUTION_PERIOD,
) -> DistributionConfig:
    supply = int(total_supply)
    if supply <= 0:
        raise EngineError("AmountTooSmall", "total_supply_must_be_positive", {"total_supply": supply})
    if supply > TOTAL_DISTRIBUTION_SUPPLY:
        raise EngineError(
            "AmountTooLarge",
            "total_supply_above_pool",
            {"total_supply": supply, "max": TOTAL_DISTRIBUTION_SUPPLY},
        )
    if int(start) < int(now):
        raise EngineError("InvalidDistributionWindow", "start_in_past", {"start": start, "now": now})
    if int(end) <= int(start):
        raise EngineError("InvalidDistributionWindow", "end_must_follow_start", {"start": start, "end": end})
    duration = int(end) - int(start)
    if duration < int(min_period):
        raise EngineError("InvalidDistributionWindow", "period_too_short", {"duration": duration, "min": int(min_period)})
    if duration > int(max_period):
        raise EngineError("InvalidDistributionWindow", "period_too_long", {"duration": duration, "max": int(max_period)})

    return DistributionConfig(
        total_supply=supply,
        distribution_start=int(start),
        distribution_end=int(end),
        distributed_amount=0,
        authority=str(authority),
        is_active=True,
        nft_count=0,
    )


def deactivate(config: DistributionConfig) -> DistributionConfig:
    if not config.is_active:
        raise EngineError("DistributionInactive", "already_inactive", {})
    return replace(config, is_active=False)


def deactivate_allocation(allocation: NftAllocation) -> NftAllocation:
    if not allocation.is_active:
        raise EngineError("AllocationInactive", "allocation_already_inactive", {"nft_mint": allocation.nft_mint})
    return replace(allocation, is_active=False)


def register_allocation(
    config: DistributionConfig,
    *,
    nft_mint: str,
    owner: str,
    allocation: int,
) -> Tuple[NftAllocation, DistributionConfig]:
    if config.nft_count >= MAX_SPECIAL_NFTS:
        raise EngineError("MaxNftsReached", "special_nft_limit", {"nft_count": config.nft_count, "max": MAX_SPECIAL_NFTS})
    amt = int(allocation)
    if amt <= 0:
        raise EngineError("AmountTooSmall", "allocation_must_be_positive", {"allocation": amt})
    if checked_add(config.distributed_amount, amt) > config.total_supply:
        raise EngineError(
            "InsufficientDistributionFunds",
            "allocation_exceeds_supply",
            {"allocation": amt, "remaining": config.remaining},
        )

    rec = NftAllocation(nft_mint=str(nft_mint), owner=str(owner), total_allocation=amt)
    return rec, replace(config, nft_count=config.nft_count + 1)


def claimable(allocation: NftAllocation, config: DistributionConfig, now: int) -> int:
    if int(now) < config.distribution_start:
        return 0
    vested = vested_amount(allocation.total_allocation, config.distribution_start, config.distribution_end, now)
    return checked_sub(vested, allocation.claimed_amount)


def claim_allocation(
    config: DistributionConfig,
    allocation: NftAllocation,
    *,
    claimant: str,
    now: int,
) -> Tuple[int, NftAllocation, DistributionConfig]:
    """Returns (amount, allocation', config')."""
    if not config.is_active:
        raise EngineError("DistributionInactive", "distribution_deactivated", {})
    if not allocation.is_active:
        raise EngineError("AllocationInactive", "allocation_deactivated", {"nft_mint": allocation.nft_mint})
    if not allocation.owner or str(claimant) != allocation.owner:
        raise EngineError("Unauthorized", "claimant_is_not_owner", {"claimant": claimant, "nft_mint": allocation.nft_mint})
    if int(now) < config.distribution_start:
        raise EngineError("DistributionNotStarted", "before_window", {"now": int(now), "start": config.distribution_start})

    amt = claimable(allocation, config, now)
    if amt <= 0:
        raise EngineError("NoRewardsToClaim", "nothing_vested_since_last_claim", {"nft_mint": allocation.nft_mint})

    new_distributed = checked_add(config.distributed_amount, amt)
    if new_distributed > config.total_supply:
        raise EngineError(
            "InsufficientDistributionFunds",
            "claim_exceeds_remaining_supply",
            {"amount": amt, "remaining": config.remaining},
        )

    alloc2 = replace(allocation, claimed_amount=allocation.claimed_amount + amt, last_claim=int(now))
    return amt, alloc2, replace(config, distributed_amount=new_distributed)


__all__ = [
    "claim_allocation",
    "claimable",
    "deactivate",
    "deactivate_allocation",
    "disburse",
    "is_active",
    "new_distribution",
    "register_allocation",
    "split",
    "vested_amount",
]
