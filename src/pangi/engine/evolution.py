# src/pangi/engine/evolution.py
from __future__ import annotations

"""Hatchling evolution state machine.

Ten ordered stages (EVOLUTION_LADDER); transitions only move forward, one
step at a time, gated by a per-NFT cooldown fixed at creation.

can_evolve() answers the cooldown question only. The ladder boundary is a
separate precondition enforced by evolve(), which rejects with
MaxEvolutionReached instead of clamping.
"""

from dataclasses import replace

from pangi.ledger.constants import (
    EVOLUTION_BASE_REWARD,
    EVOLUTION_GROWTH_DEN,
    EVOLUTION_GROWTH_NUM,
    EVOLUTION_LADDER,
    MAX_EVOLUTION_COOLDOWN,
    MAX_EVOLUTION_INDEX,
    MIN_EVOLUTION_COOLDOWN,
)
from pangi.ledger.fixed_point import checked_add, pow_ratio_floor
from pangi.ledger.types import Hatchling, NftGlobalConfig
from pangi.runtime.errors import EngineError


def _clamp_index(evolution_count: int) -> int:
    n = int(evolution_count)
    if n < 0:
        raise EngineError("InvalidArgument", "negative_evolution_count", {"evolution_count": n})
    return min(n, MAX_EVOLUTION_INDEX)


def stage_name(evolution_count: int) -> str:
    """Saturating ladder lookup: any index past the top maps to the terminal stage."""
    return EVOLUTION_LADDER[_clamp_index(evolution_count)]


def reward_for(evolution_count: int) -> int:
    """floor(1000 * 1.5**n), n clamped to the terminal index."""
    return pow_ratio_floor(
        EVOLUTION_BASE_REWARD,
        EVOLUTION_GROWTH_NUM,
        EVOLUTION_GROWTH_DEN,
        _clamp_index(evolution_count),
    )


def can_evolve(h: Hatchling, now: int) -> bool:
    return int(now) >= int(h.last_evolution_timestamp) + int(h.evolution_cooldown)


def time_until_evolution(h: Hatchling, now: int) -> int:
    return max(0, int(h.last_evolution_timestamp) + int(h.evolution_cooldown) - int(now))


def evolve(h: Hatchling, now: int) -> Hatchling:
    if h.is_locked:
        raise EngineError("HatchlingLocked", "hatchling_is_locked", {"nft_mint": h.nft_mint})
    if h.evolution_count >= MAX_EVOLUTION_INDEX:
        raise EngineError(
            "MaxEvolutionReached",
            "terminal_stage",
            {"nft_mint": h.nft_mint, "stage": h.stage},
        )
    if not can_evolve(h, now):
        raise EngineError(
            "CooldownActive",
            "evolution_cooldown_active",
            {"nft_mint": h.nft_mint, "remaining_s": time_until_evolution(h, now)},
        )

    n = h.evolution_count + 1
    return replace(h, evolution_count=n, stage=EVOLUTION_LADDER[n], last_evolution_timestamp=int(now))


def validate_cooldown(
    evolution_cooldown: int,
    *,
    min_cooldown: int = MIN_EVOLUTION_COOLDOWN,
    max_cooldown: int = MAX_EVOLUTION_COOLDOWN,
) -> int:
    c = int(evolution_cooldown)
    if c < int(min_cooldown):
        raise EngineError("CooldownTooShort", "cooldown_below_minimum", {"cooldown": c, "min": int(min_cooldown)})
    if c > int(max_cooldown):
        raise EngineError("CooldownTooLong", "cooldown_above_maximum", {"cooldown": c, "max": int(max_cooldown)})
    return c


def new_hatchling(
    collection: NftGlobalConfig,
    *,
    nft_mint: str,
    authority: str,
    evolution_cooldown: int,
    now: int,
    min_cooldown: int = MIN_EVOLUTION_COOLDOWN,
    max_cooldown: int = MAX_EVOLUTION_COOLDOWN,
) -> tuple[Hatchling, NftGlobalConfig]:
    """Mint-time record creation. Returns (hatchling, collection')."""
    if collection.mint_paused:
        raise EngineError("MintPaused", "collection_mint_paused", {"nft_mint": nft_mint})
    if collection.total_minted >= collection.max_supply:
        raise EngineError(
            "MaxSupplyReached",
            "collection_full",
            {"total_minted": collection.total_minted, "max_supply": collection.max_supply},
        )
    cooldown = validate_cooldown(evolution_cooldown, min_cooldown=min_cooldown, max_cooldown=max_cooldown)

    h = Hatchling(
        nft_mint=str(nft_mint),
        authority=str(authority),
        evolution_count=0,
        last_evolution_timestamp=int(now),
        evolution_cooldown=cooldown,
    )
    return h, replace(collection, total_minted=checked_add(collection.total_minted, 1))


def lock(h: Hatchling) -> Hatchling:
    if h.is_locked:
        raise EngineError("AlreadyLocked", "hatchling_already_locked", {"nft_mint": h.nft_mint})
    return replace(h, is_locked=True)


def unlock(h: Hatchling) -> Hatchling:
    if not h.is_locked:
        raise EngineError("NotLocked", "hatchling_not_locked", {"nft_mint": h.nft_mint})
    return replace(h, is_locked=False)


__all__ = [
    "can_evolve",
    "evolve",
    "lock",
    "new_hatchling",
    "reward_for",
    "stage_name",
    "time_until_evolution",
    "unlock",
    "validate_cooldown",
]
