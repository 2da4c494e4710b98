# src/pangi/engine/staking.py
from __future__ import annotations

"""Time-locked staking rewards.

A stake locks principal for one of a fixed set of durations; the APY tier is
looked up at open time and never changes for that stake. Rewards accrue per
whole day elapsed (simple interest, floor), and exiting before unlock_at
forfeits EARLY_UNLOCK_PENALTY_BPS of the proportional reward.

Stakes live in one vault. A deactivated vault refuses deposits and claims
but always lets owners take their principal out.
"""

from dataclasses import replace
from typing import Mapping, Optional, Tuple

from pangi.ledger.constants import (
    CLAIM_COOLDOWN_SECONDS,
    DAYS_PER_YEAR,
    DEPOSIT_COOLDOWN_SECONDS,
    EARLY_UNLOCK_PENALTY_BPS,
    MAX_STAKE_AMOUNT,
    MIN_STAKE_AMOUNT,
    SECONDS_PER_DAY,
    STAKING_APY_BPS,
)
from pangi.ledger.fixed_point import basis_points, checked_add, checked_sub, mul_div_floor
from pangi.ledger.types import EarlyUnlockQuote, StakeRecord, VaultConfig
from pangi.runtime.errors import EngineError


def apy_for(lock_duration_days: int, table: Optional[Mapping[int, int]] = None) -> int:
    t = STAKING_APY_BPS if table is None else table
    d = int(lock_duration_days)
    if d not in t:
        raise EngineError(
            "UnsupportedLockDuration",
            "lock_duration_not_offered",
            {"lock_duration_days": d, "supported": sorted(int(k) for k in t)},
        )
    return int(t[d])


def accrued(amount: int, apy_bps: int, days_elapsed: int) -> int:
    """floor(floor(amount * apy / 10000) * days / 365)."""
    return mul_div_floor(basis_points(amount, apy_bps), days_elapsed, DAYS_PER_YEAR)


def early_unlock(
    amount: int,
    apy_bps: int,
    days_elapsed: int,
    lock_duration_days: int,
    *,
    penalty_bps: int = EARLY_UNLOCK_PENALTY_BPS,
) -> EarlyUnlockQuote:
    lock_days = int(lock_duration_days)
    if lock_days <= 0:
        raise EngineError("InvalidArgument", "lock_duration_must_be_positive", {"lock_duration_days": lock_days})
    days = min(max(int(days_elapsed), 0), lock_days)

    total_potential = basis_points(amount, apy_bps)
    proportional = mul_div_floor(total_potential, days, lock_days)
    penalty = basis_points(proportional, penalty_bps)
    return EarlyUnlockQuote(
        total_potential=total_potential,
        proportional=proportional,
        penalty=penalty,
        payout=proportional - penalty,
    )


def _whole_days(start: int, now: int) -> int:
    return max(int(now) - int(start), 0) // SECONDS_PER_DAY


def open_stake(
    *,
    owner: str,
    amount: int,
    lock_duration_days: int,
    now: int,
    stake_id: str = "",
    balance: Optional[int] = None,
    apy_table: Optional[Mapping[int, int]] = None,
    min_amount: int = MIN_STAKE_AMOUNT,
    max_amount: int = MAX_STAKE_AMOUNT,
) -> StakeRecord:
    amt = int(amount)
    if amt < int(min_amount):
        raise EngineError("AmountTooSmall", "stake_below_minimum", {"amount": amt, "min": int(min_amount)})
    if amt > int(max_amount):
        raise EngineError("AmountTooLarge", "stake_above_maximum", {"amount": amt, "max": int(max_amount)})
    if balance is not None and int(balance) < amt:
        raise EngineError("InsufficientBalance", "balance_below_stake", {"amount": amt, "balance": int(balance)})

    apy = apy_for(lock_duration_days, apy_table)
    return StakeRecord(
        owner=str(owner),
        amount=amt,
        lock_duration_days=int(lock_duration_days),
        staked_at=int(now),
        apy_bps=apy,
        active=True,
        stake_id=str(stake_id),
        last_claim=int(now),
        total_claimed=0,
        last_deposit=int(now),
    )


def _require_owner_active(stake: StakeRecord, caller: str) -> None:
    # an ownerless record matches nobody, not an unsigned caller
    if not stake.owner or str(caller) != stake.owner:
        raise EngineError("Unauthorized", "caller_is_not_stake_owner", {"caller": caller, "stake_id": stake.stake_id})
    if not stake.active:
        raise EngineError("StakeInactive", "stake_closed", {"stake_id": stake.stake_id})


def top_up(
    stake: StakeRecord,
    caller: str,
    amount: int,
    now: int,
    *,
    balance: Optional[int] = None,
    min_amount: int = MIN_STAKE_AMOUNT,
    max_amount: int = MAX_STAKE_AMOUNT,
    cooldown_seconds: int = DEPOSIT_COOLDOWN_SECONDS,
) -> StakeRecord:
    """Add principal to an open stake.

    The lock, the APY and the reward clock are unchanged; the added amount
    accrues from the stake's existing last_claim.
    """
    _require_owner_active(stake, caller)
    t = int(now)
    if t < stake.last_deposit + int(cooldown_seconds):
        raise EngineError(
            "DepositCooldownActive",
            "deposit_cooldown_active",
            {"stake_id": stake.stake_id, "next_deposit_at": stake.last_deposit + int(cooldown_seconds)},
        )

    amt = int(amount)
    if amt < int(min_amount):
        raise EngineError("AmountTooSmall", "stake_below_minimum", {"amount": amt, "min": int(min_amount)})
    total = checked_add(stake.amount, amt)
    if total > int(max_amount):
        raise EngineError("AmountTooLarge", "stake_above_maximum", {"amount": total, "max": int(max_amount)})
    if balance is not None and int(balance) < amt:
        raise EngineError("InsufficientBalance", "balance_below_stake", {"amount": amt, "balance": int(balance)})

    return replace(stake, amount=total, last_deposit=t)


def claim(
    stake: StakeRecord,
    caller: str,
    now: int,
    *,
    cooldown_seconds: int = CLAIM_COOLDOWN_SECONDS,
) -> Tuple[int, StakeRecord]:
    """Pay rewards accrued since last_claim. Returns (reward, stake')."""
    _require_owner_active(stake, caller)
    t = int(now)
    if t < stake.unlock_at:
        raise EngineError("StillLocked", "lock_period_not_elapsed", {"stake_id": stake.stake_id, "unlock_at": stake.unlock_at})
    if t < stake.last_claim + int(cooldown_seconds):
        raise EngineError(
            "ClaimCooldownActive",
            "claim_cooldown_active",
            {"stake_id": stake.stake_id, "next_claim_at": stake.last_claim + int(cooldown_seconds)},
        )

    reward = accrued(stake.amount, stake.apy_bps, _whole_days(stake.last_claim, t))
    if reward <= 0:
        raise EngineError("NoRewardsToClaim", "nothing_accrued_since_last_claim", {"stake_id": stake.stake_id})

    return reward, replace(stake, last_claim=t, total_claimed=checked_add(stake.total_claimed, reward))


def _exit_reward(stake: StakeRecord, principal: int, now: int, penalty_bps: int) -> Tuple[int, int]:
    """(reward, penalty) owed on `principal` leaving the stake at `now`."""
    if now < stake.unlock_at:
        q = early_unlock(
            principal,
            stake.apy_bps,
            _whole_days(stake.staked_at, now),
            stake.lock_duration_days,
            penalty_bps=penalty_bps,
        )
        return q.payout, q.penalty
    return accrued(principal, stake.apy_bps, _whole_days(stake.last_claim, now)), 0


def withdraw(
    stake: StakeRecord,
    caller: str,
    amount: int,
    now: int,
    *,
    penalty_bps: int = EARLY_UNLOCK_PENALTY_BPS,
) -> Tuple[int, int, StakeRecord]:
    """Take part of the principal out. Returns (reward, penalty, stake').

    The reward is computed on the withdrawn amount only, the same way close()
    computes it for the whole stake. The remainder keeps its lock and its
    reward clock. Withdrawing everything closes the stake.
    """
    _require_owner_active(stake, caller)
    t = int(now)
    amt = int(amount)
    if amt <= 0:
        raise EngineError("AmountTooSmall", "withdraw_amount_must_be_positive", {"amount": amt})
    if amt > stake.amount:
        raise EngineError("InsufficientStake", "withdraw_exceeds_stake", {"amount": amt, "staked": stake.amount})

    reward, penalty = _exit_reward(stake, amt, t, penalty_bps)
    remaining = checked_sub(stake.amount, amt)
    out = replace(
        stake,
        amount=remaining,
        active=remaining > 0,
        total_claimed=checked_add(stake.total_claimed, reward),
    )
    return reward, penalty, out


def close(
    stake: StakeRecord,
    caller: str,
    now: int,
    *,
    penalty_bps: int = EARLY_UNLOCK_PENALTY_BPS,
) -> Tuple[int, int, int, StakeRecord]:
    """Unstake. Returns (principal, reward, penalty, stake').

    Early exit pays the early_unlock payout. At or after unlock_at the
    outstanding reward since last_claim is paid with no penalty.
    """
    _require_owner_active(stake, caller)
    t = int(now)
    reward, penalty = _exit_reward(stake, stake.amount, t, penalty_bps)

    closed = replace(
        stake,
        active=False,
        last_claim=t,
        total_claimed=checked_add(stake.total_claimed, reward),
    )
    return stake.amount, reward, penalty, closed


# ---------------------------------------------------------------------------
# Vault
# ---------------------------------------------------------------------------


def new_vault(*, authority: str, now: int) -> VaultConfig:
    if not str(authority or "").strip():
        raise EngineError("Unauthorized", "vault_needs_authority", {})
    return VaultConfig(authority=str(authority), created_at=int(now))


def require_vault_active(vault: VaultConfig) -> None:
    if not vault.is_active:
        raise EngineError("VaultInactive", "vault_deactivated", {"authority": vault.authority})


def deactivate_vault(vault: VaultConfig) -> VaultConfig:
    require_vault_active(vault)
    return replace(vault, is_active=False)


def vault_deposit(vault: VaultConfig, amount: int) -> VaultConfig:
    return replace(vault, total_staked=checked_add(vault.total_staked, amount))


def vault_release(vault: VaultConfig, amount: int, penalty: int) -> VaultConfig:
    """Principal leaves the vault; any early-unlock penalty stays in the pool."""
    return replace(
        vault,
        total_staked=checked_sub(vault.total_staked, amount),
        total_penalties_collected=checked_add(vault.total_penalties_collected, penalty),
    )


__all__ = [
    "accrued",
    "apy_for",
    "claim",
    "close",
    "deactivate_vault",
    "early_unlock",
    "new_vault",
    "open_stake",
    "require_vault_active",
    "top_up",
    "vault_deposit",
    "vault_release",
    "withdraw",
]
