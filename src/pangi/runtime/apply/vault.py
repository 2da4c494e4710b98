# src/pangi/runtime/apply/vault.py
from __future__ import annotations

from typing import Any, Dict, Optional

from pangi.engine.staking import (
    claim,
    close,
    deactivate_vault,
    new_vault,
    open_stake,
    require_vault_active,
    top_up,
    vault_deposit,
    vault_release,
    withdraw,
)
from pangi.ledger.types import StakeRecord, VaultConfig
from pangi.runtime.engine_config import EngineConfig
from pangi.runtime.errors import EngineError
from pangi.runtime.ix_schema import StakePayload, StakeRefPayload, WithdrawStakePayload, parse_payload
from pangi.runtime.ix_types import IxEnvelope

Json = Dict[str, Any]

VAULT_IX_TYPES = frozenset(
    {
        "INITIALIZE_VAULT",
        "DEACTIVATE_VAULT",
        "STAKE",
        "CLAIM_REWARDS",
        "WITHDRAW_STAKE",
        "UNSTAKE",
    }
)


def _load_vault(snapshot: Json) -> VaultConfig:
    raw = snapshot.get("vault")
    if not isinstance(raw, dict):
        raise EngineError("MissingRecord", "vault_not_initialized", {"key": "vault"})
    return VaultConfig.from_json(raw)


def _load_stake(snapshot: Json, stake_id: str) -> StakeRecord:
    raw = snapshot["stakes"].get(stake_id)
    if not isinstance(raw, dict):
        raise EngineError("MissingRecord", "stake_not_found", {"stake_id": stake_id})
    return StakeRecord.from_json(raw)


def _apply_initialize_vault(snapshot: Json, env: IxEnvelope, cfg: EngineConfig) -> Json:
    parse_payload(env.ix_type, env.payload)
    if snapshot.get("vault") is not None:
        raise EngineError("RecordExists", "vault_already_initialized", {"key": "vault"})

    v = new_vault(authority=env.signer, now=env.now)
    snapshot["vault"] = v.to_json()
    return {"applied": "INITIALIZE_VAULT", "vault": v.to_json()}


def _apply_deactivate_vault(snapshot: Json, env: IxEnvelope, cfg: EngineConfig) -> Json:
    parse_payload(env.ix_type, env.payload)
    v = _load_vault(snapshot)
    if not v.authority or env.signer != v.authority:
        raise EngineError("Unauthorized", "signer_is_not_vault_authority", {"signer": env.signer})

    snapshot["vault"] = deactivate_vault(v).to_json()
    return {"applied": "DEACTIVATE_VAULT"}


def _apply_stake(snapshot: Json, env: IxEnvelope, cfg: EngineConfig) -> Json:
    p: StakePayload = parse_payload(env.ix_type, env.payload)  # type: ignore[assignment]
    v = _load_vault(snapshot)
    require_vault_active(v)

    if p.stake_id in snapshot["stakes"]:
        # an existing id is a top-up of that stake
        prev = _load_stake(snapshot, p.stake_id)
        if p.lock_duration_days != prev.lock_duration_days:
            raise EngineError(
                "InvalidArgument",
                "lock_duration_mismatch",
                {"stake_id": p.stake_id, "lock_duration_days": prev.lock_duration_days},
            )
        rec = top_up(
            prev,
            env.signer,
            p.amount,
            env.now,
            balance=p.balance,
            min_amount=cfg.min_stake_amount,
            max_amount=cfg.max_stake_amount,
            cooldown_seconds=cfg.deposit_cooldown_seconds,
        )
        top_up_applied = True
    else:
        rec = open_stake(
            owner=env.signer,
            amount=p.amount,
            lock_duration_days=p.lock_duration_days,
            now=env.now,
            stake_id=p.stake_id,
            balance=p.balance,
            apy_table=cfg.apy_table,
            min_amount=cfg.min_stake_amount,
            max_amount=cfg.max_stake_amount,
        )
        top_up_applied = False

    v2 = vault_deposit(v, p.amount)
    snapshot["stakes"][rec.stake_id] = rec.to_json()
    snapshot["vault"] = v2.to_json()
    return {"applied": "STAKE", "top_up": top_up_applied, "stake": rec.to_json(), "total_staked": v2.total_staked}


def _apply_claim_rewards(snapshot: Json, env: IxEnvelope, cfg: EngineConfig) -> Json:
    p: StakeRefPayload = parse_payload(env.ix_type, env.payload)  # type: ignore[assignment]
    rec = _load_stake(snapshot, p.stake_id)
    require_vault_active(_load_vault(snapshot))

    reward, rec2 = claim(rec, env.signer, env.now, cooldown_seconds=cfg.claim_cooldown_seconds)
    snapshot["stakes"][rec2.stake_id] = rec2.to_json()
    return {"applied": "CLAIM_REWARDS", "stake_id": rec2.stake_id, "amount": reward, "total_claimed": rec2.total_claimed}


def _apply_withdraw_stake(snapshot: Json, env: IxEnvelope, cfg: EngineConfig) -> Json:
    p: WithdrawStakePayload = parse_payload(env.ix_type, env.payload)  # type: ignore[assignment]
    rec = _load_stake(snapshot, p.stake_id)
    v = _load_vault(snapshot)

    reward, penalty, rec2 = withdraw(rec, env.signer, p.amount, env.now, penalty_bps=cfg.early_unlock_penalty_bps)
    snapshot["stakes"][rec2.stake_id] = rec2.to_json()
    snapshot["vault"] = vault_release(v, p.amount, penalty).to_json()
    return {
        "applied": "WITHDRAW_STAKE",
        "stake_id": rec2.stake_id,
        "amount": p.amount,
        "payout": reward,
        "penalty": penalty,
        "remaining": rec2.amount,
        "early": env.now < rec.unlock_at,
    }


def _apply_unstake(snapshot: Json, env: IxEnvelope, cfg: EngineConfig) -> Json:
    p: StakeRefPayload = parse_payload(env.ix_type, env.payload)  # type: ignore[assignment]
    rec = _load_stake(snapshot, p.stake_id)
    v = _load_vault(snapshot)

    principal, reward, penalty, rec2 = close(rec, env.signer, env.now, penalty_bps=cfg.early_unlock_penalty_bps)
    snapshot["stakes"][rec2.stake_id] = rec2.to_json()
    snapshot["vault"] = vault_release(v, principal, penalty).to_json()
    return {
        "applied": "UNSTAKE",
        "stake_id": rec2.stake_id,
        "principal": principal,
        "payout": reward,
        "penalty": penalty,
        "early": env.now < rec.unlock_at,
    }


def apply_vault(snapshot: Json, env: IxEnvelope, cfg: EngineConfig) -> Optional[Json]:
    t = env.ix_type
    if t not in VAULT_IX_TYPES:
        return None

    if t == "INITIALIZE_VAULT":
        return _apply_initialize_vault(snapshot, env, cfg)
    if t == "DEACTIVATE_VAULT":
        return _apply_deactivate_vault(snapshot, env, cfg)
    if t == "STAKE":
        return _apply_stake(snapshot, env, cfg)
    if t == "CLAIM_REWARDS":
        return _apply_claim_rewards(snapshot, env, cfg)
    if t == "WITHDRAW_STAKE":
        return _apply_withdraw_stake(snapshot, env, cfg)
    if t == "UNSTAKE":
        return _apply_unstake(snapshot, env, cfg)

    return None


__all__ = ["VAULT_IX_TYPES", "apply_vault"]
