# tests/test_dispatch.py
from __future__ import annotations

import copy
import json
import logging
from typing import Any, Dict

import pytest

from pangi.ledger.constants import SCALES_PER_PANGI, SECONDS_PER_DAY
from pangi.runtime.dispatch import apply_ix
from pangi.runtime.engine_config import default_engine_config
from pangi.runtime.errors import EngineError
from pangi.runtime.ix_types import IxEnvelope

Json = Dict[str, Any]

T0 = 1_700_000_000
CFG = default_engine_config()


def _ix(ix_type: str, payload: Json, *, signer: str = "admin", now: int = T0) -> Json:
    return {"ix_type": ix_type, "signer": signer, "now": now, "payload": payload}


def _run(snapshot: Json, ix_type: str, payload: Json, **kw: Any):
    return apply_ix(snapshot, _ix(ix_type, payload, **kw), config=CFG)


def _rejects(snapshot: Json, ix_type: str, payload: Json, **kw: Any) -> EngineError:
    before = copy.deepcopy(snapshot)
    with pytest.raises(EngineError) as e:
        _run(snapshot, ix_type, payload, **kw)
    # a rejected instruction never touches the caller's snapshot
    assert snapshot == before
    return e.value


def _with_tax(**payload: Any) -> Json:
    body = {"conservation_fund_account": "fund"}
    body.update(payload)
    st, _ = _run({}, "INITIALIZE_TAX_CONFIG", body)
    return st


# ---------------------------------------------------------------------------
# Fail-closed routing
# ---------------------------------------------------------------------------


def test_unknown_instruction_fails_closed() -> None:
    err = _rejects({}, "MINT_FREE_TOKENS", {})
    assert err.code == "UnknownInstruction"


def test_missing_ix_type_fails_closed() -> None:
    with pytest.raises(EngineError) as e:
        apply_ix({}, {"signer": "admin", "now": T0, "payload": {}}, config=CFG)
    assert e.value.code == "UnknownInstruction"


def test_malformed_envelope_is_invalid_payload() -> None:
    with pytest.raises(EngineError) as e:
        apply_ix({}, {"ix_type": "STAKE", "now": "yesterday"}, config=CFG)
    assert e.value.code == "InvalidPayload"


def test_schema_rejection_happens_before_apply() -> None:
    err = _rejects({}, "INITIALIZE_TAX_CONFIG", {"conservation_fund_account": "fund", "bonus": 1})
    assert err.code == "InvalidPayload"


def test_malformed_snapshot_is_invalid_argument() -> None:
    with pytest.raises(EngineError) as e:
        apply_ix([], _ix("DEACTIVATE_DISTRIBUTION", {}), config=CFG)  # type: ignore[arg-type]
    assert (e.value.code, e.value.reason) == ("InvalidArgument", "malformed_snapshot")

    with pytest.raises(EngineError) as e:
        apply_ix({"hatchlings": []}, _ix("EVOLVE_HATCHLING", {"nft_mint": "h1"}), config=CFG)
    assert e.value.code == "InvalidArgument"

    with pytest.raises(EngineError) as e:
        apply_ix({"vault": "open"}, _ix("INITIALIZE_VAULT", {}), config=CFG)
    assert e.value.code == "InvalidArgument"


def test_unsigned_instruction_is_unauthorized() -> None:
    for signer in ("", "   "):
        err = _rejects({}, "INITIALIZE_TAX_CONFIG", {"conservation_fund_account": "fund"}, signer=signer)
        assert (err.code, err.reason) == ("Unauthorized", "missing_signer")

    with pytest.raises(EngineError) as e:
        apply_ix({}, {"ix_type": "INITIALIZE_VAULT", "now": T0, "payload": {}}, config=CFG)
    assert e.value.code == "Unauthorized"


def test_record_without_authority_accepts_no_signer() -> None:
    st = _with_tax()
    st["tax_config"]["authority"] = ""
    assert _rejects(st, "UPDATE_TAX_CONFIG", {"p2p_rate_bps": 1_000}).code == "Unauthorized"

    st = _with_hatchling()
    del st["hatchlings"]["h1"]["authority"]
    assert _rejects(st, "LOCK_HATCHLING", {"nft_mint": "h1"}, signer="alice").code == "Unauthorized"

    st = _with_distribution()
    st["distribution"]["authority"] = ""
    assert _rejects(st, "DEACTIVATE_DISTRIBUTION", {}).code == "Unauthorized"

    st = _with_stake()
    st["stakes"]["s1"]["owner"] = ""
    assert _rejects(st, "UNSTAKE", {"stake_id": "s1"}, signer="alice").code == "Unauthorized"

    st = _with_vault()
    st["vault"]["authority"] = ""
    assert _rejects(st, "DEACTIVATE_VAULT", {}).code == "Unauthorized"


def test_envelope_object_accepted() -> None:
    env = IxEnvelope(ix_type="INITIALIZE_TAX_CONFIG", signer="admin", now=T0, payload={"conservation_fund_account": "fund"})
    st, receipt = apply_ix({}, env, config=CFG)
    assert receipt["applied"] == "INITIALIZE_TAX_CONFIG"
    assert st["tax_config"]["authority"] == "admin"


def test_config_loaded_from_env_when_not_passed(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    p = tmp_path / "engine.json"
    p.write_text(json.dumps({"p2p_rate_bps": 300}), encoding="utf-8")
    monkeypatch.setenv("PANGI_ENGINE_CONFIG_PATH", str(p))

    st, _ = apply_ix({}, _ix("INITIALIZE_TAX_CONFIG", {"conservation_fund_account": "fund"}))
    assert st["tax_config"]["p2p_rate_bps"] == 300


def test_dispatch_logs_applied_and_rejected(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="pangi.dispatch"):
        st = _with_tax()
        with pytest.raises(EngineError):
            _run(st, "INITIALIZE_TAX_CONFIG", {"conservation_fund_account": "fund"})

    events = [json.loads(r.getMessage()) for r in caplog.records if r.name == "pangi.dispatch"]
    assert [e["event"] for e in events] == ["ix_applied", "ix_rejected"]
    assert events[1]["code"] == "RecordExists"
    assert events[1]["ix_type"] == "INITIALIZE_TAX_CONFIG"


# ---------------------------------------------------------------------------
# Token
# ---------------------------------------------------------------------------


def test_initialize_tax_config_uses_configured_defaults() -> None:
    st, receipt = _run({}, "INITIALIZE_TAX_CONFIG", {"conservation_fund_account": "fund"})
    tc = st["tax_config"]
    assert (tc["p2p_rate_bps"], tc["exchange_rate_bps"], tc["whale_rate_bps"]) == (100, 50, 200)
    assert tc["whale_threshold"] == 10_000 * SCALES_PER_PANGI
    assert tc["authority"] == "admin"
    assert receipt["tax_config"] == tc

    assert _rejects(st, "INITIALIZE_TAX_CONFIG", {"conservation_fund_account": "fund"}).code == "RecordExists"


def test_tax_rate_cap() -> None:
    assert _rejects({}, "INITIALIZE_TAX_CONFIG", {"conservation_fund_account": "f", "whale_rate_bps": 1_001}).code == "TaxRateTooHigh"

    st = _with_tax()
    assert _rejects(st, "UPDATE_TAX_CONFIG", {"p2p_rate_bps": 5_000}).code == "TaxRateTooHigh"
    assert _rejects(st, "UPDATE_TAX_CONFIG", {"whale_threshold": 0}).code == "InvalidWhaleThreshold"


def test_update_tax_config_is_authority_gated() -> None:
    st = _with_tax()
    assert _rejects(st, "UPDATE_TAX_CONFIG", {"p2p_rate_bps": 10}, signer="mallory").code == "Unauthorized"

    st2, receipt = _run(st, "UPDATE_TAX_CONFIG", {"p2p_rate_bps": 10}, now=T0 + 5)
    assert st2["tax_config"]["p2p_rate_bps"] == 10
    assert st2["tax_config"]["last_updated"] == T0 + 5
    assert receipt["changed"] == ["p2p_rate_bps"]
    # caller's snapshot untouched
    assert st["tax_config"]["p2p_rate_bps"] == 100


def test_transfer_requires_tax_config() -> None:
    assert _rejects({}, "TRANSFER_WITH_TAX", {"amount": 1_000}).code == "MissingRecord"


def test_transfer_quotes() -> None:
    st = _with_tax(whale_threshold=10_000_000)

    _, r = _run(st, "TRANSFER_WITH_TAX", {"amount": 1_000, "recipient": "bob"}, signer="alice")
    assert (r["classification"], r["tax"], r["net"]) == ("PeerToPeer", 10, 990)
    assert r["tax_recipient"] == "fund"
    assert r["sender"] == "alice"

    _, r = _run(st, "TRANSFER_WITH_TAX", {"amount": 15_000_000})
    assert (r["classification"], r["tax"], r["net"]) == ("LargeWhale", 300_000, 14_700_000)

    _, r = _run(st, "TRANSFER_WITH_TAX", {"amount": 20_000_000, "is_conservation_reward": True})
    assert (r["classification"], r["tax"], r["tax_recipient"]) == ("ConservationReward", 0, None)

    _, r = _run(st, "TRANSFER_WITH_TAX", {"amount": 1})
    assert (r["tax"], r["net"]) == (0, 1)


def test_transfer_is_idempotent_and_stateless() -> None:
    st = _with_tax()
    st1, r1 = _run(st, "TRANSFER_WITH_TAX", {"amount": 123_456_789})
    st2, r2 = _run(st, "TRANSFER_WITH_TAX", {"amount": 123_456_789})
    assert r1 == r2
    assert st1 == st2 == st


def test_transfer_rejections() -> None:
    st = _with_tax()
    assert _rejects(st, "TRANSFER_WITH_TAX", {"amount": 0}).code == "AmountTooSmall"
    assert _rejects(st, "TRANSFER_WITH_TAX", {"amount": CFG.max_transfer_amount + 1}).code == "AmountTooLarge"
    assert _rejects(st, "TRANSFER_WITH_TAX", {"amount": 1_000, "sender_balance": 999}).code == "InsufficientBalance"
    assert _rejects(st, "TRANSFER_WITH_TAX", {"amount": 1_000, "max_tax_amount": 9}).code == "SlippageExceeded"

    _, r = _run(st, "TRANSFER_WITH_TAX", {"amount": 1_000, "max_tax_amount": 10})
    assert r["tax"] == 10


def test_transfer_per_transfer_tax_cap() -> None:
    st = _with_tax()
    st["tax_config"]["max_tax_per_transfer"] = 5
    assert _rejects(st, "TRANSFER_WITH_TAX", {"amount": 1_000}).code == "TaxTooHigh"


def test_transfer_nothing_left_after_tax() -> None:
    st = _with_tax()
    st["tax_config"]["p2p_rate_bps"] = 10_000
    assert _rejects(st, "TRANSFER_WITH_TAX", {"amount": 1}).code == "InsufficientAmountAfterTax"


# ---------------------------------------------------------------------------
# NFT
# ---------------------------------------------------------------------------


def _with_hatchling() -> Json:
    st, _ = _run({}, "INITIALIZE_NFT_COLLECTION", {})
    st, _ = _run(st, "INITIALIZE_HATCHLING", {"nft_mint": "h1", "evolution_cooldown": 3_600}, signer="alice")
    return st


def test_hatchling_lifecycle() -> None:
    st = _with_hatchling()
    assert st["nft_global"]["total_minted"] == 1
    assert st["hatchlings"]["h1"]["stage"] == "Hatchling"

    assert _rejects(st, "EVOLVE_HATCHLING", {"nft_mint": "h1"}, signer="alice", now=T0 + 10).code == "CooldownActive"
    assert _rejects(st, "EVOLVE_HATCHLING", {"nft_mint": "h1"}, signer="bob", now=T0 + 3_600).code == "Unauthorized"
    assert _rejects(st, "EVOLVE_HATCHLING", {"nft_mint": "nope"}, signer="alice", now=T0 + 3_600).code == "MissingRecord"

    st, r = _run(st, "EVOLVE_HATCHLING", {"nft_mint": "h1"}, signer="alice", now=T0 + 3_600)
    assert (r["from_stage"], r["to_stage"], r["evolution_count"], r["reward"]) == ("Hatchling", "Juvenile", 1, 1_500)
    assert st["hatchlings"]["h1"]["last_evolution_timestamp"] == T0 + 3_600


def test_locked_hatchling_via_dispatch() -> None:
    st = _with_hatchling()
    st, _ = _run(st, "LOCK_HATCHLING", {"nft_mint": "h1"}, signer="alice")
    assert st["hatchlings"]["h1"]["is_locked"] is True
    assert _rejects(st, "EVOLVE_HATCHLING", {"nft_mint": "h1"}, signer="alice", now=T0 + 3_600).code == "HatchlingLocked"
    assert _rejects(st, "LOCK_HATCHLING", {"nft_mint": "h1"}, signer="alice").code == "AlreadyLocked"

    st, _ = _run(st, "UNLOCK_HATCHLING", {"nft_mint": "h1"}, signer="alice")
    assert st["hatchlings"]["h1"]["is_locked"] is False


def test_hatchling_creation_rules() -> None:
    assert _rejects({}, "INITIALIZE_HATCHLING", {"nft_mint": "h1", "evolution_cooldown": 3_600}).code == "MissingRecord"

    st = _with_hatchling()
    assert _rejects(st, "INITIALIZE_HATCHLING", {"nft_mint": "h1", "evolution_cooldown": 3_600}).code == "RecordExists"
    assert _rejects(st, "INITIALIZE_HATCHLING", {"nft_mint": "h2", "evolution_cooldown": 59}).code == "CooldownTooShort"

    paused, _ = _run({}, "INITIALIZE_NFT_COLLECTION", {"mint_paused": True})
    assert _rejects(paused, "INITIALIZE_HATCHLING", {"nft_mint": "h1", "evolution_cooldown": 3_600}).code == "MintPaused"

    assert _rejects({}, "INITIALIZE_NFT_COLLECTION", {"max_supply": CFG.max_total_nfts + 1}).code == "AmountTooLarge"


# ---------------------------------------------------------------------------
# Distribution
# ---------------------------------------------------------------------------

START = T0 + 60
END = START + 30 * SECONDS_PER_DAY


def _with_distribution(total: int = 10_000_000) -> Json:
    st, _ = _run(
        {},
        "INITIALIZE_DISTRIBUTION",
        {"distribution_start": START, "distribution_end": END, "total_supply": total},
    )
    return st


def test_distribute_to_vault() -> None:
    st = _with_distribution()
    assert _rejects(st, "DISTRIBUTE_TO_VAULT", {"amount": 1_000_000}, now=START - 1).code == "DistributionNotStarted"
    assert _rejects(st, "DISTRIBUTE_TO_VAULT", {"amount": 1_000_000}, now=END + 1).code == "DistributionEnded"
    assert _rejects(st, "DISTRIBUTE_TO_VAULT", {"amount": 1_000_000}, signer="mallory", now=START).code == "Unauthorized"
    assert _rejects(st, "DISTRIBUTE_TO_VAULT", {"amount": 10_000_001}, now=START).code == "InsufficientDistributionFunds"

    st, r = _run(st, "DISTRIBUTE_TO_VAULT", {"amount": 1_000_000, "vault": "v1"}, now=START)
    assert r["allocation"] == {"burned": 500_000, "vested": 250_000, "liquid": 250_000}
    assert r["total_distributed"] == 1_000_000
    assert st["distribution"]["distributed_amount"] == 1_000_000


def test_distribution_window_must_be_valid() -> None:
    err = _rejects({}, "INITIALIZE_DISTRIBUTION", {"distribution_start": T0 - 1, "distribution_end": END})
    assert err.code == "InvalidDistributionWindow"

    st, r = _run({}, "INITIALIZE_DISTRIBUTION", {"distribution_start": START, "distribution_end": END})
    assert r["distribution"]["total_supply"] == 63_000_000 * SCALES_PER_PANGI


def test_special_nft_allocation_flow() -> None:
    st = _with_distribution()
    st, r = _run(st, "REGISTER_SPECIAL_NFT", {"nft_mint": "s1", "owner": "alice", "allocation": 3_000_000})
    assert r["nft_count"] == 1
    assert _rejects(st, "REGISTER_SPECIAL_NFT", {"nft_mint": "s1", "owner": "alice", "allocation": 1}).code == "RecordExists"

    mid = START + (END - START) // 2
    st, r = _run(st, "CLAIM_ALLOCATION", {"nft_mint": "s1"}, signer="alice", now=mid)
    assert r["amount"] == 1_500_000
    assert st["distribution"]["distributed_amount"] == 1_500_000

    assert _rejects(st, "CLAIM_ALLOCATION", {"nft_mint": "s1"}, signer="bob", now=END).code == "Unauthorized"
    assert _rejects(st, "DEACTIVATE_ALLOCATION", {"nft_mint": "s1"}, signer="alice").code == "Unauthorized"

    st, _ = _run(st, "DEACTIVATE_ALLOCATION", {"nft_mint": "s1"})
    assert _rejects(st, "CLAIM_ALLOCATION", {"nft_mint": "s1"}, signer="alice", now=END).code == "AllocationInactive"


def test_deactivate_distribution_stops_disbursement() -> None:
    st = _with_distribution()
    st, r = _run(st, "DEACTIVATE_DISTRIBUTION", {})
    assert r == {"applied": "DEACTIVATE_DISTRIBUTION"}
    assert _rejects(st, "DISTRIBUTE_TO_VAULT", {"amount": 1}, now=START).code == "DistributionInactive"
    assert _rejects(st, "DEACTIVATE_DISTRIBUTION", {}).code == "DistributionInactive"


# ---------------------------------------------------------------------------
# Vault
# ---------------------------------------------------------------------------

STAKE_AMOUNT = 1_000 * SCALES_PER_PANGI


def _with_vault() -> Json:
    st, _ = _run({}, "INITIALIZE_VAULT", {})
    return st


def _with_stake(days: int = 90) -> Json:
    st, _ = _run(
        _with_vault(),
        "STAKE",
        {"stake_id": "s1", "amount": STAKE_AMOUNT, "lock_duration_days": days},
        signer="alice",
    )
    return st


def test_stake_records_locked_apy() -> None:
    st = _with_stake(90)
    rec = st["stakes"]["s1"]
    assert rec["apy_bps"] == 1_200
    assert rec["owner"] == "alice"
    assert rec["unlock_at"] == T0 + 90 * SECONDS_PER_DAY
    assert st["vault"]["total_staked"] == STAKE_AMOUNT

    vault = _with_vault()
    assert _rejects({}, "STAKE", {"stake_id": "s2", "amount": STAKE_AMOUNT, "lock_duration_days": 30}).code == "MissingRecord"
    assert _rejects(vault, "STAKE", {"stake_id": "s2", "amount": STAKE_AMOUNT, "lock_duration_days": 45}).code == "UnsupportedLockDuration"
    assert _rejects(vault, "STAKE", {"stake_id": "s2", "amount": 10, "lock_duration_days": 30}).code == "AmountTooSmall"
    assert (
        _rejects(vault, "STAKE", {"stake_id": "s2", "amount": STAKE_AMOUNT, "lock_duration_days": 30, "balance": 5}).code
        == "InsufficientBalance"
    )


def test_vault_lifecycle() -> None:
    st = _with_vault()
    assert st["vault"]["authority"] == "admin"
    assert st["vault"]["is_active"] is True
    assert _rejects(st, "INITIALIZE_VAULT", {}).code == "RecordExists"
    assert _rejects({}, "DEACTIVATE_VAULT", {}).code == "MissingRecord"
    assert _rejects(st, "DEACTIVATE_VAULT", {}, signer="mallory").code == "Unauthorized"

    st, r = _run(st, "DEACTIVATE_VAULT", {})
    assert r == {"applied": "DEACTIVATE_VAULT"}
    assert st["vault"]["is_active"] is False
    assert _rejects(st, "DEACTIVATE_VAULT", {}).code == "VaultInactive"


def test_inactive_vault_blocks_deposits_and_claims_not_exits() -> None:
    st = _with_stake(30)
    st, _ = _run(st, "DEACTIVATE_VAULT", {})
    unlock_at = T0 + 30 * SECONDS_PER_DAY

    assert _rejects(st, "STAKE", {"stake_id": "s2", "amount": STAKE_AMOUNT, "lock_duration_days": 30}, signer="bob").code == "VaultInactive"
    assert _rejects(st, "STAKE", {"stake_id": "s1", "amount": STAKE_AMOUNT, "lock_duration_days": 30}, signer="alice", now=T0 + 60).code == "VaultInactive"
    assert _rejects(st, "CLAIM_REWARDS", {"stake_id": "s1"}, signer="alice", now=unlock_at).code == "VaultInactive"

    st2, r = _run(st, "WITHDRAW_STAKE", {"stake_id": "s1", "amount": STAKE_AMOUNT // 2}, signer="alice", now=unlock_at)
    assert r["remaining"] == STAKE_AMOUNT // 2
    st3, r = _run(st2, "UNSTAKE", {"stake_id": "s1"}, signer="alice", now=unlock_at)
    assert r["principal"] == STAKE_AMOUNT // 2
    assert st3["vault"]["total_staked"] == 0


def test_stake_top_up() -> None:
    st = _with_stake(30)
    body = {"stake_id": "s1", "amount": STAKE_AMOUNT, "lock_duration_days": 30}

    assert _rejects(st, "STAKE", body, signer="alice", now=T0 + 59).code == "DepositCooldownActive"
    assert _rejects(st, "STAKE", body, signer="bob", now=T0 + 60).code == "Unauthorized"
    assert _rejects(st, "STAKE", dict(body, lock_duration_days=90), signer="alice", now=T0 + 60).code == "InvalidArgument"

    st, r = _run(st, "STAKE", body, signer="alice", now=T0 + 60)
    assert r["top_up"] is True
    rec = st["stakes"]["s1"]
    assert rec["amount"] == 2 * STAKE_AMOUNT
    assert rec["staked_at"] == T0
    assert rec["unlock_at"] == T0 + 30 * SECONDS_PER_DAY
    assert rec["last_deposit"] == T0 + 60
    assert st["vault"]["total_staked"] == 2 * STAKE_AMOUNT

    assert _rejects(st, "STAKE", body, signer="alice", now=T0 + 119).code == "DepositCooldownActive"


def test_withdraw_stake_partial_early() -> None:
    st = _with_stake(90)
    day45 = T0 + 45 * SECONDS_PER_DAY

    assert _rejects(st, "WITHDRAW_STAKE", {"stake_id": "s1", "amount": 0}, signer="alice", now=day45).code == "AmountTooSmall"
    assert (
        _rejects(st, "WITHDRAW_STAKE", {"stake_id": "s1", "amount": STAKE_AMOUNT + 1}, signer="alice", now=day45).code
        == "InsufficientStake"
    )
    assert _rejects(st, "WITHDRAW_STAKE", {"stake_id": "s1", "amount": 1}, signer="bob", now=day45).code == "Unauthorized"

    st, r = _run(st, "WITHDRAW_STAKE", {"stake_id": "s1", "amount": STAKE_AMOUNT // 2}, signer="alice", now=day45)
    assert r["early"] is True
    # half of the 51 / 9 PANGI split paid on a full early exit at day 45
    assert (r["payout"], r["penalty"]) == (25_500_000_000, 4_500_000_000)
    assert r["remaining"] == STAKE_AMOUNT // 2
    assert st["stakes"]["s1"]["active"] is True
    assert st["vault"]["total_staked"] == STAKE_AMOUNT // 2
    assert st["vault"]["total_penalties_collected"] == 4_500_000_000

    st, r = _run(st, "WITHDRAW_STAKE", {"stake_id": "s1", "amount": STAKE_AMOUNT // 2}, signer="alice", now=day45)
    assert r["remaining"] == 0
    assert st["stakes"]["s1"]["active"] is False
    assert _rejects(st, "UNSTAKE", {"stake_id": "s1"}, signer="alice", now=day45).code == "StakeInactive"


def test_unstake_early_reports_penalty() -> None:
    st = _with_stake(90)
    st2, r = _run(st, "UNSTAKE", {"stake_id": "s1"}, signer="alice", now=T0 + 45 * SECONDS_PER_DAY)
    assert r["early"] is True
    assert r["principal"] == STAKE_AMOUNT
    assert (r["payout"], r["penalty"]) == (51 * SCALES_PER_PANGI, 9 * SCALES_PER_PANGI)
    assert st2["stakes"]["s1"]["active"] is False
    assert st2["vault"]["total_staked"] == 0
    assert st2["vault"]["total_penalties_collected"] == 9 * SCALES_PER_PANGI

    assert _rejects(st2, "UNSTAKE", {"stake_id": "s1"}, signer="alice", now=T0 + 46 * SECONDS_PER_DAY).code == "StakeInactive"
    assert _rejects(st2, "CLAIM_REWARDS", {"stake_id": "s1"}, signer="alice", now=T0 + 100 * SECONDS_PER_DAY).code == "StakeInactive"


def test_claim_rewards_after_unlock() -> None:
    st = _with_stake(30)
    unlock_at = T0 + 30 * SECONDS_PER_DAY
    assert _rejects(st, "CLAIM_REWARDS", {"stake_id": "s1"}, signer="alice", now=unlock_at - 1).code == "StillLocked"
    assert _rejects(st, "CLAIM_REWARDS", {"stake_id": "nope"}, signer="alice", now=unlock_at).code == "MissingRecord"

    st, r = _run(st, "CLAIM_REWARDS", {"stake_id": "s1"}, signer="alice", now=unlock_at)
    assert r["amount"] == (50 * SCALES_PER_PANGI * 30) // 365
    assert r["total_claimed"] == r["amount"]

    assert _rejects(st, "CLAIM_REWARDS", {"stake_id": "s1"}, signer="alice", now=unlock_at + 60).code == "ClaimCooldownActive"

    st, r = _run(st, "UNSTAKE", {"stake_id": "s1"}, signer="alice", now=unlock_at + 2 * SECONDS_PER_DAY)
    assert r["early"] is False
    assert r["penalty"] == 0
    assert r["payout"] == (50 * SCALES_PER_PANGI * 2) // 365
