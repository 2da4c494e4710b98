"""pangi.ledger.types

Plain records consumed and produced by the engine.

Every record is a frozen dataclass: engine operations return a new record
(dataclasses.replace) instead of mutating their input, so a rejected
operation can never leave a half-applied record behind. Records round-trip
through to_json()/from_json() so callers can keep snapshots as JSON dicts.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Iterator, Optional

from pangi.ledger.constants import (
    BPS_DENOM,
    EVOLUTION_LADDER,
    MAX_EVOLUTION_INDEX,
    MAX_TOTAL_NFTS,
    MAX_TRANSFER_AMOUNT,
    SECONDS_PER_DAY,
    U64_MAX,
)
from pangi.runtime.errors import EngineError

Json = Dict[str, Any]


def _coerce_int(v: Any, *, field: str) -> int:
    if isinstance(v, bool):
        raise EngineError("InvalidArgument", "bool_is_not_int", {"field": field})
    try:
        return int(v)
    except Exception as e:
        raise EngineError("InvalidArgument", "not_int_coercible", {"field": field, "type": type(v).__name__}) from e


def _coerce_str(v: Any) -> str:
    return str(v).strip() if v is not None else ""


def _coerce_bool(v: Any, default: bool = False) -> bool:
    if v is None:
        return bool(default)
    if isinstance(v, bool):
        return v
    s = str(v).strip().lower()
    if s in {"1", "true", "yes", "y", "on"}:
        return True
    if s in {"0", "false", "no", "n", "off"}:
        return False
    return bool(default)


def _check_u64(v: int, *, field: str) -> None:
    if v < 0 or v > U64_MAX:
        raise EngineError("InvalidArgument", "u64_out_of_range", {"field": field, "value": v})


def _check_bps(v: int, *, field: str) -> None:
    if v < 0 or v > BPS_DENOM:
        raise EngineError("InvalidArgument", "bps_out_of_range", {"field": field, "value": v})


# ---------------------------------------------------------------------------
# Transfers
# ---------------------------------------------------------------------------


class TransferClassification(str, Enum):
    PEER_TO_PEER = "PeerToPeer"
    EXCHANGE_DEPOSIT = "ExchangeDeposit"
    CONSERVATION_REWARD = "ConservationReward"
    LARGE_WHALE = "LargeWhale"


@dataclass(frozen=True, slots=True)
class TaxConfig:
    p2p_rate_bps: int
    exchange_rate_bps: int
    whale_rate_bps: int
    whale_threshold: int
    conservation_fund_account: str
    authority: str = ""
    max_tax_per_transfer: int = MAX_TRANSFER_AMOUNT // 10
    last_updated: int = 0

    def __post_init__(self) -> None:
        _check_bps(self.p2p_rate_bps, field="p2p_rate_bps")
        _check_bps(self.exchange_rate_bps, field="exchange_rate_bps")
        _check_bps(self.whale_rate_bps, field="whale_rate_bps")
        _check_u64(self.whale_threshold, field="whale_threshold")
        _check_u64(self.max_tax_per_transfer, field="max_tax_per_transfer")
        if self.whale_threshold <= 0:
            raise EngineError("InvalidWhaleThreshold", "whale_threshold_must_be_positive", {"whale_threshold": self.whale_threshold})

    @staticmethod
    def from_json(j: Json) -> "TaxConfig":
        return TaxConfig(
            p2p_rate_bps=_coerce_int(j.get("p2p_rate_bps", 0), field="p2p_rate_bps"),
            exchange_rate_bps=_coerce_int(j.get("exchange_rate_bps", 0), field="exchange_rate_bps"),
            whale_rate_bps=_coerce_int(j.get("whale_rate_bps", 0), field="whale_rate_bps"),
            whale_threshold=_coerce_int(j.get("whale_threshold", 0), field="whale_threshold"),
            conservation_fund_account=_coerce_str(j.get("conservation_fund_account")),
            authority=_coerce_str(j.get("authority")),
            max_tax_per_transfer=_coerce_int(
                j.get("max_tax_per_transfer", MAX_TRANSFER_AMOUNT // 10), field="max_tax_per_transfer"
            ),
            last_updated=_coerce_int(j.get("last_updated", 0), field="last_updated"),
        )

    def to_json(self) -> Json:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class TransferRequest:
    amount: int
    is_exchange_counterparty: bool = False
    is_conservation_reward: bool = False

    def __post_init__(self) -> None:
        _check_u64(self.amount, field="amount")


@dataclass(frozen=True, slots=True)
class TaxQuote:
    classification: TransferClassification
    rate_bps: int
    amount: int
    tax: int
    net: int
    tax_recipient: Optional[str]

    def to_json(self) -> Json:
        return {
            "classification": self.classification.value,
            "rate_bps": self.rate_bps,
            "amount": self.amount,
            "tax": self.tax,
            "net": self.net,
            "tax_recipient": self.tax_recipient,
        }


# ---------------------------------------------------------------------------
# NFT evolution
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class NftGlobalConfig:
    authority: str
    total_minted: int = 0
    max_supply: int = MAX_TOTAL_NFTS
    mint_paused: bool = False

    @staticmethod
    def from_json(j: Json) -> "NftGlobalConfig":
        return NftGlobalConfig(
            authority=_coerce_str(j.get("authority")),
            total_minted=_coerce_int(j.get("total_minted", 0), field="total_minted"),
            max_supply=_coerce_int(j.get("max_supply", MAX_TOTAL_NFTS), field="max_supply"),
            mint_paused=_coerce_bool(j.get("mint_paused"), False),
        )

    def to_json(self) -> Json:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class Hatchling:
    """Per-NFT evolution record. Never deleted; terminal NFTs stay at the top stage."""

    nft_mint: str
    authority: str
    evolution_count: int
    last_evolution_timestamp: int
    evolution_cooldown: int
    stage: str = ""
    is_locked: bool = False

    def __post_init__(self) -> None:
        if self.evolution_count < 0 or self.evolution_count > MAX_EVOLUTION_INDEX:
            raise EngineError("InvalidArgument", "evolution_count_out_of_range", {"evolution_count": self.evolution_count})
        if self.evolution_cooldown < 0:
            raise EngineError("InvalidArgument", "negative_cooldown", {"evolution_cooldown": self.evolution_cooldown})
        expected = EVOLUTION_LADDER[self.evolution_count]
        if not self.stage:
            object.__setattr__(self, "stage", expected)
        elif self.stage != expected:
            raise EngineError(
                "InvalidArgument",
                "stage_does_not_match_evolution_count",
                {"stage": self.stage, "evolution_count": self.evolution_count, "expected": expected},
            )

    @staticmethod
    def from_json(j: Json) -> "Hatchling":
        return Hatchling(
            nft_mint=_coerce_str(j.get("nft_mint")),
            authority=_coerce_str(j.get("authority")),
            evolution_count=_coerce_int(j.get("evolution_count", 0), field="evolution_count"),
            last_evolution_timestamp=_coerce_int(j.get("last_evolution_timestamp", 0), field="last_evolution_timestamp"),
            evolution_cooldown=_coerce_int(j.get("evolution_cooldown", 0), field="evolution_cooldown"),
            stage=_coerce_str(j.get("stage")),
            is_locked=_coerce_bool(j.get("is_locked"), False),
        )

    def to_json(self) -> Json:
        return asdict(self)


# ---------------------------------------------------------------------------
# Distribution
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DistributionConfig:
    total_supply: int
    distribution_start: int
    distribution_end: int
    distributed_amount: int = 0
    authority: str = ""
    is_active: bool = True
    nft_count: int = 0

    def __post_init__(self) -> None:
        _check_u64(self.total_supply, field="total_supply")
        _check_u64(self.distributed_amount, field="distributed_amount")
        if self.distributed_amount > self.total_supply:
            raise EngineError(
                "InvalidArgument",
                "distributed_exceeds_supply",
                {"distributed_amount": self.distributed_amount, "total_supply": self.total_supply},
            )
        if self.distribution_end <= self.distribution_start:
            raise EngineError(
                "InvalidDistributionWindow",
                "end_must_follow_start",
                {"start": self.distribution_start, "end": self.distribution_end},
            )

    @property
    def remaining(self) -> int:
        return self.total_supply - self.distributed_amount

    @staticmethod
    def from_json(j: Json) -> "DistributionConfig":
        return DistributionConfig(
            total_supply=_coerce_int(j.get("total_supply", 0), field="total_supply"),
            distribution_start=_coerce_int(j.get("distribution_start", 0), field="distribution_start"),
            distribution_end=_coerce_int(j.get("distribution_end", 0), field="distribution_end"),
            distributed_amount=_coerce_int(j.get("distributed_amount", 0), field="distributed_amount"),
            authority=_coerce_str(j.get("authority")),
            is_active=_coerce_bool(j.get("is_active"), True),
            nft_count=_coerce_int(j.get("nft_count", 0), field="nft_count"),
        )

    def to_json(self) -> Json:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class VaultAllocation:
    burned: int
    vested: int
    liquid: int

    @property
    def total(self) -> int:
        return self.burned + self.vested + self.liquid

    def to_json(self) -> Json:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class NftAllocation:
    nft_mint: str
    owner: str
    total_allocation: int
    claimed_amount: int = 0
    last_claim: int = 0
    is_active: bool = True

    def __post_init__(self) -> None:
        _check_u64(self.total_allocation, field="total_allocation")
        if self.claimed_amount < 0 or self.claimed_amount > self.total_allocation:
            raise EngineError(
                "InvalidArgument",
                "claimed_out_of_range",
                {"claimed_amount": self.claimed_amount, "total_allocation": self.total_allocation},
            )

    @staticmethod
    def from_json(j: Json) -> "NftAllocation":
        return NftAllocation(
            nft_mint=_coerce_str(j.get("nft_mint")),
            owner=_coerce_str(j.get("owner")),
            total_allocation=_coerce_int(j.get("total_allocation", 0), field="total_allocation"),
            claimed_amount=_coerce_int(j.get("claimed_amount", 0), field="claimed_amount"),
            last_claim=_coerce_int(j.get("last_claim", 0), field="last_claim"),
            is_active=_coerce_bool(j.get("is_active"), True),
        )

    def to_json(self) -> Json:
        return asdict(self)


# ---------------------------------------------------------------------------
# Staking
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class VaultConfig:
    """The staking pool. Deposits and claims need an active vault; withdrawals never do."""

    authority: str
    created_at: int = 0
    total_staked: int = 0
    total_penalties_collected: int = 0
    is_active: bool = True

    def __post_init__(self) -> None:
        _check_u64(self.total_staked, field="total_staked")
        _check_u64(self.total_penalties_collected, field="total_penalties_collected")

    @staticmethod
    def from_json(j: Json) -> "VaultConfig":
        return VaultConfig(
            authority=_coerce_str(j.get("authority")),
            created_at=_coerce_int(j.get("created_at", 0), field="created_at"),
            total_staked=_coerce_int(j.get("total_staked", 0), field="total_staked"),
            total_penalties_collected=_coerce_int(j.get("total_penalties_collected", 0), field="total_penalties_collected"),
            is_active=_coerce_bool(j.get("is_active"), True),
        )

    def to_json(self) -> Json:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class StakeRecord:
    owner: str
    amount: int
    lock_duration_days: int
    staked_at: int
    apy_bps: int
    active: bool = True
    stake_id: str = ""
    last_claim: int = 0
    total_claimed: int = 0
    last_deposit: int = 0

    def __post_init__(self) -> None:
        _check_u64(self.amount, field="amount")
        _check_bps(self.apy_bps, field="apy_bps")
        if self.lock_duration_days <= 0:
            raise EngineError("InvalidArgument", "lock_duration_must_be_positive", {"lock_duration_days": self.lock_duration_days})

    @property
    def unlock_at(self) -> int:
        return self.staked_at + self.lock_duration_days * SECONDS_PER_DAY

    @staticmethod
    def from_json(j: Json) -> "StakeRecord":
        staked_at = _coerce_int(j.get("staked_at", 0), field="staked_at")
        return StakeRecord(
            owner=_coerce_str(j.get("owner")),
            amount=_coerce_int(j.get("amount", 0), field="amount"),
            lock_duration_days=_coerce_int(j.get("lock_duration_days", 0), field="lock_duration_days"),
            staked_at=staked_at,
            apy_bps=_coerce_int(j.get("apy_bps", 0), field="apy_bps"),
            active=_coerce_bool(j.get("active"), True),
            stake_id=_coerce_str(j.get("stake_id")),
            last_claim=_coerce_int(j.get("last_claim", staked_at), field="last_claim"),
            total_claimed=_coerce_int(j.get("total_claimed", 0), field="total_claimed"),
            last_deposit=_coerce_int(j.get("last_deposit", staked_at), field="last_deposit"),
        )

    def to_json(self) -> Json:
        out = asdict(self)
        out["unlock_at"] = self.unlock_at
        return out


@dataclass(frozen=True, slots=True)
class EarlyUnlockQuote:
    total_potential: int
    proportional: int
    penalty: int
    payout: int

    def __iter__(self) -> Iterator[int]:
        """Allow `proportional, penalty, payout = early_unlock(...)`."""
        yield self.proportional
        yield self.penalty
        yield self.payout

    def to_json(self) -> Json:
        return asdict(self)


__all__ = [
    "DistributionConfig",
    "EarlyUnlockQuote",
    "Hatchling",
    "NftAllocation",
    "NftGlobalConfig",
    "StakeRecord",
    "TaxConfig",
    "TaxQuote",
    "TransferClassification",
    "TransferRequest",
    "VaultAllocation",
    "VaultConfig",
]
