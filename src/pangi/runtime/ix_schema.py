from __future__ import annotations

"""Instruction payload schemas.

Every instruction has a strict pydantic model: unknown keys are rejected and
numeric fields must be non-negative. These are shape checks only; the engine
and the apply modules still enforce the economic rules (bounds, windows,
cooldowns, authority).
"""

from typing import Annotated, Any, Dict, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from pangi.ledger.constants import U64_MAX
from pangi.runtime.errors import EngineError

Json = Dict[str, Any]

U64 = Annotated[int, Field(ge=0, le=U64_MAX)]


class _StrictModel(BaseModel):
    """Strict model: reject unknown keys."""

    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------------
# Token
# ---------------------------------------------------------------------------


class InitializeTaxConfigPayload(_StrictModel):
    conservation_fund_account: str = Field(..., min_length=1)
    p2p_rate_bps: Optional[int] = Field(default=None, ge=0)
    exchange_rate_bps: Optional[int] = Field(default=None, ge=0)
    whale_rate_bps: Optional[int] = Field(default=None, ge=0)
    whale_threshold: Optional[int] = Field(default=None, ge=0, le=U64_MAX)


class UpdateTaxConfigPayload(_StrictModel):
    p2p_rate_bps: Optional[int] = Field(default=None, ge=0)
    exchange_rate_bps: Optional[int] = Field(default=None, ge=0)
    whale_rate_bps: Optional[int] = Field(default=None, ge=0)
    whale_threshold: Optional[int] = Field(default=None, ge=0, le=U64_MAX)
    conservation_fund_account: Optional[str] = Field(default=None, min_length=1)

    @model_validator(mode="after")
    def _at_least_one(self) -> "UpdateTaxConfigPayload":
        if not self.model_fields_set:
            raise ValueError("no_fields_to_update")
        return self


class TransferWithTaxPayload(_StrictModel):
    amount: U64
    recipient: Optional[str] = Field(default=None, min_length=1)
    is_exchange_counterparty: bool = False
    is_conservation_reward: bool = False
    sender_balance: Optional[int] = Field(default=None, ge=0, le=U64_MAX)
    max_tax_amount: Optional[int] = Field(default=None, ge=0, le=U64_MAX)


# ---------------------------------------------------------------------------
# NFT
# ---------------------------------------------------------------------------


class InitializeNftCollectionPayload(_StrictModel):
    max_supply: Optional[int] = Field(default=None, gt=0)
    mint_paused: bool = False


class InitializeHatchlingPayload(_StrictModel):
    nft_mint: str = Field(..., min_length=1)
    evolution_cooldown: int = Field(..., ge=0)


class HatchlingRefPayload(_StrictModel):
    nft_mint: str = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Distribution
# ---------------------------------------------------------------------------


class InitializeDistributionPayload(_StrictModel):
    distribution_start: int = Field(..., ge=0)
    distribution_end: int = Field(..., ge=0)
    total_supply: Optional[int] = Field(default=None, ge=0, le=U64_MAX)


class DistributeToVaultPayload(_StrictModel):
    amount: U64
    vault: Optional[str] = Field(default=None, min_length=1)


class RegisterSpecialNftPayload(_StrictModel):
    nft_mint: str = Field(..., min_length=1)
    owner: str = Field(..., min_length=1)
    allocation: U64


class AllocationRefPayload(_StrictModel):
    nft_mint: str = Field(..., min_length=1)


class EmptyPayload(_StrictModel):
    pass


# ---------------------------------------------------------------------------
# Vault
# ---------------------------------------------------------------------------


class StakePayload(_StrictModel):
    stake_id: str = Field(..., min_length=1)
    amount: U64
    lock_duration_days: int = Field(..., gt=0)
    balance: Optional[int] = Field(default=None, ge=0, le=U64_MAX)


class StakeRefPayload(_StrictModel):
    stake_id: str = Field(..., min_length=1)


class WithdrawStakePayload(_StrictModel):
    stake_id: str = Field(..., min_length=1)
    amount: U64


# ---------------------------------------------------------------------------
# Instruction type -> schema mapping
# ---------------------------------------------------------------------------

Schema = Type[BaseModel]

_SCHEMA_BY_IX_TYPE: Dict[str, Schema] = {
    # Token
    "INITIALIZE_TAX_CONFIG": InitializeTaxConfigPayload,
    "UPDATE_TAX_CONFIG": UpdateTaxConfigPayload,
    "TRANSFER_WITH_TAX": TransferWithTaxPayload,
    # NFT
    "INITIALIZE_NFT_COLLECTION": InitializeNftCollectionPayload,
    "INITIALIZE_HATCHLING": InitializeHatchlingPayload,
    "EVOLVE_HATCHLING": HatchlingRefPayload,
    "LOCK_HATCHLING": HatchlingRefPayload,
    "UNLOCK_HATCHLING": HatchlingRefPayload,
    # Distribution
    "INITIALIZE_DISTRIBUTION": InitializeDistributionPayload,
    "DISTRIBUTE_TO_VAULT": DistributeToVaultPayload,
    "REGISTER_SPECIAL_NFT": RegisterSpecialNftPayload,
    "CLAIM_ALLOCATION": AllocationRefPayload,
    "DEACTIVATE_DISTRIBUTION": EmptyPayload,
    "DEACTIVATE_ALLOCATION": AllocationRefPayload,
    # Vault
    "INITIALIZE_VAULT": EmptyPayload,
    "DEACTIVATE_VAULT": EmptyPayload,
    "STAKE": StakePayload,
    "CLAIM_REWARDS": StakeRefPayload,
    "UNSTAKE": StakeRefPayload,
    "WITHDRAW_STAKE": WithdrawStakePayload,
}

SUPPORTED_IX_TYPES = frozenset(_SCHEMA_BY_IX_TYPE)


def schema_for(ix_type: str) -> Optional[Schema]:
    return _SCHEMA_BY_IX_TYPE.get(str(ix_type or "").strip().upper())


def validate_payload(*, ix_type: str, payload: Any) -> Tuple[bool, str, str, Optional[Json]]:
    """Validate payload against its instruction schema.

    Returns: (ok, code, reason, details)
    """
    sch = schema_for(ix_type)
    if sch is None:
        return False, "UnknownInstruction", "ix_type_not_supported", {"ix_type": ix_type}

    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        return False, "InvalidPayload", "payload_must_be_object", {"ix_type": ix_type}

    try:
        sch(**payload)
    except ValidationError as ve:
        return False, "InvalidPayload", "payload_schema_mismatch", {"errors": ve.errors(include_url=False, include_context=False)}
    return True, "", "", None


def parse_payload(ix_type: str, payload: Any) -> BaseModel:
    """Validate and return the typed payload, raising EngineError on rejection."""
    ok, code, reason, details = validate_payload(ix_type=ix_type, payload=payload)
    if not ok:
        raise EngineError(code, reason, details)
    sch = schema_for(ix_type)
    assert sch is not None
    return sch(**(payload or {}))


__all__ = [
    "SUPPORTED_IX_TYPES",
    "parse_payload",
    "schema_for",
    "validate_payload",
]
