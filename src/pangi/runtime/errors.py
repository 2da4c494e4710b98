from __future__ import annotations

from dataclasses import dataclass
from typing import Any, FrozenSet

# Stable, enumerable error kinds. Callers surface `code` verbatim.
ERROR_KINDS: FrozenSet[str] = frozenset(
    {
        # evolution
        "CooldownActive",
        "MaxEvolutionReached",
        "HatchlingLocked",
        "AlreadyLocked",
        "NotLocked",
        "CooldownTooShort",
        "CooldownTooLong",
        "MintPaused",
        "MaxSupplyReached",
        # distribution
        "DistributionNotStarted",
        "DistributionEnded",
        "DistributionInactive",
        "InsufficientDistributionFunds",
        "InvalidDistributionWindow",
        "MaxNftsReached",
        "AllocationInactive",
        # transfer tax
        "TaxRateTooHigh",
        "InvalidWhaleThreshold",
        "TaxTooHigh",
        "InsufficientAmountAfterTax",
        "SlippageExceeded",
        # staking
        "UnsupportedLockDuration",
        "StakeInactive",
        "StillLocked",
        "ClaimCooldownActive",
        "NoRewardsToClaim",
        "VaultInactive",
        "DepositCooldownActive",
        "InsufficientStake",
        # shared
        "InsufficientBalance",
        "Unauthorized",
        "AmountTooSmall",
        "AmountTooLarge",
        "InvalidArgument",
        "Overflow",
        "Underflow",
        "DivisionByZero",
        # instruction layer
        "InvalidPayload",
        "UnknownInstruction",
        "MissingRecord",
        "RecordExists",
    }
)


@dataclass
class EngineError(Exception):
    """Canonical error type for engine computations and instruction dispatch."""

    code: str
    reason: str
    details: Any | None = None

    def __post_init__(self) -> None:
        if self.code not in ERROR_KINDS:
            raise ValueError(f"unknown error kind: {self.code!r}")

    def __str__(self) -> str:
        if self.details is None:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"


__all__ = ["ERROR_KINDS", "EngineError"]
