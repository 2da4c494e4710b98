# src/pangi/engine/__init__.py
"""
PANGI engine package

Pure economic rules over the plain records in pangi.ledger.types:
  - classifier: transfer category (first match wins)
  - tax: per-category rate lookup, tax / net split, transfer quotes
  - evolution: hatchling stage ladder, cooldowns, evolution rewards
  - distribution: windowed burn / vest / liquid split and special-NFT vesting
  - staking: APY tiers, accrual and early-unlock penalties

Nothing in here reads a clock, touches I/O or logs; the runtime layer
(pangi.runtime.dispatch) owns all of that.
"""

from __future__ import annotations

__all__ = [
    "classifier",
    "tax",
    "evolution",
    "distribution",
    "staking",
]
