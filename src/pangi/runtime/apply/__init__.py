# src/pangi/runtime/apply/__init__.py
"""Instruction apply modules.

Each module claims a subset of instruction types and applies them to a
snapshot dict, returning a receipt (or None when the type is not its own).
pangi.runtime.dispatch routes to them in order.
"""

from __future__ import annotations

__all__ = [
    "token",
    "nft",
    "distribution",
    "vault",
]
