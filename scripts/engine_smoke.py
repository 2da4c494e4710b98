#!/usr/bin/env python3

"""End-to-end smoke run for the PANGI engine.

Drives one instruction of every family through pangi.runtime.dispatch.apply_ix
against an empty snapshot and prints each receipt as a JSON line.

Usage:
  python3 scripts/engine_smoke.py

Optional env overrides:
  PANGI_ENGINE_CONFIG_PATH=./engine.yaml
  PANGI_LOG_LEVEL=DEBUG
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from pangi.ledger.constants import SCALES_PER_PANGI, SECONDS_PER_DAY  # noqa: E402
from pangi.runtime.dispatch import apply_ix  # noqa: E402
from pangi.runtime.engine_config import load_engine_config  # noqa: E402
from pangi.runtime.engine_logging import configure_logging  # noqa: E402

T0 = 1_700_000_000


def main() -> int:
    cfg = load_engine_config()
    configure_logging(cfg.log_level)

    steps = [
        ("admin", T0, "INITIALIZE_TAX_CONFIG", {"conservation_fund_account": "conservation-fund"}),
        ("alice", T0, "TRANSFER_WITH_TAX", {"amount": 1_000 * SCALES_PER_PANGI, "recipient": "bob"}),
        ("admin", T0, "INITIALIZE_NFT_COLLECTION", {}),
        ("alice", T0, "INITIALIZE_HATCHLING", {"nft_mint": "hatch-1", "evolution_cooldown": 3600}),
        ("alice", T0 + 3600, "EVOLVE_HATCHLING", {"nft_mint": "hatch-1"}),
        (
            "admin",
            T0,
            "INITIALIZE_DISTRIBUTION",
            {"distribution_start": T0 + 60, "distribution_end": T0 + 60 + 30 * SECONDS_PER_DAY},
        ),
        ("admin", T0 + 120, "DISTRIBUTE_TO_VAULT", {"amount": 1_000_000, "vault": "vault-1"}),
        ("admin", T0, "INITIALIZE_VAULT", {}),
        ("alice", T0, "STAKE", {"stake_id": "s-1", "amount": 10 * SCALES_PER_PANGI, "lock_duration_days": 30}),
        ("alice", T0 + 5 * SECONDS_PER_DAY, "WITHDRAW_STAKE", {"stake_id": "s-1", "amount": 4 * SCALES_PER_PANGI}),
        ("alice", T0 + 10 * SECONDS_PER_DAY, "UNSTAKE", {"stake_id": "s-1"}),
    ]

    snapshot: dict = {}
    for signer, now, ix_type, payload in steps:
        snapshot, receipt = apply_ix(
            snapshot,
            {"ix_type": ix_type, "signer": signer, "now": now, "payload": payload},
            config=cfg,
        )
        print(json.dumps(receipt, sort_keys=True, separators=(",", ":")))

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
