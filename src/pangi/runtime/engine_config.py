# src/pangi/runtime/engine_config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from pangi.env import load_dotenv_if_present
from pangi.ledger.constants import (
    BPS_DENOM,
    CLAIM_COOLDOWN_SECONDS,
    DEFAULT_EXCHANGE_RATE_BPS,
    DEFAULT_P2P_RATE_BPS,
    DEFAULT_WHALE_RATE_BPS,
    DEFAULT_WHALE_THRESHOLD,
    DEPOSIT_COOLDOWN_SECONDS,
    DISTRIBUTION_BURN_BPS,
    DISTRIBUTION_VEST_BPS,
    EARLY_UNLOCK_PENALTY_BPS,
    MAX_EVOLUTION_COOLDOWN,
    MAX_STAKE_AMOUNT,
    MAX_TAX_RATE_BPS,
    MAX_TOTAL_NFTS,
    MAX_TRANSFER_AMOUNT,
    MIN_EVOLUTION_COOLDOWN,
    MIN_STAKE_AMOUNT,
    MIN_TRANSFER_AMOUNT,
    STAKING_APY_BPS,
)

Json = Dict[str, Any]


def _as_int(raw: Mapping[str, Any], key: str, default: int) -> int:
    v = raw.get(key)
    if v is None:
        return int(default)
    if isinstance(v, bool):
        raise ValueError(f"{key} must be an integer; got: {v!r}")
    try:
        return int(v)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{key} must be an integer; got: {v!r}") from e


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


def _as_apy_table(v: Any, default: Mapping[int, int]) -> Dict[int, int]:
    if v is None:
        return dict(default)
    if not isinstance(v, dict):
        raise ValueError(f"apy_table must be a mapping of days to bps; got: {type(v).__name__}")
    # JSON object keys arrive as strings
    return {int(k): int(rate) for k, rate in v.items()}


@dataclass(frozen=True)
class EngineConfig:
    # Transfer tax defaults, applied by INITIALIZE_TAX_CONFIG when the payload omits them.
    p2p_rate_bps: int
    exchange_rate_bps: int
    whale_rate_bps: int
    whale_threshold: int
    max_tax_rate_bps: int

    min_transfer_amount: int
    max_transfer_amount: int

    min_stake_amount: int
    max_stake_amount: int
    early_unlock_penalty_bps: int
    claim_cooldown_seconds: int
    deposit_cooldown_seconds: int

    distribution_burn_bps: int
    distribution_vest_bps: int

    min_evolution_cooldown: int
    max_evolution_cooldown: int
    max_total_nfts: int

    log_level: str

    apy_table: Dict[int, int] = field(default_factory=lambda: dict(STAKING_APY_BPS))


_ALLOWED_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def validate_engine_config(cfg: EngineConfig) -> None:
    """Fail-fast validation for operator config.

    A bad economic parameter must stop the process at load time rather than
    surface later as a rejected instruction.
    """

    for name in ("p2p_rate_bps", "exchange_rate_bps", "whale_rate_bps"):
        v = int(getattr(cfg, name))
        if v < 0 or v > int(cfg.max_tax_rate_bps):
            raise ValueError(f"{name} must be 0..max_tax_rate_bps ({cfg.max_tax_rate_bps}); got: {v}")

    if int(cfg.max_tax_rate_bps) < 0 or int(cfg.max_tax_rate_bps) > BPS_DENOM:
        raise ValueError(f"max_tax_rate_bps must be 0..{BPS_DENOM}; got: {cfg.max_tax_rate_bps}")

    if int(cfg.whale_threshold) <= 0:
        raise ValueError(f"whale_threshold must be > 0; got: {cfg.whale_threshold}")

    if int(cfg.min_transfer_amount) <= 0 or int(cfg.min_transfer_amount) > int(cfg.max_transfer_amount):
        raise ValueError(
            f"transfer bounds must satisfy 0 < min <= max; got: {cfg.min_transfer_amount}..{cfg.max_transfer_amount}"
        )

    if int(cfg.min_stake_amount) <= 0 or int(cfg.min_stake_amount) > int(cfg.max_stake_amount):
        raise ValueError(f"stake bounds must satisfy 0 < min <= max; got: {cfg.min_stake_amount}..{cfg.max_stake_amount}")

    if int(cfg.early_unlock_penalty_bps) < 0 or int(cfg.early_unlock_penalty_bps) > BPS_DENOM:
        raise ValueError(f"early_unlock_penalty_bps must be 0..{BPS_DENOM}; got: {cfg.early_unlock_penalty_bps}")

    if int(cfg.claim_cooldown_seconds) < 0:
        raise ValueError(f"claim_cooldown_seconds must be >= 0; got: {cfg.claim_cooldown_seconds}")

    if int(cfg.deposit_cooldown_seconds) < 0:
        raise ValueError(f"deposit_cooldown_seconds must be >= 0; got: {cfg.deposit_cooldown_seconds}")

    burn, vest = int(cfg.distribution_burn_bps), int(cfg.distribution_vest_bps)
    if burn < 0 or vest < 0 or burn + vest > BPS_DENOM:
        raise ValueError(f"distribution split must satisfy burn + vest <= {BPS_DENOM}; got: {burn} + {vest}")

    if int(cfg.min_evolution_cooldown) <= 0 or int(cfg.min_evolution_cooldown) > int(cfg.max_evolution_cooldown):
        raise ValueError(
            "evolution cooldown bounds must satisfy 0 < min <= max; "
            f"got: {cfg.min_evolution_cooldown}..{cfg.max_evolution_cooldown}"
        )

    if int(cfg.max_total_nfts) <= 0:
        raise ValueError(f"max_total_nfts must be > 0; got: {cfg.max_total_nfts}")

    if not cfg.apy_table:
        raise ValueError("apy_table must offer at least one lock duration")
    for days, rate in cfg.apy_table.items():
        if int(days) <= 0:
            raise ValueError(f"apy_table lock durations must be > 0 days; got: {days}")
        if int(rate) < 0 or int(rate) > BPS_DENOM:
            raise ValueError(f"apy_table rate for {days} days must be 0..{BPS_DENOM}; got: {rate}")

    if str(cfg.log_level or "").strip().upper() not in _ALLOWED_LOG_LEVELS:
        raise ValueError(f"log_level must be one of {sorted(_ALLOWED_LOG_LEVELS)}; got: {cfg.log_level!r}")


def default_engine_config() -> EngineConfig:
    return EngineConfig(
        p2p_rate_bps=DEFAULT_P2P_RATE_BPS,
        exchange_rate_bps=DEFAULT_EXCHANGE_RATE_BPS,
        whale_rate_bps=DEFAULT_WHALE_RATE_BPS,
        whale_threshold=DEFAULT_WHALE_THRESHOLD,
        max_tax_rate_bps=MAX_TAX_RATE_BPS,
        min_transfer_amount=MIN_TRANSFER_AMOUNT,
        max_transfer_amount=MAX_TRANSFER_AMOUNT,
        min_stake_amount=MIN_STAKE_AMOUNT,
        max_stake_amount=MAX_STAKE_AMOUNT,
        early_unlock_penalty_bps=EARLY_UNLOCK_PENALTY_BPS,
        claim_cooldown_seconds=CLAIM_COOLDOWN_SECONDS,
        deposit_cooldown_seconds=DEPOSIT_COOLDOWN_SECONDS,
        distribution_burn_bps=DISTRIBUTION_BURN_BPS,
        distribution_vest_bps=DISTRIBUTION_VEST_BPS,
        min_evolution_cooldown=MIN_EVOLUTION_COOLDOWN,
        max_evolution_cooldown=MAX_EVOLUTION_COOLDOWN,
        max_total_nfts=MAX_TOTAL_NFTS,
        log_level="INFO",
        apy_table=dict(STAKING_APY_BPS),
    )


def _read_raw(p: Path) -> Any:
    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in {".yaml", ".yml"}:
        return yaml.safe_load(text)
    return json.loads(text)


def read_engine_config_file(path: str) -> EngineConfig:
    p = Path(path)
    raw = _read_raw(p)
    if not isinstance(raw, dict):
        raise ValueError("engine config must be a mapping (JSON object or YAML mapping)")

    d = default_engine_config()

    cfg = EngineConfig(
        p2p_rate_bps=_as_int(raw, "p2p_rate_bps", d.p2p_rate_bps),
        exchange_rate_bps=_as_int(raw, "exchange_rate_bps", d.exchange_rate_bps),
        whale_rate_bps=_as_int(raw, "whale_rate_bps", d.whale_rate_bps),
        whale_threshold=_as_int(raw, "whale_threshold", d.whale_threshold),
        max_tax_rate_bps=_as_int(raw, "max_tax_rate_bps", d.max_tax_rate_bps),
        min_transfer_amount=_as_int(raw, "min_transfer_amount", d.min_transfer_amount),
        max_transfer_amount=_as_int(raw, "max_transfer_amount", d.max_transfer_amount),
        min_stake_amount=_as_int(raw, "min_stake_amount", d.min_stake_amount),
        max_stake_amount=_as_int(raw, "max_stake_amount", d.max_stake_amount),
        early_unlock_penalty_bps=_as_int(raw, "early_unlock_penalty_bps", d.early_unlock_penalty_bps),
        claim_cooldown_seconds=_as_int(raw, "claim_cooldown_seconds", d.claim_cooldown_seconds),
        deposit_cooldown_seconds=_as_int(raw, "deposit_cooldown_seconds", d.deposit_cooldown_seconds),
        distribution_burn_bps=_as_int(raw, "distribution_burn_bps", d.distribution_burn_bps),
        distribution_vest_bps=_as_int(raw, "distribution_vest_bps", d.distribution_vest_bps),
        min_evolution_cooldown=_as_int(raw, "min_evolution_cooldown", d.min_evolution_cooldown),
        max_evolution_cooldown=_as_int(raw, "max_evolution_cooldown", d.max_evolution_cooldown),
        max_total_nfts=_as_int(raw, "max_total_nfts", d.max_total_nfts),
        log_level=_as_str(raw.get("log_level"), d.log_level).strip().upper(),
        apy_table=_as_apy_table(raw.get("apy_table"), d.apy_table),
    )

    validate_engine_config(cfg)
    return cfg


def load_engine_config(*, config_path: Optional[str] = None) -> EngineConfig:
    load_dotenv_if_present()
    p = config_path or os.environ.get("PANGI_ENGINE_CONFIG_PATH")
    if p:
        return read_engine_config_file(p)

    cfg = default_engine_config()
    validate_engine_config(cfg)
    return cfg


def engine_config_to_json(cfg: EngineConfig) -> Json:
    return {
        "p2p_rate_bps": cfg.p2p_rate_bps,
        "exchange_rate_bps": cfg.exchange_rate_bps,
        "whale_rate_bps": cfg.whale_rate_bps,
        "whale_threshold": cfg.whale_threshold,
        "max_tax_rate_bps": cfg.max_tax_rate_bps,
        "min_transfer_amount": cfg.min_transfer_amount,
        "max_transfer_amount": cfg.max_transfer_amount,
        "min_stake_amount": cfg.min_stake_amount,
        "max_stake_amount": cfg.max_stake_amount,
        "early_unlock_penalty_bps": cfg.early_unlock_penalty_bps,
        "claim_cooldown_seconds": cfg.claim_cooldown_seconds,
        "deposit_cooldown_seconds": cfg.deposit_cooldown_seconds,
        "distribution_burn_bps": cfg.distribution_burn_bps,
        "distribution_vest_bps": cfg.distribution_vest_bps,
        "min_evolution_cooldown": cfg.min_evolution_cooldown,
        "max_evolution_cooldown": cfg.max_evolution_cooldown,
        "max_total_nfts": cfg.max_total_nfts,
        "log_level": cfg.log_level,
        "apy_table": {str(k): int(v) for k, v in sorted(cfg.apy_table.items())},
    }


__all__ = [
    "EngineConfig",
    "default_engine_config",
    "engine_config_to_json",
    "load_engine_config",
    "read_engine_config_file",
    "validate_engine_config",
]
