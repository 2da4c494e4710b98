# src/pangi/runtime/apply/token.py
from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, Optional

from pangi.engine.tax import quote_transfer
from pangi.ledger.types import TaxConfig, TransferRequest
from pangi.runtime.engine_config import EngineConfig
from pangi.runtime.errors import EngineError
from pangi.runtime.ix_schema import (
    InitializeTaxConfigPayload,
    TransferWithTaxPayload,
    UpdateTaxConfigPayload,
    parse_payload,
)
from pangi.runtime.ix_types import IxEnvelope

Json = Dict[str, Any]

TOKEN_IX_TYPES = frozenset({"INITIALIZE_TAX_CONFIG", "UPDATE_TAX_CONFIG", "TRANSFER_WITH_TAX"})


def _load_tax_config(snapshot: Json) -> TaxConfig:
    raw = snapshot.get("tax_config")
    if not isinstance(raw, dict):
        raise EngineError("MissingRecord", "tax_config_not_initialized", {"key": "tax_config"})
    return TaxConfig.from_json(raw)


def _check_rate_cap(cfg: EngineConfig, **rates: int) -> None:
    for name, rate in rates.items():
        if int(rate) > int(cfg.max_tax_rate_bps):
            raise EngineError("TaxRateTooHigh", "rate_above_cap", {"field": name, "rate_bps": int(rate), "max": cfg.max_tax_rate_bps})


def _apply_initialize_tax_config(snapshot: Json, env: IxEnvelope, cfg: EngineConfig) -> Json:
    p: InitializeTaxConfigPayload = parse_payload(env.ix_type, env.payload)  # type: ignore[assignment]
    if snapshot.get("tax_config") is not None:
        raise EngineError("RecordExists", "tax_config_already_initialized", {"key": "tax_config"})

    rates = {
        "p2p_rate_bps": cfg.p2p_rate_bps if p.p2p_rate_bps is None else p.p2p_rate_bps,
        "exchange_rate_bps": cfg.exchange_rate_bps if p.exchange_rate_bps is None else p.exchange_rate_bps,
        "whale_rate_bps": cfg.whale_rate_bps if p.whale_rate_bps is None else p.whale_rate_bps,
    }
    _check_rate_cap(cfg, **rates)

    tc = TaxConfig(
        whale_threshold=cfg.whale_threshold if p.whale_threshold is None else p.whale_threshold,
        conservation_fund_account=p.conservation_fund_account,
        authority=env.signer,
        max_tax_per_transfer=cfg.max_transfer_amount // 10,
        last_updated=env.now,
        **rates,
    )
    snapshot["tax_config"] = tc.to_json()
    return {"applied": "INITIALIZE_TAX_CONFIG", "tax_config": tc.to_json()}


def _apply_update_tax_config(snapshot: Json, env: IxEnvelope, cfg: EngineConfig) -> Json:
    p: UpdateTaxConfigPayload = parse_payload(env.ix_type, env.payload)  # type: ignore[assignment]
    tc = _load_tax_config(snapshot)
    if not tc.authority or env.signer != tc.authority:
        raise EngineError("Unauthorized", "signer_is_not_tax_authority", {"signer": env.signer})

    changes = p.model_dump(exclude_none=True)
    _check_rate_cap(cfg, **{k: v for k, v in changes.items() if k.endswith("_rate_bps")})

    updated = replace(tc, last_updated=env.now, **changes)
    snapshot["tax_config"] = updated.to_json()
    return {"applied": "UPDATE_TAX_CONFIG", "changed": sorted(changes), "tax_config": updated.to_json()}


def _apply_transfer_with_tax(snapshot: Json, env: IxEnvelope, cfg: EngineConfig) -> Json:
    p: TransferWithTaxPayload = parse_payload(env.ix_type, env.payload)  # type: ignore[assignment]
    tc = _load_tax_config(snapshot)

    amount = p.amount
    if amount < cfg.min_transfer_amount:
        raise EngineError("AmountTooSmall", "transfer_below_minimum", {"amount": amount, "min": cfg.min_transfer_amount})
    if amount > cfg.max_transfer_amount:
        raise EngineError("AmountTooLarge", "transfer_above_maximum", {"amount": amount, "max": cfg.max_transfer_amount})
    if p.sender_balance is not None and p.sender_balance < amount:
        raise EngineError("InsufficientBalance", "balance_below_amount", {"amount": amount, "balance": p.sender_balance})

    q = quote_transfer(
        TransferRequest(
            amount=amount,
            is_exchange_counterparty=p.is_exchange_counterparty,
            is_conservation_reward=p.is_conservation_reward,
        ),
        tc,
    )

    if q.tax > tc.max_tax_per_transfer:
        raise EngineError("TaxTooHigh", "tax_above_per_transfer_cap", {"tax": q.tax, "max": tc.max_tax_per_transfer})
    if q.net == 0:
        raise EngineError("InsufficientAmountAfterTax", "nothing_left_after_tax", {"amount": amount, "tax": q.tax})
    if p.max_tax_amount is not None and q.tax > p.max_tax_amount:
        raise EngineError("SlippageExceeded", "tax_above_caller_limit", {"tax": q.tax, "max_tax_amount": p.max_tax_amount})

    out: Json = {"applied": "TRANSFER_WITH_TAX", "sender": env.signer, "recipient": p.recipient}
    out.update(q.to_json())
    return out


def apply_token(snapshot: Json, env: IxEnvelope, cfg: EngineConfig) -> Optional[Json]:
    t = env.ix_type
    if t not in TOKEN_IX_TYPES:
        return None

    if t == "INITIALIZE_TAX_CONFIG":
        return _apply_initialize_tax_config(snapshot, env, cfg)
    if t == "UPDATE_TAX_CONFIG":
        return _apply_update_tax_config(snapshot, env, cfg)
    if t == "TRANSFER_WITH_TAX":
        return _apply_transfer_with_tax(snapshot, env, cfg)

    return None


__all__ = ["TOKEN_IX_TYPES", "apply_token"]
