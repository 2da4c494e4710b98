# src/pangi/engine/tax.py
from __future__ import annotations

from typing import Tuple

from pangi.engine.classifier import classify
from pangi.ledger.fixed_point import basis_points
from pangi.ledger.types import TaxConfig, TaxQuote, TransferClassification, TransferRequest


def rate_for(classification: TransferClassification, config: TaxConfig) -> int:
    if classification is TransferClassification.PEER_TO_PEER:
        return int(config.p2p_rate_bps)
    if classification is TransferClassification.EXCHANGE_DEPOSIT:
        return int(config.exchange_rate_bps)
    if classification is TransferClassification.LARGE_WHALE:
        return int(config.whale_rate_bps)
    return 0


def compute_tax(amount: int, classification: TransferClassification, config: TaxConfig) -> Tuple[int, int]:
    """Return (tax, net). tax + net == amount; sub-unit tax truncates to 0."""
    tax = basis_points(amount, rate_for(classification, config))
    return tax, int(amount) - tax


def quote_transfer(req: TransferRequest, config: TaxConfig) -> TaxQuote:
    classification = classify(req, config.whale_threshold)
    rate = rate_for(classification, config)
    tax, net = compute_tax(req.amount, classification, config)
    return TaxQuote(
        classification=classification,
        rate_bps=rate,
        amount=int(req.amount),
        tax=tax,
        net=net,
        tax_recipient=config.conservation_fund_account if tax > 0 else None,
    )


__all__ = ["compute_tax", "quote_transfer", "rate_for"]
