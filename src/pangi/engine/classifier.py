# src/pangi/engine/classifier.py
from __future__ import annotations

from pangi.ledger.types import TransferClassification, TransferRequest


def classify(req: TransferRequest, whale_threshold: int) -> TransferClassification:
    """Map a transfer to its tax category.

    First match wins:
      1. conservation rewards (exempt even above the whale threshold)
      2. exchange counterparties
      3. amount strictly above the whale threshold
      4. peer-to-peer
    """
    if req.is_conservation_reward:
        return TransferClassification.CONSERVATION_REWARD
    if req.is_exchange_counterparty:
        return TransferClassification.EXCHANGE_DEPOSIT
    if int(req.amount) > int(whale_threshold):
        return TransferClassification.LARGE_WHALE
    return TransferClassification.PEER_TO_PEER


__all__ = ["classify"]
