from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass(frozen=True)
class IxEnvelope:
    """One instruction: who signed it, when it executes and its payload.

    `now` is the caller-supplied unix timestamp (seconds); the engine never
    reads a clock.
    """

    ix_type: str
    signer: str
    now: int
    payload: Dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def from_json(j: Any) -> "IxEnvelope":
        if isinstance(j, IxEnvelope):
            return j
        if not isinstance(j, dict):
            j = dict(j)  # type: ignore[arg-type]
        # non-dict payloads are kept as-is so schema validation can reject them
        payload = j.get("payload")
        return IxEnvelope(
            ix_type=str(j.get("ix_type", "") or "").strip().upper(),
            signer=str(j.get("signer", "") or "").strip(),
            now=int(j.get("now", 0)),
            payload={} if payload is None else payload,
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "ix_type": self.ix_type,
            "signer": self.signer,
            "now": self.now,
            "payload": self.payload,
        }


__all__ = ["IxEnvelope"]
