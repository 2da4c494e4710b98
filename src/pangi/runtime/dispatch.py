# src/pangi/runtime/dispatch.py

from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Dict, Optional, Tuple

from pangi.runtime.apply.distribution import apply_distribution
from pangi.runtime.apply.nft import apply_nft
from pangi.runtime.apply.token import apply_token
from pangi.runtime.apply.vault import apply_vault
from pangi.runtime.engine_config import EngineConfig, load_engine_config
from pangi.runtime.engine_logging import log_event
from pangi.runtime.errors import EngineError
from pangi.runtime.ix_schema import validate_payload
from pangi.runtime.ix_types import IxEnvelope
from pangi.runtime.state_invariants import ensure_snapshot

Json = Dict[str, Any]
ApplyFn = Callable[[Json, IxEnvelope, EngineConfig], Optional[Json]]

_LOG = logging.getLogger("pangi.dispatch")

_APPLIERS: tuple[ApplyFn, ...] = (
    apply_token,
    apply_nft,
    apply_distribution,
    apply_vault,
)


def _normalize_env(env: Any) -> IxEnvelope:
    """Accept either an IxEnvelope or a raw dict envelope."""
    try:
        return IxEnvelope.from_json(env)
    except (TypeError, ValueError) as e:
        raise EngineError("InvalidPayload", "malformed_envelope", {"error": str(e)}) from e


def _route(snapshot: Json, env: IxEnvelope, cfg: EngineConfig) -> Json:
    for fn in _APPLIERS:
        try:
            out = fn(snapshot, env, cfg)
        except EngineError:
            raise
        except Exception as e:
            raise EngineError(
                "InvalidArgument",
                type(e).__name__,
                {"ix_type": env.ix_type, "domain": fn.__name__, "error": str(e)},
            ) from e

        if out is not None:
            return out

    raise EngineError("UnknownInstruction", "ix_type_not_implemented", {"ix_type": env.ix_type})


def apply_ix(snapshot: Json, env: Any, *, config: Optional[EngineConfig] = None) -> Tuple[Json, Json]:
    """Apply one instruction to a snapshot.

    The caller's snapshot is never mutated: the instruction runs against a
    deep copy, and either the fully updated copy is returned together with
    the receipt or an EngineError is raised and nothing changes.
    """
    cfg = config if config is not None else load_engine_config()
    e = _normalize_env(env)

    try:
        if not e.ix_type:
            raise EngineError("UnknownInstruction", "missing_ix_type", {"ix_type": e.ix_type})
        if not e.signer:
            raise EngineError("Unauthorized", "missing_signer", {"ix_type": e.ix_type})

        ok, code, reason, details = validate_payload(ix_type=e.ix_type, payload=e.payload)
        if not ok:
            raise EngineError(code, reason, details)

        try:
            work = ensure_snapshot(copy.deepcopy(snapshot))
        except TypeError as te:
            raise EngineError("InvalidArgument", "malformed_snapshot", {"error": str(te)}) from te
        receipt = _route(work, e, cfg)
    except EngineError as err:
        log_event(
            _LOG,
            "ix_rejected",
            level=logging.WARNING,
            ix_type=e.ix_type,
            signer=e.signer,
            now=e.now,
            code=err.code,
            reason=err.reason,
        )
        raise

    log_event(_LOG, "ix_applied", ix_type=e.ix_type, signer=e.signer, now=e.now)
    return work, receipt


__all__ = ["apply_ix"]
