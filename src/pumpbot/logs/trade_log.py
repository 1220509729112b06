from __future__ import annotations

import json
import logging
import time
from decimal import Decimal
from typing import Any, Dict, Optional


def _num(v: Any) -> Any:
    if isinstance(v, Decimal):
        return str(v)
    return v


def log_trade_event(
    event_type: str,
    asset: str,
    side: str,
    mode: str,
    token_amount: Optional[Decimal] = None,
    sol_amount: Optional[Decimal] = None,
    price: Optional[Decimal] = None,
    reason: Optional[str] = None,
    ts: Optional[int] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    """Emit a structured JSON log line for a trade attempt.

    Keys: event, asset, side, mode, token_amount, sol_amount, price, reason, ts,
    severity, component, schema_version
    """
    try:
        logger = logging.getLogger("pumpbot.trade")
        payload: Dict[str, Any] = {
            "event": str(event_type),
            "asset": str(asset),
            "side": str(side),
            "mode": str(mode),
            "token_amount": _num(token_amount),
            "sol_amount": _num(sol_amount),
            "price": _num(price),
            "reason": reason,
            "ts": int(ts if ts is not None else int(time.time() * 1000)),
            "severity": "ERROR" if event_type == "trade_failed" else "INFO",
            "component": "trader",
            "schema_version": "v1",
        }
        if extra:
            payload["extra"] = {k: _num(v) for k, v in extra.items()}
        if event_type == "trade_failed":
            logger.error(json.dumps(payload, separators=(",", ":")))
        else:
            logger.info(json.dumps(payload, separators=(",", ":")))
    except Exception:
        # Logging must never throw
        pass
