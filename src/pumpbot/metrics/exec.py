from __future__ import annotations

from typing import Optional
import os
from prometheus_client import Counter, Gauge, REGISTRY

_paper_trades_total: Optional[Counter] = None
_paper_balance: Optional[Gauge] = None
_trade_failures_total: Optional[Counter] = None
_wallet_saves_total: Optional[Counter] = None


class _NoOp:
    def labels(self, *args, **kwargs):
        return self
    def inc(self, *args, **kwargs):
        return None
    def set(self, *args, **kwargs):
        return None


def _existing(name: str):
    coll = getattr(REGISTRY, "_names_to_collectors", {}).get(name)
    if coll is not None:
        return coll
    for coll in list(getattr(REGISTRY, "_collector_to_names", {}).keys()):  # type: ignore[attr-defined]
        if getattr(coll, "_name", None) == name:
            return coll
    return None


def _safe_counter(name: str, doc: str, labelnames):
    if os.getenv("DISABLE_PROMETHEUS", "0") == "1":
        return _NoOp()
    try:
        return Counter(name, doc, labelnames)
    except ValueError:
        # Already registered (module reloads, repeated test imports)
        try:
            coll = _existing(name)
            if coll is not None:
                return coll
        except Exception:
            pass
        return _NoOp()


def _safe_gauge(name: str, doc: str):
    if os.getenv("DISABLE_PROMETHEUS", "0") == "1":
        return _NoOp()
    try:
        return Gauge(name, doc)
    except ValueError:
        try:
            coll = _existing(name)
            if isinstance(coll, Gauge):
                return coll
        except Exception:
            pass
        return _NoOp()


def get_paper_trades_total():
    """Counter: paper_trades_total{kind}"""
    global _paper_trades_total
    if _paper_trades_total is None:
        _paper_trades_total = _safe_counter("paper_trades_total", "Simulated trades applied to the paper wallet", ["kind"])
    return _paper_trades_total


def get_paper_balance_gauge():
    global _paper_balance
    if _paper_balance is None:
        _paper_balance = _safe_gauge("paper_balance_sol", "Paper wallet SOL balance")
    return _paper_balance


def get_trade_failures_total():
    """Counter: trade_failures_total{side,reason}"""
    global _trade_failures_total
    if _trade_failures_total is None:
        _trade_failures_total = _safe_counter("trade_failures_total", "Aborted trade attempts", ["side", "reason"])
    return _trade_failures_total


def get_wallet_saves_total():
    global _wallet_saves_total
    if _wallet_saves_total is None:
        _wallet_saves_total = _safe_counter("paper_wallet_saves_total", "Paper wallet checkpoints written", [])
    return _wallet_saves_total
