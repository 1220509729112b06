"""
Trade history tables for the paper wallet.

Usage (venv):
  PYTHONPATH=src python -m pumpbot.main history --csv reports/history.csv
"""

from __future__ import annotations

import os
from typing import List

import pandas as pd

from ..ledger.paper_wallet import PaperLedger

COLUMNS: List[str] = ["timestamp", "kind", "asset", "token_amount", "sol_amount"]


def history_frame(ledger: PaperLedger) -> pd.DataFrame:
    rows = [
        {
            "timestamp": r.timestamp,
            "kind": r.kind,
            "asset": r.asset,
            # keep Decimals; the frame is for display and export, not arithmetic
            "token_amount": r.token_amount,
            "sol_amount": r.base_amount,
        }
        for r in ledger.history
    ]
    return pd.DataFrame(rows, columns=COLUMNS)


def summarize(ledger: PaperLedger) -> pd.DataFrame:
    """Per-asset totals: tokens bought/sold, SOL spent/received, tokens held."""
    df = history_frame(ledger)
    out = pd.DataFrame(
        index=pd.Index(sorted(set(df["asset"]) | set(ledger.holdings)), name="asset"),
        columns=["tokens_bought", "tokens_sold", "sol_spent", "sol_received", "tokens_held"],
        dtype=float,
    ).fillna(0.0)
    for kind, tok_col, sol_col in (("buy", "tokens_bought", "sol_spent"), ("sell", "tokens_sold", "sol_received")):
        part = df[df["kind"] == kind]
        if part.empty:
            continue
        grouped = part.groupby("asset")[["token_amount", "sol_amount"]].agg(lambda s: float(sum(s)))
        out.loc[grouped.index, tok_col] = grouped["token_amount"].values
        out.loc[grouped.index, sol_col] = grouped["sol_amount"].values
    for asset in out.index:
        out.loc[asset, "tokens_held"] = float(ledger.token_balance(asset))
    return out


def write_history_csv(ledger: PaperLedger, path: str) -> str:
    d = os.path.dirname(path)
    if d:
        os.makedirs(d, exist_ok=True)
    history_frame(ledger).to_csv(path, index=False)
    return path
