"""Ledger package.

Public API:
- PaperLedger: simulated SOL balance, raw token holdings and trade history.
- persist / restore / load_or_create: JSON checkpointing of a PaperLedger.
"""

from .errors import (  # re-export
    InsufficientBalanceError,
    InvalidTradeError,
    LedgerError,
    MalformedStateError,
    NoHoldingError,
    NotFoundError,
)
from .paper_wallet import PaperLedger
from .store import load_or_create, persist, restore

__all__ = [
    "InsufficientBalanceError",
    "InvalidTradeError",
    "LedgerError",
    "MalformedStateError",
    "NoHoldingError",
    "NotFoundError",
    "PaperLedger",
    "load_or_create",
    "persist",
    "restore",
]
