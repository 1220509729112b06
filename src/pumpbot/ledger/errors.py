"""Error taxonomy for the paper wallet and the trade flow around it."""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for paper wallet failures."""


class NoHoldingError(LedgerError):
    def __init__(self, asset: str):
        super().__init__(f"No tokens available to sell for {asset}")
        self.asset = asset


class InsufficientBalanceError(LedgerError):
    def __init__(self, balance, required):
        super().__init__(f"Insufficient SOL balance: have {balance}, need at least {required}")
        self.balance = balance
        self.required = required


class InvalidTradeError(LedgerError, ValueError):
    pass


class MalformedStateError(LedgerError):
    pass


class NotFoundError(LedgerError):
    """No persisted wallet exists yet; callers start from a fresh ledger."""


class PriceUnavailableError(LedgerError):
    def __init__(self, asset: str):
        super().__init__(f"Failed to fetch price and market cap data for {asset}")
        self.asset = asset


class LiveTradingUnavailableError(LedgerError):
    pass
