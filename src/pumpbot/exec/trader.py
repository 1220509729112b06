from __future__ import annotations

import logging
import threading
from decimal import Decimal
from typing import Callable, Optional, Protocol

from .assets import AssetBook
from .model import LAMPORTS_PER_SOL, BuyOutcome, SellResult
from ..config.loader import Settings
from ..data.prices import PriceQuote, PriceSource
from ..ledger.errors import (
    InsufficientBalanceError,
    LiveTradingUnavailableError,
    PriceUnavailableError,
)
from ..ledger.paper_wallet import PaperLedger, to_decimal
from ..ledger.store import persist
from ..logs.trade_log import log_trade_event
from ..metrics.exec import get_trade_failures_total


logger = logging.getLogger(__name__)


class TradingClient(Protocol):
    """On-chain trading SDK wrapper used when paper trading is off."""

    def buy(self, asset: str, lamports: int, slippage_bps: int) -> Decimal:
        """Submit a buy and return the token amount now held."""
        ...

    def sell(self, asset: str, percentage: Decimal, slippage_bps: int) -> SellResult:
        ...


class Trader:
    """Buy/sell orchestration for one wallet.

    In paper mode every trade is applied to `ledger` and checkpointed to disk
    right after. A failed attempt (no price, not enough SOL, bad input, write
    error) leaves the ledger as it was and the error is raised to the caller.
    """

    def __init__(
        self,
        settings: Settings,
        ledger: PaperLedger,
        prices: PriceSource,
        assets: Optional[AssetBook] = None,
        client: Optional[TradingClient] = None,
    ):
        self.settings = settings
        self.ledger = ledger
        self.prices = prices
        self.assets = assets
        self.client = client
        # balance check, mutation and checkpoint run as one step
        self._lock = threading.Lock()
        self.failures = get_trade_failures_total()

    @property
    def paper(self) -> bool:
        return self.settings.paper.enabled

    @property
    def mode(self) -> str:
        return "paper" if self.paper else "live"

    def buy_token(self, asset: str) -> BuyOutcome:
        logger.info(f"Initializing buy of {asset} ({self.mode})")
        with self._lock:
            try:
                quote = self._quote(asset)
                if self.paper:
                    tokens = self._paper_buy(asset, quote)
                else:
                    tokens = self._live_buy(asset)
                    if tokens <= 0:
                        logger.info("Purchase failed or zero tokens received.")
                        return BuyOutcome(success=False, amount=Decimal(0))
                    if self.assets is not None:
                        self.assets.record_buy(asset, quote.price, quote.market_cap, tokens)
            except Exception as e:
                self._failed("buy", asset, e)
                raise
        log_trade_event(
            "trade_filled", asset, "buy", self.mode,
            token_amount=tokens, sol_amount=self.settings.trade.buy_amount_sol, price=quote.price,
        )
        return BuyOutcome(success=True, amount=tokens)

    def sell_token(self, asset: str, percentage) -> SellResult:
        pct = to_decimal(percentage)
        logger.info(f"Initializing sell of {pct}% {asset} ({self.mode})")
        with self._lock:
            try:
                if self.paper:
                    quote = self._quote(asset)
                    snap = self.ledger.snapshot()
                    result = self.ledger.sell(asset, pct, quote.price)
                    if result.sold:
                        self._checkpoint(snap, lambda book: book.update_remaining(asset, result.remaining_tokens))
                else:
                    quote = None
                    result = self._client().sell(asset, pct, self.settings.trade.slippage_bps)
                    if self.assets is not None and result.sold:
                        self.assets.update_remaining(asset, result.remaining_tokens)
            except Exception as e:
                self._failed("sell", asset, e)
                raise
        log_trade_event(
            "trade_filled" if result.sold else "trade_noop", asset, "sell", self.mode,
            price=quote.price if quote is not None else None,
            extra={"percentage": pct, "remaining_tokens": result.remaining_tokens},
        )
        return result

    def _quote(self, asset: str) -> PriceQuote:
        quote = self.prices.get_price_and_market_cap(asset)
        if quote is None:
            raise PriceUnavailableError(asset)
        return quote

    def _paper_buy(self, asset: str, quote: PriceQuote) -> Decimal:
        trade = self.settings.trade
        balance = self.ledger.get_balance()
        logger.info(f"Paper trade balance: {balance}")
        required = trade.buy_amount_sol + trade.fee_reserve_sol
        if balance < required:
            raise InsufficientBalanceError(balance, required)
        snap = self.ledger.snapshot()
        tokens = self.ledger.buy(asset, trade.buy_amount_sol, quote.price, trade.token_decimals)
        self._checkpoint(snap, lambda book: book.record_buy(asset, quote.price, quote.market_cap, tokens))
        return tokens

    def _live_buy(self, asset: str) -> Decimal:
        trade = self.settings.trade
        lamports = int(trade.buy_amount_sol * LAMPORTS_PER_SOL)
        return to_decimal(self._client().buy(asset, lamports, trade.slippage_bps))

    def _client(self) -> TradingClient:
        if self.client is None:
            raise LiveTradingUnavailableError("PAPER_TRADE is off but no trading client is configured")
        return self.client

    def _checkpoint(self, snap, book_update: Optional[Callable[[AssetBook], object]] = None) -> None:
        """Save the ledger, then apply `book_update` to the asset book.

        If either step fails the ledger goes back to `snap`; when the wallet
        file was already written it is rewritten from `snap` as well.
        """
        path = self.settings.paper.wallet_path
        saved = False
        try:
            persist(self.ledger, path)
            saved = True
            if self.assets is not None and book_update is not None:
                book_update(self.assets)
        except Exception:
            self.ledger.rollback(snap)
            if saved:
                try:
                    persist(self.ledger, path)
                except OSError as e:
                    logger.error(f"Could not restore paper wallet file {path}: {e}")
            raise

    def _failed(self, side: str, asset: str, e: Exception) -> None:
        reason = type(e).__name__
        try:
            self.failures.labels(side, reason).inc()
        except Exception:
            pass
        log_trade_event("trade_failed", asset, side, self.mode, reason=f"{reason}: {e}")
