from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from decimal import ROUND_FLOOR, Decimal, localcontext
from typing import Dict, Iterable, List, Optional, Tuple

from ..exec.model import Holding, SellResult, TradeRecord, utc_now
from ..metrics.exec import get_paper_balance_gauge, get_paper_trades_total
from .errors import InvalidTradeError, NoHoldingError

logger = logging.getLogger(__name__)

# Enough digits for 18-decimal tokens on top of a large supply.
_PRECISION = 60


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


@dataclass(frozen=True)
class WalletSnapshot:
    base_balance: Decimal
    holdings: Dict[str, Holding]
    history: Tuple[TradeRecord, ...]


class PaperLedger:
    """Simulated SOL wallet used in place of on-chain trades.

    Holdings are kept as raw integers in the token's smallest unit so that
    repeated buy/sell cycles never drift. The ledger does not check that the
    balance covers a buy; the trade flow does that before calling in.
    """

    def __init__(
        self,
        base_balance=Decimal("1000"),
        holdings: Optional[Dict[str, Holding]] = None,
        history: Optional[Iterable[TradeRecord]] = None,
    ):
        self.base_balance = to_decimal(base_balance)
        self.holdings: Dict[str, Holding] = {k: replace(v) for k, v in (holdings or {}).items()}
        self.history: List[TradeRecord] = list(history or [])
        self._trades = get_paper_trades_total()
        self._balance_gauge = get_paper_balance_gauge()

    def buy(self, asset: str, base_amount_spent, unit_price, decimals: int) -> Decimal:
        spent = to_decimal(base_amount_spent)
        price = to_decimal(unit_price)
        if spent <= 0:
            raise InvalidTradeError(f"buy amount must be positive, got {spent}")
        if price <= 0:
            raise InvalidTradeError(f"price must be positive, got {price}")
        if int(decimals) < 0:
            raise InvalidTradeError(f"decimals must be >= 0, got {decimals}")

        with localcontext() as ctx:
            ctx.prec = _PRECISION
            token_amount = spent / price
            holding = self.holdings.get(asset) or Holding(raw_amount=0, decimals=int(decimals))
            raw_added = int(token_amount.scaleb(holding.decimals).to_integral_value())
            new_balance = self.base_balance - spent

        self.base_balance = new_balance
        holding.raw_amount += raw_added
        self.holdings[asset] = holding
        self.history.append(TradeRecord(kind="buy", asset=asset, token_amount=token_amount, base_amount=spent, timestamp=utc_now()))
        self._record("buy")
        logger.info(f"Paper trade: Bought {token_amount} tokens of {asset} for {spent} SOL.")
        return token_amount

    def sell(self, asset: str, percentage_to_sell, unit_price) -> SellResult:
        holding = self.holdings.get(asset)
        if holding is None:
            raise NoHoldingError(asset)
        pct = to_decimal(percentage_to_sell)
        price = to_decimal(unit_price)
        if pct < 0 or pct > 100:
            raise InvalidTradeError(f"percentage must be within [0, 100], got {pct}")
        if price <= 0:
            raise InvalidTradeError(f"price must be positive, got {price}")

        # percentage in basis points, floored before touching the raw integer
        pct_bps = int((pct * 100).to_integral_value(rounding=ROUND_FLOOR))
        sell_raw = holding.raw_amount * pct_bps // 10_000
        if sell_raw == 0:
            return SellResult(sold=False, remaining_tokens=holding.tokens())

        with localcontext() as ctx:
            ctx.prec = _PRECISION
            sell_amount = Decimal(sell_raw).scaleb(-holding.decimals)
            base_received = sell_amount * price
            new_balance = self.base_balance + base_received

        self.base_balance = new_balance
        holding.raw_amount -= sell_raw
        self.history.append(TradeRecord(kind="sell", asset=asset, token_amount=sell_amount, base_amount=base_received, timestamp=utc_now()))
        self._record("sell")
        logger.info(f"Paper trade: Sold {sell_amount} tokens of {asset} for {base_received} SOL.")
        return SellResult(sold=True, remaining_tokens=holding.tokens())

    def get_balance(self) -> Decimal:
        return self.base_balance

    def get_holding(self, asset: str) -> Optional[Holding]:
        holding = self.holdings.get(asset)
        return replace(holding) if holding is not None else None

    def token_balance(self, asset: str) -> Decimal:
        holding = self.holdings.get(asset)
        return holding.tokens() if holding is not None else Decimal(0)

    def snapshot(self) -> WalletSnapshot:
        return WalletSnapshot(
            base_balance=self.base_balance,
            holdings={k: replace(v) for k, v in self.holdings.items()},
            history=tuple(self.history),
        )

    def rollback(self, snap: WalletSnapshot) -> None:
        """Put the ledger back to `snap` (used when a checkpoint write fails)."""
        self.base_balance = snap.base_balance
        self.holdings = {k: replace(v) for k, v in snap.holdings.items()}
        self.history = list(snap.history)

    def _record(self, kind: str) -> None:
        try:
            self._trades.labels(kind).inc()
            self._balance_gauge.set(float(self.base_balance))
        except Exception:
            # Metrics optional in tests
            pass
