"""Price lookup seam used by the trade flow.

The live bot asks an external feed for a token's price (in SOL) and market
cap. Only the interface and a static, config-driven source live here; the
trade flow treats a missing quote as a hard stop.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional, Protocol

from ..ledger.paper_wallet import to_decimal


@dataclass(frozen=True)
class PriceQuote:
    price: Decimal
    market_cap: Decimal


class PriceSource(Protocol):
    def get_price_and_market_cap(self, asset: str) -> Optional[PriceQuote]:
        ...


class StaticPriceSource:
    """Quotes from a fixed table, e.g. the `prices` section of config.yaml.

    Entries are either a bare price or a mapping with `price` and
    `market_cap`.
    """

    def __init__(self, overrides: Dict[str, Any] | None = None):
        self._quotes: Dict[str, PriceQuote] = {}
        for asset, entry in (overrides or {}).items():
            self.set_quote(str(asset), entry)

    def set_quote(self, asset: str, entry: Any) -> None:
        if isinstance(entry, dict):
            price = to_decimal(entry["price"])
            market_cap = to_decimal(entry.get("market_cap", 0))
        else:
            price = to_decimal(entry)
            market_cap = Decimal(0)
        self._quotes[asset] = PriceQuote(price=price, market_cap=market_cap)

    def get_price_and_market_cap(self, asset: str) -> Optional[PriceQuote]:
        return self._quotes.get(asset)
