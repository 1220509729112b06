from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, localcontext
from typing import Literal

TradeKind = Literal["buy", "sell"]

LAMPORTS_PER_SOL = 1_000_000_000


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Holding:
    raw_amount: int
    decimals: int

    def tokens(self) -> Decimal:
        with localcontext() as ctx:
            ctx.prec = max(ctx.prec, len(str(self.raw_amount)) + 1)
            return Decimal(self.raw_amount).scaleb(-self.decimals)


@dataclass(frozen=True)
class TradeRecord:
    kind: TradeKind
    asset: str
    token_amount: Decimal
    base_amount: Decimal
    timestamp: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class SellResult:
    sold: bool
    remaining_tokens: Decimal


@dataclass(frozen=True)
class BuyOutcome:
    success: bool
    amount: Decimal
