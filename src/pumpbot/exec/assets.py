from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Dict, List, Optional

from ..ledger.paper_wallet import to_decimal
from ..ledger.store import atomic_write_text

logger = logging.getLogger(__name__)


@dataclass
class AssetEntry:
    token_address: str
    bought_price: Decimal
    bought_market_cap: Decimal
    remaining_tokens: Optional[Decimal]

    def to_line(self) -> str:
        remaining = f"{self.remaining_tokens:.6f}" if self.remaining_tokens is not None else ""
        return f"{self.token_address}, {self.bought_price:.9f}, {self.bought_market_cap:.9f}, {remaining}"

    @classmethod
    def from_line(cls, line: str) -> "AssetEntry":
        parts = [p.strip() for p in line.split(",")]
        if len(parts) < 3:
            raise ValueError(f"bad asset line: {line!r}")
        remaining = parts[3] if len(parts) > 3 else ""
        return cls(
            token_address=parts[0],
            bought_price=to_decimal(parts[1]),
            bought_market_cap=to_decimal(parts[2]),
            remaining_tokens=to_decimal(remaining) if remaining else None,
        )


class AssetBook:
    """Positions opened by the bot, one `assets.txt` line per token.

    Line format: `mint, bought_price, bought_market_cap, remaining_tokens`.
    """

    def __init__(self, path: str = "assets.txt"):
        self.path = path
        self._entries: Dict[str, AssetEntry] = {}
        self.load()

    def load(self) -> None:
        self._entries = {}
        if not os.path.exists(self.path):
            return
        with open(self.path, "r", encoding="utf-8") as f:
            for n, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    entry = AssetEntry.from_line(line)
                except (ValueError, ArithmeticError) as e:
                    logger.warning(f"{self.path}:{n}: skipping unreadable asset line: {e}")
                    continue
                self._entries[entry.token_address] = entry

    def entries(self) -> List[AssetEntry]:
        return list(self._entries.values())

    def get(self, token_address: str) -> Optional[AssetEntry]:
        return self._entries.get(token_address)

    def record_buy(self, token_address: str, price, market_cap, tokens) -> AssetEntry:
        entry = AssetEntry(
            token_address=token_address,
            bought_price=to_decimal(price),
            bought_market_cap=to_decimal(market_cap),
            remaining_tokens=to_decimal(tokens),
        )
        prev = self._entries.get(token_address)
        if prev is not None and prev.remaining_tokens is not None:
            # keep the first entry price, accumulate size
            entry.bought_price = prev.bought_price
            entry.bought_market_cap = prev.bought_market_cap
            entry.remaining_tokens = prev.remaining_tokens + entry.remaining_tokens
        entries = dict(self._entries)
        entries[token_address] = entry
        self._commit(entries)
        return entry

    def update_remaining(self, token_address: str, remaining) -> None:
        entry = self._entries.get(token_address)
        if entry is None:
            return
        remaining = to_decimal(remaining)
        if remaining <= 0:
            self.remove(token_address)
            return
        entries = dict(self._entries)
        entries[token_address] = replace(entry, remaining_tokens=remaining)
        self._commit(entries)

    def remove(self, token_address: str) -> None:
        if token_address in self._entries:
            entries = dict(self._entries)
            del entries[token_address]
            self._commit(entries)

    def _commit(self, entries: Dict[str, AssetEntry]) -> None:
        # file first; memory only changes once the write went through
        self._write(entries)
        self._entries = entries

    def _write(self, entries: Dict[str, AssetEntry]) -> None:
        data = "\n".join(e.to_line() for e in entries.values())
        atomic_write_text(self.path, data)
