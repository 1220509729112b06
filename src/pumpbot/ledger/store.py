"""
Paper wallet persistence.

What it does:
- Writes the full ledger state to a UTF-8 JSON document (`baseBalance`,
  `holdings`, `history`) using write-to-temp-then-rename so a crash never
  leaves a half-written wallet behind.
- Reads it back and validates the shape with Pydantic models.

Decimal fields are written as JSON numbers carrying their exact decimal
text, and read back with `parse_float=Decimal`, so a save/load cycle keeps
every digit. `rawAmount` is a string to survive readers with 53-bit floats.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field

from ..exec.model import Holding, TradeRecord
from ..metrics.exec import get_wallet_saves_total
from .errors import MalformedStateError, NotFoundError
from .paper_wallet import PaperLedger

logger = logging.getLogger(__name__)


class HoldingState(BaseModel):
    rawAmount: str = Field(pattern=r"^[0-9]+$")
    decimals: int = Field(ge=0)


class TradeRecordState(BaseModel):
    kind: Literal["buy", "sell"]
    asset: str
    tokenAmount: Decimal
    baseAmount: Decimal
    timestamp: datetime


class WalletState(BaseModel):
    baseBalance: Decimal
    holdings: Dict[str, HoldingState]
    history: List[TradeRecordState]


def to_state(ledger: PaperLedger) -> WalletState:
    snap = ledger.snapshot()
    return WalletState(
        baseBalance=snap.base_balance,
        holdings={
            asset: HoldingState(rawAmount=str(h.raw_amount), decimals=h.decimals)
            for asset, h in snap.holdings.items()
        },
        history=[
            TradeRecordState(
                kind=r.kind,
                asset=r.asset,
                tokenAmount=r.token_amount,
                baseAmount=r.base_amount,
                timestamp=r.timestamp,
            )
            for r in snap.history
        ],
    )


def from_state(state: WalletState) -> PaperLedger:
    return PaperLedger(
        base_balance=state.baseBalance,
        holdings={
            asset: Holding(raw_amount=int(h.rawAmount), decimals=h.decimals)
            for asset, h in state.holdings.items()
        },
        history=[
            TradeRecord(
                kind=r.kind,
                asset=r.asset,
                token_amount=r.tokenAmount,
                base_amount=r.baseAmount,
                timestamp=r.timestamp,
            )
            for r in state.history
        ],
    )


def _encode(value: Any, level: int = 0) -> str:
    """Pretty-print `value` as JSON, writing Decimals as bare numbers.

    `json.dumps` can only emit a Decimal through `float` (losing digits) or
    as a string, and pydantic's `model_dump_json` writes Decimal as a
    string too, so neither keeps the amount as an exact JSON number.
    """
    pad = "  " * (level + 1)
    end = "  " * level
    if isinstance(value, dict):
        if not value:
            return "{}"
        items = [f"{pad}{json.dumps(str(k))}: {_encode(v, level + 1)}" for k, v in value.items()]
        return "{\n" + ",\n".join(items) + "\n" + end + "}"
    if isinstance(value, list):
        if not value:
            return "[]"
        items = [f"{pad}{_encode(v, level + 1)}" for v in value]
        return "[\n" + ",\n".join(items) + "\n" + end + "]"
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValueError(f"cannot persist non-finite amount {value}")
        return str(value)
    if isinstance(value, datetime):
        return json.dumps(value.isoformat())
    return json.dumps(value, ensure_ascii=False)


def dumps_state(state: WalletState) -> str:
    return _encode(state.model_dump()) + "\n"


def loads_state(text: str) -> PaperLedger:
    # ValueError also covers JSONDecodeError, ValidationError and int() digit
    # limits; RecursionError comes from pathologically nested documents.
    try:
        raw = json.loads(text, parse_float=Decimal)
        return from_state(WalletState.model_validate(raw))
    except (ValueError, RecursionError) as e:
        raise MalformedStateError(f"Invalid paper wallet state: {e}") from e


def atomic_write_text(path: str, text: str) -> None:
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=".tmp-", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def persist(ledger: PaperLedger, path: str = "paper_wallet.json") -> None:
    atomic_write_text(path, dumps_state(to_state(ledger)))
    try:
        get_wallet_saves_total().inc()
    except Exception:
        pass
    logger.debug(f"paper wallet saved to {path}")


def restore(path: str = "paper_wallet.json") -> PaperLedger:
    """Load a ledger from `path`.

    Raises NotFoundError when nothing was saved yet and MalformedStateError
    when the document does not match the wallet layout.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except FileNotFoundError as e:
        raise NotFoundError(f"No paper wallet at {path}") from e
    except UnicodeDecodeError as e:
        raise MalformedStateError(f"Paper wallet at {path} is not UTF-8") from e
    return loads_state(text)


def load_or_create(path: str, starting_balance) -> PaperLedger:
    """Restore the wallet at `path`, or start a fresh one with `starting_balance`."""
    try:
        ledger = restore(path)
        logger.info(f"Loaded paper wallet from {path}: {ledger.get_balance()} SOL")
        return ledger
    except NotFoundError:
        logger.info(f"No paper wallet at {path}; starting with {starting_balance} SOL")
        return PaperLedger(base_balance=starting_balance)
