"""
Configuration loader for pumpbot.

What it does:
- Reads static settings from `config/config.yaml` (optional; defaults apply
  when the file is absent).
- Applies environment overrides (`PAPER_TRADE`, `STARTING_BALANCE`,
  `BUY_AMOUNT_SOL`, `SLIPPAGE_BASIS_POINTS`, `HELIUS_RPC_URL`, `PRIVATE_KEY`,
  `PAPER_WALLET_PATH`, `ASSETS_PATH`).
- Validates the result using Pydantic models.

Where it is used:
- Called by `pumpbot.main` to build a `Settings` object for the trade flow.

Key outputs:
- `Settings` with trade sizing, paper wallet locations, the live-mode
  credentials and the static price table.
"""

import os
from decimal import Decimal
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, model_validator

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


class TradeConfig(BaseModel):
    """Sizing for a single buy and tolerances passed to the live client."""
    buy_amount_sol: Decimal = Field(default=Decimal("0.001"), gt=0)
    fee_reserve_sol: Decimal = Field(default=Decimal("0.003"), ge=0)
    slippage_bps: int = Field(default=2000, ge=0)
    token_decimals: int = Field(default=6, ge=0)


class PaperConfig(BaseModel):
    enabled: bool = True
    starting_balance: Decimal = Decimal("1000")
    wallet_path: str = "paper_wallet.json"


class Settings(BaseModel):
    """Runtime settings assembled from YAML + environment variables."""
    trade: TradeConfig = Field(default_factory=TradeConfig)
    paper: PaperConfig = Field(default_factory=PaperConfig)
    assets_path: str = "assets.txt"
    rpc_url: str = ""
    private_key: str = ""
    prices: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def live_needs_credentials(self):
        if not self.paper.enabled:
            if not self.rpc_url:
                raise ValueError("Please set HELIUS_RPC_URL when PAPER_TRADE is disabled")
            if not self.private_key:
                raise ValueError("Please set PRIVATE_KEY when PAPER_TRADE is disabled")
        return self


def parse_bool(value: str) -> bool:
    v = value.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise ValueError(f"Not a boolean flag: {value!r}")


def _env(name: str) -> Optional[str]:
    v = os.getenv(name)
    return v if v is not None and v != "" else None


def load_settings(path: str = "config/config.yaml") -> Settings:
    """Load YAML config, apply env-var overrides, and return Settings."""
    config: Dict[str, Any] = {}
    if os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}

    trade = dict(config.get("trade", {}) or {})
    paper = dict(config.get("paper", {}) or {})

    if _env("BUY_AMOUNT_SOL"):
        trade["buy_amount_sol"] = _env("BUY_AMOUNT_SOL")
    if _env("SLIPPAGE_BASIS_POINTS"):
        trade["slippage_bps"] = _env("SLIPPAGE_BASIS_POINTS")
    if os.getenv("PAPER_TRADE") is not None:
        paper["enabled"] = parse_bool(os.getenv("PAPER_TRADE", ""))
    if _env("STARTING_BALANCE"):
        paper["starting_balance"] = _env("STARTING_BALANCE")
    if _env("PAPER_WALLET_PATH"):
        paper["wallet_path"] = _env("PAPER_WALLET_PATH")

    return Settings(
        trade=TradeConfig(**trade),
        paper=PaperConfig(**paper),
        assets_path=_env("ASSETS_PATH") or config.get("assets_path", "assets.txt"),
        rpc_url=os.getenv("HELIUS_RPC_URL", ""),
        private_key=os.getenv("PRIVATE_KEY", ""),
        prices=config.get("prices", {}) or {},
    )
