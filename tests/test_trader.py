import threading
from decimal import Decimal

import pytest

from pumpbot.config.loader import PaperConfig, Settings, TradeConfig
from pumpbot.data.prices import StaticPriceSource
from pumpbot.exec.assets import AssetBook
from pumpbot.exec.model import SellResult
from pumpbot.exec.trader import Trader
from pumpbot.ledger import InsufficientBalanceError, NoHoldingError, PaperLedger, restore
from pumpbot.ledger.errors import LiveTradingUnavailableError, PriceUnavailableError


def _settings(tmp_path, live=False):
    cfg = {"wallet_path": str(tmp_path / "paper_wallet.json"), "enabled": not live}
    return Settings(
        rpc_url="http://rpc" if live else "",
        private_key="k" if live else "",
        trade=TradeConfig(buy_amount_sol=Decimal("0.5"), fee_reserve_sol=Decimal("0.003"), token_decimals=6),
        paper=PaperConfig(**cfg),
        assets_path=str(tmp_path / "assets.txt"),
    )


def _trader(tmp_path, balance="10", prices=None):
    settings = _settings(tmp_path)
    ledger = PaperLedger(base_balance=balance)
    src = StaticPriceSource(prices if prices is not None else {"MINT": {"price": "0.0001", "market_cap": "30000"}})
    return Trader(settings, ledger, src, assets=AssetBook(settings.assets_path))


def test_paper_buy_updates_ledger_file_and_assets(tmp_path):
    t = _trader(tmp_path)
    out = t.buy_token("MINT")
    assert out.success is True
    assert out.amount == Decimal("5000")
    assert t.ledger.get_balance() == Decimal("9.5")
    saved = restore(t.settings.paper.wallet_path)
    assert saved.snapshot() == t.ledger.snapshot()
    entry = t.assets.get("MINT")
    assert entry.bought_price == Decimal("0.0001")
    assert entry.bought_market_cap == Decimal("30000")
    assert entry.remaining_tokens == Decimal("5000")


def test_paper_buy_insufficient_balance(tmp_path):
    t = _trader(tmp_path, balance="0.502")
    with pytest.raises(InsufficientBalanceError):
        t.buy_token("MINT")
    assert t.ledger.get_balance() == Decimal("0.502")
    assert t.ledger.history == []
    assert t.assets.entries() == []


def test_missing_price_aborts_before_mutation(tmp_path):
    t = _trader(tmp_path, prices={})
    with pytest.raises(PriceUnavailableError):
        t.buy_token("MINT")
    assert t.ledger.get_balance() == Decimal("10")


def test_paper_sell_updates_and_removes_asset(tmp_path):
    t = _trader(tmp_path)
    t.buy_token("MINT")
    t.prices.set_quote("MINT", {"price": "0.0002", "market_cap": "60000"})
    res = t.sell_token("MINT", 50)
    assert res == SellResult(sold=True, remaining_tokens=Decimal("2500"))
    assert t.ledger.get_balance() == Decimal("10")
    assert t.assets.get("MINT").remaining_tokens == Decimal("2500")
    res = t.sell_token("MINT", "100")
    assert res.remaining_tokens == 0
    assert t.assets.get("MINT") is None
    assert restore(t.settings.paper.wallet_path).get_balance() == Decimal("10.5")


def test_paper_sell_unknown_asset(tmp_path):
    t = _trader(tmp_path)
    with pytest.raises(NoHoldingError):
        t.sell_token("MINT", 50)


def test_failed_checkpoint_rolls_back(tmp_path, monkeypatch):
    t = _trader(tmp_path)

    def _boom(ledger, path):
        raise OSError("disk full")

    monkeypatch.setattr("pumpbot.exec.trader.persist", _boom)
    with pytest.raises(OSError):
        t.buy_token("MINT")
    assert t.ledger.get_balance() == Decimal("10")
    assert t.ledger.get_holding("MINT") is None
    assert t.ledger.history == []


def test_failed_asset_write_rolls_back_buy(tmp_path, monkeypatch):
    t = _trader(tmp_path)

    def _boom(entries):
        raise OSError("disk full")

    monkeypatch.setattr(t.assets, "_write", _boom)
    with pytest.raises(OSError):
        t.buy_token("MINT")
    assert t.ledger.get_balance() == Decimal("10")
    assert t.ledger.get_holding("MINT") is None
    assert t.ledger.history == []
    assert t.assets.entries() == []
    saved = restore(t.settings.paper.wallet_path)
    assert saved.get_balance() == Decimal("10")
    assert saved.history == []


def test_failed_asset_write_rolls_back_sell(tmp_path, monkeypatch):
    t = _trader(tmp_path)
    t.buy_token("MINT")
    before = t.ledger.snapshot()
    assets_text = (tmp_path / "assets.txt").read_text(encoding="utf-8")

    def _boom(entries):
        raise OSError("disk full")

    monkeypatch.setattr(t.assets, "_write", _boom)
    with pytest.raises(OSError):
        t.sell_token("MINT", 50)
    assert t.ledger.snapshot() == before
    assert restore(t.settings.paper.wallet_path).snapshot() == before
    assert t.assets.get("MINT").remaining_tokens == Decimal("5000")
    assert (tmp_path / "assets.txt").read_text(encoding="utf-8") == assets_text


def test_concurrent_buys_cannot_overspend(tmp_path):
    # 0.8 SOL covers one 0.5 buy plus the 0.003 reserve, not two
    t = _trader(tmp_path, balance="0.8")
    n = 8
    barrier = threading.Barrier(n)
    results, errors = [], []

    def _worker():
        barrier.wait()
        try:
            results.append(t.buy_token("MINT"))
        except InsufficientBalanceError as e:
            errors.append(e)

    threads = [threading.Thread(target=_worker) for _ in range(n)]
    for th in threads:
        th.start()
    for th in threads:
        th.join()

    assert len(results) == 1 and results[0].success
    assert len(errors) == n - 1
    assert t.ledger.get_balance() == Decimal("0.3")
    assert len(t.ledger.history) == 1
    assert restore(t.settings.paper.wallet_path).get_balance() == Decimal("0.3")
    assert t.assets.get("MINT").remaining_tokens == Decimal("5000")


class _FakeClient:
    def __init__(self, tokens):
        self.tokens = tokens
        self.calls = []

    def buy(self, asset, lamports, slippage_bps):
        self.calls.append(("buy", asset, lamports, slippage_bps))
        return self.tokens

    def sell(self, asset, percentage, slippage_bps):
        self.calls.append(("sell", asset, percentage, slippage_bps))
        return SellResult(sold=True, remaining_tokens=Decimal(0))


def _live_trader(tmp_path, client):
    settings = _settings(tmp_path, live=True)
    ledger = PaperLedger(base_balance=1)
    return Trader(settings, ledger, StaticPriceSource({"MINT": "0.0001"}), client=client)


def test_live_mode_bypasses_ledger(tmp_path):
    client = _FakeClient(tokens=4999)
    t = _live_trader(tmp_path, client)
    out = t.buy_token("MINT")
    assert out.success and out.amount == Decimal(4999)
    assert client.calls[0] == ("buy", "MINT", 500_000_000, 2000)
    assert t.sell_token("MINT", 100).sold is True
    assert t.ledger.history == []
    assert not (tmp_path / "paper_wallet.json").exists()


def test_live_mode_zero_tokens_is_failure(tmp_path):
    t = _live_trader(tmp_path, _FakeClient(tokens=0))
    out = t.buy_token("MINT")
    assert out.success is False and out.amount == 0


def test_live_mode_without_client(tmp_path):
    t = _live_trader(tmp_path, None)
    with pytest.raises(LiveTradingUnavailableError):
        t.buy_token("MINT")
