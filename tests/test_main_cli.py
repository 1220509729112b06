from decimal import Decimal

from pumpbot.ledger import restore
from pumpbot.main import main


def _config(tmp_path):
    p = tmp_path / "config.yaml"
    p.write_text(
        "trade:\n  buy_amount_sol: '1'\n"
        "paper:\n  starting_balance: '10'\n"
        f"  wallet_path: '{tmp_path / 'paper_wallet.json'}'\n"
        f"assets_path: '{tmp_path / 'assets.txt'}'\n"
        "prices:\n  MINT: {price: '0.001', market_cap: '5000'}\n",
        encoding="utf-8",
    )
    return str(p)


def test_buy_sell_balance_history(tmp_path, monkeypatch):
    for name in ("PAPER_TRADE", "STARTING_BALANCE", "BUY_AMOUNT_SOL", "PAPER_WALLET_PATH", "ASSETS_PATH", "PROMETHEUS_PORT"):
        monkeypatch.delenv(name, raising=False)
    cfg = _config(tmp_path)
    wallet = str(tmp_path / "paper_wallet.json")

    assert main(["--config", cfg, "buy", "MINT"]) == 0
    assert restore(wallet).get_balance() == Decimal("9")
    assert restore(wallet).token_balance("MINT") == Decimal("1000")

    assert main(["--config", cfg, "sell", "MINT", "25"]) == 0
    led = restore(wallet)
    assert led.token_balance("MINT") == Decimal("750")
    assert led.get_balance() == Decimal("9.25")

    assert main(["--config", cfg, "balance"]) == 0
    assert main(["--config", cfg, "history", "--csv", str(tmp_path / "h.csv")]) == 0
    assert (tmp_path / "h.csv").exists()


def test_errors_map_to_exit_codes(tmp_path, monkeypatch):
    for name in ("PAPER_TRADE", "STARTING_BALANCE", "BUY_AMOUNT_SOL", "PAPER_WALLET_PATH", "ASSETS_PATH", "PROMETHEUS_PORT"):
        monkeypatch.delenv(name, raising=False)
    cfg = _config(tmp_path)
    assert main(["--config", cfg, "sell", "UNKNOWN", "50"]) == 1
    assert main(["--config", cfg, "buy", "NOPRICE"]) == 1
    assert not (tmp_path / "paper_wallet.json").exists()

    (tmp_path / "paper_wallet.json").write_text("{broken", encoding="utf-8")
    assert main(["--config", cfg, "balance"]) == 1

    monkeypatch.setenv("PAPER_TRADE", "0")
    monkeypatch.delenv("HELIUS_RPC_URL", raising=False)
    assert main(["--config", cfg, "balance"]) == 2
