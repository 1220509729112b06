"""
Main entrypoint for pumpbot.

What it does:
- Loads runtime settings from `config/config.yaml` and environment variables
  (`PAPER_TRADE`, `STARTING_BALANCE`, `BUY_AMOUNT_SOL`, ...).
- Restores the paper wallet (or starts a fresh one) and runs a single
  command against it: buy a token, sell a percentage of a holding, print the
  balance, or dump the trade history.

Where it is used:
- Invoked by `python -m pumpbot.main <command>` or the `pumpbot` console script.

Key related modules:
- `pumpbot.config.loader.Settings` and `load_settings`
- `pumpbot.exec.trader.Trader`
- `pumpbot.ledger` (PaperLedger and its JSON checkpoint)
"""
import argparse
import logging
import os
import sys
from typing import List, Optional

from pumpbot.config.loader import load_settings
from pumpbot.data.prices import StaticPriceSource
from pumpbot.exec.assets import AssetBook
from pumpbot.exec.trader import Trader
from pumpbot.ledger import LedgerError, load_or_create
from pumpbot.metrics.core import start_server_safe
from pumpbot.reports.history import history_frame, summarize, write_history_csv


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="pumpbot", description="Launchpad token trader with a paper wallet")
    p.add_argument("--config", default=os.getenv("PUMPBOT_CONFIG", "config/config.yaml"))
    sub = p.add_subparsers(dest="command", required=True)
    buy = sub.add_parser("buy", help="buy BUY_AMOUNT_SOL worth of a token")
    buy.add_argument("mint")
    sell = sub.add_parser("sell", help="sell a percentage of a holding")
    sell.add_argument("mint")
    sell.add_argument("percentage", nargs="?", default="100")
    sub.add_parser("balance", help="show paper wallet balance and holdings")
    hist = sub.add_parser("history", help="show paper trade history")
    hist.add_argument("--csv", default=None, help="also write the history to this CSV path")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings(args.config)
    except ValueError as e:
        logging.error(f"Invalid configuration: {e}")
        return 2
    logging.info(f"Mode: {'paper' if settings.paper.enabled else 'live'}, buy size: {settings.trade.buy_amount_sol} SOL")

    prom_port = int(os.getenv("PROMETHEUS_PORT", "0"))
    start_server_safe(prom_port)

    try:
        ledger = load_or_create(settings.paper.wallet_path, settings.paper.starting_balance)
    except LedgerError as e:
        logging.error(f"Cannot load paper wallet: {e}")
        return 1

    if args.command == "balance":
        logging.info(f"Paper SOL balance: {ledger.get_balance()}")
        for asset in sorted(ledger.holdings):
            logging.info(f"{asset}: {ledger.token_balance(asset)} tokens")
        return 0
    if args.command == "history":
        logging.info(f"history:\n{history_frame(ledger).to_string(index=False)}")
        logging.info(f"summary:\n{summarize(ledger).to_string()}")
        if args.csv:
            logging.info(f"history written to {write_history_csv(ledger, args.csv)}")
        return 0

    # Live trading needs an SDK-backed client injected by the caller; the CLI only
    # wires the paper wallet.
    trader = Trader(
        settings,
        ledger,
        prices=StaticPriceSource(settings.prices),
        assets=AssetBook(settings.assets_path),
    )
    try:
        if args.command == "buy":
            outcome = trader.buy_token(args.mint)
            logging.info(f"buy {'succeeded' if outcome.success else 'failed'}: {outcome.amount} tokens")
            return 0 if outcome.success else 1
        result = trader.sell_token(args.mint, args.percentage)
        logging.info(f"sell {'succeeded' if result.sold else 'sold nothing'}: {result.remaining_tokens} tokens left")
        return 0
    except (LedgerError, ValueError, ArithmeticError, OSError) as e:
        logging.error(f"{args.command} aborted: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
