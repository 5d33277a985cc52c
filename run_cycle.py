# -*- coding: utf-8 -*-
"""
Main entry point for the trend trader.

Two sub-commands, each meant to be scheduled (cron, systemd timer):

    record  poll the Binance ticker and append one tick per pair to the store
    cycle   build signals from the recorded ticks and run one decision pass

Configuration comes from the environment (.env supported) and can be
overridden on the command line.
"""

import sys
import argparse
import logging
from datetime import timedelta

from rich.console import Console

from trendtrader.config import TrendTraderConfig
from trendtrader.decision.engine import PositionDecisionEngine
from trendtrader.exceptions import ConfigError, TrendTraderError
from trendtrader.live.binance_client import BinanceExchangeClient
from trendtrader.live.cycle import TradingCycle
from trendtrader.live.json_store import JsonStore
from trendtrader.live.paper_exchange import PaperExchangeClient
from trendtrader.live.report import print_cycle_report
from trendtrader.live.telegram_notifier import LoggingNotifier, TelegramNotifier, format_cycle_message
from trendtrader.live.ticker_recorder import TickerRecorder
from trendtrader.logging_setup import setup_logging


logger = logging.getLogger("trendtrader.run_cycle")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Trend trader for Binance spot markets')
    parser.add_argument('command', choices=['record', 'cycle'],
                        help="'record' stores ticker snapshots, 'cycle' runs one trading cycle")
    parser.add_argument('--base', type=str, action='append', default=None,
                        help='Base currency to work on, may be repeated (default: TREND_BASE_CURRENCIES or USDT)')
    parser.add_argument('--primary-minutes', type=int, default=None,
                        help='Primary aggregation window in minutes (default: 10)')
    parser.add_argument('--short-minutes', type=int, default=None,
                        help='Short aggregation window in minutes (default: 5)')
    parser.add_argument('--data-dir', type=str, default=None,
                        help='Directory of the JSON store (default: TREND_DATA_DIR or ./data)')
    parser.add_argument('--account', type=str, default=None,
                        help='Account key of the persisted state (default: strategy1)')
    parser.add_argument('--testnet', action='store_true', default=None,
                        help='Use Binance Testnet (default: from BINANCE_TESTNET env var)')
    parser.add_argument('--realnet', action='store_true', default=None,
                        help='Use Binance Realnet (default: from BINANCE_TESTNET env var)')
    parser.add_argument('--dry-run', action='store_true',
                        help='Trade against a persisted paper balance instead of the exchange')
    parser.add_argument('--paper-balance', type=float, default=None,
                        help='Initial paper balance of each base currency (default: 100)')
    parser.add_argument('--yes', action='store_true',
                        help='Do not ask for confirmation before trading on Realnet')
    parser.add_argument('--quiet', action='store_true',
                        help='Do not print the cycle report')
    return parser


def load_config(args: argparse.Namespace) -> TrendTraderConfig:
    """Build the configuration: defaults, then environment, then CLI arguments."""
    config = TrendTraderConfig()

    if args.testnet is not None:
        config.testnet = args.testnet
    elif args.realnet is not None:
        config.testnet = not args.realnet

    if args.base:
        config.base_currencies = [b.strip().upper() for b in args.base if b.strip()]
    if args.primary_minutes is not None:
        config.primary_minutes = args.primary_minutes
    if args.short_minutes is not None:
        config.short_minutes = args.short_minutes
    if args.data_dir:
        config.data_dir = args.data_dir
    if args.account:
        config.account_key = args.account
    if args.paper_balance is not None:
        config.paper_initial_balance = args.paper_balance

    config.validate()
    return config


def build_notifier(config: TrendTraderConfig):
    if config.telegram_enabled:
        try:
            return TelegramNotifier(config.telegram_bot_token, config.telegram_chat_id)
        except ValueError as e:
            logger.warning(f"Telegram disabled: {e}")
    return LoggingNotifier()


def run_record(config: TrendTraderConfig, store: JsonStore) -> int:
    # Ticker data is public, no credentials needed
    exchange = BinanceExchangeClient(use_testnet=config.testnet)
    recorder = TickerRecorder(exchange, store)
    for base in config.base_currencies:
        recorder.record(base)
    return 0


def run_trading(config: TrendTraderConfig, store: JsonStore, dry_run: bool, quiet: bool) -> int:
    if dry_run:
        balances = store.load_paper_balances(config.account_key)
        if balances is None:
            balances = {base: config.paper_initial_balance for base in config.base_currencies}
        exchange = PaperExchangeClient(balances)
    else:
        if not config.has_credentials:
            print("Error: API key and secret must be provided")
            print("\nSet BINANCE_API_KEY and BINANCE_API_SECRET, or use --dry-run")
            return 1
        exchange = BinanceExchangeClient(config.api_key, config.api_secret, use_testnet=config.testnet)

    notifier = build_notifier(config)
    cycle = TradingCycle(
        tick_source=store,
        store=store,
        exchange=exchange,
        notifier=notifier,
        decision_engine=PositionDecisionEngine(config.decision_config()),
        account_key=config.account_key
    )

    console = Console()
    for base in config.base_currencies:
        try:
            result = cycle.run_cycle(base, config.window_config())
        finally:
            # Fills of earlier bases survive a later base aborting
            if dry_run:
                store.save_paper_balances(config.account_key, exchange.balances)
        if not quiet:
            print_cycle_report(result, console)
        if not result.ok:
            logger.warning(format_cycle_message(result))

    return 0


def main():
    """Main entry point."""
    args = build_parser().parse_args()

    try:
        config = load_config(args)
    except ConfigError as e:
        print(f"Error: invalid configuration: {e}")
        sys.exit(1)

    setup_logging(config.log_level, config.log_file or None)
    logger.info(f"Configuration: {config.to_dict()}")

    if args.command == 'cycle' and not args.dry_run and not config.testnet and not args.yes:
        print("\nWARNING: You are about to trade on REALNET with real money!")
        print("Make sure you understand the risks and have tested on Testnet first.")
        response = input("Type 'YES' to continue: ")
        if response != 'YES':
            print("Aborted.")
            sys.exit(0)

    try:
        store = JsonStore(config.data_dir, tick_retention=timedelta(hours=config.tick_retention_hours))
        if args.command == 'record':
            exit_code = run_record(config, store)
        else:
            exit_code = run_trading(config, store, args.dry_run, args.quiet)
    except KeyboardInterrupt:
        print("\nReceived interrupt signal, stopping...")
        exit_code = 130
    except TrendTraderError as e:
        logger.exception(f"{args.command} failed: {e}")
        print(f"\nError: {e}")
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
