# -*- coding: utf-8 -*-
"""
Live trading module.

Collaborator interfaces, their concrete adapters (Binance, JSON files,
Telegram, paper exchange) and the trading cycle that wires them together.
"""

from trendtrader.live.interfaces import ExchangeClient, Notifier, Store, TickSource
from trendtrader.live.binance_client import BinanceExchangeClient
from trendtrader.live.paper_exchange import PaperExchangeClient
from trendtrader.live.json_store import JsonStore
from trendtrader.live.telegram_notifier import LoggingNotifier, TelegramNotifier
from trendtrader.live.ticker_recorder import TickerRecorder
from trendtrader.live.cycle import TradingCycle
from trendtrader.live.report import print_cycle_report

__all__ = [
    'ExchangeClient',
    'Notifier',
    'Store',
    'TickSource',
    'BinanceExchangeClient',
    'PaperExchangeClient',
    'JsonStore',
    'LoggingNotifier',
    'TelegramNotifier',
    'TickerRecorder',
    'TradingCycle',
    'print_cycle_report'
]
