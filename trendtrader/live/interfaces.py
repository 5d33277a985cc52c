# -*- coding: utf-8 -*-
"""
Collaborator interfaces of the trading cycle.

The cycle only talks to these abstract classes; concrete adapters (Binance,
JSON files, Telegram, paper exchange) live next to this module.
"""

from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Dict, List, Mapping

from trendtrader.models import (
    AccountState, CurrencySignal, OrderPolicy, OrderResult, OrderSide, Tick
)


class TickSource(ABC):
    """Provides recently recorded ticks."""

    @abstractmethod
    def fetch_recent(self, base_currency: str, max_age: timedelta) -> List[Tick]:
        """
        Return ticks of all ``<base_currency>_*`` pairs newer than ``max_age``.

        Raises
        ------
        PersistenceError
            If the ticks cannot be read.
        """


class Store(ABC):
    """Persists account state and signals."""

    @abstractmethod
    def get_account_state(self, account_key: str) -> AccountState:
        """Return the stored state, or a fresh ``AccountState`` if none exists."""

    @abstractmethod
    def put_account_state(self, account_key: str, state: AccountState):
        """Replace the stored state."""

    @abstractmethod
    def put_signals(self, base_currency: str, signals: Mapping[str, CurrencySignal]):
        """Replace the stored signals of one base currency."""

    @abstractmethod
    def get_signals(self, base_currency: str) -> Dict[str, CurrencySignal]:
        """Return the stored signals of one base currency."""


class ExchangeClient(ABC):
    """Balance queries, order placement and ticker polling."""

    @abstractmethod
    def get_balances(self) -> Dict[str, float]:
        """
        Return available (free) amount per currency.

        Raises
        ------
        ExchangeError
            If the balances cannot be fetched.
        """

    @abstractmethod
    def place_order(self, pair: str, side: OrderSide, rate: float, amount: float,
                    policy: OrderPolicy) -> OrderResult:
        """
        Place a limit order on ``pair`` (``BASE_QUOTE`` format).

        Raises
        ------
        ExchangeError
            If the order is rejected or the request fails.
        """

    @abstractmethod
    def get_tickers(self, base_currency: str) -> List[Tick]:
        """Return a fresh tick for every tradable ``<base_currency>_*`` pair."""


class Notifier(ABC):
    """Best-effort change notifications."""

    @abstractmethod
    def publish(self, topic: str, message: str):
        """
        Publish ``message`` on ``topic``.

        Raises
        ------
        NotificationError
            If delivery failed. Callers must never roll back on this.
        """
