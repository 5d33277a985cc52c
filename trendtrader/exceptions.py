# -*- coding: utf-8 -*-
"""
Exception hierarchy for the trend trader.

Per-currency problems (InsufficientData, order-level ExchangeError) are
collected into the cycle result; PersistenceError aborts the cycle.
"""

from typing import Optional


class TrendTraderError(Exception):
    """Base class for all trend trader errors."""


class InvalidInput(TrendTraderError, ValueError):
    """Raised when a computation receives input it cannot work with."""


class ConfigError(TrendTraderError, ValueError):
    """Raised when the configuration is inconsistent."""


class InsufficientData(TrendTraderError):
    """Raised when a currency has no ticks inside its aggregation window."""

    def __init__(self, message: str, currency: Optional[str] = None):
        super().__init__(message)
        self.currency = currency


class ExchangeError(TrendTraderError):
    """Raised when a balance fetch or order placement fails on the exchange."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class PersistenceError(TrendTraderError):
    """Raised when account state, signals or ticks cannot be read or written."""


class NotificationError(TrendTraderError):
    """Raised when a change notification could not be delivered."""
