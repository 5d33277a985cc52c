# -*- coding: utf-8 -*-
"""
Paper exchange.

Fills every order immediately at its limit rate against in-memory balances.
Tickers are delegated to a real exchange client when one is given.
"""

import uuid
import logging
from typing import Dict, List, Mapping, Optional

from trendtrader.exceptions import ExchangeError
from trendtrader.live.interfaces import ExchangeClient
from trendtrader.models import OrderPolicy, OrderResult, OrderSide, Tick, split_pair


logger = logging.getLogger(__name__)

BALANCE_TOLERANCE = 1e-9


class PaperExchangeClient(ExchangeClient):
    """Simulated exchange for dry runs."""

    def __init__(self, balances: Mapping[str, float],
                 ticker_source: Optional[ExchangeClient] = None):
        """
        Initialize paper exchange.

        Parameters
        ----------
        balances : mapping of str to float
            Starting balances per currency.
        ticker_source : ExchangeClient or None, optional
            Client used for ``get_tickers`` (public market data).
        """
        self.balances: Dict[str, float] = {k: float(v) for k, v in balances.items()}
        self.ticker_source = ticker_source
        self.filled_orders: List[OrderResult] = []

        logger.info(f"Initialized PaperExchangeClient with balances {self.balances}")

    def get_balances(self) -> Dict[str, float]:
        return {currency: amount for currency, amount in self.balances.items() if amount > 0}

    def get_tickers(self, base_currency: str) -> List[Tick]:
        if self.ticker_source is None:
            raise ExchangeError("Paper exchange has no ticker source configured")
        return self.ticker_source.get_tickers(base_currency)

    def place_order(self, pair: str, side: OrderSide, rate: float, amount: float,
                    policy: OrderPolicy) -> OrderResult:
        base, currency = split_pair(pair)
        if rate <= 0 or amount <= 0:
            raise ExchangeError(f"Invalid order {side.value} {amount} {pair} @ {rate}")

        cost = rate * amount
        if side == OrderSide.BUY:
            available = self.balances.get(base, 0.0)
            if available + BALANCE_TOLERANCE < cost:
                raise ExchangeError(
                    f"Insufficient {base} balance. Current: {available:.8f}, Required: {cost:.8f}",
                    code=-2010
                )
            self.balances[base] = max(available - cost, 0.0)
            self.balances[currency] = self.balances.get(currency, 0.0) + amount
        else:
            available = self.balances.get(currency, 0.0)
            if available + BALANCE_TOLERANCE < amount:
                raise ExchangeError(
                    f"Insufficient {currency} balance. Current: {available:.8f}, Required: {amount:.8f}",
                    code=-2010
                )
            self.balances[currency] = max(available - amount, 0.0)
            self.balances[base] = self.balances.get(base, 0.0) + cost

        result = OrderResult(
            order_id=str(uuid.uuid4())[:8],
            pair=pair,
            side=side,
            rate=rate,
            amount=amount,
            status="FILLED"
        )
        self.filled_orders.append(result)

        logger.info(f"[PAPER {side.value}] {amount:.8f} {currency} @ {rate} | "
                    f"{base} balance: {self.balances.get(base, 0.0):.8f}")
        return result
