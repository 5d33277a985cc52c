# -*- coding: utf-8 -*-
"""
Binance API client wrapper.

Implements the ExchangeClient interface on top of python-binance. Pairs are
written ``BASE_QUOTE`` inside the trader (``USDT_BTC``) and translated to
Binance symbols (``BTCUSDT``) here. Library exceptions are converted to
ExchangeError so they never leak into the trading cycle.
"""

import logging
from typing import Dict, Any, Optional, List

import requests
from binance.client import Client
from binance.exceptions import BinanceAPIException, BinanceOrderException, BinanceRequestException

from trendtrader.exceptions import ExchangeError
from trendtrader.live.interfaces import ExchangeClient
from trendtrader.models import (
    OrderPolicy, OrderResult, OrderSide, Tick, make_pair, split_pair, utc_now
)


logger = logging.getLogger(__name__)

BINANCE_ERRORS = (BinanceAPIException, BinanceOrderException, BinanceRequestException,
                  requests.exceptions.RequestException)


def pair_to_symbol(pair: str) -> str:
    """``USDT_BTC`` -> ``BTCUSDT``."""
    base, currency = split_pair(pair)
    return f"{currency}{base}"


def _format_to_step(value: float, step: float) -> str:
    """Round ``value`` down to a multiple of ``step`` and format without exponent."""
    if step <= 0:
        return f"{value:.8f}".rstrip('0').rstrip('.')
    if step >= 1.0:
        return str(int(int(value / step) * step))

    # Binance steps never go below 1e-8
    step_str = f"{step:.10f}".rstrip('0')
    decimal_places = len(step_str.split('.')[1]) if '.' in step_str else 0
    # Small epsilon so 0.3 / 0.1 does not floor to 2
    steps = int(value / step + 1e-9)
    return f"{steps * step:.{decimal_places}f}".rstrip('0').rstrip('.') or "0"


class BinanceExchangeClient(ExchangeClient):
    """Wrapper around python-binance client for Testnet and Realnet support."""

    def __init__(self, api_key: str = "", api_secret: str = "", use_testnet: bool = True,
                 client: Optional[Client] = None):
        """
        Initialize Binance client.

        Parameters
        ----------
        api_key : str, default ""
            Binance API key. May be empty for public endpoints (tickers) only.
        api_secret : str, default ""
            Binance API secret.
        use_testnet : bool, default True
            Whether to use Binance Testnet
        client : Client or None, optional
            Pre-built python-binance client (used by tests).
        """
        self.use_testnet = use_testnet
        self._symbol_info: Dict[str, Dict[str, Any]] = {}

        if client is not None:
            self.client = client
            return

        # Clean API keys (remove any whitespace)
        api_key = api_key.strip() if api_key else None
        api_secret = api_secret.strip() if api_secret else None

        try:
            self.client = Client(api_key=api_key, api_secret=api_secret, testnet=use_testnet)
        except BINANCE_ERRORS as e:
            raise ExchangeError(f"Failed to initialize Binance client: {e}",
                                code=getattr(e, 'code', None)) from e

        endpoint = "TESTNET (testnet.binance.vision)" if use_testnet else "REALNET (api.binance.com)"
        logger.info(f"Connected to Binance {endpoint}")

    def test_connection(self) -> bool:
        """
        Test API connection.

        Returns
        -------
        bool
            True if connection successful
        """
        try:
            self.client.ping()
            return True
        except BINANCE_ERRORS as e:
            logger.error(f"Connection test failed: {e}")
            return False

    # ------------------------------------------------------------------
    # Account
    # ------------------------------------------------------------------

    def get_balances(self) -> Dict[str, float]:
        try:
            account = self.client.get_account()
        except BINANCE_ERRORS as e:
            if getattr(e, 'code', None) == -1022:  # Invalid signature
                logger.error("Signature error getting balances - check API key/secret and IP whitelist")
            raise ExchangeError(f"Error getting account balances: {e}",
                                code=getattr(e, 'code', None)) from e

        balances = {}
        for balance in account.get('balances', []):
            free = float(balance.get('free', 0))
            if free > 0:
                balances[balance['asset']] = free
        logger.debug(f"Balances: {balances}")
        return balances

    # ------------------------------------------------------------------
    # Symbols
    # ------------------------------------------------------------------

    def _load_exchange_info(self) -> Dict[str, Dict[str, Any]]:
        if not self._symbol_info:
            try:
                exchange_info = self.client.get_exchange_info()
            except BINANCE_ERRORS as e:
                raise ExchangeError(f"Error getting exchange info: {e}",
                                    code=getattr(e, 'code', None)) from e
            self._symbol_info = {s['symbol']: s for s in exchange_info.get('symbols', [])}
        return self._symbol_info

    def get_symbol_info(self, symbol: str) -> Dict[str, Any]:
        """
        Get symbol information (filters, precision, etc.).

        Raises
        ------
        ExchangeError
            If the symbol is unknown.
        """
        info = self._load_exchange_info().get(symbol)
        if info is None:
            raise ExchangeError(f"Symbol {symbol} not found")
        return info

    def _filter_value(self, symbol: str, filter_type: str, key: str, default: float) -> float:
        for filter_item in self.get_symbol_info(symbol).get('filters', []):
            if filter_item.get('filterType') == filter_type:
                return float(filter_item.get(key, default))
        return default

    def format_quantity(self, symbol: str, quantity: float) -> str:
        """Format quantity to the symbol's LOT_SIZE step."""
        return _format_to_step(quantity, self._filter_value(symbol, 'LOT_SIZE', 'stepSize', 0.0))

    def format_price(self, symbol: str, price: float) -> str:
        """Format price to the symbol's PRICE_FILTER tick size."""
        return _format_to_step(price, self._filter_value(symbol, 'PRICE_FILTER', 'tickSize', 0.0))

    # ------------------------------------------------------------------
    # Tickers
    # ------------------------------------------------------------------

    def get_tickers(self, base_currency: str) -> List[Tick]:
        symbols = {
            symbol: info for symbol, info in self._load_exchange_info().items()
            if info.get('quoteAsset') == base_currency
        }
        try:
            tickers = self.client.get_ticker()
        except BINANCE_ERRORS as e:
            raise ExchangeError(f"Error getting tickers: {e}", code=getattr(e, 'code', None)) from e

        now = utc_now()
        ticks = []
        for ticker in tickers:
            info = symbols.get(ticker.get('symbol'))
            if info is None:
                continue
            ticks.append(Tick(
                currency_pair=make_pair(base_currency, info['baseAsset']),
                timestamp=now,
                last=float(ticker['lastPrice']),
                highest_bid=float(ticker.get('bidPrice', 0)),
                lowest_ask=float(ticker.get('askPrice', 0)),
                base_volume=float(ticker.get('volume', 0)),
                quote_volume=float(ticker.get('quoteVolume', 0)),
                percent_change=float(ticker.get('priceChangePercent', 0)),
                high_24h=float(ticker.get('highPrice', 0)),
                is_frozen=info.get('status') != 'TRADING'
            ))

        logger.info(f"Fetched {len(ticks)} ticker(s) for base {base_currency}")
        return ticks

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def place_order(self, pair: str, side: OrderSide, rate: float, amount: float,
                    policy: OrderPolicy) -> OrderResult:
        symbol = pair_to_symbol(pair)
        quantity = self.format_quantity(symbol, amount)
        price = self.format_price(symbol, rate)

        if float(quantity) <= 0:
            raise ExchangeError(f"Order quantity {amount} for {symbol} rounds to zero")

        try:
            if side == OrderSide.BUY:
                order = self.client.order_limit_buy(
                    symbol=symbol,
                    quantity=quantity,
                    price=price,
                    timeInForce=policy.time_in_force
                )
            else:
                order = self.client.order_limit_sell(
                    symbol=symbol,
                    quantity=quantity,
                    price=price,
                    timeInForce=policy.time_in_force
                )
        except BINANCE_ERRORS as e:
            logger.error(f"Error placing limit {side.value} order for {symbol}: {e}")
            raise ExchangeError(f"{side.value} {quantity} {symbol} @ {price} failed: {e}",
                                code=getattr(e, 'code', None)) from e

        logger.info(f"Placed limit {side.value} order: {order['orderId']} for {symbol} "
                    f"{quantity} @ {price} ({policy.time_in_force})")

        return OrderResult(
            order_id=str(order['orderId']),
            pair=pair,
            side=side,
            rate=float(order.get('price', price)),
            amount=float(order.get('origQty', quantity)),
            status=order.get('status', 'NEW'),
            raw=order
        )
