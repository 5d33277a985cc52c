import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List

import pytest

# Make the project root importable so tests can import the top-level package directly
ROOT = Path(__file__).resolve().parents[1]
root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)

from trendtrader.exceptions import ExchangeError, NotificationError, PersistenceError
from trendtrader.live.interfaces import ExchangeClient, Notifier, Store, TickSource
from trendtrader.models import AccountState, CurrencySignal, OrderResult, Tick


NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class InMemoryStore(Store, TickSource):
    """Store and tick source backed by plain dicts."""

    def __init__(self, ticks: List[Tick] = None, state: AccountState = None):
        self.ticks = list(ticks or [])
        self.states: Dict[str, AccountState] = {}
        if state is not None:
            self.states["strategy1_USDT"] = state
        self.signals: Dict[str, Dict[str, CurrencySignal]] = {}
        self.state_writes = 0
        self.fail_state_read = False
        self.fail_signal_write = False
        self.now = NOW

    def fetch_recent(self, base_currency, max_age):
        cutoff = self.now - max_age
        return [t for t in self.ticks if t.base_currency == base_currency and t.timestamp > cutoff]

    def get_account_state(self, account_key):
        if self.fail_state_read:
            raise PersistenceError("state unavailable")
        return self.states.get(account_key, AccountState()).copy()

    def put_account_state(self, account_key, state):
        self.state_writes += 1
        self.states[account_key] = state

    def put_signals(self, base_currency, signals):
        if self.fail_signal_write:
            raise PersistenceError("disk full")
        self.signals[base_currency] = dict(signals)

    def get_signals(self, base_currency):
        return dict(self.signals.get(base_currency, {}))


class FakeExchange(ExchangeClient):
    """Exchange that records orders and fails on demand."""

    def __init__(self, balances: Dict[str, float] = None, failing_pairs=(), fail_balances=False):
        self.balances = dict(balances or {})
        self.failing_pairs = set(failing_pairs)
        self.fail_balances = fail_balances
        self.placed = []
        self.tickers: List[Tick] = []

    def get_balances(self):
        if self.fail_balances:
            raise ExchangeError("balances unavailable", code=-1022)
        return dict(self.balances)

    def place_order(self, pair, side, rate, amount, policy):
        if pair in self.failing_pairs:
            raise ExchangeError(f"order rejected for {pair}", code=-2010)
        self.placed.append((pair, side, rate, amount, policy.time_in_force))
        return OrderResult(order_id=str(len(self.placed)), pair=pair, side=side,
                           rate=rate, amount=amount, status="FILLED")

    def get_tickers(self, base_currency):
        return [t for t in self.tickers if t.base_currency == base_currency]


class FakeNotifier(Notifier):

    def __init__(self, fail=False):
        self.fail = fail
        self.messages = []

    def publish(self, topic, message):
        if self.fail:
            raise NotificationError("chat unreachable")
        self.messages.append((topic, message))


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_tick():
    """Factory: make_tick("USDT_BTC", minutes_ago, last, **fields)."""

    def _make(pair: str, minutes_ago: float, last: float, **fields) -> Tick:
        return Tick(currency_pair=pair, timestamp=NOW - timedelta(minutes=minutes_ago),
                    last=last, **fields)

    return _make


@pytest.fixture
def make_signal():
    """Factory for primary-window signals."""

    def _make(currency: str, slope: float, volatility_factor: float,
              current_price: float, past_price: float) -> CurrencySignal:
        return CurrencySignal(
            currency=currency,
            window_minutes=10,
            current_price=current_price,
            past_price=past_price,
            percentage_gain=0.0,
            slope=slope,
            volatility_factor=volatility_factor,
            volume_24h=0.0,
            highest_bid=current_price
        )

    return _make


@pytest.fixture
def memory_store():
    return InMemoryStore()


@pytest.fixture
def fake_exchange():
    return FakeExchange()


@pytest.fixture
def fake_notifier():
    return FakeNotifier()
