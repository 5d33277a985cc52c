from datetime import datetime, timezone

import pytest

from trendtrader.exceptions import ConfigError, InvalidInput
from trendtrader.models import (
    AccountState, LastAction, OrderPolicy, Position, Tick, WindowConfig,
    make_pair, parse_timestamp, split_pair
)


def test_split_pair():
    assert split_pair("USDT_BTC") == ("USDT", "BTC")
    assert make_pair("USDT", "BTC") == "USDT_BTC"
    for bad in ("BTCUSDT", "_BTC", "USDT_"):
        with pytest.raises(InvalidInput):
            split_pair(bad)


def test_tick_round_trip(make_tick):
    tick = make_tick("USDT_ETH", 3, 2000.0, highest_bid=1999.0, is_frozen=True)
    assert Tick.from_dict(tick.to_dict()) == tick
    assert tick.base_currency == "USDT"
    assert tick.currency == "ETH"


def test_naive_timestamps_are_utc():
    parsed = parse_timestamp("2024-01-01T12:00:00")
    assert parsed == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_window_config_validation():
    with pytest.raises(ConfigError):
        WindowConfig(primary_minutes=5, short_minutes=10)
    with pytest.raises(ConfigError):
        WindowConfig(primary_minutes=-1, short_minutes=1)


def test_position_tracking():
    position = Position.opened_at(100.0).track(120.0).track(90.0).track(110.0)
    assert position == Position(buy_price=100.0, peak_price=120.0, low_price=90.0)


def test_account_state_serialization():
    assert AccountState.from_dict(None) == AccountState()
    state = AccountState(last_action=LastAction.SELL, positions={"BTC": Position(1.0, 2.0, 0.5)})
    data = state.to_dict()
    assert data == {
        'last_action': 'SELL',
        'positions': {'BTC': {'buy_price': 1.0, 'peak_price': 2.0, 'low_price': 0.5}}
    }
    assert AccountState.from_dict(data) == state

    copy = state.copy()
    copy.positions.pop("BTC")
    assert state.has_position("BTC")


def test_order_policy_time_in_force():
    assert OrderPolicy().time_in_force == "IOC"
    assert OrderPolicy(fill_or_kill=True).time_in_force == "FOK"
    assert OrderPolicy(immediate_or_cancel=False).time_in_force == "GTC"
