from datetime import timedelta

from conftest import FakeExchange
from trendtrader.live.json_store import JsonStore
from trendtrader.live.ticker_recorder import TickerRecorder


def test_recorder_skips_frozen_pairs(tmp_path, make_tick, now):
    exchange = FakeExchange()
    exchange.tickers = [
        make_tick("USDT_BTC", 0, 42000.0),
        make_tick("USDT_LUNA", 0, 0.0001, is_frozen=True),
    ]
    store = JsonStore(str(tmp_path), clock=lambda: now)
    recorder = TickerRecorder(exchange, store)

    assert recorder.record("USDT") == 1
    assert [t.currency_pair for t in store.fetch_recent("USDT", timedelta(minutes=5))] == ["USDT_BTC"]

    assert recorder.record("USDT", include_frozen=True) == 2
