import pytest

from trendtrader.decision.config import DecisionConfig
from trendtrader.decision.engine import (
    PositionDecisionEngine, decide, peak_differential_pct, price_increase_pct
)
from trendtrader.exceptions import ConfigError
from trendtrader.models import AccountState, LastAction, OrderSide, Position


@pytest.fixture
def engine():
    return PositionDecisionEngine()


# ----------------------------------------------------------------------
# Buy pass
# ----------------------------------------------------------------------

def test_buy_rising_currency(engine, make_signal):
    signals = {"BTC": make_signal("BTC", slope=2, volatility_factor=0.9,
                                  current_price=110, past_price=100)}
    state = AccountState(last_action=LastAction.SELL)

    decision = engine.decide(signals, state, {"USDT": 300.0})

    assert len(decision.orders) == 1
    order = decision.orders[0]
    assert order.side == OrderSide.BUY
    assert order.pair == "USDT_BTC"
    assert order.rate == 110
    assert order.amount == pytest.approx(100.0 / 110)
    assert order.cost == pytest.approx(100.0)
    assert decision.new_state.positions["BTC"] == Position(110, 110, 110)
    assert decision.new_state.last_action == LastAction.BUY


def test_buy_threshold_not_met(engine, make_signal):
    # 2% increase against 5 - 4 * 0 = 5%
    signals = {"ETH": make_signal("ETH", 1, 0.0, current_price=102, past_price=100)}
    decision = engine.decide(signals, AccountState(), {"USDT": 100.0})

    assert decision.orders == []
    assert "ETH" not in decision.new_state.positions
    assert decision.new_state.last_action == LastAction.BUY
    assert decision.evaluations[0].issued is False


def test_buy_ignores_falling_and_flat(engine, make_signal):
    signals = {
        "BTC": make_signal("BTC", -1, 1.0, current_price=120, past_price=100),
        "ETH": make_signal("ETH", 0, 1.0, current_price=120, past_price=100),
    }
    assert engine.decide(signals, AccountState(), {"USDT": 100.0}).orders == []


def test_buy_respects_spending_cap(make_signal):
    engine = PositionDecisionEngine(DecisionConfig(buy_fraction=0.5))
    signals = {
        c: make_signal(c, slope, 1.0, current_price=110, past_price=100)
        for c, slope in (("AAA", 3), ("BBB", 2), ("CCC", 1))
    }

    decision = engine.decide(signals, AccountState(), {"USDT": 100.0})

    costs = [order.cost for order in decision.orders]
    assert [o.currency for o in decision.orders] == ["AAA", "BBB"]
    assert all(cost <= 50.0 + 1e-9 for cost in costs)
    assert sum(costs) <= 100.0 + 1e-9
    assert decision.evaluations[-1].reason == "no cash left"


def test_buy_cap_fixed_at_pass_start(make_signal):
    engine = PositionDecisionEngine(DecisionConfig(buy_fraction=0.25))
    signals = {
        c: make_signal(c, 1, 1.0, current_price=2, past_price=1)
        for c in ("AAA", "BBB", "CCC", "DDD", "EEE")
    }
    decision = engine.decide(signals, AccountState(), {"USDT": 100.0})

    assert [order.cost for order in decision.orders] == pytest.approx([25.0] * 4)
    assert [order.currency for order in decision.orders] == ["AAA", "BBB", "CCC", "DDD"]
    assert "EEE" not in decision.new_state.positions


def test_rank_by_slope_times_confidence_stable(engine, make_signal):
    signals = {
        "LOW": make_signal("LOW", 1, 0.5, 1, 1),
        "TIE1": make_signal("TIE1", 2, 0.5, 1, 1),
        "HIGH": make_signal("HIGH", 4, 0.9, 1, 1),
        "TIE2": make_signal("TIE2", 1, 1.0, 1, 1),
        "DOWN": make_signal("DOWN", -5, 1.0, 1, 1),
    }
    ranked = [s.currency for s in engine.rank_buy_candidates(signals)]
    assert ranked == ["HIGH", "TIE1", "TIE2", "LOW"]


def test_buy_pass_tracks_held_positions(engine, make_signal):
    state = AccountState(positions={"BTC": Position(100, 120, 90)})
    signals = {"BTC": make_signal("BTC", 1, 0.0, current_price=130, past_price=129)}

    decision = engine.decide(signals, state, {"USDT": 0.0})

    assert decision.orders == []
    assert decision.new_state.positions["BTC"] == Position(100, 130, 90)
    assert state.positions["BTC"] == Position(100, 120, 90)


# ----------------------------------------------------------------------
# Sell pass
# ----------------------------------------------------------------------

def test_sell_on_drawdown_from_peak(engine, make_signal):
    state = AccountState(last_action=LastAction.BUY,
                         positions={"ETH": Position(100, 150, 100)})
    signals = {"ETH": make_signal("ETH", -1, 0.2, current_price=120, past_price=130)}

    decision = engine.decide(signals, state, {"ETH": 2.5, "USDT": 10.0})

    assert len(decision.orders) == 1
    order = decision.orders[0]
    assert order.side == OrderSide.SELL
    assert order.pair == "USDT_ETH"
    assert order.amount == 2.5
    assert order.rate == 120
    assert decision.evaluations[0].metric == pytest.approx(60.0)
    assert decision.evaluations[0].threshold == pytest.approx(14.0)
    assert "ETH" not in decision.new_state.positions
    assert decision.new_state.last_action == LastAction.SELL
    assert "ETH" in state.positions


def test_no_sell_without_gain_since_purchase(engine, make_signal):
    state = AccountState(last_action=LastAction.BUY, positions={"BTC": Position(100, 100, 100)})
    signals = {"BTC": make_signal("BTC", -1, 0.0, current_price=80, past_price=100)}

    decision = engine.decide(signals, state, {"BTC": 1.0})

    assert decision.orders == []
    assert decision.new_state.positions["BTC"] == Position(100, 100, 80)
    assert decision.new_state.last_action == LastAction.SELL


def test_no_sell_without_balance(engine, make_signal):
    state = AccountState(last_action=LastAction.BUY, positions={"BTC": Position(100, 150, 100)})
    signals = {"BTC": make_signal("BTC", -1, 0.0, current_price=101, past_price=150)}

    decision = engine.decide(signals, state, {})

    assert decision.orders == []
    assert "BTC" in decision.new_state.positions


def test_sell_pass_only_touches_falling_held_currencies(engine, make_signal):
    state = AccountState(last_action=LastAction.BUY, positions={"BTC": Position(100, 150, 100)})
    signals = {
        "BTC": make_signal("BTC", 1, 1.0, current_price=90, past_price=80),
        "ETH": make_signal("ETH", -1, 1.0, current_price=90, past_price=80),
    }

    decision = engine.decide(signals, state, {"BTC": 1.0, "ETH": 1.0})

    assert decision.orders == []
    assert decision.new_state.positions == state.positions


def test_peak_and_low_are_monotonic(engine, make_signal):
    state = AccountState(last_action=LastAction.BUY, positions={"SOL": Position(100, 100, 100)})
    peaks, lows = [], []
    for price in (104, 109, 107, 99, 108, 97):
        signals = {"SOL": make_signal("SOL", -0.1, 0.0, current_price=price, past_price=price)}
        decision = engine.decide(signals, state, {})
        state = decision.new_state
        state.last_action = LastAction.BUY
        peaks.append(state.positions["SOL"].peak_price)
        lows.append(state.positions["SOL"].low_price)

    assert peaks == sorted(peaks)
    assert lows == sorted(lows, reverse=True)
    assert peaks[-1] == 109
    assert lows[-1] == 97


# ----------------------------------------------------------------------
# Rollback and helpers
# ----------------------------------------------------------------------

def test_rollback_failed_buy_removes_position(engine, make_signal):
    signals = {
        "BTC": make_signal("BTC", 2, 1.0, current_price=110, past_price=100),
        "ETH": make_signal("ETH", 1, 1.0, current_price=110, past_price=100),
    }
    original = AccountState()
    decision = engine.decide(signals, original, {"USDT": 300.0})

    state = decision.rollback(["BTC"], original)

    assert "BTC" not in state.positions
    assert "ETH" in state.positions
    assert state.last_action == LastAction.BUY


def test_rollback_failed_sell_restores_position(engine, make_signal):
    original = AccountState(last_action=LastAction.BUY, positions={"ETH": Position(100, 150, 100)})
    signals = {"ETH": make_signal("ETH", -1, 0.2, current_price=120, past_price=130)}
    decision = engine.decide(signals, original, {"ETH": 1.0})

    state = decision.rollback(["ETH"], original)

    assert state.positions["ETH"] == Position(100, 150, 100)
    assert decision.new_state.positions == {}


def test_helpers(make_signal):
    assert price_increase_pct(make_signal("X", 1, 1, current_price=110, past_price=100)) == pytest.approx(10)
    assert price_increase_pct(make_signal("X", 1, 1, current_price=110, past_price=0)) == 0.0
    assert peak_differential_pct(Position(100, 100, 100), 90) is None
    assert peak_differential_pct(Position(100, 200, 100), 150) == pytest.approx(50)


def test_decide_function_uses_config(make_signal):
    signals = {"BTC": make_signal("BTC", 1, 0.0, current_price=103, past_price=100)}
    loose = DecisionConfig(buy_threshold_base=2.0)

    assert decide(signals, AccountState(), {"USDT": 10.0}).orders == []
    assert len(decide(signals, AccountState(), {"USDT": 10.0}, config=loose).orders) == 1


def test_decision_config_thresholds():
    config = DecisionConfig()
    assert config.buy_threshold(0.9) == pytest.approx(1.4)
    assert config.sell_threshold(0.2) == pytest.approx(14.0)
    assert config.to_dict()['time_in_force'] == "IOC"
    with pytest.raises(ConfigError):
        DecisionConfig(buy_fraction=0)
