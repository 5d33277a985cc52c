# -*- coding: utf-8 -*-
"""
Position decision engine.

Two-state machine driven by ``AccountState.last_action``:

* BUY-eligible (last action NONE or SELL): rank rising currencies and buy
  the ones whose recent price increase beats a confidence-weighted bar.
* SELL-eligible (last action BUY): for falling currencies with an open
  position, sell when the drawdown from peak beats a confidence-weighted bar.

The engine never talks to the exchange. It returns order intents and the
state that holds if all of them succeed; ``Decision.rollback`` restores the
positions of currencies whose orders failed.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

from trendtrader.decision.config import DecisionConfig
from trendtrader.models import (
    AccountState, CurrencySignal, LastAction, OrderIntent, OrderSide,
    Position, make_pair
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrencyEvaluation:
    """Why the engine did or did not act on one currency."""

    currency: str
    side: OrderSide
    metric: Optional[float]
    threshold: float
    issued: bool
    reason: str


@dataclass
class Decision:
    """Output of one decision pass."""

    orders: List[OrderIntent] = field(default_factory=list)
    new_state: AccountState = field(default_factory=AccountState)
    evaluations: List[CurrencyEvaluation] = field(default_factory=list)

    def rollback(self, failed_currencies: Iterable[str],
                 original_state: AccountState) -> AccountState:
        """
        State to persist when some orders failed.

        Parameters
        ----------
        failed_currencies : iterable of str
            Currencies whose order placement failed.
        original_state : AccountState
            State read at the start of the cycle.

        Returns
        -------
        AccountState
            ``new_state`` with the positions of failed currencies restored to
            their pre-cycle value (or removed if there was none).
        """
        state = self.new_state.copy()
        for currency in failed_currencies:
            previous = original_state.positions.get(currency)
            if previous is None:
                state.positions.pop(currency, None)
            else:
                state.positions[currency] = previous
        return state


def price_increase_pct(signal: CurrencySignal) -> float:
    """Percent change from the window's first to its last price (0 if no past price)."""
    if signal.past_price == 0:
        return 0.0
    return (signal.current_price - signal.past_price) / signal.past_price * 100


def peak_differential_pct(position: Position, current_price: float) -> Optional[float]:
    """
    Drawdown from peak as a percentage of the total gain since purchase.

    Returns None when the position never rose above its buy price, since a
    zero-range drawdown carries no information.
    """
    gain_range = position.peak_price - position.buy_price
    if gain_range <= 0:
        return None
    return (position.peak_price - current_price) / gain_range * 100


class PositionDecisionEngine:
    """Decides buy/sell intents from trend signals and remembered positions."""

    def __init__(self, config: Optional[DecisionConfig] = None):
        """
        Initialize decision engine.

        Parameters
        ----------
        config : DecisionConfig or None, optional
            Thresholds and spending cap. Defaults to ``DecisionConfig()``.
        """
        self.config = config or DecisionConfig()

    def decide(self, signals: Mapping[str, CurrencySignal], state: AccountState,
               balances: Mapping[str, float], base_currency: str = "USDT") -> Decision:
        """
        Run the pass selected by ``state.last_action``.

        Parameters
        ----------
        signals : mapping of str to CurrencySignal
            Latest signal per currency.
        state : AccountState
            State read at the start of the cycle. Not mutated.
        balances : mapping of str to float
            Available amount per currency.
        base_currency : str, default "USDT"
            Currency spent on buys and received on sells.

        Returns
        -------
        Decision
            Order intents, the resulting state and per-currency evaluations.
        """
        if state.last_action == LastAction.BUY:
            return self._sell_pass(signals, state, balances, base_currency)
        return self._buy_pass(signals, state, balances, base_currency)

    def rank_buy_candidates(self, signals: Mapping[str, CurrencySignal]) -> List[CurrencySignal]:
        """Rising currencies, best slope * volatility_factor first (stable on ties)."""
        rising = [signal for signal in signals.values() if signal.slope > 0]
        return sorted(rising, key=lambda s: s.slope * s.volatility_factor, reverse=True)

    def _buy_pass(self, signals: Mapping[str, CurrencySignal], state: AccountState,
                  balances: Mapping[str, float], base_currency: str) -> Decision:
        decision = Decision(new_state=state.copy())
        ranked = self.rank_buy_candidates(signals)

        available_cash = float(balances.get(base_currency, 0.0))
        max_buy_cash = available_cash * self.config.buy_fraction
        logger.info(f"Buy pass: {len(ranked)} rising currencies, {available_cash:.8f} {base_currency} "
                    f"available, cap {max_buy_cash:.8f} per buy")

        # Fold over the ranking; each step sees the cash left by the previous one
        for signal in ranked:
            available_cash = self._buy_step(signal, available_cash, max_buy_cash,
                                            base_currency, decision)

        decision.new_state.last_action = LastAction.BUY
        return decision

    def _buy_step(self, signal: CurrencySignal, available_cash: float, max_buy_cash: float,
                  base_currency: str, decision: Decision) -> float:
        currency = signal.currency
        buy_cash = min(available_cash, max_buy_cash)
        increase = price_increase_pct(signal)
        threshold = self.config.buy_threshold(signal.volatility_factor)
        rate = signal.current_price

        if buy_cash > 0 and increase > threshold and rate > 0:
            amount = buy_cash / rate
            decision.orders.append(OrderIntent(
                currency=currency,
                pair=make_pair(base_currency, currency),
                side=OrderSide.BUY,
                rate=rate,
                amount=amount,
                reason=f"increase {increase:.2f}% > {threshold:.2f}%"
            ))
            decision.new_state.positions[currency] = Position.opened_at(rate)
            decision.evaluations.append(CurrencyEvaluation(
                currency, OrderSide.BUY, increase, threshold, True, "buy"))
            logger.info(f"BUY {currency}: {amount:.8f} @ {rate} ({buy_cash:.8f} {base_currency}), "
                        f"increase {increase:.2f}% > threshold {threshold:.2f}%")
            return available_cash - buy_cash

        if buy_cash <= 0:
            reason = "no cash left"
        elif rate <= 0:
            reason = "no valid price"
        else:
            reason = f"increase {increase:.2f}% <= {threshold:.2f}%"
        decision.evaluations.append(CurrencyEvaluation(
            currency, OrderSide.BUY, increase, threshold, False, reason))
        logger.debug(f"No buy for {currency}: {reason}")

        position = decision.new_state.positions.get(currency)
        if position is not None:
            decision.new_state.positions[currency] = position.track(rate)
        return available_cash

    def _sell_pass(self, signals: Mapping[str, CurrencySignal], state: AccountState,
                   balances: Mapping[str, float], base_currency: str) -> Decision:
        decision = Decision(new_state=state.copy())
        falling = [
            signal for signal in signals.values()
            if signal.slope < 0 and state.has_position(signal.currency)
        ]
        logger.info(f"Sell pass: {len(falling)} falling currencies with open positions")

        for signal in falling:
            self._sell_step(signal, balances, base_currency, decision)

        decision.new_state.last_action = LastAction.SELL
        return decision

    def _sell_step(self, signal: CurrencySignal, balances: Mapping[str, float],
                   base_currency: str, decision: Decision):
        currency = signal.currency
        rate = signal.current_price
        position = decision.new_state.positions[currency].track(rate)
        decision.new_state.positions[currency] = position

        balance = float(balances.get(currency, 0.0))
        differential = peak_differential_pct(position, rate)
        threshold = self.config.sell_threshold(signal.volatility_factor)

        if differential is None:
            reason = "no gain since purchase"
        elif balance <= 0:
            reason = "no balance held"
        elif differential > threshold:
            decision.orders.append(OrderIntent(
                currency=currency,
                pair=make_pair(base_currency, currency),
                side=OrderSide.SELL,
                rate=rate,
                amount=balance,
                reason=f"drawdown {differential:.2f}% > {threshold:.2f}%"
            ))
            del decision.new_state.positions[currency]
            decision.evaluations.append(CurrencyEvaluation(
                currency, OrderSide.SELL, differential, threshold, True, "sell"))
            logger.info(f"SELL {currency}: {balance:.8f} @ {rate}, drawdown {differential:.2f}% "
                        f"> threshold {threshold:.2f}% (buy {position.buy_price}, peak {position.peak_price})")
            return
        else:
            reason = f"drawdown {differential:.2f}% <= {threshold:.2f}%"

        decision.evaluations.append(CurrencyEvaluation(
            currency, OrderSide.SELL, differential, threshold, False, reason))
        logger.debug(f"No sell for {currency}: {reason}")


def decide(signals: Mapping[str, CurrencySignal], state: AccountState,
           balances: Mapping[str, float], base_currency: str = "USDT",
           config: Optional[DecisionConfig] = None) -> Decision:
    """Functional shorthand for ``PositionDecisionEngine(config).decide(...)``."""
    return PositionDecisionEngine(config).decide(signals, state, balances, base_currency)
