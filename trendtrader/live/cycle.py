# -*- coding: utf-8 -*-
"""
Trading cycle orchestrator.

One call to ``run_cycle`` = one signal-build pass and one decision pass for
a base currency:

1. fetch recent ticks, build and persist signals, publish a change notice;
2. read the account state and balances, decide, place orders;
3. roll back positions of failed orders and write the state once.

Failures reading ticks, writing signals or reading/writing account state
abort the cycle (PersistenceError propagates). Everything else is recorded
in ``CycleResult.errors``. Callers must not run two cycles for the same
account at the same time.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from trendtrader.decision.engine import PositionDecisionEngine
from trendtrader.exceptions import ExchangeError, NotificationError
from trendtrader.live.interfaces import ExchangeClient, Notifier, Store, TickSource
from trendtrader.live.telegram_notifier import format_orders_message
from trendtrader.models import CycleResult, PerCurrencyError, WindowConfig, utc_now
from trendtrader.signals.signal_builder import build_signals


logger = logging.getLogger(__name__)


def signal_topic(base_currency: str) -> str:
    return f"new-currency-data-{base_currency}"


def orders_topic(base_currency: str) -> str:
    return f"orders-{base_currency}"


class TradingCycle:
    """Wires tick source, store, exchange and notifier around the core."""

    def __init__(self, tick_source: TickSource, store: Store, exchange: ExchangeClient,
                 notifier: Notifier, decision_engine: Optional[PositionDecisionEngine] = None,
                 account_key: str = "strategy1",
                 clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize trading cycle.

        Parameters
        ----------
        tick_source : TickSource
            Source of recorded ticks.
        store : Store
            Persistence for signals and account state.
        exchange : ExchangeClient
            Balances and order placement.
        notifier : Notifier
            Best-effort change notifications.
        decision_engine : PositionDecisionEngine or None, optional
            Defaults to an engine with default thresholds.
        account_key : str, default "strategy1"
            Account this cycle trades for. Each base currency keeps its own
            state under ``<account_key>_<base_currency>``.
        clock : callable or None, optional
            Returns the current UTC time. Defaults to the system clock.
        """
        self.tick_source = tick_source
        self.store = store
        self.exchange = exchange
        self.notifier = notifier
        self.decision_engine = decision_engine or PositionDecisionEngine()
        self.account_key = account_key
        self.clock = clock or utc_now

    def state_key(self, base_currency: str) -> str:
        """Account state key of one base currency; positions are priced in that base."""
        return f"{self.account_key}_{base_currency}"

    def _publish(self, topic: str, message: str, result: CycleResult):
        try:
            self.notifier.publish(topic, message)
        except NotificationError as e:
            logger.warning(f"Notification on {topic} failed: {e}")
            result.errors.append(PerCurrencyError.from_exception(None, e))

    def update_signals(self, base_currency: str, windows: WindowConfig,
                       result: CycleResult):
        """Build, persist and announce the signals of one base currency."""
        now = self.clock()
        ticks = self.tick_source.fetch_recent(base_currency, timedelta(minutes=windows.primary_minutes))
        build = build_signals(ticks, now, windows)

        result.errors.extend(build.errors)
        result.signals = build.signals

        self.store.put_signals(base_currency, build.signals)
        result.signals_updated = len(build.signals)
        self._publish(signal_topic(base_currency), "currency data updated", result)

    def trade(self, base_currency: str, result: CycleResult):
        """Run the decision pass on ``result.signals`` and persist the new state."""
        state_key = self.state_key(base_currency)
        state = self.store.get_account_state(state_key)
        result.state = state

        try:
            balances = self.exchange.get_balances()
        except ExchangeError as e:
            logger.error(f"Balance fetch failed, skipping decision pass: {e}")
            result.errors.append(PerCurrencyError.from_exception(None, e))
            return

        decision = self.decision_engine.decide(result.signals, state, balances, base_currency)
        policy = self.decision_engine.config.order_policy

        failed: List[str] = []
        for order in decision.orders:
            try:
                self.exchange.place_order(order.pair, order.side, order.rate, order.amount, policy)
            except ExchangeError as e:
                logger.error(f"{order.side.value} {order.currency} failed, keeping previous position: {e}")
                failed.append(order.currency)
                result.errors.append(PerCurrencyError.from_exception(order.currency, e))
                continue
            result.orders_placed.append(order)

        new_state = decision.rollback(failed, state) if failed else decision.new_state
        self.store.put_account_state(state_key, new_state)
        result.state = new_state

        if result.orders_placed:
            self._publish(orders_topic(base_currency),
                          format_orders_message(base_currency, result.orders_placed), result)

    def run_cycle(self, base_currency: str, window_config: Optional[WindowConfig] = None) -> CycleResult:
        """
        Run one aggregation + decision cycle.

        Parameters
        ----------
        base_currency : str
            Base currency whose pairs are aggregated and traded.
        window_config : WindowConfig or None, optional
            Aggregation windows. Defaults to 10m / 5m.

        Returns
        -------
        CycleResult
            Signals updated, orders placed and per-currency errors.

        Raises
        ------
        PersistenceError
            If ticks, signals or account state cannot be read or written.
        """
        windows = window_config or WindowConfig()
        result = CycleResult(base_currency=base_currency)
        logger.info(f"Starting cycle for {base_currency} (account {self.account_key}, "
                    f"windows {windows.primary_minutes}m/{windows.short_minutes}m)")

        self.update_signals(base_currency, windows, result)
        self.trade(base_currency, result)

        logger.info(f"Cycle for {base_currency} done: {result.signals_updated} signal(s), "
                    f"{len(result.orders_placed)} order(s), {len(result.errors)} error(s)")
        return result
