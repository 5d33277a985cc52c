# -*- coding: utf-8 -*-
"""
Signal aggregation for the trend trader.

Pure modules that turn raw ticks into per-currency trend statistics. They
know nothing about balances, positions or orders.
"""

from trendtrader.signals.regression import RegressionResult, fit
from trendtrader.signals.window_aggregator import aggregate, ticks_to_frame
from trendtrader.signals.signal_builder import SignalBuildResult, build, build_signals

__all__ = [
    'RegressionResult',
    'fit',
    'aggregate',
    'ticks_to_frame',
    'SignalBuildResult',
    'build',
    'build_signals'
]
