# -*- coding: utf-8 -*-
"""
Signal builder.

Groups a batch of ticks by traded currency, drops stale samples and runs
the window aggregator over the primary and the short window of every
currency. The short window result is nested under the primary signal.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional

import pandas as pd

from trendtrader.exceptions import InsufficientData, InvalidInput
from trendtrader.models import (
    CurrencySignal, PerCurrencyError, ShortWindowSignal, WindowConfig,
    ensure_utc, split_pair
)
from trendtrader.signals.window_aggregator import TickInput, aggregate, ticks_to_frame


logger = logging.getLogger(__name__)


@dataclass
class SignalBuildResult:
    """Signals keyed by currency plus the currencies that had to be skipped."""

    signals: Dict[str, CurrencySignal] = field(default_factory=dict)
    errors: List[PerCurrencyError] = field(default_factory=list)
    discarded_ticks: int = 0


def _currency_of(currency_pair: str) -> Optional[str]:
    try:
        return split_pair(currency_pair)[1]
    except InvalidInput:
        return None


def build_signals(ticks: TickInput, now: datetime,
                  windows: Optional[WindowConfig] = None) -> SignalBuildResult:
    """
    Build one CurrencySignal per currency from a batch of ticks.

    Parameters
    ----------
    ticks : DataFrame or sequence of Tick
        Recent ticks of one base currency, any order.
    now : datetime
        Aggregation instant. Ticks at or before ``now - primary_minutes``
        are discarded.
    windows : WindowConfig or None, optional
        Primary and short window lengths. Defaults to 10m / 5m.

    Returns
    -------
    SignalBuildResult
        Signals ordered by currency name, per-currency errors and the number
        of ticks dropped as stale or malformed.
    """
    windows = windows or WindowConfig()
    now = ensure_utc(now)
    result = SignalBuildResult()

    frame = ticks_to_frame(ticks)
    if frame.empty:
        logger.info("No ticks to aggregate")
        return result

    frame = frame.assign(timestamp=pd.to_datetime(frame['timestamp'], utc=True))
    primary_cutoff = pd.Timestamp(now - timedelta(minutes=windows.primary_minutes))
    short_cutoff = pd.Timestamp(now - timedelta(minutes=windows.short_minutes))

    retained = frame[frame['timestamp'] > primary_cutoff]
    currencies = retained['currency_pair'].map(_currency_of)

    malformed = retained[currencies.isna()]
    if not malformed.empty:
        logger.warning(f"Skipping {len(malformed)} tick(s) with malformed pairs: "
                       f"{sorted(malformed['currency_pair'].unique())}")

    retained = retained[currencies.notna()].assign(currency=currencies[currencies.notna()])
    result.discarded_ticks = len(frame) - len(retained)

    for currency, group in retained.groupby('currency', sort=True):
        pairs = group['currency_pair'].unique()
        if len(pairs) > 1:
            # Several bases quoting the same currency cannot share one trend line
            keep = sorted(pairs)[0]
            logger.warning(f"{currency}: ticks from pairs {sorted(pairs)}, using {keep} only")
            group = group[group['currency_pair'] == keep]

        try:
            primary = aggregate(group, windows.primary_minutes, currency=currency, as_of=now)
        except InsufficientData as e:
            logger.warning(f"Skipping {currency}: {e}")
            result.errors.append(PerCurrencyError.from_exception(currency, e))
            continue

        short_group = group[group['timestamp'] > short_cutoff]
        if short_group.empty:
            short = ShortWindowSignal.empty(windows.short_minutes)
        else:
            short = ShortWindowSignal.from_signal(
                aggregate(short_group, windows.short_minutes, currency=currency, as_of=now)
            )

        result.signals[currency] = primary.with_short(short)

    logger.info(f"Built {len(result.signals)} signal(s) from {len(retained)} tick(s) "
                f"({result.discarded_ticks} discarded)")
    return result


def build(ticks: TickInput, now: datetime,
          windows: Optional[WindowConfig] = None) -> Dict[str, CurrencySignal]:
    """Shorthand for :func:`build_signals` returning only the signal mapping."""
    return build_signals(ticks, now, windows).signals
