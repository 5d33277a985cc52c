# -*- coding: utf-8 -*-
"""
Window aggregator.

Turns the ticks of a single currency inside one trailing window into a
CurrencySignal by fitting a trend line through the ``last`` prices.
The caller is responsible for restricting ticks to the window.
"""

import math
import logging
from datetime import datetime
from typing import Optional, Sequence, Union

import pandas as pd

from trendtrader.exceptions import InsufficientData, InvalidInput
from trendtrader.models import CurrencySignal, Tick, TICK_COLUMNS, ensure_utc, split_pair
from trendtrader.signals.regression import fit


logger = logging.getLogger(__name__)

SECONDS_PER_MINUTE = 60.0

TickInput = Union[pd.DataFrame, Sequence[Tick]]


def ticks_to_frame(ticks: TickInput) -> pd.DataFrame:
    """
    Build a tick DataFrame (one row per tick, arrival order preserved).

    DataFrames are passed through untouched so callers that already
    hold a frame do not pay for a round trip through Tick objects.
    """
    if isinstance(ticks, pd.DataFrame):
        return ticks
    return pd.DataFrame([tick.to_record() for tick in ticks], columns=TICK_COLUMNS)


def sort_by_time(frame: pd.DataFrame) -> pd.DataFrame:
    """Sort ascending by timestamp; ties keep their arrival order."""
    frame = frame.reset_index(drop=True)
    frame = frame.assign(timestamp=pd.to_datetime(frame['timestamp'], utc=True))
    return frame.sort_values('timestamp', kind='mergesort').reset_index(drop=True)


def aggregate(ticks: TickInput, window_minutes: int,
              currency: Optional[str] = None,
              as_of: Optional[datetime] = None) -> CurrencySignal:
    """
    Aggregate the ticks of one currency into a trend signal.

    Parameters
    ----------
    ticks : DataFrame or sequence of Tick
        Ticks of one currency, already restricted to the window. Any order.
    window_minutes : int
        Window length; the trend line is projected this far from its start.
    currency : str or None, optional
        Currency name. Derived from the first tick's pair if omitted.
    as_of : datetime or None, optional
        Aggregation instant recorded on the signal (defaults to newest tick).

    Returns
    -------
    CurrencySignal
        Signal without a short-window sub-structure.

    Raises
    ------
    InsufficientData
        If there are no ticks.
    InvalidInput
        If ``window_minutes`` is not positive.
    """
    if window_minutes <= 0:
        raise InvalidInput(f"window_minutes must be > 0, got {window_minutes}")

    frame = ticks_to_frame(ticks)
    if frame.empty:
        raise InsufficientData(
            f"No ticks for {currency or 'currency'} in {window_minutes}m window",
            currency=currency
        )

    rows = sort_by_time(frame)
    oldest = rows.iloc[0]
    newest = rows.iloc[-1]

    if currency is None:
        currency = split_pair(oldest['currency_pair'])[1]

    elapsed = (rows['timestamp'] - oldest['timestamp']).dt.total_seconds() / SECONDS_PER_MINUTE
    prices = rows['last'].astype(float)
    regression = fit(list(zip(elapsed.to_numpy(), prices.to_numpy())))

    sample_count = len(rows)
    if sample_count < 2:
        percentage_gain = 0.0
        slope_angle = 0.0
        volatility_factor = 0.0
    else:
        fitted_delta = regression.predict(window_minutes) - regression.intercept
        if regression.intercept != 0:
            percentage_gain = fitted_delta / regression.intercept * 100
        else:
            logger.warning(f"{currency}: regression intercept is 0, reporting zero gain")
            percentage_gain = 0.0
        slope_angle = math.degrees(math.atan(fitted_delta / window_minutes))
        volatility_factor = regression.r_squared

    if not math.isfinite(percentage_gain):
        percentage_gain = 0.0

    return CurrencySignal(
        currency=currency,
        window_minutes=window_minutes,
        current_price=float(newest['last']),
        past_price=float(oldest['last']),
        percentage_gain=float(percentage_gain),
        slope=regression.slope,
        slope_angle_degrees=float(slope_angle),
        volatility_factor=float(volatility_factor),
        volume_24h=float(newest['base_volume']),
        highest_bid=float(newest['highest_bid']),
        sample_count=sample_count,
        timestamp=ensure_utc(as_of) if as_of else newest['timestamp'].to_pydatetime()
    )
