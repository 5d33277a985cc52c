# -*- coding: utf-8 -*-
"""
Ordinary least squares line fitting.

Pure numeric helper used by the window aggregator. No I/O, no state.
"""

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from trendtrader.exceptions import InvalidInput


@dataclass(frozen=True)
class RegressionResult:
    """Fitted line ``y = slope * x + intercept`` and its coefficient of determination."""

    slope: float
    intercept: float
    r_squared: float

    def predict(self, x: float) -> float:
        """Evaluate the fitted line at ``x``."""
        return self.slope * x + self.intercept


def fit(samples: Sequence[Tuple[float, float]]) -> RegressionResult:
    """
    Fit a least squares line through (x, y) samples.

    Parameters
    ----------
    samples : sequence of (float, float)
        Sample points. Order does not matter.

    Returns
    -------
    RegressionResult
        slope, intercept and r_squared. r_squared is clamped to [0, 1] and is
        0 for a single sample or a flat series.

    Raises
    ------
    InvalidInput
        If ``samples`` is empty, malformed or contains non-finite values.
    """
    if len(samples) == 0:
        raise InvalidInput("Cannot fit a regression line to an empty sample set")

    data = np.asarray(samples, dtype=float)
    if data.ndim != 2 or data.shape[1] != 2:
        raise InvalidInput(f"Samples must be (x, y) pairs, got array of shape {data.shape}")
    if not np.all(np.isfinite(data)):
        raise InvalidInput("Samples must be finite numbers")

    # Canonical ordering so the floating point sums do not depend on insertion order
    data = data[np.lexsort((data[:, 1], data[:, 0]))]
    x = data[:, 0]
    y = data[:, 1]

    if len(data) == 1:
        return RegressionResult(slope=0.0, intercept=float(y[0]), r_squared=0.0)

    x_mean = x.mean()
    y_mean = y.mean()
    sxx = np.sum((x - x_mean) ** 2)

    if sxx == 0.0:
        # All samples share one x: no direction can be inferred
        return RegressionResult(slope=0.0, intercept=float(y_mean), r_squared=0.0)

    if np.ptp(y) == 0.0:
        return RegressionResult(slope=0.0, intercept=float(y[0]), r_squared=0.0)

    slope = np.sum((x - x_mean) * (y - y_mean)) / sxx
    intercept = y_mean - slope * x_mean

    ss_tot = np.sum((y - y_mean) ** 2)
    ss_res = np.sum((y - (slope * x + intercept)) ** 2)
    r_squared = 1.0 - ss_res / ss_tot if ss_tot > 0 else 0.0
    r_squared = float(min(max(r_squared, 0.0), 1.0))

    return RegressionResult(slope=float(slope), intercept=float(intercept), r_squared=r_squared)
