# -*- coding: utf-8 -*-
"""
Decision engine configuration schema.

Defines the spending cap and the confidence-weighted thresholds of the
buy and sell passes.
"""

from dataclasses import dataclass, field

from trendtrader.exceptions import ConfigError
from trendtrader.models import OrderPolicy


@dataclass
class DecisionConfig:
    """Configuration for the position decision engine."""

    # Spending cap
    buy_fraction: float = 1 / 3  # Max share of available base currency per buy, fixed per pass

    # Buy threshold: price increase % must exceed base - weight * volatility_factor
    buy_threshold_base: float = 5.0
    buy_threshold_volatility_weight: float = 4.0

    # Sell threshold: drawdown from peak % must exceed base - weight * volatility_factor
    sell_threshold_base: float = 15.0
    sell_threshold_volatility_weight: float = 5.0

    # Order execution
    order_policy: OrderPolicy = field(default_factory=OrderPolicy)

    def __post_init__(self):
        if not 0.0 < self.buy_fraction <= 1.0:
            raise ConfigError(f"buy_fraction must be in (0, 1], got {self.buy_fraction}")

    def buy_threshold(self, volatility_factor: float) -> float:
        return self.buy_threshold_base - self.buy_threshold_volatility_weight * volatility_factor

    def sell_threshold(self, volatility_factor: float) -> float:
        return self.sell_threshold_base - self.sell_threshold_volatility_weight * volatility_factor

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            'buy_fraction': self.buy_fraction,
            'buy_threshold_base': self.buy_threshold_base,
            'buy_threshold_volatility_weight': self.buy_threshold_volatility_weight,
            'sell_threshold_base': self.sell_threshold_base,
            'sell_threshold_volatility_weight': self.sell_threshold_volatility_weight,
            'time_in_force': self.order_policy.time_in_force
        }
