# -*- coding: utf-8 -*-
"""
Position decision state machine.
"""

from trendtrader.decision.config import DecisionConfig
from trendtrader.decision.engine import (
    CurrencyEvaluation,
    Decision,
    PositionDecisionEngine,
    decide,
    peak_differential_pct,
    price_increase_pct
)

__all__ = [
    'DecisionConfig',
    'CurrencyEvaluation',
    'Decision',
    'PositionDecisionEngine',
    'decide',
    'peak_differential_pct',
    'price_increase_pct'
]
