"""
Session Regime Trainer

Learns the trend/volatility character of the current month from the daily
anchors that precede the session, and turns it into the ModelParameters the
forecaster and trading engine use for the whole day.

- Trend bias: recency-weighted average daily return (x100, clamped to +/-1),
  amplified 1.5x when the last three or more days closed the same way
- Volatility tier: recency-weighted daily range picks the entry threshold
  multiplier (0.8 / 1.0 / 1.5)
- Momentum seed: trust momentum more in a clear trend
"""

import logging
import math
from typing import List, Optional

import numpy as np

from horizon.core.models import DEFAULT_PARAMETERS, DailyAnchor, ModelParameters
from horizon.data.history import DailyHistoryStore

logger = logging.getLogger(__name__)


def _finite_or(value: float, default: float) -> float:
    return value if math.isfinite(value) else default


class RegimeTrainer:
    """Derives session parameters from prior days in the same month."""

    RECENCY_DECAY = 0.85  # Most recent day weight 1.0, the one before 0.85 ...
    BIAS_SCALE = 100
    PERSISTENCE_DAYS = 3
    PERSISTENCE_BOOST = 1.5

    HIGH_VOL_RANGE = 0.012
    LOW_VOL_RANGE = 0.005
    LABEL_VOL_RANGE = 0.01

    STRONG_BIAS = 0.2
    LABEL_BIAS = 0.1

    def __init__(self, history: Optional[DailyHistoryStore] = None):
        self.history = history or DailyHistoryStore()

    def train(self, date_str: str) -> ModelParameters:
        """Parameters for the session on `date_str`."""
        prior = self.history.prior_days_in_month(date_str)
        params = self.fit(prior)
        logger.info(
            "Regime for %s from %d prior days: %s (bias %.3f, vol x%.1f, momentum %.1f)",
            date_str, len(prior), params.description, params.trend_bias,
            params.base_volatility_threshold, params.momentum_weight,
        )
        return params

    def fit(self, days: List[DailyAnchor]) -> ModelParameters:
        """Fit parameters to an ascending list of daily anchors."""
        if not days:
            return DEFAULT_PARAMETERS

        returns = np.array([_finite_or(d.daily_return, 0.0) for d in days])
        ranges = np.array([_finite_or(d.daily_range, 0.0) for d in days])

        ages = np.arange(len(days) - 1, -1, -1)
        weights = self.RECENCY_DECAY ** ages
        weight_sum = float(weights.sum())

        avg_return = float(np.dot(returns, weights)) / weight_sum if weight_sum > 0 else 0.0
        avg_range = float(np.dot(ranges, weights)) / weight_sum if weight_sum > 0 else 0.0

        persistence = self.trend_persistence(days)
        persistent = abs(persistence) >= self.PERSISTENCE_DAYS

        trend_bias = min(max(avg_return * self.BIAS_SCALE, -1.0), 1.0)
        if persistent:
            trend_bias *= self.PERSISTENCE_BOOST
        trend_bias = _finite_or(trend_bias, 0.0)

        if avg_range > self.HIGH_VOL_RANGE:
            vol_threshold = 1.5
        elif avg_range < self.LOW_VOL_RANGE:
            vol_threshold = 0.8
        else:
            vol_threshold = 1.0

        momentum_weight = 1.5 if abs(trend_bias) > self.STRONG_BIAS else 1.0

        return ModelParameters(
            trend_bias=trend_bias,
            base_volatility_threshold=vol_threshold,
            momentum_weight=momentum_weight,
            description=self._describe(trend_bias, persistent, avg_range),
        )

    @staticmethod
    def trend_persistence(days: List[DailyAnchor]) -> int:
        """
        Signed run length of the latest direction.

        A day is up when it closed above its open, otherwise down. +3 means
        the last three days were up, -4 the last four were down.
        """
        if not days:
            return 0

        def direction(day: DailyAnchor) -> int:
            return 1 if day.close > day.open else -1

        latest = direction(days[-1])
        count = 0
        for day in reversed(days):
            if direction(day) != latest:
                break
            count += latest
        return count

    def _describe(self, trend_bias: float, persistent: bool, avg_range: float) -> str:
        if trend_bias > self.LABEL_BIAS:
            label = "Bullish Trend"
        elif trend_bias < -self.LABEL_BIAS:
            label = "Bearish Trend"
        else:
            label = "Choppy / Neutral"

        if persistent:
            label += " (Persistent)"
        label += " [High Vol]" if avg_range > self.LABEL_VOL_RANGE else " [Stable]"
        return label
