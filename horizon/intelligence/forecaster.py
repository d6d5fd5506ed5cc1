"""
Feature & Forecast Engine

Walks the session bar by bar and, for every bar from the 5th onward:

1. Rolling indicators - volume MA, on-balance volume, Parkinson and
   realized volatility (bps)
2. Features - smoothed momentum slope and volume-normalised OBV slope
3. Delayed supervision - once the features from 15 bars ago can be scored
   against the realised move, the linear weights are updated with a
   normalized LMS step (step size shrinks as feature energy grows)
4. Forecast for T+15 - linear model plus regime bias, clamped to +/-5% of
   price, written on this bar and on the target bar

Processing is strictly sequential: every step reads state (OBV, weights,
stored features) accumulated from earlier bars.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from horizon.config.strategy import DEFAULT_STRATEGY, StrategyConfig
from horizon.core.models import DEFAULT_PARAMETERS, Bar, ModelParameters

logger = logging.getLogger(__name__)

PARKINSON_K = 1 / (4 * math.log(2))
BPS = 10_000


def _finite_or(value: float, default: float) -> float:
    return value if math.isfinite(value) else default


@dataclass(frozen=True)
class FeatureVector:
    """Model inputs captured at one bar."""

    slope: float
    obv_slope: float

    @property
    def energy(self) -> float:
        return self.slope * self.slope + self.obv_slope * self.obv_slope


class FeatureStore:
    """
    Fixed-capacity store of feature vectors addressed by bar index.

    Slots are reused modulo capacity; a lookup only succeeds if the slot
    still holds the requested index.
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._slots: List[Optional[Tuple[int, FeatureVector]]] = [None] * capacity

    def put(self, index: int, vector: FeatureVector) -> None:
        self._slots[index % self.capacity] = (index, vector)

    def get(self, index: int) -> Optional[FeatureVector]:
        if index < 0:
            return None
        slot = self._slots[index % self.capacity]
        if slot is None or slot[0] != index:
            return None
        return slot[1]

    def clear(self) -> None:
        self._slots = [None] * self.capacity


@dataclass
class AdaptiveWeights:
    """Online-learned weights of the linear price model."""

    momentum: float
    obv: float
    floor: float = 0.1
    updates: int = 0

    def predict_change(self, features: FeatureVector, horizon: int) -> float:
        return self.momentum * features.slope * horizon + self.obv * features.obv_slope

    def update(
        self,
        features: FeatureVector,
        actual_change: float,
        horizon: int,
        learning_rate: float,
        epsilon: float,
    ) -> float:
        """Normalized LMS step. Returns the prediction error that drove it."""
        error = actual_change - self.predict_change(features, horizon)
        step = learning_rate / (epsilon + features.energy)

        momentum = self.momentum + step * error * features.slope
        obv = self.obv + step * error * features.obv_slope

        # Non-finite steps keep the previous weight
        self.momentum = max(_finite_or(momentum, self.momentum), self.floor)
        self.obv = max(_finite_or(obv, self.obv), self.floor)
        self.updates += 1
        return error


class FeatureForecastEngine:
    """Computes indicators and adaptive T+horizon forecasts over a bar sequence."""

    def __init__(
        self,
        params: ModelParameters = DEFAULT_PARAMETERS,
        config: StrategyConfig = DEFAULT_STRATEGY,
    ):
        self.params = params
        self.config = config
        self.features = FeatureStore(config.feature_capacity)
        self.weights = self._initial_weights()
        self.last_error: Optional[float] = None

    def _initial_weights(self) -> AdaptiveWeights:
        return AdaptiveWeights(
            momentum=self.params.momentum_weight * self.config.momentum_weight_scale,
            obv=self.config.initial_obv_weight,
            floor=self.config.weight_floor,
        )

    def reset(self) -> None:
        self.features.clear()
        self.weights = self._initial_weights()
        self.last_error = None

    def run(self, bars: List[Bar]) -> List[Bar]:
        """Annotate `bars` in place with indicators and forecasts."""
        self.reset()
        cfg = self.config

        for i in range(cfg.forecast_start_bar, len(bars)):
            self.update_indicators(bars, i)

            lookback = min(i, cfg.lookback_window)
            if lookback < cfg.min_lookback:
                continue

            vector = self.compute_features(bars, i, lookback)
            self.features.put(i, vector)
            bars[i].momentum = vector.slope

            self._train(bars, i)
            self._forecast(bars, i, vector)

        logger.debug(
            "Forecaster finished %d bars: w_momentum=%.4f w_obv=%.4f after %d updates",
            len(bars), self.weights.momentum, self.weights.obv, self.weights.updates,
        )
        return bars

    # ------------------------------------------------------------------
    # Indicators
    # ------------------------------------------------------------------

    def update_indicators(self, bars: List[Bar], i: int) -> None:
        cfg = self.config
        bar = bars[i]
        prev = bars[i - 1] if i > 0 else bar

        if i >= cfg.volume_ma_window - 1:
            window = bars[i - cfg.volume_ma_window + 1 : i + 1]
            bar.volume_ma = sum(b.volume or 0 for b in window) / cfg.volume_ma_window
        else:
            bar.volume_ma = float(bar.volume)

        obv_change = 0
        if bar.close > prev.close:
            obv_change = bar.volume or 0
        elif bar.close < prev.close:
            obv_change = -(bar.volume or 0)
        bar.obv = (prev.obv or 0) + obv_change if i > 0 else 0

        if i >= cfg.volatility_window:
            bar.parkinson_volatility = self.parkinson_volatility(bars, i)
            bar.realized_volatility = self.realized_volatility(bars, i)
        else:
            bar.parkinson_volatility = 0.0
            bar.realized_volatility = 0.0

    def parkinson_volatility(self, bars: List[Bar], i: int) -> float:
        """High-low range estimator over the volatility window, in bps."""
        window = bars[i - self.config.volatility_window + 1 : i + 1]
        highs = np.array([b.high if b.high > 0 else b.close for b in window], dtype=float)
        lows = np.array([b.low if b.low > 0 else b.close for b in window], dtype=float)

        with np.errstate(divide="ignore", invalid="ignore"):
            log_hl = np.log(highs / lows)
        log_hl = np.where(np.isfinite(log_hl), log_hl, 0.0)

        value = math.sqrt(PARKINSON_K * float(np.sum(log_hl ** 2)) / len(window)) * BPS
        return _finite_or(value, 0.0)

    def realized_volatility(self, bars: List[Bar], i: int) -> float:
        """Population std of one-bar log returns over the window, in bps."""
        closes = np.array(
            [b.close for b in bars[i - self.config.volatility_window : i + 1]], dtype=float
        )
        with np.errstate(divide="ignore", invalid="ignore"):
            returns = np.log(closes[1:] / closes[:-1])
        returns = np.where(np.isfinite(returns), returns, 0.0)
        return _finite_or(float(np.std(returns)) * BPS, 0.0)

    # ------------------------------------------------------------------
    # Features, learning, forecast
    # ------------------------------------------------------------------

    def compute_features(self, bars: List[Bar], i: int, lookback: int) -> FeatureVector:
        cfg = self.config
        bar = bars[i]
        past_index = i - lookback

        current_level = bar.close
        past_level = bars[past_index].close
        if i >= cfg.sma_min_bars:
            current_level = self._sma(bars, i)
            if past_index >= cfg.sma_smoothing:
                past_level = self._sma(bars, past_index)

        slope = _finite_or((current_level - past_level) / lookback, 0.0)

        current_obv = bar.obv or 0
        past_obv = bars[i - cfg.obv_slope_bars].obv if i >= cfg.obv_slope_bars else None
        obv_start = past_obv or current_obv
        obv_slope_raw = (current_obv - obv_start) / cfg.obv_slope_bars

        volume_ma = max(bar.volume_ma or 1.0, 1.0)
        obv_slope = _finite_or(obv_slope_raw / volume_ma, 0.0)

        return FeatureVector(slope=slope, obv_slope=obv_slope)

    def _sma(self, bars: List[Bar], end: int) -> float:
        n = self.config.sma_smoothing
        return sum(b.close for b in bars[end - n + 1 : end + 1]) / n

    def _train(self, bars: List[Bar], i: int) -> None:
        horizon = self.config.prediction_horizon
        past = self.features.get(i - horizon)
        if past is None:
            return

        actual_change = bars[i].close - bars[i - horizon].close
        self.last_error = self.weights.update(
            past,
            actual_change,
            horizon,
            self.config.learning_rate,
            self.config.epsilon,
        )

    def predict(self, price: float, vector: FeatureVector) -> float:
        """Clamped, cent-rounded T+horizon forecast from the current weights."""
        cfg = self.config
        model = self.weights.predict_change(vector, cfg.prediction_horizon)
        regime_bias = self.params.trend_bias * cfg.regime_bias_scale

        prediction = _finite_or(price + model + regime_bias, price)

        max_deviation = price * cfg.max_forecast_deviation
        prediction = min(max(prediction, price - max_deviation), price + max_deviation)
        return round(prediction, 2)

    def _forecast(self, bars: List[Bar], i: int, vector: FeatureVector) -> None:
        prediction = self.predict(bars[i].close, vector)
        bars[i].prediction_for_future = prediction

        target = i + self.config.prediction_horizon
        if target < len(bars):
            bars[target].predicted_price = prediction
