"""
Strategy constants for the forecaster and trading engine.

All values are fractions of price unless noted. Defaults reproduce the
reference strategy; tests and experiments can pass a modified copy.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class StrategyConfig:
    """Every numeric knob of the divergence strategy in one place."""

    # --- session ---
    session_minutes: int = 390  # 09:30 -> 16:00, 391 bars inclusive
    end_of_day_bars: int = 10  # No entries, force close

    # --- forecaster ---
    prediction_horizon: int = 15  # Bars ahead
    lookback_window: int = 30
    sma_smoothing: int = 5
    sma_min_bars: int = 20  # Smooth slope only once this many bars exist
    volatility_window: int = 30
    volume_ma_window: int = 5
    obv_slope_bars: int = 10
    forecast_start_bar: int = 5
    min_lookback: int = 5
    max_forecast_deviation: float = 0.05  # Clamp forecast to +/- 5%
    regime_bias_scale: float = 0.1

    # --- online learner (normalized LMS) ---
    learning_rate: float = 0.1
    epsilon: float = 1e-6
    weight_floor: float = 0.1
    momentum_weight_scale: float = 1.2  # Initial w_m = seed * scale
    initial_obv_weight: float = 0.2

    # --- entries ---
    base_entry_threshold: float = 0.00015  # 0.015%
    min_effective_threshold: float = 0.00001
    default_realized_vol: float = 8.0  # bps, when not yet measured
    vol_normalizer: float = 10.0  # bps
    min_vol_multiplier: float = 0.6
    max_vol_multiplier: float = 2.5
    exhaustion_move: float = 0.0025  # 0.25% in exhaustion_bars
    exhaustion_bars: int = 5
    max_bias_impact: float = 0.25
    bias_impact_scale: float = 0.3
    soft_slope: float = 0.02
    hard_slope: float = 0.05
    soft_slope_penalty: float = 1.15
    hard_slope_penalty: float = 1.1

    # --- exits ---
    stop_loss_pct: float = 0.0015  # 0.15%
    take_profit_pct: float = 0.0030  # 0.30%
    breakeven_trigger_pct: float = 0.0010  # Move SL to entry at +0.10%
    convergence_band: float = 0.0002  # 0.02%
    timeout_padding_minutes: int = 5

    # --- diagnostics ---
    rejection_cooldown_bars: int = 15

    @property
    def max_trade_minutes(self) -> int:
        """Time-out for trades that neither converge nor hit a level."""
        return self.prediction_horizon + self.timeout_padding_minutes

    @property
    def feature_capacity(self) -> int:
        """Ring size needed to look back one horizon from any bar."""
        return self.prediction_horizon + self.lookback_window + 1


DEFAULT_STRATEGY = StrategyConfig()
