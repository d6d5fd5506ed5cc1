"""
Tests for the feature & forecast engine.

Validates:
- Weight floor and non-finite guards of the online learner
- Forecast clamping and regime bias
- Feature store slot reuse
- Forecast linkage between a bar and its T+15 target
- Indicator, feature and lagged-update values on hand-built bars
"""

import math
import statistics

import pytest

from horizon.core.models import DEFAULT_PARAMETERS, ModelParameters
from horizon.data.synthesizer import MinuteBarSynthesizer
from horizon.intelligence.forecaster import (
    AdaptiveWeights,
    FeatureForecastEngine,
    FeatureStore,
    FeatureVector,
)


class TestAdaptiveWeights:

    def test_weight_floor(self):
        weights = AdaptiveWeights(momentum=0.2, obv=0.2, floor=0.1)
        error = weights.update(FeatureVector(1.0, 0.0), -100.0, 15, 0.1, 1e-6)
        assert error == pytest.approx(-103.0)
        assert weights.momentum == 0.1
        assert weights.obv == 0.2
        assert weights.updates == 1

    def test_positive_error_raises_weight(self):
        weights = AdaptiveWeights(momentum=0.6, obv=0.2)
        weights.update(FeatureVector(0.01, 0.0), 1.0, 15, 0.1, 1e-6)
        assert weights.momentum > 0.6

    def test_non_finite_update_keeps_weight(self):
        weights = AdaptiveWeights(momentum=0.6, obv=0.3)
        weights.update(FeatureVector(float("nan"), 0.0), 1.0, 15, 0.1, 1e-6)
        assert weights.momentum == 0.6
        assert weights.obv == 0.3

    def test_predict_change(self):
        weights = AdaptiveWeights(momentum=0.5, obv=0.2)
        assert weights.predict_change(FeatureVector(0.02, 1.0), 15) == pytest.approx(0.35)


class TestFeatureStore:

    def test_put_get(self):
        store = FeatureStore(46)
        vector = FeatureVector(0.1, 0.2)
        store.put(3, vector)
        assert store.get(3) is vector

    def test_slot_reuse_invalidates_old_index(self):
        store = FeatureStore(46)
        store.put(3, FeatureVector(0.1, 0.2))
        newer = FeatureVector(0.3, 0.4)
        store.put(49, newer)
        assert store.get(3) is None
        assert store.get(49) is newer

    def test_missing_and_negative(self):
        store = FeatureStore(10)
        assert store.get(5) is None
        assert store.get(-1) is None

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            FeatureStore(0)


class TestPredict:

    def test_clamped_up(self):
        engine = FeatureForecastEngine()
        engine.weights.momentum = 10.0
        assert engine.predict(100.0, FeatureVector(1.0, 0.0)) == 105.0

    def test_clamped_down(self):
        engine = FeatureForecastEngine()
        engine.weights.momentum = 10.0
        assert engine.predict(100.0, FeatureVector(-1.0, 0.0)) == 95.0

    def test_regime_bias(self):
        params = ModelParameters(1.0, 1.0, 1.0, "test")
        engine = FeatureForecastEngine(params)
        assert engine.predict(100.0, FeatureVector(0.0, 0.0)) == 100.1

    def test_initial_weights_from_seed(self):
        params = ModelParameters(0.0, 1.0, 1.5, "test")
        engine = FeatureForecastEngine(params)
        assert engine.weights.momentum == pytest.approx(1.8)
        assert engine.weights.obv == 0.2


class TestRun:

    @pytest.fixture(scope="class")
    def bars(self):
        bars, _ = MinuteBarSynthesizer().generate("2023-03-15")
        FeatureForecastEngine().run(bars)
        return bars

    def test_no_forecast_before_start(self, bars):
        assert all(b.prediction_for_future is None for b in bars[:5])
        assert all(b.prediction_for_future is not None for b in bars[5:])

    def test_target_bar_linkage(self, bars):
        for i in range(5, len(bars) - 15):
            assert bars[i + 15].predicted_price == bars[i].prediction_for_future

    def test_forecast_within_band(self, bars):
        for bar in bars[5:]:
            assert abs(bar.prediction_for_future - bar.close) <= bar.close * 0.05 + 0.005

    def test_volatility_only_after_window(self, bars):
        assert all(b.realized_volatility == 0.0 for b in bars[5:30])
        assert all(b.parkinson_volatility == 0.0 for b in bars[5:30])
        assert any(b.realized_volatility > 0 for b in bars[30:])
        assert all(math.isfinite(b.parkinson_volatility) for b in bars[30:])

    def test_indicators_filled(self, bars):
        for bar in bars[5:]:
            assert bar.volume_ma is not None
            assert bar.obv is not None
            assert bar.momentum is not None

    def test_weights_never_below_floor(self):
        bars, _ = MinuteBarSynthesizer().generate("2024-04-15")
        engine = FeatureForecastEngine()
        engine.run(bars)
        assert engine.weights.momentum >= 0.1
        assert engine.weights.obv >= 0.1
        assert engine.weights.updates > 0

    def test_rerun_is_identical(self):
        a, _ = MinuteBarSynthesizer().generate("2023-03-15")
        b, _ = MinuteBarSynthesizer().generate("2023-03-15")
        engine = FeatureForecastEngine()
        engine.run(a)
        engine.run(b)
        assert [x.prediction_for_future for x in a] == [y.prediction_for_future for y in b]


# ============================================================================
# Indicator and learner values
# ============================================================================


def shape_bars(bars, volumes=None, wick=None):
    """Give hand-built bars explicit volumes and symmetric or log wicks."""
    for i, bar in enumerate(bars):
        if volumes is not None:
            bar.volume = volumes[i]
        if wick is not None:
            bar.high = bar.close * math.exp(wick)
            bar.low = bar.close
    return bars


class TestIndicatorValues:

    def test_obv_sign_rule(self, bar_factory):
        closes = [100, 100, 100, 100, 100, 101, 100.5, 100.5, 102, 101.5, 101.5, 103]
        bars = shape_bars(bar_factory(closes), volumes=[1000 * (i + 1) for i in range(12)])
        FeatureForecastEngine().run(bars)
        # up adds, down subtracts, unchanged holds
        assert [b.obv for b in bars[5:]] == [6000, -1000, -1000, 8000, -2000, -2000, 10000]

    def test_volume_ma_five_bars(self, bar_factory):
        bars = shape_bars(bar_factory([100.0] * 12), volumes=[1000 * (i + 1) for i in range(12)])
        FeatureForecastEngine().run(bars)
        for i in range(5, 12):
            assert bars[i].volume_ma == pytest.approx(1000 * (i - 1))

    def test_parkinson_constant_range(self, bar_factory):
        bars = shape_bars(bar_factory([100.0] * 40), wick=0.001)
        FeatureForecastEngine().run(bars)
        expected = 0.001 / math.sqrt(4 * math.log(2)) * 1e4
        assert bars[29].parkinson_volatility == 0.0
        for bar in bars[30:]:
            assert bar.parkinson_volatility == pytest.approx(expected)

    def test_realized_uses_population_std(self, bar_factory):
        closes = [100.0 if i % 2 == 0 else 100.0 * math.exp(0.002) for i in range(40)]
        bars = bar_factory(closes)
        FeatureForecastEngine().run(bars)
        assert bars[29].realized_volatility == 0.0
        for bar in bars[30:]:
            # 30 returns of +/-0.002 around zero; sample std would be larger
            assert bar.realized_volatility == pytest.approx(20.0)

    @pytest.mark.parametrize("i", [30, 45, 120, 390])
    def test_volatility_windows_match_hand_computation(self, i):
        bars, _ = MinuteBarSynthesizer().generate("2024-04-15")
        FeatureForecastEngine().run(bars)

        window = bars[i - 29 : i + 1]
        sum_sq = sum(math.log(b.high / b.low) ** 2 for b in window)
        parkinson = math.sqrt(sum_sq / (30 * 4 * math.log(2))) * 1e4

        closes = [b.close for b in bars[i - 30 : i + 1]]
        returns = [math.log(b / a) for a, b in zip(closes, closes[1:])]
        realized = statistics.pstdev(returns) * 1e4

        assert bars[i].parkinson_volatility == pytest.approx(parkinson, rel=1e-9)
        assert bars[i].realized_volatility == pytest.approx(realized, rel=1e-9)


class TestFeatureValues:

    @pytest.fixture
    def quadratic(self, bar_factory):
        return bar_factory([100 + 0.01 * i * i for i in range(40)])

    def test_raw_slope_before_smoothing(self, quadratic):
        engine = FeatureForecastEngine()
        vector = engine.compute_features(quadratic, 19, 19)
        assert vector.slope == pytest.approx((quadratic[19].close - quadratic[0].close) / 19)

    def test_smoothed_current_raw_past(self, quadratic):
        engine = FeatureForecastEngine()
        sma_now = sum(b.close for b in quadratic[21:26]) / 5
        vector = engine.compute_features(quadratic, 25, 25)
        assert vector.slope == pytest.approx((sma_now - quadratic[0].close) / 25)

    def test_smoothed_both_ends(self, quadratic):
        engine = FeatureForecastEngine()
        sma_now = sum(b.close for b in quadratic[31:36]) / 5
        sma_past = sum(b.close for b in quadratic[1:6]) / 5
        vector = engine.compute_features(quadratic, 35, 30)
        assert vector.slope == pytest.approx((sma_now - sma_past) / 30)

    def test_obv_slope_normalized_by_volume_ma(self, bar_factory):
        bars = bar_factory([100.0] * 20)
        bars[5].obv = 1000
        bars[15].obv = 5000
        bars[15].volume_ma = 200.0
        vector = FeatureForecastEngine().compute_features(bars, 15, 15)
        assert vector.obv_slope == pytest.approx((5000 - 1000) / 10 / 200)

    def test_obv_slope_volume_floor(self, bar_factory):
        bars = bar_factory([100.0] * 20)
        bars[5].obv = 1000
        bars[15].obv = 5000
        bars[15].volume_ma = 0.5
        vector = FeatureForecastEngine().compute_features(bars, 15, 15)
        assert vector.obv_slope == pytest.approx(400.0)


class TestDelayedLearning:

    @pytest.fixture
    def session(self, bar_factory):
        closes = [round(100 + 0.05 * i + 0.3 * math.sin(i / 3), 2) for i in range(40)]
        bars = bar_factory(closes)
        shape_bars(bars, volumes=[1000 + 50 * i for i in range(40)])
        for bar in bars:
            bar.high = bar.close + 0.05
            bar.low = bar.close - 0.05
        engine = FeatureForecastEngine(DEFAULT_PARAMETERS)
        engine.run(bars)
        return bars, engine

    def test_first_update_waits_one_horizon(self, session):
        _, engine = session
        # features exist from bar 5, so scoring starts at bar 20
        assert engine.weights.updates == 40 - 20

    def test_weights_and_forecasts_follow_lagged_nlms(self, session):
        bars, engine = session
        w_m, w_o = 0.5 * 1.2, 0.2

        for i in range(5, 40):
            if i >= 20:
                past = engine.features.get(i - 15)
                s, o = past.slope, past.obv_slope
                actual = bars[i].close - bars[i - 15].close
                error = actual - (w_m * s * 15 + w_o * o)
                step = 0.1 / (1e-6 + (s * s + o * o))
                w_m = max(w_m + step * error * s, 0.1)
                w_o = max(w_o + step * error * o, 0.1)

            vector = engine.features.get(i)
            price = bars[i].close
            expected = price + (w_m * vector.slope * 15 + w_o * vector.obv_slope) + 0.0
            band = price * 0.05
            expected = min(max(expected, price - band), price + band)
            assert bars[i].prediction_for_future == pytest.approx(round(expected, 2), abs=1e-9)

        assert engine.weights.momentum == pytest.approx(w_m)
        assert engine.weights.obv == pytest.approx(w_o)
