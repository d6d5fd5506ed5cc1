"""
Tests for RegimeTrainer.

Validates:
- No prior days -> baseline parameters
- Trend persistence counting and bias amplification
- Volatility tiers from the weighted daily range
"""

import pytest

from horizon.core.models import DEFAULT_PARAMETERS, DailyAnchor
from horizon.data.history import DailyHistoryStore
from horizon.intelligence.regime import RegimeTrainer


def day(n: int, open_: float, close: float, high: float = None, low: float = None) -> DailyAnchor:
    return DailyAnchor(
        date=f"2024-06-{n:02d}",
        open=open_,
        high=high if high is not None else max(open_, close) + 0.1,
        low=low if low is not None else min(open_, close) - 0.1,
        close=close,
    )


@pytest.fixture
def trainer():
    return RegimeTrainer(DailyHistoryStore())


class TestDefaults:

    def test_empty_history_returns_baseline(self, trainer):
        assert trainer.fit([]) == DEFAULT_PARAMETERS

    def test_first_day_of_month(self, trainer):
        params = trainer.train("2024-04-01")
        assert params.trend_bias == 0.0
        assert params.base_volatility_threshold == 1.0
        assert params.momentum_weight == 0.5
        assert params.description == "Baseline (No Prior Data)"


class TestTrendPersistence:

    def test_up_run(self):
        days = [day(1, 100, 99), day(2, 100, 101), day(3, 100, 101), day(4, 100, 101)]
        assert RegimeTrainer.trend_persistence(days) == 3

    def test_down_run(self):
        days = [day(1, 100, 101), day(2, 100, 99), day(3, 100, 99)]
        assert RegimeTrainer.trend_persistence(days) == -2

    def test_unchanged_day_counts_as_down(self):
        days = [day(1, 100, 101), day(2, 100, 100)]
        assert RegimeTrainer.trend_persistence(days) == -1

    def test_empty(self):
        assert RegimeTrainer.trend_persistence([]) == 0


class TestFit:

    def test_persistent_bullish_amplified(self, trainer):
        days = [day(n, 100.0, 100.5, high=101.0, low=99.9) for n in (3, 4, 5)]
        params = trainer.fit(days)
        assert params.trend_bias == pytest.approx(0.75)
        assert params.momentum_weight == 1.5
        assert params.base_volatility_threshold == 1.0
        assert params.description == "Bullish Trend (Persistent) [High Vol]"

    def test_short_run_not_amplified(self, trainer):
        days = [day(3, 100.0, 100.5, high=100.6, low=99.9), day(4, 100.0, 100.5, high=100.6, low=99.9)]
        params = trainer.fit(days)
        assert params.trend_bias == pytest.approx(0.5)
        assert params.description == "Bullish Trend [Stable]"

    def test_bias_clamped(self, trainer):
        days = [day(3, 100.0, 95.0, high=100.5, low=94.0)]
        params = trainer.fit(days)
        assert params.trend_bias == -1.0
        assert params.description.startswith("Bearish Trend")

    def test_high_volatility_tier(self, trainer):
        days = [day(3, 100.0, 100.0, high=101.0, low=99.0), day(4, 100.0, 100.05, high=101.0, low=99.0)]
        assert trainer.fit(days).base_volatility_threshold == 1.5

    def test_low_volatility_tier(self, trainer):
        days = [day(3, 100.0, 100.01, high=100.2, low=99.9), day(4, 100.0, 99.99, high=100.2, low=99.9)]
        params = trainer.fit(days)
        assert params.base_volatility_threshold == 0.8
        assert params.momentum_weight == 1.0
        assert params.description.startswith("Choppy / Neutral")

    def test_recent_days_weigh_more(self, trainer):
        early_up = [day(3, 100.0, 101.0, high=101.1), day(4, 100.0, 99.0, low=98.9)]
        early_down = [day(3, 100.0, 99.0, low=98.9), day(4, 100.0, 101.0, high=101.1)]
        assert trainer.fit(early_up).trend_bias < 0
        assert trainer.fit(early_down).trend_bias > 0

    def test_train_uses_prior_days(self, trainer):
        params = trainer.train("2024-04-22")
        assert params != DEFAULT_PARAMETERS
        assert -1.5 <= params.trend_bias <= 1.5
