"""
Horizon Test Configuration
"""

from datetime import datetime, timedelta
from typing import List, Optional

import pytest

from horizon.core.models import Bar
from horizon.data.synthesizer import MARKET_TZ

SESSION_OPEN = datetime(2024, 5, 1, 9, 30, tzinfo=MARKET_TZ)


def make_bars(
    closes: List[float],
    predictions: Optional[List[Optional[float]]] = None,
    realized_volatility: float = 10.0,
) -> List[Bar]:
    """Flat one-minute bars with optional per-bar forecasts."""
    bars = []
    for i, price in enumerate(closes):
        ts = SESSION_OPEN + timedelta(minutes=i)
        bars.append(
            Bar(
                timestamp=ts,
                time=ts.strftime("%H:%M"),
                close=price,
                open=price,
                high=price,
                low=price,
                volume=10_000,
                realized_volatility=realized_volatility,
                momentum=0.0,
                prediction_for_future=predictions[i] if predictions else None,
            )
        )
    return bars


@pytest.fixture
def flat_session():
    """391 bars at 500.00 with no forecasts."""
    return make_bars([500.0] * 391)


@pytest.fixture
def bar_factory():
    return make_bars
