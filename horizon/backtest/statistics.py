"""
Session performance statistics.

Key metrics over the closed-trade log:
- Total gain (sum of per-share P&L)
- Accuracy (% of winning trades)
- Max drawdown of the cumulative P&L curve
- Win rate

All functions are pure reductions, so they can be applied to any prefix of
the trade log during playback.
"""

import logging
from collections import Counter
from typing import Dict, List

import pandas as pd

from horizon.core.enums import ExitReason
from horizon.core.models import MarketAnalysis, TradeSignal

logger = logging.getLogger(__name__)


class PerformanceAnalyzer:
    """Reduce a list of closed trades to session statistics."""

    def analyze(self, trades: List[TradeSignal]) -> MarketAnalysis:
        closed = [t for t in trades if t.is_closed]
        if not closed:
            return MarketAnalysis(
                total_gain=0.0,
                total_trades=0,
                accuracy=0.0,
                max_drawdown=0.0,
                win_rate=0.0,
            )

        profits = [t.profit or 0.0 for t in closed]
        winners = sum(1 for p in profits if p > 0)
        win_rate = winners / len(closed)

        return MarketAnalysis(
            total_gain=round(sum(profits), 2),
            total_trades=len(closed),
            accuracy=round(win_rate * 100, 1),
            max_drawdown=self._calculate_drawdown(profits),
            win_rate=win_rate,
        )

    @staticmethod
    def _calculate_drawdown(profits: List[float]) -> float:
        """Largest peak-to-trough drop of cumulative P&L; the peak starts at 0."""
        equity = 0.0
        peak = 0.0
        max_dd = 0.0

        for pnl in profits:
            equity += pnl

            if equity > peak:
                peak = equity

            dd = peak - equity
            if dd > max_dd:
                max_dd = dd

        return round(max_dd, 2)

    @staticmethod
    def exit_breakdown(trades: List[TradeSignal]) -> Dict[ExitReason, int]:
        """Closed trades per exit reason, every reason present (zero if unused)."""
        counts = Counter(t.exit_reason for t in trades if t.is_closed and t.exit_reason)
        return {reason: counts.get(reason, 0) for reason in ExitReason}

    @staticmethod
    def equity_curve(trades: List[TradeSignal]) -> pd.Series:
        """Cumulative P&L indexed by exit timestamp."""
        closed = [t for t in trades if t.is_closed]
        if not closed:
            return pd.Series(dtype=float, name="equity")

        series = pd.Series(
            [t.profit or 0.0 for t in closed],
            index=pd.DatetimeIndex([t.exit_timestamp for t in closed], name="timestamp"),
            name="equity",
        )
        return series.cumsum()
