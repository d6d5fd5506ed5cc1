"""
Session pipeline that ties everything together.

Usage::

    engine = SessionEngine()
    result = engine.run("2024-05-01")
    print(result.analysis.total_gain)

Each run starts from fresh state: regime trainer -> bar synthesizer ->
forecaster -> trading engine -> performance analyzer.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional

import pandas as pd

from horizon.backtest.statistics import PerformanceAnalyzer
from horizon.config.strategy import DEFAULT_STRATEGY, StrategyConfig
from horizon.core.enums import DataSource
from horizon.core.models import (
    Bar,
    Forecast,
    MarketAnalysis,
    ModelParameters,
    TradeRejection,
    TradeSignal,
)
from horizon.data.history import DailyHistoryStore, parse_session_date
from horizon.data.synthesizer import MinuteBarSynthesizer
from horizon.execution.trading_engine import TradingEngine
from horizon.intelligence.forecaster import FeatureForecastEngine
from horizon.intelligence.regime import RegimeTrainer

logger = logging.getLogger(__name__)


@dataclass
class SessionSnapshot:
    """Playback view of a session up to one bar."""

    index: int
    bars: List[Bar]
    trades: List[TradeSignal]
    rejections: List[TradeRejection]
    analysis: MarketAnalysis
    forecast: Optional[Forecast] = None
    active_trade: Optional[TradeSignal] = None  # Open at this bar


@dataclass
class SessionResult:
    """Everything produced by one session run."""

    date: str
    source: DataSource
    params: ModelParameters
    bars: List[Bar]
    trades: List[TradeSignal]
    rejections: List[TradeRejection]
    analysis: MarketAnalysis
    prediction_horizon: int = 15

    def to_frame(self) -> pd.DataFrame:
        """Bars as a DataFrame indexed by timestamp."""
        if not self.bars:
            return pd.DataFrame()
        df = pd.DataFrame([b.to_dict() for b in self.bars])
        return df.set_index("timestamp")

    def forecast_at(self, index: int) -> Optional[Forecast]:
        """Projection from bar `index` to its forecast target, if one was made."""
        if not 0 <= index < len(self.bars):
            return None
        bar = self.bars[index]
        if not bar.prediction_for_future:
            return None

        end = bar.timestamp + timedelta(minutes=self.prediction_horizon)
        return Forecast(
            start_time=bar.time,
            start_timestamp=bar.timestamp,
            start_price=bar.close,
            end_time=end.strftime("%H:%M"),
            end_timestamp=end,
            end_price=bar.prediction_for_future,
        )

    def snapshot(self, index: int) -> SessionSnapshot:
        """
        State of the session as of bar `index`.

        Trades are included once their exit happened at or before that bar,
        rejections once they were logged; the analysis covers only those trades.
        The trade still open at that bar, if any, is `active_trade`.
        """
        if not self.bars:
            return SessionSnapshot(index, [], [], [], PerformanceAnalyzer().analyze([]))

        index = max(0, min(index, len(self.bars) - 1))
        now = self.bars[index].timestamp

        trades = [t for t in self.trades if t.exit_timestamp is not None and t.exit_timestamp <= now]
        rejections = [r for r in self.rejections if r.timestamp <= now]
        active = next(
            (
                t for t in self.trades
                if t.timestamp <= now and (t.exit_timestamp is None or now < t.exit_timestamp)
            ),
            None,
        )
        return SessionSnapshot(
            index=index,
            bars=self.bars[: index + 1],
            trades=trades,
            rejections=rejections,
            analysis=PerformanceAnalyzer().analyze(trades),
            forecast=self.forecast_at(index),
            active_trade=active,
        )


class SessionEngine:
    """Runs complete simulated sessions."""

    def __init__(
        self,
        history: Optional[DailyHistoryStore] = None,
        config: StrategyConfig = DEFAULT_STRATEGY,
    ):
        self.history = history or DailyHistoryStore()
        self.config = config
        self.trainer = RegimeTrainer(self.history)
        self.synthesizer = MinuteBarSynthesizer(self.history, config)
        self.analyzer = PerformanceAnalyzer()

    def run(self, date_str: str) -> SessionResult:
        """Simulate the session on `date_str` (YYYY-MM-DD)."""
        parse_session_date(date_str)

        params = self.trainer.train(date_str)
        bars, source = self.synthesizer.generate(date_str)

        FeatureForecastEngine(params, self.config).run(bars)
        trades, rejections = TradingEngine(params, self.config).run(bars)
        analysis = self.analyzer.analyze(trades)

        logger.info(
            "Session %s (%s): %d bars, %d trades, gain $%.2f, accuracy %.1f%%",
            date_str, source.value, len(bars), analysis.total_trades,
            analysis.total_gain, analysis.accuracy,
        )
        return SessionResult(
            date=date_str,
            source=source,
            params=params,
            bars=bars,
            trades=trades,
            rejections=rejections,
            analysis=analysis,
            prediction_horizon=self.config.prediction_horizon,
        )
