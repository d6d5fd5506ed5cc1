"""
Horizon Core Data Models

Dataclasses for bars, trades, rejections and session statistics.
Pydantic model for validated daily OHLC anchors.
"""

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .enums import Direction, ExitReason, RejectionReason, TradeStatus


@dataclass
class Bar:
    """
    One minute of the trading session.

    `close` is the minute's close price. Derived fields are filled in by the
    forecaster and stay None until the bar has been processed.
    """

    timestamp: datetime
    time: str  # HH:MM
    close: float
    open: float = 0.0
    high: float = 0.0
    low: float = 0.0
    volume: int = 0

    volume_ma: Optional[float] = None
    obv: Optional[float] = None
    realized_volatility: Optional[float] = None  # bps
    parkinson_volatility: Optional[float] = None  # bps
    momentum: Optional[float] = None

    # Forecast made at this bar for T+horizon
    prediction_for_future: Optional[float] = None
    # Forecast made horizon bars ago FOR this bar
    predicted_price: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class DailyAnchor(BaseModel):
    """Daily OHLC anchor from the history store."""

    model_config = ConfigDict(frozen=True)

    date: str
    open: float = Field(gt=0, allow_inf_nan=False)
    high: float = Field(gt=0, allow_inf_nan=False)
    low: float = Field(gt=0, allow_inf_nan=False)
    close: float = Field(gt=0, allow_inf_nan=False)

    @model_validator(mode="after")
    def _check_range(self) -> "DailyAnchor":
        if self.high < self.low:
            raise ValueError(f"high {self.high} below low {self.low}")
        return self

    @property
    def daily_return(self) -> float:
        return (self.close - self.open) / self.open

    @property
    def daily_range(self) -> float:
        return (self.high - self.low) / self.open


@dataclass(frozen=True)
class ModelParameters:
    """Regime parameters learned from prior sessions. Immutable per session."""

    trend_bias: float  # -1.5 (bearish) .. 1.5 (bullish)
    base_volatility_threshold: float  # Entry threshold multiplier
    momentum_weight: float  # Seed for the adaptive momentum weight
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


DEFAULT_PARAMETERS = ModelParameters(
    trend_bias=0.0,
    base_volatility_threshold=1.0,
    momentum_weight=0.5,
    description="Baseline (No Prior Data)",
)


@dataclass
class TradeSignal:
    """A position opened by the trading engine. Mutated in place while open."""

    trade_id: str
    time: str
    timestamp: datetime
    direction: Direction
    entry_price: float
    predicted_price: float
    stop_loss: float
    take_profit: float
    status: TradeStatus = TradeStatus.OPEN

    exit_time: Optional[str] = None
    exit_timestamp: Optional[datetime] = None
    exit_price: Optional[float] = None
    exit_reason: Optional[ExitReason] = None
    profit: Optional[float] = None
    duration_minutes: Optional[int] = None

    @property
    def is_long(self) -> bool:
        return self.direction == Direction.LONG

    @property
    def is_closed(self) -> bool:
        return self.status == TradeStatus.CLOSED

    @property
    def is_winner(self) -> bool:
        return (self.profit or 0.0) > 0

    def unrealized_pct(self, price: float) -> float:
        """Unrealized profit as a fraction of the entry price."""
        if self.is_long:
            return (price - self.entry_price) / self.entry_price
        return (self.entry_price - price) / self.entry_price

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["direction"] = self.direction.value
        data["status"] = self.status.value
        data["exit_reason"] = self.exit_reason.value if self.exit_reason else None
        return data


@dataclass(frozen=True)
class TradeRejection:
    """A logged near-miss entry."""

    rejection_id: str
    time: str
    timestamp: datetime
    reason: RejectionReason
    details: str
    divergence: float
    threshold_required: float


@dataclass(frozen=True)
class MarketAnalysis:
    """Summary statistics over the closed-trade log."""

    total_gain: float
    total_trades: int
    accuracy: float  # Percentage, 1 decimal
    max_drawdown: float
    win_rate: float  # Fraction 0..1

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Forecast:
    """Forward projection from a bar to its forecast target."""

    start_time: str
    start_timestamp: datetime
    start_price: float
    end_time: str
    end_timestamp: datetime
    end_price: float

    @property
    def expected_move_pct(self) -> float:
        if self.start_price == 0:
            return 0.0
        return (self.end_price - self.start_price) / self.start_price * 100
