"""
Horizon enumerations.
"""

from enum import Enum


class Direction(str, Enum):
    """Trade direction."""

    LONG = "long"
    SHORT = "short"


class PositionState(str, Enum):
    """Position state of the trading engine."""

    FLAT = "flat"
    LONG = "long"
    SHORT = "short"


class TradeStatus(str, Enum):
    """Trade lifecycle status."""

    OPEN = "open"
    CLOSED = "closed"


class ExitReason(str, Enum):
    """Why a trade was closed. Exactly one per closed trade."""

    CONVERGENCE = "convergence"  # Price caught up with the forecast
    STOP_LOSS = "stop_loss"
    TAKE_PROFIT = "take_profit"
    REVERSAL = "reversal"  # Forecast flipped against the position
    TIME_OUT = "time_out"
    END_OF_DAY = "eod"


class RejectionReason(str, Enum):
    """Why a near-miss entry was not taken."""

    EXHAUSTION = "exhaustion"  # 5-minute spike, wait for stability
    TREND_FILTER = "trend_filter"  # Too weak to fight intraday momentum
    LOW_CONVICTION = "low_conviction"  # Below the dynamic threshold
    HIGH_VOLATILITY = "high_volatility"


class DataSource(str, Enum):
    """Which synthesis path produced a session."""

    TICK_REPLAY = "tick_replay"
    DAILY_ANCHOR = "daily_anchor"
    SYNTHETIC = "synthetic"
