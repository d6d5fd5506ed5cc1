"""
Divergence Trading Engine

Three-state position machine (FLAT -> LONG/SHORT -> FLAT) driven by the
gap between each bar's T+15 forecast and its price.

Entries (FLAT only, never in the last 10 bars):
- Dynamic threshold scales with realized volatility and the session regime
- Exhaustion filter skips entries right after a 5-minute spike
- Regime bias and intraday momentum widen the threshold against the trend

Exits, checked in priority order every bar while a position is open:
0. Breakeven ratchet - stop moves to entry once +0.10% is reached
1. Stop-loss / take-profit
2. Convergence (forecast reached) or reversal (forecast flipped)
3. Time-out after horizon + 5 minutes
4. End of day - overrides everything in the last 10 bars

Near-miss entries are classified and written to a rate-limited rejection log.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from horizon.config.strategy import DEFAULT_STRATEGY, StrategyConfig
from horizon.core.enums import (
    Direction,
    ExitReason,
    PositionState,
    RejectionReason,
    TradeStatus,
)
from horizon.core.models import (
    DEFAULT_PARAMETERS,
    Bar,
    ModelParameters,
    TradeRejection,
    TradeSignal,
)

logger = logging.getLogger(__name__)

# Reasons that bypass the rejection log cooldown
PRIORITY_REJECTIONS = frozenset({RejectionReason.EXHAUSTION, RejectionReason.TREND_FILTER})


@dataclass(frozen=True)
class EntryThreshold:
    """Volatility-scaled divergence threshold for one bar."""

    initial: float  # base x regime multiplier x volatility multiplier
    effective: float  # initial, floored
    vol_multiplier: float


class RejectionLog:
    """
    Append-only near-miss log with a cooldown.

    A rejection is kept if more than `cooldown_bars` bars passed since the
    last kept one, or if its reason is exhaustion / trend filter.
    """

    def __init__(self, cooldown_bars: int = 15):
        self.cooldown_bars = cooldown_bars
        self.last_logged_index = 0
        self.entries: List[TradeRejection] = []

    def __len__(self) -> int:
        return len(self.entries)

    def record(
        self,
        index: int,
        bar: Bar,
        reason: RejectionReason,
        details: str,
        divergence: float,
        threshold_required: float,
    ) -> bool:
        if index - self.last_logged_index <= self.cooldown_bars and reason not in PRIORITY_REJECTIONS:
            return False

        self.entries.append(
            TradeRejection(
                rejection_id=f"REJ-{index}",
                time=bar.time,
                timestamp=bar.timestamp,
                reason=reason,
                details=details,
                divergence=divergence,
                threshold_required=threshold_required,
            )
        )
        self.last_logged_index = index
        logger.debug("Rejected %s @ %s: %s", reason.value, bar.time, details)
        return True


class TradingEngine:
    """Consumes forecast-annotated bars and produces closed trades and rejections."""

    def __init__(
        self,
        params: ModelParameters = DEFAULT_PARAMETERS,
        config: StrategyConfig = DEFAULT_STRATEGY,
    ):
        self.params = params
        self.config = config
        self.reset()

    def reset(self) -> None:
        self.state = PositionState.FLAT
        self.open_trade: Optional[TradeSignal] = None
        self.trades: List[TradeSignal] = []
        self.rejection_log = RejectionLog(self.config.rejection_cooldown_bars)

    @property
    def rejections(self) -> List[TradeRejection]:
        return self.rejection_log.entries

    def run(self, bars: List[Bar]) -> Tuple[List[TradeSignal], List[TradeRejection]]:
        """Trade a full session. State from any previous run is discarded."""
        self.reset()
        for i in range(self.config.lookback_window, len(bars)):
            self.step(bars, i)

        logger.info(
            "Session traded: %d trades, %d rejections logged",
            len(self.trades), len(self.rejections),
        )
        return list(self.trades), list(self.rejections)

    def step(self, bars: List[Bar], i: int) -> None:
        """Process bar `i`; bars without a forecast are skipped."""
        bar = bars[i]
        prediction = bar.prediction_for_future
        if not prediction:
            return

        threshold = self.dynamic_threshold(bar)
        divergence = (prediction - bar.close) / bar.close
        is_end_of_day = i >= len(bars) - self.config.end_of_day_bars

        if self.state == PositionState.FLAT:
            if not is_end_of_day:
                self._evaluate_entry(bars, i, divergence, threshold)
        elif self.open_trade is not None:
            self._evaluate_exit(bar, divergence, is_end_of_day)

    # ------------------------------------------------------------------
    # Thresholds
    # ------------------------------------------------------------------

    def dynamic_threshold(self, bar: Bar) -> EntryThreshold:
        cfg = self.config
        realized = bar.realized_volatility or cfg.default_realized_vol
        vol_multiplier = min(
            cfg.max_vol_multiplier,
            max(cfg.min_vol_multiplier, realized / cfg.vol_normalizer),
        )
        initial = cfg.base_entry_threshold * self.params.base_volatility_threshold * vol_multiplier
        return EntryThreshold(
            initial=initial,
            effective=max(initial, cfg.min_effective_threshold),
            vol_multiplier=vol_multiplier,
        )

    def _bias_impact(self) -> float:
        cfg = self.config
        return max(-cfg.max_bias_impact, min(cfg.max_bias_impact, self.params.trend_bias * cfg.bias_impact_scale))

    def entry_thresholds(self, effective: float, momentum_slope: float) -> Tuple[float, float]:
        """(long, short) thresholds after regime bias and momentum penalties."""
        cfg = self.config
        bias_impact = self._bias_impact()
        threshold_long = effective * (1 - bias_impact)
        threshold_short = effective * (1 + bias_impact)

        if momentum_slope < -cfg.soft_slope:
            threshold_long *= cfg.soft_slope_penalty
        if momentum_slope < -cfg.hard_slope:
            threshold_long *= cfg.hard_slope_penalty
        if momentum_slope > cfg.soft_slope:
            threshold_short *= cfg.soft_slope_penalty
        if momentum_slope > cfg.hard_slope:
            threshold_short *= cfg.hard_slope_penalty

        return threshold_long, threshold_short

    def recent_move(self, bars: List[Bar], i: int) -> float:
        """Fractional price change over the exhaustion window."""
        price = bars[i].close
        past = bars[i - self.config.exhaustion_bars].close if i >= self.config.exhaustion_bars else price
        if not past:
            past = price
        return (price - past) / past

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    def _evaluate_entry(
        self,
        bars: List[Bar],
        i: int,
        divergence: float,
        threshold: EntryThreshold,
    ) -> None:
        bar = bars[i]
        move = self.recent_move(bars, i)
        is_exhausted = abs(move) > self.config.exhaustion_move
        slope = bar.momentum or 0.0

        if not is_exhausted:
            threshold_long, threshold_short = self.entry_thresholds(threshold.effective, slope)
            if divergence > threshold_long:
                self._open(bar, i, Direction.LONG)
                return
            if divergence < -threshold_short:
                self._open(bar, i, Direction.SHORT)
                return

        if abs(divergence) > self.config.min_effective_threshold:
            self._diagnose(bar, i, divergence, threshold, move, is_exhausted, slope)

    def _open(self, bar: Bar, i: int, direction: Direction) -> None:
        cfg = self.config
        price = bar.close
        if direction == Direction.LONG:
            stop_loss = round(price * (1 - cfg.stop_loss_pct), 2)
            take_profit = round(price * (1 + cfg.take_profit_pct), 2)
            self.state = PositionState.LONG
        else:
            stop_loss = round(price * (1 + cfg.stop_loss_pct), 2)
            take_profit = round(price * (1 - cfg.take_profit_pct), 2)
            self.state = PositionState.SHORT

        self.open_trade = TradeSignal(
            trade_id=f"TRD-{i}",
            time=bar.time,
            timestamp=bar.timestamp,
            direction=direction,
            entry_price=price,
            predicted_price=bar.prediction_for_future,
            stop_loss=stop_loss,
            take_profit=take_profit,
        )
        logger.info(
            "OPEN %s @ %s: $%.2f -> forecast $%.2f (SL %.2f / TP %.2f)",
            direction.value.upper(), bar.time, price, bar.prediction_for_future, stop_loss, take_profit,
        )

    def _diagnose(
        self,
        bar: Bar,
        i: int,
        divergence: float,
        threshold: EntryThreshold,
        move: float,
        is_exhausted: bool,
        slope: float,
    ) -> None:
        """
        Explain a missed entry: exhaustion > trend filter > low conviction.

        The trend-filter check repeats the threshold widening on its own and
        also requires the divergence to clear the unwidened threshold, so it
        only fires when momentum alone blocked the trade.
        """
        reason: Optional[RejectionReason] = None
        details = ""
        required = threshold.effective

        if is_exhausted:
            reason = RejectionReason.EXHAUSTION
            details = f"Price spike of {move * 100:.2f}% in 5m detected. Waiting for stability."
        else:
            bias_impact = self._bias_impact()
            threshold_long = threshold.effective * (1 - bias_impact)
            threshold_short = threshold.effective * (1 + bias_impact)
            if slope < -self.config.soft_slope:
                threshold_long *= self.config.soft_slope_penalty
            if slope < -self.config.hard_slope:
                threshold_long *= self.config.hard_slope_penalty
            if slope > self.config.soft_slope:
                threshold_short *= self.config.soft_slope_penalty
            if slope > self.config.hard_slope:
                threshold_short *= self.config.hard_slope_penalty

            if 0 < divergence < threshold_long and divergence > threshold.initial:
                reason = RejectionReason.TREND_FILTER
                details = (
                    f"Long signal (+{divergence * 100:.3f}%) too weak to fight negative "
                    f"momentum ({slope:.4f}). Req: {threshold_long * 100:.3f}%"
                )
                required = threshold_long
            elif divergence < 0 and threshold.initial < abs(divergence) < threshold_short:
                reason = RejectionReason.TREND_FILTER
                details = (
                    f"Short signal ({divergence * 100:.3f}%) too weak to fight positive "
                    f"momentum ({slope:.4f}). Req: {threshold_short * 100:.3f}%"
                )
                required = threshold_short
            elif abs(divergence) < threshold.effective:
                reason = RejectionReason.LOW_CONVICTION
                details = (
                    f"Divergence {divergence * 100:.3f}% below dynamic threshold "
                    f"{threshold.effective * 100:.3f}% (Vol Mult: {threshold.vol_multiplier:.1f}x)"
                )

        if reason is not None:
            self.rejection_log.record(i, bar, reason, details, divergence, required)

    # ------------------------------------------------------------------
    # Exits
    # ------------------------------------------------------------------

    def _evaluate_exit(self, bar: Bar, divergence: float, is_end_of_day: bool) -> None:
        cfg = self.config
        trade = self.open_trade
        price = bar.close

        self.apply_breakeven(trade, price)

        reason: Optional[ExitReason] = None
        if trade.is_long:
            if price <= trade.stop_loss:
                reason = ExitReason.STOP_LOSS
            elif price >= trade.take_profit:
                reason = ExitReason.TAKE_PROFIT
        else:
            if price >= trade.stop_loss:
                reason = ExitReason.STOP_LOSS
            elif price <= trade.take_profit:
                reason = ExitReason.TAKE_PROFIT

        if reason is None:
            if abs(divergence) < cfg.convergence_band:
                reason = ExitReason.CONVERGENCE
            elif trade.is_long and divergence < -cfg.convergence_band:
                reason = ExitReason.REVERSAL
            elif not trade.is_long and divergence > cfg.convergence_band:
                reason = ExitReason.REVERSAL

        if reason is None and self._minutes_open(trade, bar) >= cfg.max_trade_minutes:
            reason = ExitReason.TIME_OUT

        if is_end_of_day:
            reason = ExitReason.END_OF_DAY

        if reason is not None:
            self._close(bar, reason)

    def apply_breakeven(self, trade: TradeSignal, price: float) -> None:
        """Move the stop to entry once the trade is far enough in profit. Never loosens."""
        if trade.unrealized_pct(price) < self.config.breakeven_trigger_pct:
            return
        if trade.is_long and trade.stop_loss < trade.entry_price:
            trade.stop_loss = trade.entry_price
            logger.debug("%s stop moved to breakeven %.2f", trade.trade_id, trade.entry_price)
        elif not trade.is_long and trade.stop_loss > trade.entry_price:
            trade.stop_loss = trade.entry_price
            logger.debug("%s stop moved to breakeven %.2f", trade.trade_id, trade.entry_price)

    @staticmethod
    def _minutes_open(trade: TradeSignal, bar: Bar) -> int:
        return int(round((bar.timestamp - trade.timestamp).total_seconds() / 60))

    def _close(self, bar: Bar, reason: ExitReason) -> None:
        trade = self.open_trade
        price = bar.close
        pnl = price - trade.entry_price if trade.is_long else trade.entry_price - price

        trade.exit_time = bar.time
        trade.exit_timestamp = bar.timestamp
        trade.exit_price = price
        trade.exit_reason = reason
        trade.profit = round(pnl, 2)
        trade.duration_minutes = self._minutes_open(trade, bar)
        trade.status = TradeStatus.CLOSED

        self.trades.append(trade)
        self.open_trade = None
        self.state = PositionState.FLAT

        logger.info(
            "CLOSE %s %s @ %s: $%.2f (%s) | P&L $%.2f | %dm",
            trade.trade_id, trade.direction.value.upper(), bar.time, price,
            reason.value, trade.profit, trade.duration_minutes,
        )
