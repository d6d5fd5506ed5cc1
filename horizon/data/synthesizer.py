"""
Minute-bar synthesizer.

Builds a full regular session (09:30-16:00 ET, one bar per minute) for a
date using the first source that applies:

1. Tick replay - exact minute deltas from a high-resolution sample
2. Daily anchor - interpolate between the day's open and close, bounded by
   its high/low, with seeded noise
3. Synthetic - seeded random walk with a slow cycle and a daily drift

Every path then goes through the same OHLCV enrichment so the forecaster
always sees open/high/low/volume consistent with the close sequence.
"""

import logging
import math
from datetime import datetime, time, timedelta
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

from horizon.config.strategy import DEFAULT_STRATEGY, StrategyConfig
from horizon.core.enums import DataSource
from horizon.core.exceptions import HorizonDataError
from horizon.core.models import Bar, DailyAnchor
from horizon.data.history import DailyHistoryStore, parse_session_date
from horizon.data.seeded import SeededRandom

logger = logging.getLogger(__name__)

MARKET_TZ = ZoneInfo("America/New_York")
SESSION_OPEN = time(9, 30)

# Synthetic path
START_PRICE_BASE = 545.00
START_PRICE_JITTER = 10.0
CYCLE_SCALE = 0.1

# Daily anchor path
ANCHOR_NOISE_DIVISOR = 30  # Minute noise = (high - low) / 30
ANCHOR_PULL_SCALE = 0.05
ANCHOR_CLAMP_OFFSET = 0.05

# Enrichment
OPEN_VOLUME_RANGE = (10_000, 50_000)
WICK_RANGE = (0.02, 0.15)
BASE_VOLUME = 20_000
CHANGE_VOLUME_MULTIPLIER = 80_000
VOLUME_NOISE_RANGE = (-5_000, 15_000)
MIN_VOLUME = 1_000
LUNCH_WINDOW = (120, 240)  # Exclusive bar indices
LUNCH_MULTIPLIER = 0.6
OPEN_CLOSE_WINDOW = (30, 360)  # Bars before / after
OPEN_CLOSE_MULTIPLIER = 1.5


def session_start(date_str: str) -> datetime:
    """09:30 ET on the session date."""
    return datetime.combine(parse_session_date(date_str), SESSION_OPEN, tzinfo=MARKET_TZ)


def time_of_day_multiplier(index: int) -> float:
    """Volume profile: midday lull, busy open and close."""
    multiplier = 1.0
    if LUNCH_WINDOW[0] < index < LUNCH_WINDOW[1]:
        multiplier = LUNCH_MULTIPLIER
    if index < OPEN_CLOSE_WINDOW[0] or index > OPEN_CLOSE_WINDOW[1]:
        multiplier = OPEN_CLOSE_MULTIPLIER
    return multiplier


def enrich_bars(bars: List[Bar], rng: SeededRandom) -> List[Bar]:
    """
    Fabricate open/high/low/volume around an existing close sequence.

    Bar 0 is a flat bar. Every later bar opens at the previous close and gets
    a seeded wick on both sides, so high >= max(open, close) and
    low <= min(open, close) always hold.
    """
    for index, bar in enumerate(bars):
        if index == 0:
            bar.open = bar.high = bar.low = bar.close
            bar.volume = int(math.floor(rng.range(*OPEN_VOLUME_RANGE)))
            continue

        prev_close = bars[index - 1].close
        bar.open = prev_close

        wick = rng.range(*WICK_RANGE)
        top = max(bar.open, bar.close)
        bottom = min(bar.open, bar.close)
        bar.high = round(top + rng.range(0, wick), 2)
        bar.low = round(bottom - rng.range(0, wick), 2)

        change = abs(bar.close - prev_close)
        noise = rng.range(*VOLUME_NOISE_RANGE)
        raw = (BASE_VOLUME + change * CHANGE_VOLUME_MULTIPLIER + noise) * time_of_day_multiplier(index)
        volume = int(math.floor(raw))
        bar.volume = volume if volume > MIN_VOLUME else MIN_VOLUME

    return bars


class MinuteBarSynthesizer:
    """Produces the enriched bar sequence for one session date."""

    def __init__(
        self,
        history: Optional[DailyHistoryStore] = None,
        config: StrategyConfig = DEFAULT_STRATEGY,
    ):
        self.history = history or DailyHistoryStore()
        self.config = config

    def generate(self, date_str: str) -> Tuple[List[Bar], DataSource]:
        """Bars for the session plus the source that produced them."""
        rng = SeededRandom(date_str)
        start = session_start(date_str)

        closes, source = self._closes(date_str, rng)
        bars = [
            Bar(
                timestamp=start + timedelta(minutes=i),
                time=(start + timedelta(minutes=i)).strftime("%H:%M"),
                close=price,
            )
            for i, price in enumerate(closes)
        ]

        logger.debug("Generated %d bars for %s from %s", len(bars), date_str, source.value)
        return enrich_bars(bars, rng), source

    def _closes(self, date_str: str, rng: SeededRandom) -> Tuple[List[float], DataSource]:
        deltas = self.history.tick_deltas(date_str)
        if deltas:
            return self.replay_ticks(deltas), DataSource.TICK_REPLAY

        try:
            anchor = self.history.anchors(date_str)
        except HorizonDataError as e:
            logger.warning("%s - falling back to synthetic session", e)
            anchor = None

        if anchor is not None:
            return self.interpolate_anchor(anchor, rng), DataSource.DAILY_ANCHOR

        return self.random_walk(rng), DataSource.SYNTHETIC

    # ------------------------------------------------------------------
    # Close-price paths
    # ------------------------------------------------------------------

    @staticmethod
    def replay_ticks(deltas: List[float]) -> List[float]:
        """First delta is the anchor price, the rest are minute changes."""
        price = deltas[0]
        closes = [price]
        for delta in deltas[1:]:
            price = round(price + delta, 2)
            closes.append(price)
        return closes

    def interpolate_anchor(self, anchor: DailyAnchor, rng: SeededRandom) -> List[float]:
        """Walk from open to close inside [low, high], pulled harder late in the day."""
        total = self.config.session_minutes
        noise_scale = (anchor.high - anchor.low) / ANCHOR_NOISE_DIVISOR
        price = anchor.open
        closes: List[float] = []

        for i in range(total + 1):
            progress = i / total
            pull = (anchor.close - price) * (progress * progress * ANCHOR_PULL_SCALE)
            noise = (rng.next() - 0.5) * noise_scale
            price += pull + noise

            if price > anchor.high:
                price = anchor.high - ANCHOR_CLAMP_OFFSET
            if price < anchor.low:
                price = anchor.low + ANCHOR_CLAMP_OFFSET

            if i == 0:
                price = anchor.open
            if i == total:
                price = anchor.close

            closes.append(round(price, 2))

        return closes

    def random_walk(self, rng: SeededRandom) -> List[float]:
        """Shock + drift + slow sinusoidal cycle, accumulated minute by minute."""
        price = START_PRICE_BASE + rng.range(-START_PRICE_JITTER, START_PRICE_JITTER)
        volatility = rng.range(0.15, 0.45)
        drift = rng.range(-0.02, 0.03)
        closes: List[float] = []

        for i in range(self.config.session_minutes + 1):
            shock = (rng.next() - 0.5) * volatility
            cycle = math.sin(i / rng.range(40, 90)) * rng.range(0.2, 0.6)
            price = price + shock + drift + cycle * CYCLE_SCALE
            closes.append(round(price, 2))

        return closes
