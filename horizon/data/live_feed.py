"""
Live quote feed.

Delivers one Bar per callback. Without a websocket URL it runs a mock
random walk at roughly one tick per second; with a URL it subscribes to a
Finnhub-style trade stream and converts every trade print into a bar.
"""

import json
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from horizon.config.settings import get_settings
from horizon.core.models import Bar
from horizon.data.seeded import SeededRandom
from horizon.data.synthesizer import MARKET_TZ

logger = logging.getLogger(__name__)

MOCK_STEP_SCALE = 0.15
MOCK_VOLUME_RANGE = (100, 5100)

BarCallback = Callable[[Bar], None]


def _label(ts: datetime) -> str:
    return ts.astimezone(MARKET_TZ).strftime("%H:%M")


def trade_to_bar(trade: Dict[str, Any]) -> Bar:
    """Convert one `{p, t, v}` trade print (t in epoch ms) into a flat bar."""
    price = float(trade["p"])
    ts = datetime.fromtimestamp(int(trade["t"]) / 1000, tz=timezone.utc)
    return Bar(
        timestamp=ts,
        time=_label(ts),
        close=price,
        open=price,
        high=price,
        low=price,
        volume=int(trade.get("v") or 0),
    )


def parse_trade_message(raw: str) -> List[Bar]:
    """Bars from a stream message; non-trade messages yield nothing."""
    message = json.loads(raw)
    if message.get("type") != "trade" or not message.get("data"):
        return []
    return [trade_to_bar(trade) for trade in message["data"]]


class LiveFeed:
    """
    Streaming price source.

    Runs on a daemon thread and invokes the callback once per bar. Call
    disconnect() to stop; it is safe to call more than once.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        symbol: Optional[str] = None,
        tick_interval: Optional[float] = None,
        start_price: Optional[float] = None,
        rng: Optional[SeededRandom] = None,
    ):
        cfg = get_settings()
        self.url = cfg.live_feed_url if url is None else url
        self.symbol = symbol or cfg.live_symbol
        self.tick_interval = cfg.live_tick_interval if tick_interval is None else tick_interval
        self.last_price = cfg.live_start_price if start_price is None else start_price
        self.rng = rng or SeededRandom(datetime.now(timezone.utc).isoformat())

        self._callback: Optional[BarCallback] = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._socket = None

    @property
    def is_mock(self) -> bool:
        return not self.url

    @property
    def is_connected(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def connect(self, on_bar: BarCallback) -> None:
        """Start delivering bars to `on_bar`."""
        if self.is_connected:
            logger.warning("Live feed already connected")
            return

        self._callback = on_bar
        self._stop.clear()
        target = self._run_mock if self.is_mock else self._run_socket
        self._thread = threading.Thread(target=target, name="horizon-live-feed", daemon=True)
        self._thread.start()
        logger.info("Live feed connected (%s)", "mock" if self.is_mock else self.url.split("?")[0])

    def disconnect(self) -> None:
        self._stop.set()
        if self._socket is not None:
            self._socket.close()
            self._socket = None
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=max(self.tick_interval, 1.0) * 2)
        self._thread = None
        self._callback = None

    # ------------------------------------------------------------------
    # Mock mode
    # ------------------------------------------------------------------

    def next_mock_bar(self) -> Bar:
        """Advance the random walk by one tick."""
        change = (self.rng.next() - 0.5) * MOCK_STEP_SCALE
        self.last_price += change
        now = datetime.now(timezone.utc)
        return Bar(
            timestamp=now,
            time=_label(now),
            close=round(self.last_price, 2),
            open=round(self.last_price, 2),
            high=round(self.last_price + abs(change), 2),
            low=round(self.last_price - abs(change), 2),
            volume=int(self.rng.range(*MOCK_VOLUME_RANGE)),
        )

    def _run_mock(self) -> None:
        while not self._stop.wait(self.tick_interval):
            self._emit(self.next_mock_bar())

    # ------------------------------------------------------------------
    # Websocket mode
    # ------------------------------------------------------------------

    def _run_socket(self) -> None:
        from websocket import WebSocketApp

        def on_open(ws):
            # disconnect() may have run before the socket was published
            if self._stop.is_set():
                ws.close()
                return
            ws.send(json.dumps({"type": "subscribe", "symbol": self.symbol}))

        def on_message(ws, message):
            self.handle_message(message)

        def on_error(ws, error):
            logger.error("Live feed websocket error: %s", error)

        def on_close(ws, close_status_code, close_msg):
            logger.info("Live feed websocket closed (%s)", close_status_code)

        socket = WebSocketApp(
            self.url,
            on_open=on_open,
            on_message=on_message,
            on_error=on_error,
            on_close=on_close,
        )
        self._socket = socket
        if self._stop.is_set():
            logger.info("Live feed stopped before the websocket opened")
            return
        socket.run_forever()

    def handle_message(self, message: str) -> None:
        """Parse a raw stream message and emit its bars; bad payloads are skipped."""
        try:
            bars = parse_trade_message(message)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Skipping malformed feed message: %s", e)
            return
        for bar in bars:
            self._emit(bar)

    def _emit(self, bar: Bar) -> None:
        callback = self._callback
        if callback is None or self._stop.is_set():
            return
        try:
            callback(bar)
        except Exception as e:
            logger.error("Live feed callback failed: %s", e)
