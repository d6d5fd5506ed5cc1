"""
Tests for LiveFeed (mock and websocket modes) and the trade message parser.
"""

import json
import threading
from datetime import timezone
from unittest.mock import MagicMock, patch

import pytest

from horizon.data.live_feed import LiveFeed, parse_trade_message, trade_to_bar
from horizon.data.seeded import SeededRandom


def trade_message(*trades) -> str:
    return json.dumps({"type": "trade", "data": list(trades)})


class TestParsing:

    def test_trade_to_bar(self):
        bar = trade_to_bar({"p": 590.5, "t": 1_700_000_000_000, "v": 100})
        assert bar.close == 590.5
        assert bar.open == bar.high == bar.low == 590.5
        assert bar.volume == 100
        assert bar.timestamp.tzinfo == timezone.utc

    def test_parse_multiple(self):
        raw = trade_message(
            {"p": 590.5, "t": 1_700_000_000_000, "v": 100},
            {"p": 590.6, "t": 1_700_000_001_000, "v": 50},
        )
        bars = parse_trade_message(raw)
        assert [b.close for b in bars] == [590.5, 590.6]

    def test_non_trade_message(self):
        assert parse_trade_message(json.dumps({"type": "ping"})) == []

    def test_missing_volume(self):
        bars = parse_trade_message(trade_message({"p": 1.0, "t": 0}))
        assert bars[0].volume == 0


class TestMockFeed:

    @pytest.fixture
    def feed(self):
        return LiveFeed(url="", start_price=590.0, tick_interval=0.01, rng=SeededRandom("feed"))

    def test_is_mock(self, feed):
        assert feed.is_mock
        assert not feed.is_connected

    def test_next_mock_bar(self, feed):
        for _ in range(50):
            before = feed.last_price
            bar = feed.next_mock_bar()
            assert abs(feed.last_price - before) <= 0.075
            assert bar.high >= bar.close >= bar.low
            assert 100 <= bar.volume < 5100

    def test_connect_emits_bars(self, feed):
        received = []
        done = threading.Event()

        def on_bar(bar):
            received.append(bar)
            if len(received) >= 3:
                done.set()

        feed.connect(on_bar)
        try:
            assert done.wait(timeout=5.0)
        finally:
            feed.disconnect()

        assert len(received) >= 3
        assert not feed.is_connected

    def test_disconnect_idempotent(self, feed):
        feed.disconnect()
        feed.disconnect()
        assert not feed.is_connected


class TestMessageHandling:

    def test_handle_message_emits(self):
        feed = LiveFeed(url="", tick_interval=60.0, rng=SeededRandom("feed"))
        received = []
        feed.connect(received.append)
        try:
            feed.handle_message(trade_message({"p": 590.5, "t": 1_700_000_000_000, "v": 100}))
        finally:
            feed.disconnect()
        assert [b.close for b in received] == [590.5]

    def test_malformed_message_skipped(self):
        feed = LiveFeed(url="", tick_interval=60.0, rng=SeededRandom("feed"))
        received = []
        feed.connect(received.append)
        try:
            feed.handle_message("not json")
            feed.handle_message(trade_message({"t": 1}))
        finally:
            feed.disconnect()
        assert received == []

    def test_callback_errors_contained(self):
        feed = LiveFeed(url="", tick_interval=60.0, rng=SeededRandom("feed"))

        def boom(bar):
            raise RuntimeError("downstream failure")

        feed.connect(boom)
        try:
            feed.handle_message(trade_message({"p": 590.5, "t": 1_700_000_000_000, "v": 100}))
        finally:
            feed.disconnect()


class TestWebsocketMode:

    @pytest.fixture
    def feed(self):
        return LiveFeed(url="wss://feed.example?token=t", symbol="SPY", rng=SeededRandom("feed"))

    def test_not_mock_with_url(self, feed):
        assert not feed.is_mock

    def test_subscribes_on_open(self, feed):
        with patch("websocket.WebSocketApp") as app_cls:
            feed._run_socket()
        app_cls.return_value.run_forever.assert_called_once()

        ws = MagicMock()
        app_cls.call_args.kwargs["on_open"](ws)
        ws.send.assert_called_once_with(json.dumps({"type": "subscribe", "symbol": "SPY"}))
        ws.close.assert_not_called()

    def test_stopped_before_start_never_runs(self, feed):
        feed._stop.set()
        with patch("websocket.WebSocketApp") as app_cls:
            feed._run_socket()
        app_cls.return_value.run_forever.assert_not_called()

    def test_open_after_disconnect_closes_socket(self, feed):
        with patch("websocket.WebSocketApp") as app_cls:
            feed._run_socket()
        feed.disconnect()

        ws = MagicMock()
        app_cls.call_args.kwargs["on_open"](ws)
        ws.close.assert_called_once()
        ws.send.assert_not_called()

    def test_messages_reach_callback(self, feed):
        received = []
        feed._callback = received.append
        with patch("websocket.WebSocketApp") as app_cls:
            feed._run_socket()

        on_message = app_cls.call_args.kwargs["on_message"]
        on_message(MagicMock(), trade_message({"p": 590.5, "t": 1_700_000_000_000, "v": 100}))
        assert [b.close for b in received] == [590.5]
