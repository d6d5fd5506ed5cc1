from .history import DailyHistoryStore, parse_session_date
from .live_feed import LiveFeed, parse_trade_message, trade_to_bar
from .seeded import SeededRandom, fnv1a_32
from .synthesizer import MinuteBarSynthesizer, enrich_bars, session_start

__all__ = [
    "DailyHistoryStore",
    "parse_session_date",
    "LiveFeed",
    "parse_trade_message",
    "trade_to_bar",
    "SeededRandom",
    "fnv1a_32",
    "MinuteBarSynthesizer",
    "enrich_bars",
    "session_start",
]
