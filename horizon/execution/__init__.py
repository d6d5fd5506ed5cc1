from .trading_engine import EntryThreshold, RejectionLog, TradingEngine

__all__ = [
    "EntryThreshold",
    "RejectionLog",
    "TradingEngine",
]
