"""Horizon session backtesting."""

from .analyzer import (
    EMPTY_REPORT_MESSAGE,
    NO_API_KEY_MESSAGE,
    SERVICE_ERROR_MESSAGE,
    ReportGenerator,
)
from .engine import SessionEngine, SessionResult, SessionSnapshot
from .reporter import SessionReporter
from .statistics import PerformanceAnalyzer

__all__ = [
    "SessionEngine",
    "SessionResult",
    "SessionSnapshot",
    "PerformanceAnalyzer",
    "SessionReporter",
    "ReportGenerator",
    "NO_API_KEY_MESSAGE",
    "SERVICE_ERROR_MESSAGE",
    "EMPTY_REPORT_MESSAGE",
]
