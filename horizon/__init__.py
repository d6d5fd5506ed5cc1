"""Horizon - intraday divergence predictor and session backtester."""

__version__ = "0.1.0"
