"""
Run one simulated SPY session and print the report.

Usage::

    python -m horizon.scripts.run_session
    python -m horizon.scripts.run_session --date 2024-05-01 --report
    python -m horizon.scripts.run_session --date 2025-11-14 --csv bars.csv --verbose
"""

import argparse
import asyncio
import logging
import sys

from horizon.config.settings import get_settings

logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s  %(name)-30s  %(levelname)-7s  %(message)s",
)
logger = logging.getLogger(__name__)


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="HORIZON - Intraday prediction and trading session simulator",
    )
    parser.add_argument("--date", type=str, default="2025-11-30",
                        help="Session date, YYYY-MM-DD")
    parser.add_argument("--report", action="store_true", default=False,
                        help="Request the AI analyst report")
    parser.add_argument("--csv", type=str, default=None,
                        help="Write the annotated bars to this CSV file")
    parser.add_argument("--verbose", action="store_true", default=False,
                        help="Log trades and rejections")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = _parse_args(argv)

    level = logging.DEBUG if args.verbose else getattr(logging, get_settings().log_level.upper(), logging.WARNING)
    logging.getLogger().setLevel(level)

    from horizon.backtest.analyzer import ReportGenerator
    from horizon.backtest.engine import SessionEngine
    from horizon.backtest.reporter import SessionReporter
    from horizon.core.exceptions import HorizonConfigError

    try:
        result = SessionEngine().run(args.date)
    except HorizonConfigError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    ai_analysis = None
    if args.report:
        ai_analysis = asyncio.run(ReportGenerator().summarize(result.analysis, result.trades))

    print(SessionReporter().generate_full_report(result, ai_analysis))

    if args.csv:
        result.to_frame().to_csv(args.csv)
        print(f"\nBars written to {args.csv}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
