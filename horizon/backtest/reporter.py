"""
Session Reporter

Generates formatted plain-text reports from a session result.
"""

from typing import Optional

from .engine import SessionResult
from .statistics import PerformanceAnalyzer


class SessionReporter:
    """Generate reports from session results."""

    def __init__(self, max_rejections: int = 20):
        self.max_rejections = max_rejections
        self.analyzer = PerformanceAnalyzer()

    def generate_summary(self, result: SessionResult) -> str:
        a = result.analysis
        p = result.params
        first = result.bars[0].close if result.bars else 0.0
        last = result.bars[-1].close if result.bars else 0.0

        lines = [
            "=" * 70,
            "HORIZON SESSION SUMMARY",
            "=" * 70,
            "",
            f"Date: {result.date}",
            f"Source: {result.source.value}",
            f"Bars: {len(result.bars)}",
            f"Open -> Close: ${first:.2f} -> ${last:.2f}",
            "",
            "## REGIME",
            f"Regime:            {p.description}",
            f"Trend Bias:        {p.trend_bias:>12.3f}",
            f"Vol Threshold:     {p.base_volatility_threshold:>12.1f}x",
            f"Momentum Seed:     {p.momentum_weight:>12.1f}",
            "",
            "## PERFORMANCE",
            f"Total Trades:      {a.total_trades:>12}",
            f"Total Gain:        ${a.total_gain:>12,.2f}",
            f"Accuracy:          {a.accuracy:>12.1f}%",
            f"Max Drawdown:      ${a.max_drawdown:>12,.2f}",
        ]

        return "\n".join(lines)

    def generate_exit_report(self, result: SessionResult) -> str:
        lines = [
            "",
            "=" * 70,
            "EXITS BY REASON",
            "=" * 70,
        ]

        for reason, count in self.analyzer.exit_breakdown(result.trades).items():
            if count == 0:
                continue
            lines.append(f"   {reason.value:<14}{count:>8}")

        return "\n".join(lines)

    def generate_trade_log(self, result: SessionResult) -> str:
        lines = [
            "",
            "=" * 70,
            "TRADE LOG",
            "=" * 70,
        ]

        for t in result.trades:
            status = "[+]" if t.is_winner else "[-]"
            reason = t.exit_reason.value if t.exit_reason else "open"
            lines.append(
                f"{status} {t.trade_id:<8} {t.direction.value.upper():<5} "
                f"{t.time}->{t.exit_time}  ${t.entry_price:>8.2f} -> ${t.exit_price or 0:>8.2f}  "
                f"P&L ${t.profit or 0:>+6.2f}  {t.duration_minutes or 0:>3}m  {reason}"
            )

        if not result.trades:
            lines.append("No trades taken")

        return "\n".join(lines)

    def generate_rejection_log(self, result: SessionResult) -> str:
        lines = [
            "",
            "=" * 70,
            f"REJECTIONS ({len(result.rejections)} logged)",
            "=" * 70,
        ]

        for r in result.rejections[: self.max_rejections]:
            lines.append(f"   {r.time}  {r.reason.value:<15} {r.details}")

        hidden = len(result.rejections) - self.max_rejections
        if hidden > 0:
            lines.append(f"   ... {hidden} more")

        return "\n".join(lines)

    def generate_full_report(
        self,
        result: SessionResult,
        ai_analysis: Optional[str] = None,
    ) -> str:
        report = []

        report.append(self.generate_summary(result))
        report.append(self.generate_exit_report(result))
        report.append(self.generate_trade_log(result))
        report.append(self.generate_rejection_log(result))

        if ai_analysis:
            report.append("")
            report.append("=" * 70)
            report.append("AI ANALYSIS")
            report.append("=" * 70)
            report.append(ai_analysis)

        return "\n".join(report)
