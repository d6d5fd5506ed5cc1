"""
AI Session Analyst

Uses Gemini to turn session statistics and a sample of the trade log into a
short written critique. Falls back to fixed messages when the API key is
missing or the service fails; never raises to the caller.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from horizon.config.settings import get_settings
from horizon.core.exceptions import HorizonReportError
from horizon.core.models import MarketAnalysis, TradeSignal

logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

NO_API_KEY_MESSAGE = (
    "Simulation Mode: API Key not found. "
    "Please provide an API Key to generate the AI analyst report."
)
SERVICE_ERROR_MESSAGE = (
    "Error connecting to AI Analyst service. Please check your network or API quota."
)
EMPTY_REPORT_MESSAGE = "Analysis could not be generated."


class ReportGenerator:
    """Writes the analyst report for one session."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        sample_size: Optional[int] = None,
    ):
        cfg = get_settings()
        self.api_key = cfg.gemini_api_key if api_key is None else api_key
        self.model = model or cfg.report_model
        self.timeout = cfg.report_timeout_seconds if timeout is None else timeout
        self.sample_size = sample_size or cfg.report_sample_size

    async def summarize(self, analysis: MarketAnalysis, trades: List[TradeSignal]) -> str:
        if not self.api_key:
            logger.info("No Gemini API key configured, skipping analyst report")
            return NO_API_KEY_MESSAGE

        prompt = self._build_prompt(analysis, trades)
        try:
            data = await self._call_gemini(prompt)
            text = self._extract_text(data)
        except httpx.HTTPError as e:
            logger.error(f"Gemini API call failed: {e}")
            return SERVICE_ERROR_MESSAGE
        except (HorizonReportError, ValueError) as e:
            logger.error(f"Unexpected Gemini response: {e}")
            return SERVICE_ERROR_MESSAGE

        return text or EMPTY_REPORT_MESSAGE

    def _build_prompt(self, analysis: MarketAnalysis, trades: List[TradeSignal]) -> str:
        sample = []
        for t in trades[: self.sample_size]:
            reason = t.exit_reason.value if t.exit_reason else "open"
            sample.append(
                f"- {t.trade_id} {t.direction.value.upper()} {t.time}->{t.exit_time or '--:--'}: "
                f"entry ${t.entry_price:.2f}, exit ${t.exit_price or 0:.2f}, "
                f"P&L ${t.profit or 0:+.2f}, {reason}"
            )

        return f"""
You are a senior quantitative analyst reviewing an intraday SPY prediction-and-trading session.

## SESSION STATISTICS
- Total Trades: {analysis.total_trades}
- Total Gain (per share): ${analysis.total_gain:.2f}
- Accuracy: {analysis.accuracy:.1f}%
- Max Drawdown: ${analysis.max_drawdown:.2f}

## TRADE SAMPLE (first {len(sample)})
{chr(10).join(sample) if sample else "No trades were taken"}

## ANALYSIS REQUIRED

1. How effective was the momentum-based prediction model today?
2. Which exit reasons dominated, and what does that say about entry timing?
3. One concrete adjustment to the entry threshold or exits.

Keep it under 200 words. Reference actual numbers.
"""

    async def _call_gemini(self, prompt: str) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                GEMINI_URL.format(model=self.model),
                headers={
                    "x-goog-api-key": self.api_key,
                    "Content-Type": "application/json",
                },
                json={
                    "contents": [
                        {"role": "user", "parts": [{"text": prompt}]},
                    ],
                },
            )
            response.raise_for_status()
            return response.json()

    @staticmethod
    def _extract_text(data: Dict[str, Any]) -> str:
        """Concatenated text of the first candidate; empty if there is none."""
        try:
            candidates = data.get("candidates") or []
            if not candidates:
                return ""
            parts = candidates[0]["content"].get("parts") or []
            return "".join(part.get("text", "") for part in parts).strip()
        except (AttributeError, KeyError, TypeError) as e:
            raise HorizonReportError(f"Malformed generateContent payload: {e!r}") from e
