"""
Horizon configuration - loaded from environment (HORIZON_*).
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment."""

    model_config = SettingsConfigDict(
        env_prefix="HORIZON_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # AI analyst report
    gemini_api_key: str = ""
    report_model: str = "gemini-2.5-flash"
    report_timeout_seconds: float = 30.0
    report_sample_size: int = 15  # Trades included in the prompt

    # Live feed (empty key -> mock random walk)
    finnhub_api_key: str = ""
    live_symbol: str = "SPY"
    live_tick_interval: float = 1.0  # Seconds between mock ticks
    live_start_price: float = 590.00

    # Logging
    log_level: str = "WARNING"

    @property
    def live_feed_url(self) -> str:
        """Websocket URL for the streaming feed, empty in mock mode."""
        if not self.finnhub_api_key:
            return ""
        return f"wss://ws.finnhub.io?token={self.finnhub_api_key}"


settings = Settings()


def get_settings() -> Settings:
    """Return application settings (for dependency injection)."""
    return settings
