from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import AnyHttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service settings loaded from environment with defaults.

    Environment variable mapping follows pydantic's rules (e.g., POLL_INTERVAL_SECONDS,
    HTTP_TIMEOUT_SECONDS, LOG_FILE, ENDPOINTS_FILE, BLOCK_LOG_LIMIT).
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Basic app metadata
    app_name: str = "Remittance Rate Tracker"
    debug: bool = False
    version: str = "0.1.0"
    host: str = "0.0.0.0"
    port: int = 3000

    # Polling
    polling_enabled: bool = True
    poll_interval_seconds: float = 180.0  # 3 minutes
    http_timeout_seconds: float = 10.0
    endpoints_file: Optional[Path] = None  # packaged list when unset

    # Rate scraping
    rates_url: AnyHttpUrl = "https://api.taptapsend.com/api/fxRates"
    fee_sample_amount: float = 100.0
    popular_base_currency: str = "USD"
    popular_currencies: List[str] = ["NGN", "GHS", "KES", "UGX", "INR", "PHP", "BDT"]

    # Logging
    log_file: Optional[Path] = Path("logs.txt")
    log_queue_size: int = 1000

    # Block log cap; None keeps every event for the process lifetime
    block_log_limit: Optional[int] = None

    def init_post_load(self) -> None:
        """Validate derived values."""
        if self.poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be positive")
        if self.http_timeout_seconds <= 0:
            raise ValueError("http_timeout_seconds must be positive")
        if self.log_queue_size <= 0:
            raise ValueError("log_queue_size must be positive")
        if self.block_log_limit is not None and self.block_log_limit < 1:
            raise ValueError("block_log_limit must be at least 1 (unset keeps every event)")
        if self.log_file is not None and str(self.log_file) in ("", "."):
            self.log_file = None


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    settings.init_post_load()
    return settings
