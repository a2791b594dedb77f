# backend/gardenbook/config.py

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]  # repository root


class Settings(BaseSettings):
    database_url: str = "sqlite:///./data/gardenbook.db"
    redis_url: Optional[str] = None
    log_level: str = "INFO"

    # Scheduling
    min_gap_hours: int = 0
    horizon_days: int = 14
    default_day_start: int = 8
    default_day_end: int = 18  # exclusive
    scan_concurrency: int = 8
    claim_retries: int = 3
    slots_cache_ttl_seconds: int = 300
    recurring_weeks: int = 2

    # Store I/O
    store_retries: int = 3
    store_retry_backoff: float = 0.1

    # Checkout
    deposit_percent: int = 10

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        extra="ignore",
    )

    @property
    def resolved_database_url(self) -> str:
        url = self.database_url
        if url.startswith("sqlite:///./"):
            # Relative sqlite path -> absolute, anchored at the repository root
            relative_path = url.replace("sqlite:///./", "")
            absolute_path = BASE_DIR / relative_path
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            return f"sqlite:///{absolute_path}"
        return url


settings = Settings()
