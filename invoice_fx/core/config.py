from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AnyHttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

ALLOWED_RATE_PROVIDERS = {"exchangerate-api", "exchangerate-host", "static"}


class Settings(BaseSettings):
    """Application settings loaded from environment with defaults.

    Environment variable mapping follows pydantic's rules (e.g., DEBUG, DATA_DIR,
    DB_FILENAME, RATES_CACHE_TTL_SECONDS, PRIMARY_RATE_PROVIDER).
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Basic app metadata
    app_name: str = "Invoice FX"
    debug: bool = False
    version: str = "0.1.0"

    # Data & persistence
    data_dir: Path = Path("data")
    db_filename: str = "rates.sqlite3"
    db_path: Optional[Path] = None  # derived if not provided

    # Exchange rates / caching
    rates_cache_ttl_seconds: int = 86400  # 24 hours
    rates_single_flight: bool = True
    exchange_api_base_url: AnyHttpUrl = "https://api.exchangerate-api.com/v4/latest"
    fallback_api_base_url: AnyHttpUrl = "https://api.exchangerate.host/latest"
    http_timeout_seconds: float = 5.0

    # Provider chain: primary first, fallback once on failure
    primary_rate_provider: str = "exchangerate-api"
    fallback_rate_provider: str = "exchangerate-host"

    def init_post_load(self) -> None:
        """Finalize derived fields and ensure directories exist."""
        if self.db_path is None:
            self.db_path = self.data_dir / self.db_filename
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        for name in (self.primary_rate_provider, self.fallback_rate_provider):
            if name not in ALLOWED_RATE_PROVIDERS:
                raise ValueError(
                    f"Unsupported rate provider '{name}'. Allowed: {ALLOWED_RATE_PROVIDERS}"
                )
        if self.rates_cache_ttl_seconds <= 0:
            raise ValueError("rates_cache_ttl_seconds must be positive")


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    settings.init_post_load()
    return settings
