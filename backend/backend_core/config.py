"""
Configuration settings for the EOD Watch backend.

Uses environment variables (and a local .env file) with sensible defaults.
The Tiingo token can also come from config/secrets.yaml for local runs.
"""

from pydantic_settings import BaseSettings
from typing import List
from pathlib import Path

from eodwatch.utils.config_loader import get_tiingo_token, load_secrets


class Settings(BaseSettings):
    """Application settings."""

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 5000
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR

    # CORS - comma-separated list, "*" allows any origin
    CORS_ORIGINS: str = "*"

    # Static frontend (served at "/" when the directory exists)
    STATIC_DIR: str = "public"

    # Upstream
    TIINGO_TOKEN: str = ""
    UPSTREAM_TIMEOUT_SECONDS: float = 15.0

    # Cache
    CACHE_DIR: str = "cache"
    MAX_BARS: int = 1500
    RATE_LIMIT_BACKOFF_MINUTES: float = 15.0

    # Request limits
    MAX_DAYS: int = 4000  # /api/data
    EOD_MAX_DAYS: int = 2000  # legacy /eod

    PLATFORM_ROOT: Path = Path(__file__).parent.parent.parent

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    def __init__(self, **kwargs):
        super().__init__(**kwargs)

        # Local dev convenience: read the token from config/secrets.yaml (gitignored)
        # when it is not exported. Hosted deployments should set TIINGO_TOKEN.
        if not self.TIINGO_TOKEN:
            self.TIINGO_TOKEN = get_tiingo_token(load_secrets(self.PLATFORM_ROOT / "config"))

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


settings = Settings()
