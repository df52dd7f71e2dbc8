"""
Mise - Configuration and settings.

Settings are read from the environment (or a local .env file).
Only the AI fallback needs an OpenAI key; the free extraction tiers
run without any credentials.
"""

import logging
import sys
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)


class MiseSettings(BaseSettings):
    """
    Application settings.

    Extraction thresholds live here so they can be tuned per deployment
    without touching the pipeline code.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # OpenAI (AI fallback only)
    openai_api_key: str | None = None
    openai_model: str = "gpt-4.1-mini"
    openai_temperature: float = 0.2
    openai_max_retries: int = 2

    # Application
    mise_env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Page fetching
    fetch_timeout_seconds: float = 10.0
    fetch_user_agent: str = DEFAULT_USER_AGENT

    # Pipeline decisions
    partial_accept_confidence: float = 0.4
    ai_min_confidence: float = 0.3
    ai_page_text_limit: int = 12000

    # Pasted content bounds
    content_min_chars: int = 20
    content_max_chars: int = 50000

    # Import attempt logging
    # MISE_LOG_IMPORTS=0 disables both sinks
    mise_log_imports: bool = True
    import_log_dir: str = "import_logs"
    supabase_url: str | None = None
    supabase_service_role_key: str | None = None
    import_log_table: str = "recipe_import_logs"

    @property
    def is_development(self) -> bool:
        return self.mise_env == "development"

    @property
    def is_production(self) -> bool:
        return self.mise_env == "production"

    @property
    def supabase_enabled(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_role_key)


@lru_cache
def get_settings() -> MiseSettings:
    """Get cached settings instance."""
    return MiseSettings()


class _SettingsProxy:
    """Lazy proxy for settings to avoid loading .env at import time."""

    _instance: MiseSettings | None = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = get_settings()
        return getattr(self._instance, name)


settings = _SettingsProxy()


def setup_logging(level: str | None = None) -> None:
    """Configure root logging for the CLI and the web app."""
    logging.basicConfig(
        level=getattr(logging, level or settings.log_level),
        format="%(asctime)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    # Quiet down noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
