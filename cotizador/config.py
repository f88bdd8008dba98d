"""
Application configuration using Pydantic Settings.
All environment-specific values are centralized here.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── App ──────────────────────────────────────────────
    app_name: str = "Cotizador de Equipos"
    debug: bool = True
    mock_mode: bool = True  # When True, repositories use in-memory stores

    # ── MongoDB ──────────────────────────────────────────
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_database: str = "cotizador"

    # ── Currency webhook ─────────────────────────────────
    currency_webhook_url: str = "http://localhost:5678/webhook/valor-dolar-euro"
    currency_request_timeout: float = 10.0
    currency_cache_ttl_hours: float = 20.0

    # ── History listing ──────────────────────────────────
    history_page_size: int = 10

    # ── Logging ──────────────────────────────────────────
    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings (singleton)."""
    return Settings()
