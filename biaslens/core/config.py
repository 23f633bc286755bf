"""Configuration settings for the BiasLens service."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # API Settings
    api_title: str = "BiasLens Trading Behaviour API"
    api_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 7000

    # CORS
    allowed_origins: list[str] = ["http://localhost:8081", "http://localhost:3000"]

    # CSV Upload
    max_csv_size_mb: int = 10
    allow_legacy_import: bool = True  # accept rows without entry/exit/balance

    # Coaching (optional LLM enrichment)
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    coach_temperature: float = 0.7
    coach_max_tokens: int = 4096
    coach_timeout_seconds: float = 30.0


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
