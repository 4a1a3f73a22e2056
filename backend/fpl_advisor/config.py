"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # FPL API
    fpl_api_base_url: str = "https://fantasy.premierleague.com/api"
    fpl_requests_per_second: float = 1.0  # FPL tolerates ~60 requests/minute
    fpl_timeout: float = 30.0

    # CORS - comma-separated list of allowed origins
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    # Logging
    log_level: str = "INFO"

    # Cache TTL in seconds
    cache_ttl_bootstrap: int = 600  # 10 minutes for bootstrap-static

    # Aggregation limits
    standings_max_pages: int = 10
    fixture_horizon: int = 5  # Gameweeks of fixtures fetched for AI context

    # Language model
    llm_api_url: str = "https://open.bigmodel.cn/api/paas/v4/chat/completions"
    llm_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("llm_api_key", "api_key"),
    )
    llm_model: str = "glm-4-plus"
    llm_temperature: float = 0.7
    llm_max_tokens: int = 1000
    llm_timeout: float = 30.0
    llm_max_attempts: int = 3

    # Inbound rate limiter
    rate_limit_sweep_interval: int = 300  # 5 minutes

    # Database (optional - team persistence only)
    database_url: str | None = None

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
