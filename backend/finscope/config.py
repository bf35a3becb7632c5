"""
FinScope — Configuration Management

Pydantic Settings: loads from .env, validates all configuration at startup.
"""

from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # ── Core ──
    port: int = 5000
    fallback_ports: list[int] = [5001, 5002, 5003, 5004]
    node_env: str = Field(
        default="development",
        validation_alias=AliasChoices("node_env", "app_env"),
    )
    log_level: str = "INFO"

    # ── Data Source API Keys ──
    alpha_vantage_api_key: str = ""
    fred_api_key: str = ""
    news_api_key: str = ""
    hugging_face_api_key: str = ""

    # ── Banking aggregator (mock integration records these only) ──
    plaid_client_id: str = ""
    plaid_secret: str = ""
    plaid_env: str = "sandbox"
    banking_latency_min_ms: int = 50
    banking_latency_max_ms: int = 300

    # ── Cache ──
    use_mock_data: bool = False
    cache_duration: Optional[int] = None  # default TTL override, milliseconds
    cache_max_entries: int = 4096

    # ── Scheduler ──
    scheduler_enabled: bool = True
    scheduler_timezone: str = "UTC"

    # ── CORS ──
    cors_origins: str = "http://localhost:5173,http://127.0.0.1:5173"

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def is_development(self) -> bool:
        return self.node_env.lower() == "development"

    @property
    def default_ttl_seconds(self) -> float:
        """TTL for namespaces without a dedicated lifetime."""
        if self.cache_duration and self.cache_duration > 0:
            return self.cache_duration / 1000
        return 300.0

    @property
    def alpha_vantage_key(self) -> str:
        """Alpha Vantage accepts the literal ``demo`` key for a few symbols."""
        return self.alpha_vantage_api_key or "demo"

    @property
    def mock_mode(self) -> bool:
        """Serve synthetic payloads when forced or when no upstream key is set."""
        if self.use_mock_data:
            return True
        return not (self.alpha_vantage_api_key or self.fred_api_key or self.news_api_key)

    def candidate_ports(self) -> list[int]:
        """Preferred port first, then the fallback list without duplicates."""
        ports = [self.port]
        for p in self.fallback_ports:
            if p not in ports:
                ports.append(p)
        return ports


@lru_cache
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
