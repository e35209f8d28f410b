"""Application configuration via environment variables."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration for the CTAM+ assessment portal."""

    # Application
    app_name: str = "CTAM+ Assessment Portal"
    app_version: str = "1.4.0"
    debug: bool = False
    environment: str = Field(default="development", pattern=r"^(development|staging|production)$")
    log_level: str = "INFO"
    log_format: str = "json"

    # API
    api_prefix: str = "/api"
    allowed_origins: str = "http://localhost:5173"
    rate_limit_default: str = "100/minute"

    # Sessions
    access_token_ttl_seconds: int = Field(default=3600, ge=60)
    refresh_token_ttl_seconds: int = Field(default=7 * 24 * 3600, ge=60)
    session_refresh_margin_seconds: int = 60

    # Backend client
    backend_url: str = "http://localhost:8000"
    retry_max_attempts: int = Field(default=3, ge=1, le=10)
    retry_base_delay_ms: int = 1000
    retry_max_delay_ms: int = 8000
    circuit_initial_cooldown_ms: int = 4000
    circuit_max_cooldown_ms: int = 30000

    # Passwords
    password_hash_rounds: int = Field(default=12, ge=4, le=16)

    # Provisioning
    account_email_domain: str = "ctam.moph"

    # Certificates
    certificate_font_path: str = ""

    @property
    def allowed_origins_list(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",")]

    model_config = {"env_prefix": "CTAM_", "env_file": ".env", "extra": "ignore"}


def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
