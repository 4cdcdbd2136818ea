"""
Configuration Management
Environment-based settings for the BaaS proxy
"""

import sys
from functools import lru_cache
from typing import List

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import structlog

logger = structlog.get_logger(__name__)

DEFAULT_CORS_ORIGINS = "https://neightn.app,https://www.neightn.app,https://n8n.eab-solutions.net"


class Settings(BaseSettings):
    """Proxy settings read from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Service info
    service_name: str = "baas-proxy"
    service_version: str = "1.0.0"

    # Server
    host: str = "0.0.0.0"
    port: int = 3000

    # BaaS platform (required)
    supabase_url: str = Field(min_length=1)
    supabase_anon_key: str = Field(min_length=1)

    # Outbound HTTP
    upstream_timeout_seconds: float = 30.0
    workflow_timeout_seconds: float = 30.0

    # Subscriptions
    subscription_duration_days: int = 7

    # CORS
    cors_allowed_origins: str = DEFAULT_CORS_ORIGINS
    cors_allow_credentials: bool = True

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_backend: str = "memory"
    rate_limit_requests: int = 100
    rate_limit_window_seconds: int = 60
    redis_url: str = "redis://localhost:6379/0"
    trust_forwarded_for: bool = False

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @field_validator("supabase_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v:
            raise ValueError("SUPABASE_URL must not be empty")
        return v

    @field_validator("supabase_anon_key")
    @classmethod
    def strip_key(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("SUPABASE_ANON_KEY must not be empty")
        return v

    @field_validator("rate_limit_backend")
    @classmethod
    def validate_rate_limit_backend(cls, v: str) -> str:
        v = v.lower()
        if v not in ("memory", "redis"):
            raise ValueError("RATE_LIMIT_BACKEND must be 'memory' or 'redis'")
        return v

    @field_validator("rate_limit_requests", "rate_limit_window_seconds", "subscription_duration_days")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 1 <= v <= 65535:
            raise ValueError("PORT must be between 1 and 65535")
        return v

    def cors_origins(self) -> List[str]:
        """Allowed CORS origins as a list"""
        return [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]

    def log_config(self):
        """Log configuration (without sensitive data)"""
        logger.info(
            "Configuration loaded",
            supabase_url=self.supabase_url,
            port=self.port,
            rate_limit_backend=self.rate_limit_backend if self.rate_limit_enabled else "disabled",
            rate_limit=f"{self.rate_limit_requests}/{self.rate_limit_window_seconds}s",
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()


def load_settings_or_exit() -> Settings:
    """
    Load settings, terminating the process when required values are missing.

    SUPABASE_URL and SUPABASE_ANON_KEY have no defaults; a missing or empty
    value is a fatal startup error.
    """
    try:
        return get_settings()
    except ValidationError as e:
        fields = sorted({str(err["loc"][0]).upper() for err in e.errors() if err.get("loc")})
        logger.error("Invalid or missing configuration", fields=fields)
        sys.exit(1)
