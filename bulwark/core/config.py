"""Bulwark Configuration - environment-driven settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Placeholder shipped in .env.example; refusing it in production forces a real secret
SAMPLE_JWT_SECRET = "your-secret-key-here-change-this-in-production"

MIN_PRODUCTION_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Bulwark"
    app_version: str = "1.0.0"
    environment: Literal["development", "production", "test"] = "development"
    port: int = Field(default=3000, ge=1, le=65535)
    debug: bool = False

    # Logging
    log_level: str = "INFO"
    log_format: Literal["structured", "dev"] = "dev"

    # Tokens
    jwt_secret: str = Field(..., min_length=1)
    token_ttl_seconds: int = 60 * 60 * 24
    csrf_ttl_seconds: int = 60 * 60 * 24

    # CORS allow-list, only consulted in production (comma-separated)
    cors_origins: str = "https://yourdomain.com"

    # Rate limiting
    rate_limit_enabled: bool = True
    auth_rate_limit_max: int = 5
    auth_rate_limit_window_seconds: int = 15 * 60
    failed_login_limit_max: int = 3
    failed_login_limit_window_seconds: int = 60 * 60
    expiry_sweep_interval_seconds: int = 60

    # Persistence
    user_store: Literal["memory", "database"] = "memory"
    database_url: str = "sqlite+aiosqlite:///./bulwark.db"

    # Frontend assets
    public_dir: str = "public"

    @model_validator(mode="after")
    def validate_production_secret(self) -> "Settings":
        """Refuse to start in production with a weak or sample signing secret."""
        if self.environment != "production":
            return self
        if len(self.jwt_secret) < MIN_PRODUCTION_SECRET_LENGTH:
            raise ValueError(
                f"JWT_SECRET must be at least {MIN_PRODUCTION_SECRET_LENGTH} characters in production"
            )
        if self.jwt_secret == SAMPLE_JWT_SECRET:
            raise ValueError("Please change the default JWT_SECRET in production")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def check_security_configuration(self) -> list[str]:
        """Return warnings for settings that are legal but risky."""
        warnings: list[str] = []
        if not self.is_production:
            warnings.append(
                f"Running in {self.environment} mode: CORS reflects any origin and "
                "CSP allows inline scripts"
            )
        if not self.rate_limit_enabled:
            warnings.append("Rate limiting is disabled (RATE_LIMIT_ENABLED=false)")
        if self.is_production and self.debug:
            warnings.append("DEBUG is enabled in production")
        if self.is_production and any(o.startswith("http://") for o in self.cors_origins_list):
            warnings.append("CORS_ORIGINS contains plain-http origins in production")
        return warnings


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]
