from typing import Literal, Self

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_JWT_SECRET = "tenant-hub-development-secret-do-not-use-in-prod"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Tenant Hub"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    database_url: str = "postgresql+asyncpg://tenant_hub:tenant_hub@db:5432/tenant_hub"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:8000"]
    log_level: str = "INFO"

    # Auth
    jwt_secret: str = DEV_JWT_SECRET
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 7
    email_verification_expire_hours: int = 24
    password_reset_expire_minutes: int = 60
    bcrypt_rounds: int = 12
    frontend_url: str = "http://localhost:5173"

    # HTTP caching
    cache_max_age_seconds: int = 300

    @model_validator(mode="after")
    def _validate_jwt_secret(self) -> Self:
        if self.environment == "production":
            if self.jwt_secret == DEV_JWT_SECRET:
                msg = "JWT_SECRET must be set in production"
                raise ValueError(msg)
            if len(self.jwt_secret) < 32:
                msg = "JWT_SECRET must be at least 32 characters"
                raise ValueError(msg)
        return self


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
