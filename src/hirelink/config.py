"""Configuration management for HireLink."""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Database Configuration
    database_url: str = Field(
        "sqlite+aiosqlite:///./hirelink.db",
        description="SQLAlchemy async database URL"
    )
    database_echo: bool = Field(False, description="Echo SQL statements")

    # Application Configuration
    debug: bool = Field(False, description="Enable debug mode")
    log_level: str = Field("INFO", description="Logging level")

    # Server Configuration
    api_host: str = Field("0.0.0.0", description="API server host")
    api_port: int = Field(8000, description="API server port")
    reload: bool = Field(False, description="Enable auto-reload")
    allowed_origins: list[str] = Field(["*"], description="CORS allowed origins")
    allowed_hosts: Optional[list[str]] = Field(None, description="Trusted hosts")

    # Security
    jwt_secret_key: str = Field("your-secret-key-change-in-production", description="JWT secret key")
    jwt_algorithm: str = Field("HS256", description="JWT algorithm")
    access_token_expire_minutes: int = Field(60, description="Access token lifetime in minutes")
    refresh_token_expire_days: int = Field(7, description="Refresh token lifetime in days")

    # Notifications
    notification_webhook_url: Optional[str] = Field(None, description="Webhook receiving transition events")
    notification_timeout_seconds: float = Field(5.0, description="Webhook delivery timeout")

    # Validation limits
    cover_letter_min_length: int = Field(30, description="Minimum cover letter length")
    cover_letter_max_length: int = Field(2000, description="Maximum cover letter length")
    reason_max_length: int = Field(500, description="Maximum length of rejection/revocation reasons")
    internal_notes_max_length: int = Field(1000, description="Maximum length of recruiter notes on an application")


# Global settings instance
settings = Settings()
