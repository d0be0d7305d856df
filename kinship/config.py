"""
Runtime configuration helpers for the Kinship API.

Loads DATABASE_URL and the remaining variables from the process environment
and the .env file located in the project root.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import EmailStr, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[1]

ENV_PATH = BASE_DIR / ".env"

# Platform-provided environment variables win over .env defaults
load_dotenv(dotenv_path=ENV_PATH, override=False)


class Settings(BaseSettings):
    database_url: str = Field(..., alias="DATABASE_URL")

    app_name: str = Field(default="Kinship", alias="APP_NAME")
    api_version: str = Field(default="0.1.0", alias="API_VERSION")
    public_base_url: str = Field(default="http://localhost:8000", alias="PUBLIC_BASE_URL")
    cors_origins: str | None = Field(default=None, alias="CORS_ORIGINS")

    # File storage
    storage_root: str = Field(default="storage", alias="STORAGE_ROOT")
    storage_public_prefix: str = Field(default="/files", alias="STORAGE_PUBLIC_PREFIX")
    s3_bucket: str | None = Field(default=None, alias="S3_BUCKET")
    s3_region: str | None = Field(default=None, alias="S3_REGION")
    s3_endpoint_url: str | None = Field(default=None, alias="S3_ENDPOINT_URL")
    s3_public_url: str | None = Field(default=None, alias="S3_PUBLIC_URL")

    # Realtime
    presence_ttl_seconds: float = Field(default=30.0, alias="PRESENCE_TTL_SECONDS")
    typing_ttl_seconds: float = Field(default=2.0, alias="TYPING_TTL_SECONDS")

    # Social graph
    story_lifetime_hours: int = Field(default=24, alias="STORY_LIFETIME_HOURS")
    composite_retry_delays: list[float] = Field(default=[0.05, 0.2, 0.5], alias="COMPOSITE_RETRY_DELAYS")
    super_admin_emails: list[str] = Field(default_factory=list, alias="SUPER_ADMIN_EMAILS")

    # Auth
    password_reset_minutes: int = Field(default=30, alias="PASSWORD_RESET_MINUTES")
    login_max_failures: int = Field(default=5, alias="LOGIN_MAX_FAILURES")
    login_failure_window_seconds: int = Field(default=300, alias="LOGIN_FAILURE_WINDOW_SECONDS")

    email_host: str | None = Field(default=None, alias="EMAIL_HOST")
    email_port: int = Field(default=587, alias="EMAIL_PORT")
    email_username: str | None = Field(default=None, alias="EMAIL_USERNAME")
    email_from_address: EmailStr | None = Field(default=None, alias="EMAIL_FROM_ADDRESS")
    email_use_tls: bool = Field(default=True, alias="EMAIL_USE_TLS")
    mailgun_api_key: str | None = Field(default=None, alias="MAILGUN_API_KEY")
    mailgun_domain: str | None = Field(default=None, alias="MAILGUN_DOMAIN")

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
