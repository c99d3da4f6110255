"""Application configuration loaded from environment variables."""
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ehs.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

MIN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """EHS Platform settings loaded from environment variables and .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Core
    app_env: str = Field(default="development", validation_alias="APP_ENV")
    app_url: Optional[str] = Field(default=None, validation_alias="APP_URL")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # Database
    database_url: str = Field(default="", validation_alias="DATABASE_URL")

    # Session
    session_secret: str = Field(
        default="",
        validation_alias="SESSION_SECRET",
        description="HMAC key used to sign session tokens",
    )
    session_algorithm: str = Field(default="HS256", validation_alias="SESSION_ALGORITHM")
    session_max_age_seconds: int = Field(
        default=30 * 24 * 60 * 60,
        validation_alias="SESSION_MAX_AGE_SECONDS",
    )
    session_cookie_name: str = Field(default="session-token", validation_alias="SESSION_COOKIE_NAME")
    cookie_secure: bool = Field(default=True, validation_alias="COOKIE_SECURE")

    # Login lockout
    max_login_attempts: int = Field(default=5, validation_alias="MAX_LOGIN_ATTEMPTS")
    lockout_minutes: int = Field(default=15, validation_alias="LOCKOUT_MINUTES")

    # File storage
    storage_type: str = Field(default="local", validation_alias="STORAGE_TYPE")
    r2_access_key_id: Optional[str] = Field(default=None, validation_alias="R2_ACCESS_KEY_ID")
    r2_secret_access_key: Optional[str] = Field(default=None, validation_alias="R2_SECRET_ACCESS_KEY")
    aws_access_key_id: Optional[str] = Field(default=None, validation_alias="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: Optional[str] = Field(default=None, validation_alias="AWS_SECRET_ACCESS_KEY")

    # Integrations
    resend_api_key: Optional[str] = Field(default=None, validation_alias="RESEND_API_KEY")
    upstash_redis_rest_url: Optional[str] = Field(default=None, validation_alias="UPSTASH_REDIS_REST_URL")
    upstash_redis_rest_token: Optional[str] = Field(default=None, validation_alias="UPSTASH_REDIS_REST_TOKEN")
    azure_ad_client_id: Optional[str] = Field(default=None, validation_alias="AZURE_AD_CLIENT_ID")
    azure_ad_client_secret: Optional[str] = Field(default=None, validation_alias="AZURE_AD_CLIENT_SECRET")
    azure_ad_tenant_id: Optional[str] = Field(default=None, validation_alias="AZURE_AD_TENANT_ID")

    @field_validator("app_env", "storage_type")
    @classmethod
    def lowercase(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("log_level")
    @classmethod
    def uppercase_level(cls, v: str) -> str:
        return v.strip().upper()

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def is_test(self) -> bool:
        return self.app_env in ("test", "testing")


@dataclass
class EnvironmentReport:
    """Outcome of environment validation."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def validate_environment(settings: Settings) -> EnvironmentReport:
    """Check required settings and flag degraded optional integrations.

    Errors block startup; warnings are informational.
    """
    report = EnvironmentReport()

    if not settings.database_url:
        report.errors.append("DATABASE_URL is required")

    if not settings.session_secret:
        report.errors.append("SESSION_SECRET is required")
    elif len(settings.session_secret) < MIN_SECRET_LENGTH:
        report.errors.append(
            f"SESSION_SECRET must be at least {MIN_SECRET_LENGTH} characters long"
        )

    if settings.storage_type != "local":
        has_r2 = bool(settings.r2_access_key_id and settings.r2_secret_access_key)
        has_aws = bool(settings.aws_access_key_id and settings.aws_secret_access_key)
        if not (has_r2 or has_aws):
            report.errors.append(
                f"STORAGE_TYPE={settings.storage_type} requires R2_ACCESS_KEY_ID/R2_SECRET_ACCESS_KEY "
                "or AWS_ACCESS_KEY_ID/AWS_SECRET_ACCESS_KEY"
            )

    if not settings.resend_api_key:
        report.warnings.append("RESEND_API_KEY is not set - email delivery is disabled")

    if not (settings.upstash_redis_rest_url and settings.upstash_redis_rest_token):
        report.warnings.append(
            "UPSTASH_REDIS_REST_URL/UPSTASH_REDIS_REST_TOKEN not set - using in-memory rate limiting"
        )

    if not settings.app_url:
        report.warnings.append("APP_URL is not set - absolute links in notifications will be relative")

    return report


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()


def check_environment(settings: Settings) -> EnvironmentReport:
    """Validate settings at startup, logging warnings and raising on errors.

    Raises:
        ConfigurationError: If any required setting is missing or invalid.
    """
    report = validate_environment(settings)

    for warning in report.warnings:
        logger.warning(f"Environment: {warning}")

    if report.errors:
        logger.error(
            "Environment variable validation failed",
            extra={"error_count": len(report.errors), "errors": report.errors},
        )
        raise ConfigurationError(report.errors)

    logger.info(
        "Environment variables validated",
        extra={"app_env": settings.app_env, "storage_type": settings.storage_type},
    )
    return report
