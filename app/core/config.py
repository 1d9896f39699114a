# python
# app/core/config.py
"""Configuration settings for the Personal Cloud Library API.

Uses Pydantic BaseSettings for environment variable management.
"""
import secrets
from enum import Enum

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentEnum(str, Enum):
    development = "development"
    testing = "testing"
    staging = "staging"
    production = "production"


class LogLevelEnum(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormatEnum(str, Enum):
    simple = "simple"
    json = "json"


class Settings(BaseSettings):
    # Pydantic v2 settings configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===== Application Settings =====
    app_name: str = Field(default="Personal Cloud Library API", description="Application name")
    environment: EnvironmentEnum = Field(
        default=EnvironmentEnum.development, description="Environment type"
    )
    debug: bool = Field(default=False, description="Debug mode")
    version: str = Field(default="1.0.0", description="Application version")

    # ===== Security Settings =====
    secret_key: str = Field(
        default_factory=lambda: secrets.token_urlsafe(32),
        description="Secret key for JWT encoding",
    )
    algorithm: str = Field(default="HS256", description="JWT algorithm")
    access_token_expire_minutes: int = Field(default=60, description="JWT token expiration time")
    refresh_token_expire_days: int = Field(default=7, description="Refresh token lifetime in days")
    bcrypt_rounds: int = Field(default=12, description="bcrypt cost factor")
    admin_emails: str = Field(
        default="", description="Emails that register with the ADMIN role (comma-separated)"
    )

    # ===== Database Settings =====
    database_url: str | None = Field(default=None, description="Database connection URL")
    db_pool_size: int = Field(default=20, description="Database connection pool size")
    db_max_overflow: int = Field(default=0, description="Database max overflow connections")

    # Test database URL
    test_database_url: str | None = Field(default=None, description="Test database URL")

    # ===== File Storage Settings =====
    storage_path: str = Field(default="./storage", description="Root directory for stored objects")
    storage_public_base_url: str = Field(
        default="http://localhost:8000/files", description="Public base URL for stored objects"
    )
    app_url: str = Field(
        default="http://localhost:5173", description="Frontend URL used to build share links"
    )

    # ===== Application Limits =====
    max_file_size: int = Field(default=52428800, description="Maximum file size in bytes (50MB)")
    max_files_per_item: int = Field(default=10, description="Maximum files per upload request")
    default_max_storage_bytes: int = Field(
        default=1073741824, description="Default storage quota per user (1GB)"
    )
    default_max_items: int = Field(default=10000, description="Default item quota per user")
    default_max_collections: int = Field(
        default=1000, description="Default collection quota per user"
    )
    trash_retention_days: int = Field(default=30, description="Days before trashed items are purged")

    # ===== CORS Settings =====
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000",
        description="Allowed CORS origins (comma-separated)",
    )

    @property
    def allowed_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        if isinstance(self.allowed_origins, str):
            return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]
        return self.allowed_origins if isinstance(self.allowed_origins, list) else []

    @property
    def admin_emails_list(self) -> list[str]:
        return [email.strip().lower() for email in self.admin_emails.split(",") if email.strip()]

    # ===== Background Tasks (Celery) =====
    celery_broker_url: str = Field(
        default="redis://localhost:6379/1", description="Celery broker URL"
    )
    celery_result_backend: str = Field(
        default="redis://localhost:6379/2", description="Celery result backend"
    )

    # ===== Monitoring & Logging =====
    log_level: LogLevelEnum = Field(default=LogLevelEnum.INFO, description="Logging level")
    log_format: LogFormatEnum = Field(default=LogFormatEnum.simple, description="Log format")

    # ===== Server Settings =====
    host: str = Field(default="127.0.0.1", description="Host to bind the server")
    port: int = Field(default=8000, description="Port to bind the server")

    # ===== Computed Properties =====
    @property
    def is_development(self) -> bool:
        return self.environment == EnvironmentEnum.development

    @property
    def is_production(self) -> bool:
        return self.environment == EnvironmentEnum.production

    @property
    def is_testing(self) -> bool:
        return self.environment == EnvironmentEnum.testing

    # ===== Validation Methods =====
    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        if v and isinstance(v, str):
            lv = v.lower()
            if lv in ["dev", "develop"]:
                return "development"
            if lv in ["prod"]:
                return "production"
        return v

    @field_validator("max_file_size")
    @classmethod
    def validate_file_size(cls, v):
        if v > 100 * 1024 * 1024:
            raise ValueError("Maximum file size cannot exceed 100MB")
        return v

    @field_validator("storage_public_base_url", "app_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @model_validator(mode="after")
    def set_computed_fields(self):
        # Postgres test database defaults to "<name>_test" on the same server
        if (
            not self.test_database_url
            and self.database_url
            and self.database_url.startswith("postgresql")
        ):
            base, _, name = self.database_url.rpartition("/")
            db_name, sep, query = name.partition("?")
            if db_name:
                self.test_database_url = f"{base}/{db_name}_test{sep}{query}"
        return self


settings = Settings()


class ConfigValidator:
    @staticmethod
    def validate_required_settings():
        errors = []
        if not settings.database_url and not (settings.is_testing and settings.test_database_url):
            errors.append("DATABASE_URL is required")
        if settings.is_production and len(settings.secret_key) < 32:
            errors.append("SECRET_KEY must be at least 32 characters in production")
        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")


def get_config_summary() -> dict:
    return {
        "app_name": settings.app_name,
        "version": settings.version,
        "environment": settings.environment,
        "debug": settings.debug,
        "database_configured": bool(settings.database_url),
        "storage_path": settings.storage_path,
        "max_file_size": settings.max_file_size,
        "max_files_per_item": settings.max_files_per_item,
    }


__all__ = [
    "settings",
    "Settings",
    "ConfigValidator",
    "get_config_summary",
    "EnvironmentEnum",
    "LogLevelEnum",
    "LogFormatEnum",
]
