# python
# app/core/config.py
"""Configuration settings for the ZYBoard API.

Uses Pydantic BaseSettings for environment variable management.
"""
from enum import Enum

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

GIB = 1024 * 1024 * 1024
MIB = 1024 * 1024

DEFAULT_ALLOWED_EXTENSIONS = (
    # images
    "jpg,jpeg,png,gif,bmp,webp,svg,"
    # documents
    "pdf,doc,docx,xls,xlsx,ppt,pptx,odt,ods,odp,rtf,"
    # archives
    "zip,rar,7z,tar,gz,"
    # audio / video
    "mp3,wav,ogg,flac,m4a,mp4,avi,mov,mkv,webm,"
    # text
    "txt,csv,md,json,xml"
)


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


SQL_DB_TYPES = {"mysql", "mariadb", "sql", "sqlite"}
REST_DB_TYPES = {"supabase", "postgres", "postgresql", "rest"}


class Settings(BaseSettings):
    # Pydantic v2 settings configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===== Application Settings =====
    app_name: str = Field(default="ZYBoard API", description="Application name")
    environment: EnvironmentEnum = Field(
        default=EnvironmentEnum.development, description="Environment type"
    )
    debug: bool = Field(default=False, description="Debug mode")
    version: str = Field(default="1.0.0", description="Application version")

    # ===== Security Settings =====
    jwt_secret: str = Field(
        ..., min_length=16, description="Shared secret for signing access tokens"
    )
    jwt_algorithm: str = Field(default="HS256", description="JWT algorithm")
    access_token_expire_hours: int = Field(default=24, description="JWT token lifetime in hours")
    bcrypt_rounds: int = Field(default=10, description="bcrypt cost factor")
    password_min_length: int = Field(default=6, description="Minimum password length")

    # ===== Database Settings =====
    db_type: str = Field(default="mysql", description="Persistence backend (mysql or supabase)")
    database_url: str | None = Field(
        default=None, description="SQLAlchemy async URL for the relational backend"
    )
    db_pool_size: int = Field(default=10, description="Database connection pool size")

    supabase_url: str | None = Field(default=None, description="Supabase project URL")
    supabase_service_role_key: str | None = Field(
        default=None, description="Supabase service role key"
    )
    supabase_timeout: float = Field(default=30.0, description="Supabase request timeout")

    # ===== Object Storage (WebDAV) =====
    webdav_url: str | None = Field(default=None, description="WebDAV server URL")
    webdav_username: str | None = Field(default=None, description="WebDAV username")
    webdav_password: str | None = Field(default=None, description="WebDAV password")
    webdav_base_dir: str = Field(default="/cloud", description="Root directory for user files")
    webdav_timeout: float = Field(default=60.0, description="WebDAV request timeout")

    # ===== Quotas & Uploads =====
    default_storage_quota: int = Field(default=GIB, description="Default per-user quota in bytes")
    max_file_size: int = Field(default=10 * MIB, description="Maximum upload size in bytes")
    allowed_extensions: str = Field(
        default=DEFAULT_ALLOWED_EXTENSIONS,
        description="Allowed upload extensions (comma-separated)",
    )

    # ===== Maintenance =====
    notification_retention_days: int = Field(
        default=30, description="Days to keep read notifications"
    )
    activity_retention_days: int = Field(default=90, description="Days to keep activity entries")
    celery_broker_url: str = Field(
        default="redis://localhost:6379/1", description="Celery broker URL"
    )
    celery_result_backend: str = Field(
        default="redis://localhost:6379/2", description="Celery result backend"
    )

    # ===== Logging =====
    log_level: LogLevelEnum = Field(default=LogLevelEnum.INFO, description="Logging level")

    # ===== CORS Settings =====
    allowed_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000",
        description="Allowed CORS origins (comma-separated)",
    )

    # ===== Server Settings =====
    host: str = Field(default="127.0.0.1", description="Host to bind the server")
    port: int = Field(default=3030, description="Port to bind the server")

    @property
    def allowed_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def allowed_extensions_set(self) -> frozenset[str]:
        """Parse the upload allow-list into lower-cased extensions without dots."""
        return frozenset(
            ext.strip().lower().lstrip(".")
            for ext in self.allowed_extensions.split(",")
            if ext.strip()
        )

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

    @property
    def uses_sql_backend(self) -> bool:
        return self.db_type in SQL_DB_TYPES

    @property
    def uses_rest_backend(self) -> bool:
        return self.db_type in REST_DB_TYPES

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
            return lv
        return v

    @field_validator("db_type", mode="before")
    @classmethod
    def validate_db_type(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
            if v not in SQL_DB_TYPES | REST_DB_TYPES:
                raise ValueError(f"Unsupported database type: {v}")
        return v

    @field_validator("max_file_size")
    @classmethod
    def validate_file_size(cls, v):
        if v <= 0:
            raise ValueError("Maximum file size must be positive")
        if v > GIB:
            raise ValueError("Maximum file size cannot exceed 1GB")
        return v

    @field_validator("default_storage_quota")
    @classmethod
    def validate_default_quota(cls, v):
        if v <= 0:
            raise ValueError("Default storage quota must be positive")
        return v


settings = Settings()


class ConfigValidator:
    @staticmethod
    def validate_required_settings(config: Settings | None = None):
        config = config or settings
        errors = []
        if config.uses_sql_backend and not config.database_url:
            errors.append("DATABASE_URL is required for the SQL backend")
        if config.uses_rest_backend:
            if not config.supabase_url:
                errors.append("SUPABASE_URL is required for the Supabase backend")
            if not config.supabase_service_role_key:
                errors.append("SUPABASE_SERVICE_ROLE_KEY is required for the Supabase backend")
        if not config.webdav_url:
            errors.append("WEBDAV_URL is required")
        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")

    @staticmethod
    def get_feature_status(config: Settings | None = None) -> dict:
        config = config or settings
        return {
            "database_type": config.db_type,
            "object_storage": bool(config.webdav_url),
            "environment": config.environment,
        }


def get_config_summary(config: Settings | None = None) -> dict:
    config = config or settings
    return {
        "app_name": config.app_name,
        "version": config.version,
        "environment": config.environment,
        "debug": config.debug,
        "features": ConfigValidator.get_feature_status(config),
        "database_configured": bool(config.database_url or config.supabase_url),
        "max_file_size": config.max_file_size,
        "default_storage_quota": config.default_storage_quota,
    }


__all__ = [
    "settings",
    "Settings",
    "ConfigValidator",
    "get_config_summary",
    "EnvironmentEnum",
    "LogLevelEnum",
    "GIB",
    "MIB",
]
