"""Application configuration with validation."""

from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class StorageBackend(str, Enum):
    """Object storage implementation used for blob copies."""
    MEMORY = "memory"
    S3 = "s3"


class ConfigurationError(Exception):
    """Raised when application configuration is invalid for the environment."""
    pass


class Settings(BaseSettings):
    """
    Application settings with validation.

    Values come from environment variables (case-insensitive) or a ``.env``
    file next to the working directory.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Environment
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment (development/production)"
    )

    # CORS Configuration
    cors_allowed_origins: str = Field(
        default="http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    # Database Configuration
    database_url: str = Field(
        default="sqlite:///./foldly.db",
        description="Database connection URL"
    )

    # Object storage
    # STORAGE_BACKEND=memory keeps blobs in process (development and tests only).
    storage_backend: StorageBackend = Field(
        default=StorageBackend.MEMORY,
        description="Blob storage backend (memory/s3)"
    )
    s3_endpoint_url: Optional[str] = Field(
        default=None,
        description="S3-compatible endpoint URL (MinIO, R2); empty for AWS"
    )
    s3_region: str = Field(default="us-east-1")
    s3_access_key_id: Optional[str] = Field(default=None)
    s3_secret_access_key: Optional[str] = Field(default=None)
    shared_bucket: str = Field(
        default="foldly-shared",
        description="Bucket holding files uploaded through links"
    )
    workspace_bucket: str = Field(
        default="foldly-workspace",
        description="Bucket holding personal workspace files"
    )

    # Copy engine
    copy_max_workers: int = Field(
        default=8,
        ge=1,
        le=64,
        description="Maximum concurrent storage copies per copy request"
    )

    # Tree engine
    # None = strict in development, self-healing in production.
    strict_invariants: Optional[bool] = Field(
        default=None,
        description="Raise on tree invariant violations instead of repairing"
    )

    # Authentication is handled upstream; the gateway forwards X-User-Id.
    auth_enabled: bool = Field(
        default=False,
        description="Require the X-User-Id header on every request"
    )
    dev_user_id: str = Field(
        default="dev-user",
        description="User id assumed when authentication is disabled"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: 'json' for structured, 'text' for human-readable"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard Python logging levels."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v_upper

    @model_validator(mode="after")
    def _default_strictness(self) -> "Settings":
        if self.strict_invariants is None:
            self.strict_invariants = self.environment == Environment.DEVELOPMENT
        return self

    def get_cors_origins(self) -> List[str]:
        """
        Get CORS origins as a list.

        Parses comma-separated string and validates no wildcards.
        """
        origins = [origin.strip() for origin in self.cors_allowed_origins.split(',') if origin.strip()]

        # SECURITY: Prevent wildcard CORS
        if "*" in origins:
            raise ValueError(
                "Wildcard CORS (*) not allowed. "
                "Specify explicit origins in CORS_ALLOWED_ORIGINS"
            )

        return origins

    def validate_production_config(self) -> None:
        """Validate configuration for production environment.

        Raises:
            ConfigurationError: If production config is insecure or incomplete.
        """
        if self.environment != Environment.PRODUCTION:
            return

        errors: list[str] = []

        if not self.auth_enabled:
            errors.append(
                "AUTH_ENABLED is false. "
                "Authentication must be enabled in production."
            )

        if self.storage_backend == StorageBackend.MEMORY:
            errors.append(
                "STORAGE_BACKEND is 'memory'. Blobs would be lost on restart; use 's3'."
            )

        origins = self.get_cors_origins()
        localhost_origins = [o for o in origins if "localhost" in o or "127.0.0.1" in o]
        if localhost_origins:
            errors.append(
                f"CORS allows localhost origins: {localhost_origins}. "
                "Remove localhost origins for production."
            )

        if errors:
            raise ConfigurationError(
                "Production configuration is invalid:\n  - " + "\n  - ".join(errors)
            )


# Global settings instance
settings = Settings()
