# src/catalog_api/config/settings.py
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Single source of truth for all application settings.

    Configuration precedence:
    1. Environment variables (highest priority)
    2. .env file (if exists)
    3. Default values in this class (lowest priority)

    Usage:
        from catalog_api.config.settings import get_settings
        settings = get_settings()
        upload_dir = settings.upload_path
    """

    # Application Settings
    app_name: str = Field(
        default="book-catalog",
        description="Application name"
    )

    # Storage Configuration
    upload_dir: str = Field(
        default="uploads",
        description="Directory holding uploaded files and the metadata sidecar"
    )

    metadata_filename: str = Field(
        default="metadata.json",
        description="Name of the JSON metadata file inside the upload directory"
    )

    max_upload_bytes: Optional[int] = Field(
        default=None,
        ge=1,
        description="Reject uploads larger than this many bytes (unlimited when unset)"
    )

    # HTTP
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Origins allowed by the CORS middleware"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    @field_validator("metadata_filename")
    @classmethod
    def validate_metadata_filename(cls, v: str) -> str:
        """The sidecar must live directly inside the upload directory."""
        if not v or v in (".", "..") or "/" in v or "\\" in v:
            raise ValueError(f"metadata_filename must be a bare file name, got {v!r}")
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.upper()
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if level not in valid_levels:
            raise ValueError(f"Invalid log_level: {v}. Must be one of {valid_levels}")
        return level

    @property
    def upload_path(self) -> Path:
        return Path(self.upload_dir)

    @property
    def metadata_path(self) -> Path:
        return self.upload_path / self.metadata_filename

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one Settings instance per process.
    """
    return Settings()
