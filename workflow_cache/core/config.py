"""Configuration using Pydantic Settings.

Runner-provided variables (ACTIONS_CACHE_URL, GITHUB_WORKSPACE, RUNNER_TEMP,
...) are read under their native names. Everything else is loaded with the
WORKFLOW_CACHE_ prefix.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from workflow_cache.core.constants import (
    DEFAULT_MAX_CACHE_SIZE_BYTES,
    DEFAULT_UPLOAD_CHUNK_SIZE,
    DEFAULT_UPLOAD_CONCURRENCY,
    Timeouts,
)


class Settings(BaseSettings):
    """Settings loaded from environment variables."""

    service_name: str = "workflow-cache"
    environment: str = Field(default="development", description="Runtime environment")
    log_level: str = Field(default="INFO", description="Logging level")

    # Runner environment
    cache_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ACTIONS_CACHE_URL", "WORKFLOW_CACHE_URL"),
        description="Cache service base URL (file:// selects the filesystem store)",
    )
    runtime_token: SecretStr | None = Field(
        default=None,
        validation_alias="ACTIONS_RUNTIME_TOKEN",
        description="Bearer token for the cache service",
    )
    workspace: Path | None = Field(
        default=None,
        validation_alias="GITHUB_WORKSPACE",
        description="Workspace root; archives are rooted here",
    )
    temp_dir: Path | None = Field(
        default=None,
        validation_alias="RUNNER_TEMP",
        description="Directory for transient archives",
    )
    runner_debug: bool = Field(
        default=False,
        validation_alias="RUNNER_DEBUG",
    )
    github_output: Path | None = Field(
        default=None,
        validation_alias="GITHUB_OUTPUT",
    )
    github_state: Path | None = Field(
        default=None,
        validation_alias="GITHUB_STATE",
    )

    # Archive configuration
    default_compression: Literal["zstd", "gzip"] = Field(
        default="zstd",
        description="Internal codec used when no custom compression is requested",
    )
    zstd_level: int = Field(default=3, ge=1, le=22)
    tar_program: str = Field(default="tar", description="System archiver for custom compression")
    windows_tar_path: Path | None = Field(
        default=None,
        description="Bundled archiver binary on Windows runners",
    )

    # Transfer configuration
    upload_chunk_size: int = Field(default=DEFAULT_UPLOAD_CHUNK_SIZE, gt=0)
    upload_concurrency: int = Field(default=DEFAULT_UPLOAD_CONCURRENCY, ge=1, le=32)
    max_cache_size_bytes: int = Field(default=DEFAULT_MAX_CACHE_SIZE_BYTES, gt=0)
    http_timeout_seconds: float = Field(default=Timeouts.HTTP_DEFAULT, gt=0)
    download_timeout_seconds: float = Field(default=Timeouts.DOWNLOAD, gt=0)
    http_max_retries: int = Field(default=2, ge=0, le=10)

    model_config = SettingsConfigDict(
        env_prefix="WORKFLOW_CACHE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_ignore_empty=True,
        populate_by_name=True,
        extra="ignore",
    )

    @property
    def base_dir(self) -> Path:
        """Workspace root, falling back to the current working directory."""
        return self.workspace or Path.cwd()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings singleton
    """
    return Settings()
