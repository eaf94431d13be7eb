"""
Configuration management for indexkit.

Uses Pydantic Settings for type-safe configuration loading from environment variables.
All configuration is validated at startup to fail fast on misconfiguration.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings are validated at startup. Invalid values
    will raise clear validation errors.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Output Layout
    # ==========================================================================
    output_directory: Path = Field(
        default=Path("./output"),
        description="Root directory for the corpus file and extracted media",
    )

    media_dirname: str = Field(
        default="media",
        min_length=1,
        description="Name of the media subdirectory under the output directory",
    )

    corpus_filename: str = Field(
        default="search-index.json",
        min_length=1,
        description="File name of the serialized corpus under the output directory",
    )

    # ==========================================================================
    # Extraction
    # ==========================================================================
    supported_extensions: tuple[str, ...] = Field(
        default=(".pptx", ".pdf", ".md"),
        description="File extensions picked up when extracting a directory",
    )

    max_workers: int = Field(
        default=1,
        ge=1,
        le=32,
        description="Documents extracted concurrently (1 = sequential)",
    )

    # ==========================================================================
    # Publishing
    # ==========================================================================
    index_batch_size: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Records per upload call to the search index",
    )

    # ==========================================================================
    # Logging
    # ==========================================================================
    log_level: str = Field(
        default="INFO",
        description="Root log level for the command-line interface",
    )

    @field_validator("media_dirname", "corpus_filename")
    @classmethod
    def validate_plain_name(cls, v: str) -> str:
        """Ensure output names are single path components."""
        v = v.strip().strip("/\\")
        if not v or "/" in v or "\\" in v:
            raise ValueError(f"Expected a plain file or directory name, got {v!r}")
        return v

    @field_validator("supported_extensions")
    @classmethod
    def validate_extensions(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Normalize extensions to lower-case with a leading dot."""
        return tuple(ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in v)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure the log level is one the logging module knows."""
        level = v.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def media_directory(self) -> Path:
        """Directory extracted assets are written to."""
        return self.output_directory / self.media_dirname

    @property
    def corpus_path(self) -> Path:
        """Path of the corpus file produced by a batch extraction."""
        return self.output_directory / self.corpus_filename


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure settings are only loaded once.
    """
    return Settings()
