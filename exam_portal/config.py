"""
Configuration management for the Exam Portal.

Uses Pydantic Settings for type-safe configuration loading from environment variables.
All configuration is validated at startup to fail fast on misconfiguration.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Every variable is read with the ``EXAM_PORTAL_`` prefix,
    e.g. ``EXAM_PORTAL_EXAM_DATA_DIR``.
    """

    model_config = SettingsConfigDict(
        env_prefix="EXAM_PORTAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Exam Data Configuration
    # ==========================================================================
    exam_data_dir: Path = Field(
        default=Path("./assets/data"),
        description="Directory holding the exam definition JSON files",
    )

    exam_file_template: str = Field(
        default="{admission_year}_exam_summer.json",
        description="File name of an exam definition, keyed by admission year",
    )

    admission_year_length: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Number of leading user-id characters naming the admission year",
    )

    default_exam_id: str = Field(
        default="exam_summer_115",
        min_length=1,
        description="Exam id used when a caller does not name one",
    )

    # ==========================================================================
    # Submission Storage Configuration
    # ==========================================================================
    results_dir: Path = Field(
        default=Path("./results"),
        description="Directory for persisted submissions",
    )

    @field_validator("exam_file_template")
    @classmethod
    def validate_template(cls, v: str) -> str:
        """Ensure the template names the admission year."""
        if "{admission_year}" not in v:
            raise ValueError("exam_file_template must contain '{admission_year}'")
        return v

    @field_validator("results_dir")
    @classmethod
    def validate_results_dir(cls, v: Path) -> Path:
        """Ensure results directory exists or can be created."""
        v.mkdir(parents=True, exist_ok=True)
        return v


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure settings are only loaded once.
    """
    return Settings()
