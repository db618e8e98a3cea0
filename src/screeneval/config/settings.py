"""Configuration management using Pydantic Settings."""

from pathlib import Path
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Directories
    output_dir: Path = Field(Path("output"))
    cache_dir: Path = Field(Path(".cache"))

    # Logging
    log_level: str = Field("INFO")
    log_format: str = Field("json", pattern="^(json|text)$")

    # Criterion discovery
    probability_suffix: str = Field(
        " Probability",
        description="Column suffix that marks a model probability column",
    )

    # Mapping configuration
    value_enumeration_cap: int = Field(
        200,
        ge=1,
        description="Maximum number of distinct values enumerated per column for mapping",
    )

    # Threshold defaults applied to newly discovered criteria
    default_yes_maybe_min_prob: float = Field(0.5, ge=0.0, le=1.0)
    default_no_min_prob: float = Field(0.5, ge=0.0, le=1.0)

    # Configuration store
    config_store_name: str = Field(
        "last",
        description="Key under which the session configuration is persisted",
    )

    @field_validator("output_dir", "cache_dir")
    @classmethod
    def _create_dirs(cls, v: Path) -> Path:
        v.mkdir(parents=True, exist_ok=True)
        return v


# Instantiate global settings
settings = Settings()
