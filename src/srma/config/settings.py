"""Configuration management using Pydantic Settings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_prefix="SRMA_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = Field("INFO")
    log_format: str = Field("json", pattern="^(json|text)$")

    # Meta-analysis defaults
    default_measure: str = Field("SMD", pattern="^(SMD|MD|OR|RR|RD|HR)$")
    default_method: str = Field("random", pattern="^(fixed|random)$")

    # Deduplication
    dedup_title_threshold: float = Field(0.90, ge=0.0, le=1.0)
    dedup_scorer: str = Field("jaccard", pattern="^(jaccard|ratio)$")


# Instantiate global settings
settings = Settings()
