"""
Configuration settings for the spacing engine.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Database
    # ========================================
    database_url: str = Field(
        default="sqlite:///spacing.db",
        description="SQLAlchemy connection string for the association store",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    # ========================================
    # API Server
    # ========================================
    api_host: str = Field(
        default="127.0.0.1",
        description="API server host",
    )
    api_port: int = Field(
        default=8100,
        description="API server port",
    )

    # ========================================
    # Session Planning
    # ========================================
    session_count: int = Field(
        default=30,
        ge=1,
        description="Default number of cards requested per session",
    )
    minimum_score: float = Field(
        default=-1,
        description="Lowest score admitted into a plan (negative includes unseen cards)",
    )
    m_value: float = Field(
        default=0.0,
        description="Score the sampling weight is centered on (0 = learn, higher = review)",
    )
    weight_sigma: float = Field(
        default=1.2,
        gt=0,
        description="Width of the gaussian weight around m_value",
    )
    unseen_weight: float = Field(
        default=0.60,
        ge=0,
        description="Fixed weight given to never-studied cards",
    )

    # ========================================
    # Scheduling
    # ========================================
    backoff_base: int = Field(
        default=5,
        ge=2,
        description="Base of the exponential review delay (seconds = base ** score)",
    )
    review_bias: float | None = Field(
        default=None,
        ge=0,
        le=1,
        description="Probability of serving an eligible due card before the pool (None = always)",
    )
    random_seed: int | None = Field(
        default=None,
        description="Seed for the review-bias draw",
    )
    session_ttl_seconds: int = Field(
        default=3600,
        ge=1,
        description="Idle lifetime of a live session handle in the API",
    )

    # ========================================
    # Grading
    # ========================================
    matching_mode: Literal["exact", "case", "fuzzy"] = Field(
        default="fuzzy",
        description="Default answer matching mode",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
