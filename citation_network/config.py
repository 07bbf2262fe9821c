"""
Configuration management for the citation-network engine.

Uses Pydantic Settings to load and validate environment variables from a .env
file. The search-service API key is loaded from the environment and never
hardcoded.
"""

from functools import lru_cache
from typing import Literal, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from citation_network.models.schemas import RESULT_PAGE_SIZES


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via .env file or environment variables.
    """

    # Application Settings
    app_name: str = Field(
        default="Citation Network Engine",
        description="Name of the application"
    )
    app_version: str = Field(
        default="0.1.0",
        description="Application version"
    )
    environment: Literal["development", "production", "test"] = Field(
        default="development",
        description="Runtime environment"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level"
    )

    # API Settings
    api_v1_prefix: str = Field(
        default="/api/v1",
        description="API version 1 URL prefix"
    )
    cors_origins: Union[str, list[str]] = Field(
        default="http://localhost:5173,http://localhost:3000",
        description="Allowed CORS origins"
    )

    # Session Store Settings
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis URL for session relationship maps"
    )
    session_ttl_seconds: int = Field(
        default=3600,
        ge=60,
        le=86400,
        description="Session TTL in seconds (1 hour default, min 1 min, max 24 hours)"
    )
    relationship_backend: Literal["redis", "memory"] = Field(
        default="redis",
        description="Where relationship maps live; 'memory' keeps them in-process"
    )
    relationship_cache_max_sessions: int = Field(
        default=256,
        ge=1,
        description="LRU bound on sessions held by the in-memory backend"
    )

    # Search Service Settings
    search_api_base_url: str = Field(
        default="https://discover.veritus.ai/api",
        description="Base URL of the job-based paper-search service"
    )
    search_api_key: str = Field(
        ...,
        description="Bearer token for the paper-search service (REQUIRED)"
    )
    search_request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="HTTP timeout for a single search-service request"
    )
    job_poll_interval_seconds: float = Field(
        default=2.0,
        ge=0.0,
        description="Pause before each job status poll"
    )
    job_max_attempts: int = Field(
        default=30,
        ge=1,
        le=300,
        description="Polls before a job is treated as timed out"
    )
    job_result_limit: int = Field(
        default=100,
        description="Result page size requested from the search service (100, 200 or 300)"
    )

    # Graph Settings
    graph_default_limit: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Candidate limit when the request does not give one"
    )
    graph_max_limit: int = Field(
        default=1000,
        ge=1,
        le=1000,
        description="Largest accepted candidate limit"
    )
    default_weighting_policy: Literal["balanced", "citations", "recency", "keywords"] = Field(
        default="balanced",
        description="Similarity weighting policy used when a request names none"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("job_result_limit")
    @classmethod
    def check_job_result_limit(cls, v: int) -> int:
        """The search service only pages in steps of 100 up to 300."""
        if v not in RESULT_PAGE_SIZES:
            raise ValueError("job_result_limit must be 100, 200 or 300")
        return v


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Cached to avoid re-reading environment variables on every call.

    Returns:
        Settings: The application settings instance
    """
    return Settings()
