"""
Application configuration using pydantic-settings.

Loads configuration from environment variables and .env files.
"""

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
    )

    # Text generation (Ollama-compatible chat endpoint)
    llm_base_url: str = Field(
        default="http://localhost:11434",
        description="Base URL of the chat completion service",
    )
    llm_model_name: str = Field(
        default="gpt-oss:20b",
        description="Model identifier sent with every request",
    )
    llm_timeout: float = Field(
        default=60.0,
        description="Timeout in seconds for a single LLM request",
    )
    llm_max_retries: int = Field(
        default=2,
        description="Extra attempts after a failed LLM request",
    )
    llm_retry_backoff: float = Field(
        default=0.5,
        description="Base delay in seconds for exponential retry backoff",
    )
    llm_max_tokens: int = Field(
        default=1500,
        description="Maximum tokens to generate per request",
    )
    llm_temperature: float = Field(
        default=0.7,
        description="Sampling temperature for conversational replies",
    )
    extraction_temperature: float = Field(
        default=0.3,
        description="Sampling temperature for structured extraction calls",
    )
    extraction_timeout: float = Field(
        default=90.0,
        description="Timeout in seconds for one evaluator extraction task",
    )

    # Interview pacing
    question_cache_ttl_seconds: float = Field(
        default=300.0,
        description="How long a generated question stays reusable",
    )
    rapport_turns: int = Field(
        default=3,
        description="Number of opening user turns without assessment questions",
    )
    context_window_messages: int = Field(
        default=6,
        description="Messages of history included in reply prompts",
    )
    repetition_limit: int = Field(
        default=3,
        description="Max consecutive questions owned by the same module",
    )
    question_history_size: int = Field(
        default=6,
        description="Size of the recent focus-module history buffer",
    )

    # Persistence and export
    database_url: str | None = Field(
        default=None,
        description="SQLAlchemy async URL; in-memory storage when unset",
    )
    competency_store_url: str | None = Field(
        default=None,
        description="Endpoint receiving competency scores on completion",
    )

    # Application
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application settings instance.
    """
    return Settings()
