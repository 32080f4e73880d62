"""
Centralized Configuration System
Environment-aware settings for the delivery queue and its HTTP surface.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Literal


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow"
    )
    """
    Production-grade configuration management.
    Loads from environment variables with sensible defaults.
    """

    # ============================================
    # DISPATCH
    # ============================================
    dispatch_batch_size: int = 3      # Messages sent concurrently per batch
    dispatch_max_attempts: int = 3    # Attempts before a message is dropped
    shutdown_timeout_seconds: float = 30.0

    # ============================================
    # RETRY BACKOFF
    # ============================================
    retry_base_delay_seconds: float = 1.0  # delay = 2^attempt * base

    # ============================================
    # SIMULATED TRANSPORT (development only)
    # ============================================
    simulated_success_rate: float = 0.9
    simulated_min_latency_seconds: float = 0.05
    simulated_max_latency_seconds: float = 0.15

    # ============================================
    # LOGGING
    # ============================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    enable_structured_logging: bool = False  # Set to True for production JSON logs

    # ============================================
    # ENVIRONMENT
    # ============================================
    environment: Literal["development", "test", "staging", "production"] = "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Singleton pattern for settings.
    Uses LRU cache to ensure only one Settings instance exists.
    """
    return Settings()


# Convenience accessor for common use
settings = get_settings()
