"""
surreal-migrate - Application Settings
Manages environment variables and configuration using Pydantic
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
import os


class Settings(BaseSettings):
    """
    Settings loaded from SMG_* environment variables or a local .env file.

    Every field has a default, so the CLI runs without any configuration.
    """

    # Migrations layout
    MIGRATIONS_DIR: str = "migrations"
    MIGRATION_EXTENSION: str = ".surql"

    # Allocation
    NUMERIC_PREFIX_WIDTH: int = 3  # 000, 001, ... widened past 999
    MAX_ALLOCATION_ATTEMPTS: int = 50

    # Application
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # File storage
    LOG_DIR: str = ""

    model_config = SettingsConfigDict(
        env_prefix="SMG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Create the log directory only when file logging is requested
        if self.LOG_DIR:
            os.makedirs(self.LOG_DIR, exist_ok=True)


@lru_cache()
def get_settings() -> Settings:
    """
    Returns cached settings instance.
    Uses lru_cache to avoid re-reading .env on every call.
    """
    return Settings()


# File names inside a paired migration folder
UP_STEM = "up"
DOWN_STEM = "down"
