"""Configuration settings for Aislewise."""
from functools import lru_cache
from pathlib import Path
from typing import Optional, Tuple
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Get project root directory (3 levels up from this file)
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent

# Default log directory
DEFAULT_LOG_DIR = PROJECT_ROOT / "logs"
DEFAULT_LOG_FILE = DEFAULT_LOG_DIR / "aislewise.log"


class OpenAISettings(BaseSettings):
    """OpenAI-specific settings."""
    API_KEY: str = ""
    MODEL: str = "gpt-4o-mini"
    TEMPERATURE: float = 0.0
    MAX_RETRIES: int = 3
    TIMEOUT: int = 30

    model_config = SettingsConfigDict(
        env_prefix="OPENAI_",
        case_sensitive=False,
        env_file=PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @field_validator("TEMPERATURE")
    @classmethod
    def validate_temperature(cls, v: float) -> float:
        if not 0 <= v <= 2:
            raise ValueError("Temperature must be between 0 and 2")
        return v

    @field_validator("MAX_RETRIES")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        if v < 1:
            raise ValueError("MAX_RETRIES must be at least 1")
        return v


class AislewiseSettings(BaseSettings):
    """Application settings with environment variable support."""

    # Database
    DB_BACKEND: str = "sqlite"  # sqlite, memory, remote
    DB_PATH: Path = Path("aislewise.db")
    DB_ECHO: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[Path] = DEFAULT_LOG_FILE
    LOG_FORMAT: str = "detailed"  # simple, detailed
    LOG_RETENTION_DAYS: int = 7
    LOG_ROTATION_SIZE_MB: int = 1

    # Catalog
    DEFAULT_STORE_NAME: str = "Unnamed store"
    SEARCH_LIMIT: int = 10

    # Reset keeps these tables
    TABLES_TO_PERSIST: Tuple[str, ...] = ("app_setting",)

    model_config = SettingsConfigDict(
        env_prefix="AISLEWISE_",
        case_sensitive=False,
        env_file=PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Relative database paths live under the project root
        if not self.DB_PATH.is_absolute():
            self.DB_PATH = PROJECT_ROOT / self.DB_PATH

        # Ensure log file path is absolute and parent directory exists
        if self.LOG_FILE:
            if not self.LOG_FILE.is_absolute():
                self.LOG_FILE = PROJECT_ROOT / self.LOG_FILE
            self.LOG_FILE.parent.mkdir(parents=True, exist_ok=True)

    @field_validator("DB_BACKEND")
    @classmethod
    def validate_db_backend(cls, v: str) -> str:
        valid_backends = ["sqlite", "memory", "remote"]
        v = v.lower()
        if v not in valid_backends:
            raise ValueError(f"DB backend must be one of: {', '.join(valid_backends)}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(valid_levels)}")
        return v

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        valid_formats = ["simple", "detailed"]
        v = v.lower()
        if v not in valid_formats:
            raise ValueError(f"Log format must be one of: {', '.join(valid_formats)}")
        return v

    @field_validator("SEARCH_LIMIT")
    @classmethod
    def validate_search_limit(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Search limit must be positive")
        return v


@lru_cache()
def get_settings() -> AislewiseSettings:
    """Get cached settings instance."""
    return AislewiseSettings()


@lru_cache()
def get_openai_settings() -> OpenAISettings:
    """Get cached OpenAI settings instance."""
    return OpenAISettings()


def clear_settings_cache() -> None:
    """Clear all settings caches to force reload from environment."""
    get_settings.cache_clear()
    get_openai_settings.cache_clear()
