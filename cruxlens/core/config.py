"""Application configuration."""

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional
from urllib.parse import parse_qs, urlencode

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from cruxlens.utils.logging import configure_logging, get_logger

LOGGER = get_logger(__name__)


# Find .env file - check multiple possible locations
def find_env_file() -> Optional[Path]:
    """Find .env file in multiple possible locations."""
    current_dir = os.path.dirname(os.path.abspath(__file__))

    possible_paths = [
        os.path.join(current_dir, ".env"),
        os.path.join(os.path.dirname(current_dir), ".env"),
        os.path.join(os.path.dirname(os.path.dirname(current_dir)), ".env"),
    ]

    for path_str in possible_paths:
        if os.path.exists(path_str):
            path = Path(path_str)
            LOGGER.info(f"Found .env file at: {path}")
            return path

    LOGGER.debug("No .env file found in expected locations")
    return None


ENV_FILE = find_env_file()


class DatabaseSettings(BaseSettings):
    """Database connection and pool settings."""
    url: str = Field(default="", validation_alias="DATABASE_URL")
    pool_size: int = Field(default=10, validation_alias="DATABASE_POOL_SIZE")
    max_overflow: int = Field(default=20, validation_alias="DATABASE_MAX_OVERFLOW")
    echo: bool = Field(default=False, validation_alias="DATABASE_ECHO")

    @property
    def connection_url(self) -> str:
        """Get the connection URL with the asyncpg driver prefix."""
        raw_url = self.url
        if not raw_url:
            return ""

        if raw_url.startswith("postgres://") or raw_url.startswith("postgresql://"):
            _, rest = raw_url.split("://", 1)

            if "?" in rest:
                path, query = rest.split("?", 1)
                params = parse_qs(query)

                # asyncpg spells it "ssl"
                if "sslmode" in params:
                    params["ssl"] = params.pop("sslmode")

                new_query = urlencode(params, doseq=True)
                rest = f"{path}?{new_query}"

            return f"postgresql+asyncpg://{rest}"

        return raw_url

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE) if ENV_FILE else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="",  # No prefix for nested settings
    )


class OpenAISettings(BaseSettings):
    """Structured-output generation and vector store provider settings."""

    api_key: str = Field(default="", validation_alias="OPENAI_API_KEY")
    api_base_url: str = Field(default="https://api.openai.com/v1", validation_alias="OPENAI_API_BASE_URL")
    model: str = Field(default="gpt-5-nano", validation_alias="OPENAI_MODEL")
    max_output_tokens: int = Field(default=8000, validation_alias="OPENAI_MAX_OUTPUT_TOKENS")
    timeout: int = Field(default=120, validation_alias="OPENAI_TIMEOUT")

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE) if ENV_FILE else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="",
    )


class RetrievalSettings(BaseSettings):
    """Semantic index query and context limits."""

    query_max_length: int = Field(default=4096, validation_alias="VECTOR_QUERY_MAX_LENGTH")
    context_max_results: int = Field(default=4, validation_alias="RETRIEVAL_MAX_RESULTS")
    snippet_max_length: int = Field(default=1200, validation_alias="RETRIEVAL_SNIPPET_LENGTH")
    search_max_results: int = Field(default=8, validation_alias="VECTOR_SEARCH_MAX_RESULTS")

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE) if ENV_FILE else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="",
    )


class Settings(BaseSettings):
    """Unified application settings with nested models."""

    app_name: str = Field(default="Cruxlens", validation_alias="APP_NAME")
    app_version: str = "0.1.0"
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    db: DatabaseSettings = Field(default_factory=lambda: DatabaseSettings())
    openai: OpenAISettings = Field(default_factory=lambda: OpenAISettings())
    retrieval: RetrievalSettings = Field(default_factory=lambda: RetrievalSettings())

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE) if ENV_FILE else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def database_url(self) -> str:
        return self.db.connection_url

    @property
    def openai_api_key(self) -> str:
        return self.openai.api_key

    @property
    def openai_api_base_url(self) -> str:
        return self.openai.api_base_url.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance and apply its log level."""
    settings = Settings()
    configure_logging(settings.log_level)
    LOGGER.info(f"Settings initialized with environment: {settings.environment}")
    LOGGER.info(f"OpenAI API Key loaded: {bool(settings.openai_api_key)}")
    return settings
