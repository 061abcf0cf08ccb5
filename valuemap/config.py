from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DATA_DIR = Path(__file__).parent / "data"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # OpenRouter (generation collaborator). Empty key = collaborator unavailable.
    OPENROUTER_API_KEY: str = ""
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"

    # LangSmith
    LANGSMITH_API_KEY: str = ""
    LANGSMITH_PROJECT: str = "valuemap"
    LANGCHAIN_TRACING_V2: bool = False

    # Cache
    CACHE_BACKEND: Literal["file", "redis"] = "file"
    CACHE_DIR: str = ".cache"
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_MEMORY_MAX_ENTRIES: int = Field(default=100, ge=1)
    CACHE_TTL_SECONDS: int = Field(default=7 * 24 * 60 * 60, ge=1)

    # Resolver (match distance: 0.0 = identical, 1.0 = unrelated)
    RESOLVER_STRICT_THRESHOLD: float = Field(default=0.3, ge=0.0, le=1.0)
    RESOLVER_LOOSE_THRESHOLD: float = Field(default=0.5, ge=0.0, le=1.0)
    ALIASES_PATH: str = str(DATA_DIR / "aliases.json")
    LIBRARY_DIR: str = str(DATA_DIR / "library")

    # Admission control
    RATE_LIMIT_MAX_REQUESTS: int = Field(default=10, ge=1)
    RATE_LIMIT_WINDOW_SECONDS: float = Field(default=60.0, gt=0)
    MAX_QUERY_LENGTH: int = Field(default=200, ge=1)

    # Synthesis
    MAX_SUBTREE_DEPTH: int = Field(default=3, ge=1)
    MAX_DETAIL_CONCURRENCY: int = Field(default=16, ge=1)

    # Streaming
    STREAM_PING_SECONDS: int = 15

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = Field(default="json", description="'json' for production, 'console' for dev")

    @model_validator(mode="after")
    def _check_thresholds(self) -> Settings:
        if self.RESOLVER_STRICT_THRESHOLD > self.RESOLVER_LOOSE_THRESHOLD:
            raise ValueError("RESOLVER_STRICT_THRESHOLD must not exceed RESOLVER_LOOSE_THRESHOLD")
        return self

    @property
    def collaborator_configured(self) -> bool:
        return bool(self.OPENROUTER_API_KEY)


def get_settings() -> Settings:
    return Settings()
