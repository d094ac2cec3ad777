"""Configuration management using Pydantic Settings."""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Persisted layout
    data_dir: Path = Field(default=Path("./data"))
    site_dir: Path = Field(default=Path("./portfolio"))
    log_dir: Path = Field(default=Path("./logs"))

    # Generator (OpenAI-compatible API)
    openai_api_key: str = Field(default="")
    openai_base_url: str = Field(default="https://api.openai.com/v1")
    chat_model: str = Field(default="gpt-4o", description="Model for chat turns and site regeneration")
    vision_model: str = Field(default="gpt-4o", description="Model for image descriptions")
    generator_temperature: float = Field(default=0.4)
    generator_max_tokens: int = Field(default=8000)
    generator_timeout: float = Field(default=60.0, description="Seconds before a generator call is abandoned")

    # Caller-level retry policy for provider failures (0 = single call)
    provider_retries: int = Field(default=0)
    provider_retry_delay: float = Field(default=2.0)

    # Concurrency discipline for read-modify-write operations
    concurrency_mode: Literal["pessimistic", "optimistic"] = Field(default="pessimistic")

    # Image uploads
    max_images_per_batch: int = Field(default=5)
    max_image_bytes: int = Field(default=10 * 1024 * 1024)

    # HTTP
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3001)
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Language
    language: Literal["en", "zh"] = Field(default="en")

    # Logging
    log_level: str = Field(default="INFO")
    log_format: Literal["json", "text", "both"] = Field(default="both")


def get_settings() -> Settings:
    """Get settings instance. Creates new instance each time to pick up env changes."""
    return Settings()


# Default singleton for convenience
settings = Settings()
