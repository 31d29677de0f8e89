"""Process configuration using pydantic-settings."""

import logging
import tempfile
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Library settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SNAPSOLVE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "SnapSolve"
    log_level: str = "info"

    # Key-value store
    store_backend: str = "memory"  # "memory" or "mongodb"
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_database: str = "snapsolve"
    mongodb_collection: str = "kv_store"

    # History
    history_batch_size: int = 20

    # Images
    image_cache_ttl_days: int = 7
    image_max_width: int = 1024
    image_jpeg_quality: int = 80
    image_work_dir: Path = Path(tempfile.gettempdir()) / "snapsolve"

    # Network (None disables the timeout)
    http_timeout: float | None = None

    # Solving model request parameters
    solving_temperature: float = 0.7
    solving_presence_penalty: float = 0.1


settings = Settings()


def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return settings


def configure_logging(config: Settings | None = None) -> None:
    """Apply the library's log format and level to the root logger."""
    config = config or settings
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
