"""Application configuration via pydantic-settings."""

from __future__ import annotations

import os
import socket
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_worker_id() -> str:
    """Generate a unique worker ID from hostname + PID."""
    return f"{socket.gethostname()}-{os.getpid()}"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Data directory
    data_dir: Path = Path("./data")

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"

    # API server
    api_host: str = "127.0.0.1"
    api_port: int = 8000

    # User lookup cache (empty redis_url selects the in-process cache)
    redis_url: str = ""
    user_cache_ttl_seconds: int = 300
    user_cache_max_entries: int = 1000

    # Optimistic concurrency on the experiment store
    store_max_retries: int = 5
    store_retry_base_delay: float = 0.01

    # Worker identity
    worker_id: str = Field(default_factory=_default_worker_id)

    @property
    def db_path(self) -> Path:
        return self.data_dir / "studyslot.db"

    def ensure_data_dir(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
