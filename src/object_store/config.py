"""Configuration loading for object-store."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


DEFAULT_DATA_DIR = Path.home() / ".object-store"
CONFIG_ENV_VAR = "OBJECT_STORE_CONFIG"


class StoreConfig(BaseModel):
    """Process-level configuration."""
    data_dir: Path = Field(default=DEFAULT_DATA_DIR)
    storage_directory: Path | None = None  # Defaults to data_dir/objects
    database_path: Path | None = None  # Defaults to data_dir/metadata.db

    # HTTP surface
    host: str = "127.0.0.1"
    port: int = Field(default=8080, ge=1, le=65535)

    # Logging
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR
    structured_logging: bool = True  # JSON format vs human-readable
    log_file: str | None = None

    def model_post_init(self, __context: Any) -> None:
        """Set derived paths after initialization."""
        if self.storage_directory is None:
            self.storage_directory = self.data_dir / "objects"
        if self.database_path is None:
            self.database_path = self.data_dir / "metadata.db"


def default_config_path() -> Path:
    """Config file location: $OBJECT_STORE_CONFIG, else ~/.object-store/config.yaml."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return DEFAULT_DATA_DIR / "config.yaml"


def load_config(config_path: Path | None = None) -> StoreConfig:
    """Load configuration from a YAML (or JSON) file.

    Args:
        config_path: Path to config file. Defaults to default_config_path()

    Returns:
        StoreConfig instance; defaults when the file does not exist
    """
    if config_path is None:
        config_path = default_config_path()

    if config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        return StoreConfig(**data)

    return StoreConfig()


def ensure_directories(config: StoreConfig) -> None:
    """Ensure all required directories exist."""
    config.data_dir.mkdir(parents=True, exist_ok=True)

    if config.storage_directory:
        config.storage_directory.mkdir(parents=True, exist_ok=True)

    if config.database_path:
        config.database_path.parent.mkdir(parents=True, exist_ok=True)
