"""Tests for configuration loading."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from object_store.config import (
    CONFIG_ENV_VAR,
    StoreConfig,
    default_config_path,
    ensure_directories,
    load_config,
)


def test_derived_paths(tmp_path: Path):
    config = StoreConfig(data_dir=tmp_path)

    assert config.storage_directory == tmp_path / "objects"
    assert config.database_path == tmp_path / "metadata.db"


def test_load_yaml(tmp_path: Path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        f"data_dir: {tmp_path}\n"
        f"storage_directory: {tmp_path / 'blobs'}\n"
        "port: 9000\n"
        "log_level: DEBUG\n"
    )

    config = load_config(config_file)

    assert config.storage_directory == tmp_path / "blobs"
    assert config.database_path == tmp_path / "metadata.db"
    assert config.port == 9000
    assert config.log_level == "DEBUG"


def test_load_json_with_storage_directory(tmp_path: Path):
    """A plain config.json holding only storage_directory is accepted."""
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps({"storage_directory": str(tmp_path / "storage")}))

    config = load_config(config_file)

    assert config.storage_directory == tmp_path / "storage"


def test_missing_file_gives_defaults(tmp_path: Path):
    config = load_config(tmp_path / "absent.yaml")
    assert config == StoreConfig()


def test_empty_file_gives_defaults(tmp_path: Path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("")

    assert load_config(config_file) == StoreConfig()


def test_env_var_selects_config(tmp_path: Path, monkeypatch):
    config_file = tmp_path / "custom.yaml"
    config_file.write_text("port: 7001\n")
    monkeypatch.setenv(CONFIG_ENV_VAR, str(config_file))

    assert default_config_path() == config_file
    assert load_config().port == 7001


def test_invalid_port(tmp_path: Path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("port: 70000\n")

    with pytest.raises(ValueError):
        load_config(config_file)


def test_ensure_directories(tmp_path: Path):
    config = StoreConfig(
        data_dir=tmp_path / "data",
        database_path=tmp_path / "db" / "index.db",
    )

    ensure_directories(config)

    assert config.storage_directory.is_dir()
    assert (tmp_path / "db").is_dir()
