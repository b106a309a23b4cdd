from __future__ import annotations

from pathlib import Path

import pytest

from jsonkeeper.config import LoggingConfig, ServerConfig, StorageConfig


def test_server_config_bounds() -> None:
    with pytest.raises(ValueError):
        ServerConfig(retry_attempts=0)
    with pytest.raises(ValueError):
        ServerConfig(timeout_seconds=0)
    with pytest.raises(ValueError):
        ServerConfig(base_url="   ")


def test_logging_level_is_normalised() -> None:
    assert LoggingConfig(level="WARNING").level == "warning"
    with pytest.raises(ValueError):
        LoggingConfig(level="loud")


def test_logging_empty_file_path_means_none() -> None:
    assert LoggingConfig(file_path="").file_path is None
    assert LoggingConfig(file_path="logs/x.log").file_path == Path("logs/x.log")


def test_storage_config_requires_positive_limit() -> None:
    with pytest.raises(ValueError):
        StorageConfig(max_file_size_mb=0)
    assert StorageConfig(data_dir="somewhere").data_dir == Path("somewhere")
