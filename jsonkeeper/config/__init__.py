"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import AppConfig, LoggingConfig, ServerConfig, StorageConfig

__all__ = [
    "AppConfig",
    "ConfigLocator",
    "ConfigRepository",
    "LoggingConfig",
    "ServerConfig",
    "StorageConfig",
]
