"""Configuration loading helpers for jsonkeeper."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import pydantic
import yaml

from ..errors import ConfigError
from .models import AppConfig
from .sources import config_files

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
CONFIG_FILENAME = "config.yaml"
HOME_ENV = "JSONKEEPER_HOME"


def _write_file(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix == ".json":
            json.dump(payload, stream, indent=2, ensure_ascii=False)
        else:
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)


@dataclass(slots=True)
class ConfigLocator:
    """Resolve the configuration files consulted at startup."""

    user_config_dir: Path | None = None
    working_dir: Path | None = None

    def __post_init__(self) -> None:
        env_home = os.environ.get(HOME_ENV)
        if self.user_config_dir is None:
            if env_home:
                self.user_config_dir = Path(env_home).expanduser().resolve()
            else:
                self.user_config_dir = Path.home() / ".config" / "jsonkeeper"
        if self.working_dir is None:
            self.working_dir = Path.cwd()

    def user_config_path(self) -> Path:
        return self.user_config_dir / CONFIG_FILENAME

    def local_config_path(self) -> Path:
        return self.working_dir / CONFIG_FILENAME

    def search_paths(self) -> list[Path]:
        """Optional config files, lowest precedence first."""

        return [self.user_config_path(), self.local_config_path()]


class ConfigRepository:
    """Layered configuration: defaults, user file, local file, environment."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()

    def load(self, explicit_path: Path | None = None) -> AppConfig:
        if explicit_path is not None:
            if not explicit_path.exists():
                raise ConfigError(f"Configuration file not found: {explicit_path}", path=explicit_path)
            paths = [explicit_path]
        else:
            paths = [path for path in self.locator.search_paths() if path.is_file()]
        try:
            with config_files(paths):
                return AppConfig()
        except pydantic.ValidationError as exc:
            raise ConfigError(f"Invalid configuration: {exc}", path=explicit_path) from exc

    def save(self, config: AppConfig, path: Path) -> Path:
        if path.suffix not in CONFIG_EXTENSIONS:
            raise ConfigError(
                f"Unsupported configuration extension {path.suffix!r}, expected one of {CONFIG_EXTENSIONS}",
                path=path,
            )
        try:
            _write_file(path, config.model_dump(mode="json"))
        except OSError as exc:
            raise ConfigError(f"Cannot write configuration file {path}: {exc.strerror}", path=path) from exc
        return path

    @staticmethod
    def dump(config: AppConfig) -> str:
        return yaml.safe_dump(
            config.model_dump(mode="json"), allow_unicode=True, sort_keys=False
        )


__all__ = [
    "CONFIG_EXTENSIONS",
    "ConfigLocator",
    "ConfigRepository",
]
