"""YAML/JSON file settings sources feeding :class:`AppConfig`."""

from __future__ import annotations

import json
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Iterator, Sequence

import yaml
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from ..errors import ConfigError, from_json_error, from_yaml_error

# Files consulted while an AppConfig is being built, lowest precedence first.
_ACTIVE_FILES: ContextVar[tuple[Path, ...]] = ContextVar("jsonkeeper_config_files", default=())


def read_config_file(path: Path) -> dict:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read configuration file {path}: {exc.strerror}", path=path) from exc
    try:
        if path.suffix == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text) or {}
    except json.JSONDecodeError as exc:
        raise ConfigError(from_json_error(exc, str(path)).message, path=path) from exc
    except yaml.YAMLError as exc:
        raise ConfigError(from_yaml_error(exc, str(path)).message, path=path) from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file must contain a mapping: {path}", path=path)
    return data


@contextmanager
def config_files(paths: Sequence[Path]) -> Iterator[None]:
    """Expose ``paths`` to the file sources for the duration of the block."""

    token = _ACTIVE_FILES.set(tuple(paths))
    try:
        yield
    finally:
        _ACTIVE_FILES.reset(token)


class FileConfigSettingsSource(PydanticBaseSettingsSource):
    """Load settings from one YAML or JSON configuration file."""

    def __init__(self, settings_cls: type[BaseSettings], path: Path) -> None:
        super().__init__(settings_cls)
        self.path = path
        self._data: dict[str, Any] | None = None

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self().get(field_name), field_name, False

    def __call__(self) -> dict[str, Any]:
        if self._data is None:
            self._data = read_config_file(self.path)
        return self._data


def file_sources(settings_cls: type[BaseSettings]) -> tuple[PydanticBaseSettingsSource, ...]:
    """Sources for the active files, highest precedence first."""

    return tuple(
        FileConfigSettingsSource(settings_cls, path) for path in reversed(_ACTIVE_FILES.get())
    )


__all__ = ["FileConfigSettingsSource", "config_files", "file_sources", "read_config_file"]
