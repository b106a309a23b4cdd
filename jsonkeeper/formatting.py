"""Render JSON values for terminal output."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

import yaml


class OutputFormat(str, Enum):
    JSON = "json"
    YAML = "yaml"
    PRETTY = "pretty"


def format_output(value: Any, fmt: OutputFormat = OutputFormat.PRETTY) -> str:
    if fmt is OutputFormat.JSON:
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    if fmt is OutputFormat.YAML:
        return yaml.safe_dump(value, allow_unicode=True, sort_keys=False)
    return json.dumps(value, ensure_ascii=False, indent=2)


__all__ = ["OutputFormat", "format_output"]
