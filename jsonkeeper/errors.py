"""Error taxonomy shared by the fetcher, the record store and the CLI.

Every failure raised by jsonkeeper is a :class:`JsonKeeperError` subclass
tagged with an :class:`ErrorKind`. Library exceptions never leak directly;
they are converted at each boundary by the ``from_*`` helpers below, which
keep the original exception as ``__cause__``.
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path

import httpx
import pydantic
import yaml


class ErrorKind(str, Enum):
    """Closed set of failure categories."""

    IO = "io"
    TRANSPORT = "transport"
    PARSE = "parse"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    OPERATION_FAILED = "operation_failed"
    CONFIG = "config"


class JsonKeeperError(Exception):
    """Base exception for all jsonkeeper errors.

    Example:
        try:
            store.get("missing")
        except JsonKeeperError as exc:
            logger.error("command_failed", kind=exc.kind.value, error=str(exc))
    """

    kind: ErrorKind

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class StorageIOError(JsonKeeperError):
    """Raised when the file system refuses a read, write or delete."""

    kind = ErrorKind.IO

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class TransportError(JsonKeeperError):
    """Raised when a request never produced an HTTP response."""

    kind = ErrorKind.TRANSPORT

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class ParseError(JsonKeeperError):
    """Raised for malformed JSON or YAML content."""

    kind = ErrorKind.PARSE

    def __init__(self, message: str, source: str | None = None) -> None:
        super().__init__(message)
        self.source = source


class ValidationError(JsonKeeperError):
    """Raised when a serialized record exceeds the configured size limit."""

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str,
        key: str | None = None,
        size: int | None = None,
        limit: int | None = None,
    ) -> None:
        super().__init__(message)
        self.key = key
        self.size = size
        self.limit = limit


class NotFoundError(JsonKeeperError):
    """Raised when a key has no record on disk."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, resource: str) -> None:
        super().__init__(f"Not found: {resource}")
        self.resource = resource


class OperationFailed(JsonKeeperError):
    """Raised when a request completed but returned a non-success status."""

    kind = ErrorKind.OPERATION_FAILED

    def __init__(self, status_code: int, body: str, url: str | None = None) -> None:
        super().__init__(f"Operation failed: HTTP {status_code}: {body}")
        self.status_code = status_code
        self.body = body
        self.url = url


class ConfigError(JsonKeeperError):
    """Raised when configuration files or overrides cannot be used."""

    kind = ErrorKind.CONFIG

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


# ----------------------------------------------------------------------
# Boundary conversions
# ----------------------------------------------------------------------
def from_os_error(exc: OSError, path: Path | None = None) -> StorageIOError:
    target = path or (Path(exc.filename) if exc.filename else None)
    reason = exc.strerror or str(exc)
    return StorageIOError(f"IO error: {reason} ({target})", path=target)


def from_http_error(exc: httpx.HTTPError, url: str | None = None) -> TransportError:
    if url is None:
        try:
            url = str(exc.request.url)
        except RuntimeError:
            url = None
    return TransportError(f"HTTP error: {exc.__class__.__name__}: {exc}", url=url)


def from_json_error(exc: json.JSONDecodeError, source: str | None = None) -> ParseError:
    where = f" in {source}" if source else ""
    return ParseError(
        f"JSON parsing error{where}: {exc.msg} (line {exc.lineno} column {exc.colno})",
        source=source,
    )


def from_yaml_error(exc: yaml.YAMLError, source: str | None = None) -> ParseError:
    where = f" in {source}" if source else ""
    return ParseError(f"YAML parsing error{where}: {exc}", source=source)


def from_model_error(exc: pydantic.ValidationError, source: str | None = None) -> ParseError:
    where = f" in {source}" if source else ""
    problems = "; ".join(
        f"{'.'.join(str(loc) for loc in err['loc']) or '<root>'}: {err['msg']}"
        for err in exc.errors()
    )
    return ParseError(f"Invalid document{where}: {problems}", source=source)


__all__ = [
    "ConfigError",
    "ErrorKind",
    "JsonKeeperError",
    "NotFoundError",
    "OperationFailed",
    "ParseError",
    "StorageIOError",
    "TransportError",
    "ValidationError",
    "from_http_error",
    "from_json_error",
    "from_model_error",
    "from_os_error",
    "from_yaml_error",
]
