"""File-backed key/value store for JSON documents."""

from __future__ import annotations

import json
import os
import re
import tempfile
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pydantic
import structlog
from pydantic import AwareDatetime, BaseModel, Field

from ..errors import (
    NotFoundError,
    ValidationError,
    from_json_error,
    from_model_error,
    from_os_error,
)

RECORD_EXTENSION = ".json"
BYTES_PER_MB = 1024 * 1024
# Keys that differ only in these characters map to the same file.
_FORBIDDEN_KEY_CHARS = re.compile(r'[/\\:*?"<>|]')


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Record(BaseModel):
    """A stored JSON document together with its identity and timestamps."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    key: str
    value: Any = None
    created_at: AwareDatetime = Field(default_factory=_utcnow)
    updated_at: AwareDatetime = Field(default_factory=_utcnow)
    metadata: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def new(cls, key: str, value: Any) -> "Record":
        now = _utcnow()
        return cls(key=key, value=value, created_at=now, updated_at=now)

    def touch(self, value: Any) -> None:
        """Replace the value and bump ``updated_at``; identity is unchanged."""

        self.value = value
        now = _utcnow()
        # Never move backwards if the clock did.
        self.updated_at = max(now, self.updated_at)

    def to_json(self) -> str:
        return self.model_dump_json(indent=2)


@dataclass(slots=True)
class StorageInfo:
    directory: Path
    file_count: int
    total_size_bytes: int
    max_record_size_mb: int


class RecordStore:
    """Persist one pretty-printed JSON record per key inside ``data_dir``.

    The store is meant for a single process doing sequential operations;
    it performs no locking. Writes go through a temporary file that is
    renamed into place, so a reader never observes a half-written record.
    """

    def __init__(
        self,
        data_dir: Path,
        max_file_size_mb: int = 100,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.data_dir = Path(data_dir)
        self.max_file_size_mb = max_file_size_mb
        self.max_record_size_bytes = max_file_size_mb * BYTES_PER_MB
        self.logger = logger or structlog.get_logger("jsonkeeper.storage")
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise from_os_error(exc, self.data_dir) from exc

    def key_to_path(self, key: str) -> Path:
        safe_key = _FORBIDDEN_KEY_CHARS.sub("_", key)
        return self.data_dir / f"{safe_key}{RECORD_EXTENSION}"

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------
    def store(self, key: str, value: Any) -> Record:
        path = self.key_to_path(key)
        if self._is_record(path):
            record = self.get(key)
            record.touch(value)
        else:
            record = Record.new(key, value)

        payload = record.to_json().encode("utf-8")
        if len(payload) > self.max_record_size_bytes:
            raise ValidationError(
                f"Validation error: data size {len(payload)} bytes exceeds maximum "
                f"allowed size of {self.max_file_size_mb} MB for key '{key}'",
                key=key,
                size=len(payload),
                limit=self.max_record_size_bytes,
            )

        self._write_atomic(path, payload)
        self.logger.info("record_stored", key=record.key, id=record.id, size=len(payload))
        return record

    def get(self, key: str) -> Record:
        path = self.key_to_path(key)
        if not self._is_record(path):
            raise NotFoundError(f"key '{key}'")
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise from_os_error(exc, path) from exc
        try:
            record = Record.model_validate(json.loads(text))
        except json.JSONDecodeError as exc:
            raise from_json_error(exc, str(path)) from exc
        except pydantic.ValidationError as exc:
            raise from_model_error(exc, str(path)) from exc
        self.logger.debug("record_loaded", key=key)
        return record

    def list(self) -> list[str]:
        keys = sorted(path.stem for path in self._record_files())
        self.logger.debug("records_listed", count=len(keys))
        return keys

    def delete(self, key: str) -> None:
        path = self.key_to_path(key)
        if not self._is_record(path):
            raise NotFoundError(f"key '{key}'")
        try:
            path.unlink()
        except OSError as exc:
            raise from_os_error(exc, path) from exc
        self.logger.info("record_deleted", key=key)

    def exists(self, key: str) -> bool:
        """Whether a record file exists for ``key``.

        A key whose file name the file system rejects (too long, for
        instance) raises ``StorageIOError`` rather than reporting ``False``.
        """

        return self._is_record(self.key_to_path(key))

    def get_metadata(self, key: str) -> dict[str, str]:
        return self.get(key).metadata

    def storage_info(self) -> StorageInfo:
        file_count = 0
        total_size = 0
        for path in self._record_files():
            try:
                total_size += path.stat().st_size
            except OSError:
                # Removed between listing and stat.
                continue
            file_count += 1
        return StorageInfo(
            directory=self.data_dir,
            file_count=file_count,
            total_size_bytes=total_size,
            max_record_size_mb=self.max_file_size_mb,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _record_files(self) -> list[Path]:
        try:
            entries = list(self.data_dir.iterdir())
        except OSError as exc:
            raise from_os_error(exc, self.data_dir) from exc
        return [p for p in entries if p.suffix == RECORD_EXTENSION and p.is_file()]

    def _is_record(self, path: Path) -> bool:
        try:
            path.stat()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise from_os_error(exc, path) from exc
        return True

    def _write_atomic(self, path: Path, payload: bytes) -> None:
        # Fixed short prefix: the key's own name may already be near NAME_MAX.
        tmp_path: Path | None = None
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=".tmp-", suffix=".tmp")
            tmp_path = Path(tmp_name)
            with os.fdopen(fd, "wb") as stream:
                stream.write(payload)
                stream.flush()
                os.fsync(stream.fileno())
            os.replace(tmp_path, path)
        except OSError as exc:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)
            raise from_os_error(exc, path) from exc


__all__ = ["BYTES_PER_MB", "RECORD_EXTENSION", "Record", "RecordStore", "StorageInfo"]
