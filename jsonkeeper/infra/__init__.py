"""Infra layer utilities (record storage)."""

from .storage import Record, RecordStore, StorageInfo

__all__ = ["Record", "RecordStore", "StorageInfo"]
