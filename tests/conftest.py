"""Shared fixtures for jsonkeeper tests."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable, Iterable

import httpx
import pytest

from jsonkeeper.config import ConfigLocator, ConfigRepository
from jsonkeeper.engine.fetcher import RetryingFetcher
from jsonkeeper.infra import RecordStore


@pytest.fixture
def record_store(tmp_path: Path) -> RecordStore:
    return RecordStore(tmp_path / "data", max_file_size_mb=1)


@pytest.fixture
def sleep_calls(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    """Replace the fetcher's backoff sleep with a recorder."""

    calls: list[float] = []
    monkeypatch.setattr("jsonkeeper.engine.fetcher.time.sleep", calls.append)
    return calls


@pytest.fixture
def make_fetcher(monkeypatch: pytest.MonkeyPatch) -> Iterable[Callable[..., tuple[RetryingFetcher, list[dict]]]]:
    """Build a fetcher whose client answers from a scripted list of outcomes.

    Each outcome is either an exception instance (raised) or a tuple of
    ``(status_code, body_text)``.
    """

    created: list[RetryingFetcher] = []

    def _builder(
        outcomes: list[Any],
        base_url: str = "https://api.example.com",
        max_attempts: int = 3,
    ) -> tuple[RetryingFetcher, list[dict]]:
        fetcher = RetryingFetcher(base_url, request_timeout=5, max_attempts=max_attempts)
        created.append(fetcher)
        calls: list[dict] = []
        script = list(outcomes)

        def fake_request(**kwargs):
            calls.append(kwargs)
            outcome = script.pop(0) if len(script) > 1 else script[0]
            if isinstance(outcome, Exception):
                raise outcome
            status, text = outcome
            request = httpx.Request(kwargs["method"], kwargs["url"])
            return httpx.Response(status, request=request, text=text)

        monkeypatch.setattr(fetcher._client, "request", fake_request)
        return fetcher, calls

    yield _builder
    for fetcher in created:
        fetcher.close()


def _clear_jsonkeeper_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name.startswith("JSONKEEPER_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point every config source and the data dir into ``tmp_path``."""

    _clear_jsonkeeper_env(monkeypatch)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("JSONKEEPER_HOME", str(home))
    monkeypatch.setenv("JSONKEEPER_STORAGE__DATA_DIR", str(tmp_path / "data"))
    # Keep command output free of log lines.
    monkeypatch.setenv("JSONKEEPER_LOGGING__LEVEL", "error")
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ConfigRepository:
    _clear_jsonkeeper_env(monkeypatch)
    home = tmp_path / "home"
    work = tmp_path / "work"
    home.mkdir()
    work.mkdir()
    locator = ConfigLocator(user_config_dir=home, working_dir=work)
    return ConfigRepository(locator)
