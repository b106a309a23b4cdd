from __future__ import annotations

import json
from pathlib import Path
from types import SimpleNamespace

import structlog
import yaml
from typer.testing import CliRunner

from jsonkeeper.app import AppState, app
from jsonkeeper.config import AppConfig, ConfigRepository, StorageConfig
from jsonkeeper.errors import OperationFailed

runner = CliRunner()


class StubFetcher:
    def __init__(self, payload=None, error: Exception | None = None) -> None:
        self.payload = payload
        self.error = error
        self.urls: list[str] = []
        self.closed = False

    def fetch(self, url: str):
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return self.payload

    def close(self) -> None:
        self.closed = True


def make_state(tmp_path: Path, fetcher: StubFetcher) -> AppState:
    return AppState(
        config=AppConfig(storage=StorageConfig(data_dir=tmp_path / "data", max_file_size_mb=1)),
        repository=ConfigRepository(SimpleNamespace()),
        logger=structlog.get_logger("jsonkeeper.test"),
        _fetcher=fetcher,
    )


def test_cli_help() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "Fetch JSON from remote APIs" in result.output


def test_cli_store_and_get(isolated_env: Path) -> None:
    result = runner.invoke(app, ["store", "test_key", '{"name": "test", "value": 42}'])
    assert result.exit_code == 0, result.output
    assert "Stored item with ID:" in result.stdout

    result = runner.invoke(app, ["get", "test_key"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == {"name": "test", "value": 42}

    record_file = isolated_env / "data" / "test_key.json"
    assert record_file.exists()


def test_cli_store_from_file_and_yaml_output(isolated_env: Path) -> None:
    source = isolated_env / "payload.json"
    source.write_text('{"items": ["a", "b"]}', encoding="utf-8")
    result = runner.invoke(app, ["store", "doc", str(source), "--file"])
    assert result.exit_code == 0, result.output
    result = runner.invoke(app, ["get", "doc", "--format", "yaml"])
    assert result.exit_code == 0, result.output
    assert yaml.safe_load(result.stdout) == {"items": ["a", "b"]}


def test_cli_store_rejects_invalid_json(isolated_env: Path) -> None:
    result = runner.invoke(app, ["store", "bad", "{not json"])
    assert result.exit_code == 1
    assert "JSON parsing error" in result.output
    assert not (isolated_env / "data" / "bad.json").exists()


def test_cli_list_empty(isolated_env: Path) -> None:
    result = runner.invoke(app, ["list"])
    assert result.exit_code == 0, result.output
    assert "No stored items found" in result.stdout


def test_cli_list_detailed(isolated_env: Path) -> None:
    for key in ("beta", "alpha"):
        assert runner.invoke(app, ["store", key, "1"]).exit_code == 0
    result = runner.invoke(app, ["list"])
    assert result.exit_code == 0, result.output
    assert result.stdout.index("alpha") < result.stdout.index("beta")
    result = runner.invoke(app, ["list", "--detailed"])
    assert result.exit_code == 0, result.output
    assert "Storage Information" in result.stdout
    assert "UTC" in result.stdout


def test_cli_delete_nonexistent(isolated_env: Path) -> None:
    result = runner.invoke(app, ["delete", "nonexistent_key"])
    assert result.exit_code == 1
    assert "Not found" in result.output


def test_cli_delete_then_get(isolated_env: Path) -> None:
    runner.invoke(app, ["store", "gone", '"bye"'])
    result = runner.invoke(app, ["delete", "gone"])
    assert result.exit_code == 0, result.output
    assert "Deleted key: gone" in result.stdout
    assert runner.invoke(app, ["get", "gone"]).exit_code == 1


def test_cli_metadata(isolated_env: Path) -> None:
    runner.invoke(app, ["store", "m", "{}"])
    result = runner.invoke(app, ["metadata", "m", "-f", "json"])
    assert result.exit_code == 0, result.output
    assert result.stdout.strip() == "{}"


def test_cli_config_init_and_show(isolated_env: Path) -> None:
    target = isolated_env / "test_config.yaml"
    result = runner.invoke(app, ["config", "init", "--output", str(target)])
    assert result.exit_code == 0, result.output
    content = target.read_text(encoding="utf-8")
    for section in ("server:", "logging:", "storage:"):
        assert section in content

    result = runner.invoke(app, ["config", "show"])
    assert result.exit_code == 0, result.output
    shown = yaml.safe_load(result.stdout)
    assert shown["server"]["retry_attempts"] == 3
    assert shown["storage"]["data_dir"] == str(isolated_env / "data")


def test_cli_explicit_config_missing(isolated_env: Path) -> None:
    result = runner.invoke(app, ["--config", str(isolated_env / "nope.yaml"), "list"])
    assert result.exit_code == 1
    assert "Configuration file not found" in result.output


def test_cli_fetch_prints_payload(monkeypatch, tmp_path: Path) -> None:
    fetcher = StubFetcher(payload={"hello": "world"})
    state = make_state(tmp_path, fetcher)
    monkeypatch.setattr("jsonkeeper.app.build_state", lambda verbose, config_path=None: state)
    result = runner.invoke(app, ["fetch", "greeting", "--format", "json"])
    assert result.exit_code == 0, result.output
    assert result.stdout.strip() == '{"hello":"world"}'
    assert fetcher.urls == ["greeting"]
    assert fetcher.closed


def test_cli_fetch_writes_output_file(monkeypatch, tmp_path: Path) -> None:
    state = make_state(tmp_path, StubFetcher(payload=[1, 2]))
    monkeypatch.setattr("jsonkeeper.app.build_state", lambda verbose, config_path=None: state)
    target = tmp_path / "out.json"
    result = runner.invoke(app, ["fetch", "numbers", "-o", str(target)])
    assert result.exit_code == 0, result.output
    assert "Data saved to:" in result.stdout
    assert json.loads(target.read_text(encoding="utf-8")) == [1, 2]


def test_cli_fetch_failure_exits_nonzero(monkeypatch, tmp_path: Path) -> None:
    state = make_state(tmp_path, StubFetcher(error=OperationFailed(503, "busy")))
    monkeypatch.setattr("jsonkeeper.app.build_state", lambda verbose, config_path=None: state)
    result = runner.invoke(app, ["fetch", "busy"])
    assert result.exit_code == 1
    assert "HTTP 503" in result.output


def test_cli_config_show_leaves_data_dir_alone(isolated_env: Path) -> None:
    result = runner.invoke(app, ["config", "show"])
    assert result.exit_code == 0, result.output
    assert not (isolated_env / "data").exists()


def test_state_builds_store_on_first_use(tmp_path: Path) -> None:
    state = AppState(
        config=AppConfig(storage=StorageConfig(data_dir=tmp_path / "data")),
        repository=ConfigRepository(SimpleNamespace()),
        logger=structlog.get_logger("jsonkeeper.test"),
    )
    state.close()
    assert state._fetcher is None
    assert not (tmp_path / "data").exists()
    assert state.store is state.store
    assert (tmp_path / "data").is_dir()
