"""Typer CLI entrypoint for jsonkeeper."""

from __future__ import annotations

import json
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Optional

import structlog
import typer
from rich import box
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import AppConfig, ConfigRepository
from .engine import RetryingFetcher
from .errors import JsonKeeperError, from_json_error, from_os_error
from .formatting import OutputFormat, format_output
from .infra import RecordStore, StorageInfo
from .logging_conf import configure_logging

app = typer.Typer(
    help="Fetch JSON from remote APIs and keep JSON documents on local disk.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
config_app = typer.Typer(
    name="config",
    help="Configuration commands",
    no_args_is_help=True,
    rich_markup_mode=None,
)
app.add_typer(config_app, name="config")

console = Console(soft_wrap=True)
err_console = Console(stderr=True, soft_wrap=True)

_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S UTC"


@dataclass
class AppState:
    """Per-invocation state; the fetcher and the store are built on first use."""

    config: AppConfig
    repository: ConfigRepository
    logger: structlog.BoundLogger
    _fetcher: RetryingFetcher | None = field(default=None, repr=False)
    _store: RecordStore | None = field(default=None, repr=False)

    @property
    def fetcher(self) -> RetryingFetcher:
        if self._fetcher is None:
            server = self.config.server
            self._fetcher = RetryingFetcher(
                base_url=server.base_url,
                request_timeout=server.timeout_seconds,
                max_attempts=server.retry_attempts,
                logger=self.logger.bind(component="fetcher"),
            )
        return self._fetcher

    @property
    def store(self) -> RecordStore:
        if self._store is None:
            self._store = RecordStore(
                self.config.storage.data_dir,
                self.config.storage.max_file_size_mb,
                logger=self.logger.bind(component="storage"),
            )
        return self._store

    def close(self) -> None:
        if self._fetcher is not None:
            self._fetcher.close()


def build_state(verbose: bool, config_path: Optional[Path] = None) -> AppState:
    repository = ConfigRepository()
    config = repository.load(config_path)
    logger = configure_logging(config.logging, verbose=verbose)
    return AppState(config=config, repository=repository, logger=logger)


def _get_state(ctx: typer.Context) -> AppState:
    return ctx.find_root().obj


@contextmanager
def _reporting_errors(state: AppState | None, command: str) -> Iterator[None]:
    try:
        yield
    except JsonKeeperError as exc:
        if state is not None:
            state.logger.error("command_failed", command=command, kind=exc.kind.value, error=str(exc))
        err_console.print(f"Error: {exc}", style="red", markup=False)
        raise typer.Exit(code=1) from exc


def _emit(text: str) -> None:
    typer.echo(text.rstrip("\n"))


def _parse_json(text: str, source: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise from_json_error(exc, source) from exc


def _render_storage_info(info: StorageInfo) -> Table:
    table = Table(title="Storage Information", box=box.SIMPLE_HEAD, show_header=False)
    table.add_column("field", style="dim")
    table.add_column("value", style="cyan")
    table.add_row("Directory", str(info.directory))
    table.add_row("Files", str(info.file_count))
    table.add_row("Total size", f"{info.total_size_bytes} bytes")
    table.add_row("Max file size", f"{info.max_record_size_mb} MB")
    return table


def _render_records_table(state: AppState, keys: list[str]) -> Table:
    table = Table(title=f"Stored keys ({len(keys)})", box=box.SIMPLE_HEAD)
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Created", style="green")
    table.add_column("Updated", style="yellow")
    for key in keys:
        try:
            record = state.store.get(key)
        except JsonKeeperError as exc:
            state.logger.warning("record_unreadable", key=key, error=str(exc))
            table.add_row(key, "error reading metadata", "-")
            continue
        table.add_row(
            key,
            record.created_at.strftime(_TIMESTAMP_FORMAT),
            record.updated_at.strftime(_TIMESTAMP_FORMAT),
        )
    return table


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"jsonkeeper {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Read configuration from this YAML/JSON file only."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", callback=_version_callback, is_eager=True
    ),
) -> None:
    with _reporting_errors(None, "startup"):
        state = build_state(verbose, config_path)
    ctx.obj = state
    ctx.call_on_close(state.close)


@app.command("fetch", help="Fetch JSON from a remote API.")
def fetch(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="URL to fetch, absolute or relative to the base URL."),
    fmt: OutputFormat = typer.Option(OutputFormat.PRETTY, "--format", "-f", help="Output format."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Save the response to a file."),
) -> None:
    state = _get_state(ctx)
    with _reporting_errors(state, "fetch"):
        data = state.fetcher.fetch(url)
        rendered = format_output(data, fmt)
        if output is None:
            _emit(rendered)
            return
        try:
            output.write_text(rendered, encoding="utf-8")
        except OSError as exc:
            raise from_os_error(exc, output) from exc
        console.print(f"Data saved to: {output}", style="green", markup=False)


@app.command("store", help="Store a JSON value under a key.")
def store(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Key to store data under."),
    value: str = typer.Argument(..., help="JSON string, or a file path with --file."),
    from_file: bool = typer.Option(False, "--file", help="Treat VALUE as a path to a JSON file."),
) -> None:
    state = _get_state(ctx)
    with _reporting_errors(state, "store"):
        if from_file:
            path = Path(value)
            try:
                text = path.read_text(encoding="utf-8")
            except OSError as exc:
                raise from_os_error(exc, path) from exc
            data = _parse_json(text, str(path))
        else:
            data = _parse_json(value, "command line value")
        record = state.store.store(key, data)
    console.print(f"Stored item with ID: {record.id}", style="green", markup=False)


@app.command("get", help="Print a stored value.")
def get(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Key to retrieve."),
    fmt: OutputFormat = typer.Option(OutputFormat.PRETTY, "--format", "-f", help="Output format."),
) -> None:
    state = _get_state(ctx)
    with _reporting_errors(state, "get"):
        record = state.store.get(key)
    _emit(format_output(record.value, fmt))


@app.command("list", help="List stored keys.")
def list_keys(
    ctx: typer.Context,
    detailed: bool = typer.Option(False, "--detailed", "-d", help="Show timestamps and storage details."),
) -> None:
    state = _get_state(ctx)
    with _reporting_errors(state, "list"):
        keys = state.store.list()
        if detailed:
            console.print(_render_storage_info(state.store.storage_info()))
        if not keys:
            console.print("No stored items found.", style="yellow")
            return
        if detailed:
            console.print(_render_records_table(state, keys))
            return
    console.print(f"Stored keys ({len(keys)}):", style="cyan")
    for key in keys:
        console.print(f"  {key}", markup=False, highlight=False)


@app.command("delete", help="Delete a stored key.")
def delete(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Key to delete."),
) -> None:
    state = _get_state(ctx)
    with _reporting_errors(state, "delete"):
        state.store.delete(key)
    console.print(f"Deleted key: {key}", style="green", markup=False)


@app.command("metadata", help="Print the metadata mapping of a stored key.")
def metadata(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Key to inspect."),
    fmt: OutputFormat = typer.Option(OutputFormat.PRETTY, "--format", "-f", help="Output format."),
) -> None:
    state = _get_state(ctx)
    with _reporting_errors(state, "metadata"):
        data = state.store.get_metadata(key)
    _emit(format_output(data, fmt))


@config_app.command("init", help="Write the effective configuration to a file.")
def config_init(
    ctx: typer.Context,
    output: Path = typer.Option(Path("config.yaml"), "--output", "-o", help="Destination path."),
) -> None:
    state = _get_state(ctx)
    with _reporting_errors(state, "config init"):
        path = state.repository.save(state.config, output)
    console.print(f"Configuration saved to: {path}", style="green", markup=False)


@config_app.command("show", help="Print the effective configuration as YAML.")
def config_show(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    _emit(state.repository.dump(state.config))


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
