"""Typer CLI entrypoint for thread-watcher."""

from __future__ import annotations

import signal
from dataclasses import dataclass, field
from typing import Callable, Optional

import typer
import yaml
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigRepository, WatcherConfig
from .coordinator import CycleResult, RunCoordinator
from .engine import FingerprintRecord, ThreadFetcher
from .engine.exporter import BaseExporter, ConsoleExporter, FileExporter
from .errors import ThreadWatcherError
from .infra import FingerprintStore
from .logging_conf import ERROR_LOG_NAME, WATCHER_LOG_NAME, configure_logging, tail_log
from .scheduler import WatchScheduler

app = typer.Typer(
    help="Watch a paginated forum thread and report new posts.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
record_app = typer.Typer(
    name="record",
    help="Inspect or reset the stored fingerprint record.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
config_app = typer.Typer(
    name="config",
    help="Show the effective configuration.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
log_app = typer.Typer(
    name="log",
    help="View log files.",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    config: WatcherConfig
    store: FingerprintStore
    coordinator_factory: Callable[[], RunCoordinator]
    scheduler: WatchScheduler
    _coordinator: RunCoordinator | None = field(default=None, init=False, repr=False)

    @property
    def coordinator(self) -> RunCoordinator:
        """Build the fetcher and report sinks on first use; only scans need them."""

        if self._coordinator is None:
            self._coordinator = self.coordinator_factory()
        return self._coordinator


def build_state(verbose: bool) -> AppState:
    repository = ConfigRepository()
    config = repository.load_config()
    configure_logging(verbose=verbose, log_dir=repository.locator.logs_dir)
    store = FingerprintStore(repository.record_path())

    def build_coordinator() -> RunCoordinator:
        exporters: list[BaseExporter] = []
        if config.report.console:
            exporters.append(ConsoleExporter(console))
        report_path = repository.report_path()
        if report_path is not None:
            exporters.append(FileExporter(report_path))
        return RunCoordinator(
            config=config,
            store=store,
            fetcher=ThreadFetcher(config.crawl),
            exporters=exporters,
        )

    return AppState(
        repository=repository,
        config=config,
        store=store,
        coordinator_factory=build_coordinator,
        scheduler=WatchScheduler(config.schedule.interval_seconds),
    )


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _fail(exc: Exception) -> None:
    console.print(f"{exc}", style="red", markup=False, soft_wrap=True)
    raise typer.Exit(code=1)


def _stop_on_sigterm(scheduler: WatchScheduler):
    """Let SIGTERM end the watch after the in-flight cycle; return the prior handler."""

    def handler(signum, frame) -> None:  # noqa: ARG001
        console.print("Received SIGTERM, stopping after the current cycle…", style="yellow")
        scheduler.stop()

    return signal.signal(signal.SIGTERM, handler)


def _render_cycle(result: CycleResult) -> Table:
    table = Table(title=f"Cycle from page {result.start_page}", box=box.SIMPLE_HEAD)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_row("Pages fetched", str(result.pages_fetched))
    table.add_row("New posts", str(len(result.new_items)))
    table.add_row("Record changed", "yes" if result.changed else "no")
    table.add_row("Record saved", "yes" if result.persisted else "no")
    if result.partial:
        if result.highest_page is None:
            table.add_row("Fetch errors", "yes, nothing collected")
        else:
            table.add_row("Fetch errors", f"yes, stopped at page {result.highest_page}")
    return table


def _render_record(record: FingerprintRecord) -> Table:
    table = Table(title="Stored fingerprint record", box=box.SIMPLE_HEAD)
    table.add_column("Page", style="cyan", justify="right")
    table.add_column("Posts", style="green", justify="right")
    table.add_column("Latest fingerprint", style="magenta", overflow="fold")
    for number, entries in record:
        latest = entries[-1].fingerprint[:16] if entries else "-"
        table.add_row(str(number), str(len(entries)), latest)
    return table


app.add_typer(record_app, name="record")
app.add_typer(config_app, name="config")
app.add_typer(log_app, name="log")


@app.callback()
def main(
    ctx: typer.Context, verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging.")
) -> None:
    ctx.obj = build_state(verbose)


@app.command("run", help="Scan the thread every interval until stopped.")
def run(
    ctx: typer.Context,
    start_page: Optional[str] = typer.Argument(
        None, help="Page to start from; required when no record is stored yet."
    ),
    once: bool = typer.Option(False, "--once", help="Run a single cycle and exit."),
) -> None:
    state = _get_state(ctx)
    coordinator = state.coordinator
    try:
        record = coordinator.bootstrap(start_page)
        if once:
            result = coordinator.run_cycle(record, start_page)
            console.print(_render_cycle(result))
            return

        pending_start = start_page

        def cycle(previous: FingerprintRecord | None) -> FingerprintRecord | None:
            nonlocal pending_start
            page, pending_start = pending_start, None
            result = coordinator.run_cycle(previous, page)
            console.print(
                f"Executed. Waiting for {state.config.schedule.interval_seconds:g} seconds",
                style="dim",
            )
            return result.record

        scheduler = state.scheduler
        previous_handler = _stop_on_sigterm(scheduler)
        try:
            scheduler.start(cycle, record)
            while not scheduler.wait(timeout=0.5):
                pass
        except KeyboardInterrupt:
            console.print("Stopping after the current cycle…", style="yellow")
            scheduler.stop()
            scheduler.wait()
        finally:
            scheduler.shutdown()
            if previous_handler is not None:
                signal.signal(signal.SIGTERM, previous_handler)
        scheduler.raise_for_error()
    except ThreadWatcherError as exc:
        _fail(exc)
    finally:
        coordinator.close()


@app.command("check", help="Run one scan cycle and print a summary.")
def check(
    ctx: typer.Context,
    start_page: Optional[str] = typer.Argument(None, help="Page to start from."),
) -> None:
    state = _get_state(ctx)
    try:
        record = state.coordinator.bootstrap(start_page)
        result = state.coordinator.run_cycle(record, start_page)
    except ThreadWatcherError as exc:
        _fail(exc)
    finally:
        state.coordinator.close()
    console.print(_render_cycle(result))


@record_app.command("show", help="List the pages held in the stored record.")
def record_show(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    try:
        record = state.store.load_or_empty()
    except ThreadWatcherError as exc:
        _fail(exc)
    if record is None:
        console.print(f"No record stored at {state.store.path}.", style="yellow")
        raise typer.Exit(code=0)
    console.print(_render_record(record))


@record_app.command("reset", help="Delete the stored record; the next run needs a start page.")
def record_reset(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
) -> None:
    state = _get_state(ctx)
    if not yes:
        confirmed = typer.confirm(f"Delete {state.store.path}?", default=False)
        if not confirmed:
            console.print("Cancelled.", style="yellow")
            raise typer.Exit(code=0)
    if state.store.reset():
        console.print(f"Removed {state.store.path}.", style="green")
    else:
        console.print("No record to remove.", style="dim")


@config_app.command("show", help="Print the effective configuration as YAML.")
def config_show(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    payload = state.config.model_dump(mode="json")
    text = yaml.safe_dump(payload, allow_unicode=True, sort_keys=False)
    console.print(text.rstrip("\n"), markup=False, soft_wrap=True)


@config_app.command("path", help="Print the configuration and record file locations.")
def config_path(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    console.print(f"config: {state.repository.locator.config_path()}", markup=False, soft_wrap=True)
    console.print(f"record: {state.store.path}", markup=False, soft_wrap=True)


@log_app.command("show", help="Print the tail of the watcher log.")
def log_show(
    ctx: typer.Context,
    lines: int = typer.Option(50, "--lines", "-n", help="Number of lines to show."),
    errors: bool = typer.Option(False, "--errors", help="Show the error log instead."),
) -> None:
    state = _get_state(ctx)
    name = ERROR_LOG_NAME if errors else WATCHER_LOG_NAME
    path = state.repository.locator.logs_dir / name
    content = tail_log(path, lines)
    if not content:
        console.print(f"{path} is empty.", style="dim")
        return
    for line in content:
        console.print(line.rstrip("\n"), markup=False, highlight=False, soft_wrap=True)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
