import threading
from typing import List, Optional
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskID, TextColumn, TimeElapsedColumn
from rich.table import Table
from shrinkmovies.domain.events import (
    DiscoveryFinished,
    JobCompleted,
    JobFailed,
    ProcessingFinished,
)
from shrinkmovies.domain.models import TranscodeResult
from shrinkmovies.infrastructure.event_bus import EventBus


def format_size(size: float) -> str:
    for unit in ["B", "KB", "MB", "GB"]:
        if abs(size) < 1024.0:
            return f"{size:.1f}{unit}"
        size /= 1024.0
    return f"{size:.1f}TB"


class ConsoleReporter:
    """Subscribes to EventBus and renders progress plus a final summary table."""

    def __init__(self, bus: EventBus, console: Optional[Console] = None):
        self.bus = bus
        self.console = console or Console()
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold]{task.description}"),
            BarColumn(),
            TextColumn("{task.completed}/{task.total}"),
            TimeElapsedColumn(),
            console=self.console,
            transient=True,
        )
        self._task_id: Optional[TaskID] = None
        self._lock = threading.Lock()
        self.results: List[TranscodeResult] = []
        self.failures: List[str] = []
        self._setup_subscriptions()

    def _setup_subscriptions(self):
        self.bus.subscribe(DiscoveryFinished, self.on_discovery_finished)
        self.bus.subscribe(JobCompleted, self.on_job_completed)
        self.bus.subscribe(JobFailed, self.on_job_failed)
        self.bus.subscribe(ProcessingFinished, self.on_processing_finished)

    def __enter__(self):
        self.progress.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.progress.stop()
        return False

    def on_discovery_finished(self, event: DiscoveryFinished):
        self._task_id = self.progress.add_task("Shrinking", total=event.files_found)

    def _advance(self):
        if self._task_id is not None:
            self.progress.advance(self._task_id)

    def on_job_completed(self, event: JobCompleted):
        with self._lock:
            self.results.append(event.result)
        self._advance()

    def on_job_failed(self, event: JobFailed):
        with self._lock:
            self.failures.append(f"{event.job.task.source_path}: {event.error_message}")
        self._advance()

    def on_processing_finished(self, event: ProcessingFinished):
        self.progress.stop()
        self.console.print(self.build_table())
        saved = sum(r.bytes_saved for r in self.results)
        self.console.print(
            f"Kept: {event.kept} | Discarded: {event.discarded} | "
            f"Failed: {event.failed} | Saved: {format_size(saved)}"
        )

    def build_table(self) -> Table:
        table = Table(title="shrink-movies")
        table.add_column("File")
        table.add_column("Input", justify="right")
        table.add_column("Output", justify="right")
        table.add_column("Ratio", justify="right")
        table.add_column("Result")

        with self._lock:
            rows = sorted(self.results, key=lambda r: str(r.source_path))
            failures = list(self.failures)

        for result in rows:
            table.add_row(
                str(result.source_path),
                format_size(result.input_size_bytes),
                format_size(result.output_size_bytes),
                f"{result.size_ratio:.2f}",
                "[green]replaced[/green]" if result.kept else "[yellow]kept original[/yellow]",
            )
        for failure in failures:
            table.add_row(failure, "-", "-", "-", "[red]failed[/red]")
        return table
