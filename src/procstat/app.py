"""procstat - Textual inspector for a single process."""

import argparse
import logging
from enum import Enum
from pathlib import Path

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import DataTable, Footer, Static

from procstat.collector import ProcessSnapshot, TaskSnapshot, collect_process
from procstat.config import load_settings
from procstat.errors import ProcError, ProcNotFoundError
from procstat.logging_config import setup_logging
from procstat.process import ProcessHandle
from procstat.system import SystemInfo

logger = logging.getLogger(__name__)


class SortKey(Enum):
    """Sort keys for the task table."""

    CPU = "cpu"
    MEM = "mem"
    TID = "tid"


def format_bytes(size: int) -> str:
    """Format bytes as human-readable string."""
    for unit in ["B", "K", "M", "G", "T"]:
        if size < 1024:
            return f"{size:5.1f}{unit}" if unit != "B" else f"{size:5d}{unit}"
        size = size / 1024
    return f"{size:.1f}P"


def format_usage(usage: float | None) -> str:
    """Format a CPU utilization fraction as a percentage."""
    if usage is None:
        return "  n/a"
    return f"{usage * 100:5.1f}"


def display_name(name: str) -> str:
    """Replace undecodable bytes kept from /proc with U+FFFD for display."""
    return name.encode("utf-8", "surrogateescape").decode("utf-8", "replace")


def format_duration(seconds: float) -> str:
    """Format seconds as [D days, ]HH:MM:SS."""
    days = int(seconds // 86400)
    hours = int((seconds % 86400) // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    if days > 0:
        return f"{days} days, {hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


class ProcessHeader(Static):
    """Header widget showing the metrics of the inspected process."""

    DEFAULT_CSS = """
    ProcessHeader {
        height: auto;
        min-height: 4;
        padding: 1;
        background: $surface;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize ProcessHeader."""
        super().__init__("Loading process info...", *args, **kwargs)
        self._last_snapshot: ProcessSnapshot | None = None
        self._error_message: str | None = None

    @property
    def shown_snapshot(self) -> ProcessSnapshot | None:
        return self._last_snapshot

    @property
    def error_message(self) -> str | None:
        return self._error_message

    def show_snapshot(self, snapshot: ProcessSnapshot) -> None:
        """Display the metrics from a process snapshot."""
        self._last_snapshot = snapshot
        self._error_message = None
        self.update(self._render_snapshot(snapshot))

    def show_error(self, message: str) -> None:
        """Replace the metrics with an error message."""
        self._last_snapshot = None
        self._error_message = message
        # Error text may quote a raw stat line, so it is never parsed as markup
        self.update(Text(display_name(message), style="red"))

    @staticmethod
    def _render_snapshot(snapshot: ProcessSnapshot) -> Text:
        usage = snapshot.cpu_usage
        bar_len = min(int((usage or 0.0) * 20), 20)
        text = Text(f"PID {snapshot.pid} (")
        text.append(display_name(snapshot.name))
        text.append(
            f")  state {snapshot.state}  ppid {snapshot.ppid}  threads {snapshot.num_threads}\nCPU ["
        )
        text.append("█" * bar_len, style="green")
        text.append("░" * (20 - bar_len), style="dim")
        text.append(
            f"] {format_usage(usage)}%  time {snapshot.cpu_time:.2f}s  ({snapshot.cpu_count} CPUs)\n"
            f"RES {format_bytes(snapshot.rss_bytes).strip()}  "
            f"System uptime: {format_duration(snapshot.uptime_seconds)}"
        )
        return text


class TaskTable(Container):
    """Container for the task data table."""

    DEFAULT_CSS = """
    TaskTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize TaskTable."""
        super().__init__(*args, **kwargs)
        self._current_tids: set[int] = set()
        self._sort_key: SortKey = SortKey.CPU
        self._sort_reverse: bool = True  # Default: descending for CPU

    @property
    def sort_key(self) -> SortKey:
        """Get current sort key."""
        return self._sort_key

    @property
    def current_tids(self) -> set[int]:
        return set(self._current_tids)

    def cycle_sort(self) -> SortKey:
        """Cycle to the next sort key and return it."""
        keys = list(SortKey)
        current_index = keys.index(self._sort_key)
        next_index = (current_index + 1) % len(keys)
        self._sort_key = keys[next_index]
        self._sort_reverse = self._sort_key in (SortKey.CPU, SortKey.MEM)
        return self._sort_key

    def compose(self) -> ComposeResult:
        """Compose the task table."""
        yield DataTable(id="task-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#task-table", DataTable)
        table.cursor_type = "row"

        table.add_column("TID", key="tid", width=8)
        table.add_column("S", key="state", width=3)
        table.add_column("CPU%", key="cpu", width=8)
        table.add_column("TIME", key="time", width=10)
        table.add_column("RES", key="rss", width=8)
        table.add_column("Command", key="command")

    def update_tasks(self, tasks: list[TaskSnapshot]) -> None:
        """Replace the table rows with the given tasks, in sort order."""
        table = self.query_one("#task-table", DataTable)
        table.clear()
        for task in self._sort_tasks(tasks):
            table.add_row(
                str(task.tid),
                task.state,
                format_usage(task.cpu_usage),
                f"{task.cpu_time:8.2f}",
                format_bytes(task.rss_bytes),
                Text(display_name(task.name)[:50]),
                key=str(task.tid),
            )
        self._current_tids = {task.tid for task in tasks}

    def _sort_tasks(self, tasks: list[TaskSnapshot]) -> list[TaskSnapshot]:
        """Sort tasks based on the current sort key."""
        key_func = {
            SortKey.CPU: lambda t: t.cpu_usage or 0.0,
            SortKey.MEM: lambda t: t.rss_bytes,
            SortKey.TID: lambda t: t.tid,
        }
        return sorted(tasks, key=key_func[self._sort_key], reverse=self._sort_reverse)


class ProcstatApp(App):
    """Inspector for one process. Reads /proc once on start and on refresh."""

    TITLE = "procstat"
    SUB_TITLE = "Process Inspector"

    CSS = """
    Screen {
        layout: vertical;
    }

    #process-header {
        dock: top;
        height: auto;
        min-height: 5;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "reload", "Refresh"),
        ("f6", "sort", "Sort"),
    ]

    def __init__(
        self,
        pid: int,
        proc_root: Path | str = "/proc",
        system_info: SystemInfo | None = None,
    ) -> None:
        """
        Initialize the ProcstatApp.

        Args:
            pid: Process to inspect.
            proc_root: Mount point of the proc filesystem.
            system_info: Source of system constants. Defaults to the live system.
        """
        super().__init__()
        self._handle = ProcessHandle(pid, proc_root, system_info)
        self._last_snapshot: ProcessSnapshot | None = None

    @property
    def process_handle(self) -> ProcessHandle:
        return self._handle

    @property
    def current_snapshot(self) -> ProcessSnapshot | None:
        return self._last_snapshot

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield ProcessHeader(id="process-header")
        yield TaskTable()
        yield Footer()

    def on_mount(self) -> None:
        """Take the first snapshot once the widgets are laid out."""
        self.call_after_refresh(self.action_reload)

    def action_reload(self) -> None:
        """Read the process again and redraw."""
        header = self.query_one("#process-header", ProcessHeader)
        try:
            self._last_snapshot = collect_process(self._handle)
        except ProcNotFoundError:
            self._last_snapshot = None
            header.show_error(f"Process {self._handle.pid} has exited")
            self.query_one(TaskTable).update_tasks([])
            return
        except ProcError as exc:
            logger.warning("Cannot read process %d: %s", self._handle.pid, exc)
            self._last_snapshot = None
            header.show_error(str(exc))
            self.query_one(TaskTable).update_tasks([])
            return

        header.show_snapshot(self._last_snapshot)
        self.query_one(TaskTable).update_tasks(self._last_snapshot.tasks)

    def action_sort(self) -> None:
        """Handle sort action - cycle through sort keys."""
        task_table = self.query_one(TaskTable)
        new_sort_key = task_table.cycle_sort()
        if self._last_snapshot is not None:
            task_table.update_tasks(self._last_snapshot.tasks)
        self.notify(f"Sort: {new_sort_key.value.upper()}")


def build_parser() -> argparse.ArgumentParser:
    settings = load_settings()
    parser = argparse.ArgumentParser(prog="procstat", description="Inspect a process from /proc.")
    parser.add_argument("pid", type=int, help="process id to inspect")
    parser.add_argument(
        "--proc-root",
        type=Path,
        default=settings.proc_root,
        help="mount point of the proc filesystem (env PROCSTAT_PROC_ROOT)",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        help="DEBUG, INFO, WARNING or ERROR (env PROCSTAT_LOG_LEVEL)",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Entry point for procstat application."""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    if args.pid <= 0:
        raise SystemExit(f"procstat: invalid pid {args.pid}")
    app = ProcstatApp(args.pid, args.proc_root)
    app.run()


if __name__ == "__main__":
    main()
