"""Process and task handles over ``/proc/[pid]`` and ``/proc/[pid]/task/[tid]``.

A handle holds nothing but its directory and a shared SystemInfo. Every
accessor reads the kernel files again, so two calls may disagree and any
call may fail with ProcNotFoundError once the process has exited.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from procstat.errors import MetricArithmeticError, ProcNotFoundError
from procstat.records import StatmRecord, StatRecord
from procstat.rows import DelimitedFields, LineSource, translate_os_error
from procstat.system import LinuxSystemInfo, SystemInfo

logger = logging.getLogger(__name__)

DEFAULT_PROC_ROOT = Path("/proc")


@dataclass(slots=True, frozen=True)
class ProcFileListing:
    """Result of walking a process directory."""

    files: tuple[str, ...]
    skipped: tuple[str, ...]  # subdirectories that could not be listed


def _positive_id(value: int | str, kind: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{kind} must be a positive integer, got {value!r}") from None
    if number <= 0:
        raise ValueError(f"{kind} must be a positive integer, got {value!r}")
    return number


def _relative(path: str, root: str) -> str:
    return Path(os.path.relpath(path, root)).as_posix()


class ProcEntry:
    """Read surface shared by processes and tasks."""

    def __init__(self, entry_id: int, directory: Path, system_info: SystemInfo) -> None:
        self._id = entry_id
        self._directory = directory
        self._system_info = system_info

    @property
    def id(self) -> int:
        return self._id

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def system_info(self) -> SystemInfo:
        return self._system_info

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._id}, directory={str(self._directory)!r})"

    def stat(self) -> StatRecord:
        """Read and parse the ``stat`` file."""
        return StatRecord.from_rows(LineSource(self._directory, "stat").read_lines())

    def statm(self) -> StatmRecord:
        """Read and parse the ``statm`` file."""
        return StatmRecord.from_rows(DelimitedFields(LineSource(self._directory, "statm")).read_rows())

    def is_alive(self) -> bool:
        """
        Check whether the directory exists right now.

        Only the kernel creates and removes these directories, so existence
        means the process (or task) has not been reaped yet. The answer may
        be stale by the time the caller acts on it.
        """
        return self._directory.is_dir()

    def rss_bytes(self) -> int:
        """Resident set size in bytes."""
        return self.statm().resident * self._system_info.page_size()

    def cpu_time(self, stat: StatRecord | None = None) -> float:
        """
        User plus system CPU time consumed, in seconds.

        Args:
            stat: Record to measure. Read fresh when omitted.
        """
        ticks = self._ticks_per_second()
        if stat is None:
            stat = self.stat()
        return stat.utime / ticks + stat.stime / ticks

    def cpu_usage(self, uptime_seconds: float | None = None, stat: StatRecord | None = None) -> float:
        """
        Average CPU utilization over the lifetime of the process.

        Computed as CPU seconds divided by the seconds elapsed since the
        process started. 1.0 means one CPU fully busy; multi-threaded
        processes can exceed 1.0.

        Args:
            uptime_seconds: System uptime to measure against. Read fresh
                from the SystemInfo when omitted.
            stat: Record to measure. Read fresh when omitted.

        Raises:
            MetricArithmeticError: The clock tick rate is not positive, or
                the process started at or after the uptime reading, so the
                elapsed time is not positive.
        """
        ticks = self._ticks_per_second()
        if uptime_seconds is None:
            uptime_seconds = self._system_info.uptime().uptime_seconds
        if stat is None:
            stat = self.stat()
        elapsed = uptime_seconds - stat.starttime / ticks
        if elapsed <= 0:
            raise MetricArithmeticError(
                f"{self!r} started {-elapsed:.2f}s after the uptime reading of {uptime_seconds}s"
            )
        return self.cpu_time(stat) / elapsed

    def _ticks_per_second(self) -> int:
        ticks = self._system_info.ticks_per_second()
        if ticks <= 0:
            raise MetricArithmeticError(f"Clock tick rate must be positive, got {ticks}")
        return ticks

    def available_proc_files(self) -> ProcFileListing:
        """
        List every file below the directory, depth first.

        Paths are relative to the directory. Symlinked directories are
        reported as files and not followed. Subdirectories that cannot be
        listed are returned in ``skipped`` and the walk carries on with
        their siblings.

        Raises:
            ProcNotFoundError: The directory itself does not exist.
        """
        root = str(self._directory)
        if not os.path.isdir(root):
            raise ProcNotFoundError(self._directory)

        files: list[str] = []
        skipped: list[str] = []
        stack = [root]
        while stack:
            current = stack.pop()
            try:
                with os.scandir(current) as it:
                    entries = sorted(it, key=lambda entry: entry.name)
            except OSError as exc:
                logger.debug("Skipping %s: %s", current, exc)
                skipped.append(_relative(current, root))
                continue

            subdirectories = []
            for entry in entries:
                try:
                    is_dir = entry.is_dir(follow_symlinks=False)
                except OSError:
                    is_dir = False
                if is_dir:
                    subdirectories.append(entry.path)
                else:
                    files.append(_relative(entry.path, root))
            # Reversed so the first subdirectory is popped first
            stack.extend(reversed(subdirectories))

        return ProcFileListing(files=tuple(files), skipped=tuple(skipped))


class ProcessHandle(ProcEntry):
    """A process identified by its pid (thread group id)."""

    def __init__(
        self,
        pid: int | str,
        proc_root: Path | str = DEFAULT_PROC_ROOT,
        system_info: SystemInfo | None = None,
    ) -> None:
        """
        Initialize the ProcessHandle.

        Args:
            pid: Process id, as an int or a numeric string.
            proc_root: Mount point of the proc filesystem. Default /proc.
            system_info: Source of system constants, shared with the tasks.
                Defaults to a LinuxSystemInfo for ``proc_root``.
        """
        pid = _positive_id(pid, "pid")
        proc_root = Path(proc_root)
        if system_info is None:
            system_info = LinuxSystemInfo(proc_root)
        super().__init__(pid, proc_root / str(pid), system_info)
        self._proc_root = proc_root

    @classmethod
    def current(
        cls, proc_root: Path | str = DEFAULT_PROC_ROOT, system_info: SystemInfo | None = None
    ) -> "ProcessHandle":
        """Handle for the calling process."""
        return cls(os.getpid(), proc_root, system_info)

    @property
    def pid(self) -> int:
        return self._id

    @property
    def proc_root(self) -> Path:
        return self._proc_root

    def tasks(self) -> list["TaskHandle"]:
        """
        One handle per thread, in ascending tid order.

        Raises:
            ProcNotFoundError: The process exited before the listing.
            ProcPermissionError: The task directory cannot be listed.
        """
        task_directory = self._directory / "task"
        try:
            names = os.listdir(task_directory)
        except OSError as exc:
            raise translate_os_error(task_directory, exc) from exc
        tids = sorted(int(name) for name in names if name.isascii() and name.isdigit())
        return [TaskHandle(tid, self) for tid in tids]


class TaskHandle(ProcEntry):
    """A single thread of a process, read from ``task/[tid]``."""

    def __init__(self, tid: int | str, process: ProcessHandle) -> None:
        tid = _positive_id(tid, "tid")
        super().__init__(tid, process.directory / "task" / str(tid), process.system_info)
        self._process = process

    @property
    def tid(self) -> int:
        return self._id

    @property
    def process(self) -> ProcessHandle:
        return self._process
