"""One-shot snapshots of a process and its tasks."""

import logging
from dataclasses import dataclass

from procstat.errors import MetricArithmeticError, ProcNotFoundError
from procstat.process import ProcEntry, ProcessHandle, TaskHandle
from procstat.records import StatRecord

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class TaskSnapshot:
    """Immutable snapshot of a task (thread) state."""

    tid: int
    name: str
    state: str  # 'R', 'S', 'Z', 'D', etc.
    cpu_time: float  # Seconds
    cpu_usage: float | None  # Lifetime average, None if not measurable
    rss_bytes: int


@dataclass(slots=True, frozen=True)
class ProcessSnapshot:
    """Immutable snapshot of a process and the tasks seen with it."""

    pid: int
    name: str
    state: str
    ppid: int
    num_threads: int
    cpu_time: float
    cpu_usage: float | None
    rss_bytes: int
    uptime_seconds: float
    cpu_count: int
    tasks: list[TaskSnapshot]


def _metrics(
    entry: ProcEntry, stat: StatRecord, uptime_seconds: float
) -> tuple[float, float | None, int]:
    cpu_time = entry.cpu_time(stat)
    try:
        cpu_usage: float | None = entry.cpu_usage(uptime_seconds, stat)
    except MetricArithmeticError as exc:
        logger.debug("No CPU usage for %r: %s", entry, exc)
        cpu_usage = None
    return cpu_time, cpu_usage, entry.rss_bytes()


def collect_task(task: TaskHandle, uptime_seconds: float) -> TaskSnapshot:
    """Collect a snapshot of one task against the given uptime."""
    stat = task.stat()
    cpu_time, cpu_usage, rss_bytes = _metrics(task, stat, uptime_seconds)
    return TaskSnapshot(
        tid=task.tid,
        name=stat.name,
        state=stat.state,
        cpu_time=cpu_time,
        cpu_usage=cpu_usage,
        rss_bytes=rss_bytes,
    )


def collect_process(process: ProcessHandle) -> ProcessSnapshot:
    """
    Collect a snapshot of a process and all of its tasks.

    A single uptime reading is shared by every metric in the snapshot, and
    each process or task has its stat file read once.
    Tasks that exit while being collected are left out.

    Raises:
        ProcNotFoundError: The process itself has exited.
    """
    uptime_seconds = process.system_info.uptime().uptime_seconds
    stat = process.stat()
    cpu_time, cpu_usage, rss_bytes = _metrics(process, stat, uptime_seconds)

    tasks: list[TaskSnapshot] = []
    for task in process.tasks():
        try:
            tasks.append(collect_task(task, uptime_seconds))
        except ProcNotFoundError:
            # Thread exited between listing and reading
            continue

    return ProcessSnapshot(
        pid=process.pid,
        name=stat.name,
        state=stat.state,
        ppid=stat.ppid,
        num_threads=stat.num_threads,
        cpu_time=cpu_time,
        cpu_usage=cpu_usage,
        rss_bytes=rss_bytes,
        uptime_seconds=uptime_seconds,
        cpu_count=process.system_info.cpu_count(),
        tasks=tasks,
    )
