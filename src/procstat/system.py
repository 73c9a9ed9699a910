"""System-wide constants needed to turn raw /proc counters into units."""

import logging
import os
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

import psutil

from procstat.errors import MetricArithmeticError, ProcError
from procstat.records import UptimeRecord
from procstat.rows import LineSource

logger = logging.getLogger(__name__)


@runtime_checkable
class SystemInfo(Protocol):
    """Capability interface for page size, CPU count, tick rate and uptime."""

    def page_size(self) -> int: ...

    def cpu_count(self) -> int: ...

    def ticks_per_second(self) -> int: ...

    def uptime(self) -> UptimeRecord: ...


class LinuxSystemInfo:
    """
    SystemInfo backed by the running Linux kernel.

    Page size, CPU count and clock tick rate do not change while the kernel
    runs, so each is queried once on first use and cached. Uptime is read
    from ``<proc_root>/uptime`` on every call.
    """

    def __init__(self, proc_root: Path | str = "/proc") -> None:
        """
        Initialize the LinuxSystemInfo.

        Args:
            proc_root: Mount point of the proc filesystem. Default /proc.
        """
        self._proc_root = Path(proc_root)
        self._lock = threading.Lock()
        self._constants: dict[str, int] = {}

    @property
    def proc_root(self) -> Path:
        return self._proc_root

    def _constant(self, name: str, query: Callable[[], int | None]) -> int:
        """Return a cached constant, computing it once under the lock."""
        value = self._constants.get(name)
        if value is not None:
            return value
        with self._lock:
            value = self._constants.get(name)
            if value is None:
                try:
                    value = query()
                except (OSError, ValueError) as exc:
                    raise ProcError(f"Cannot determine {name}: {exc}") from exc
                if value is None or value <= 0:
                    if name == "ticks_per_second":
                        raise MetricArithmeticError(f"Unusable clock tick rate: {value}")
                    raise ProcError(f"Unusable {name}: {value}")
                logger.debug("System constant %s = %d", name, value)
                self._constants[name] = value
        return value

    def page_size(self) -> int:
        """Memory page size in bytes."""
        return self._constant("page_size", lambda: os.sysconf("SC_PAGE_SIZE"))

    def cpu_count(self) -> int:
        """Number of logical CPUs."""
        return self._constant("cpu_count", lambda: psutil.cpu_count(logical=True))

    def ticks_per_second(self) -> int:
        """Scheduler clock ticks per second (USER_HZ)."""
        return self._constant("ticks_per_second", lambda: os.sysconf("SC_CLK_TCK"))

    def uptime(self) -> UptimeRecord:
        """Fresh reading of ``/proc/uptime``."""
        return UptimeRecord.from_rows(LineSource(self._proc_root, "uptime").read_lines())


@dataclass(slots=True, frozen=True)
class FixedSystemInfo:
    """SystemInfo with fixed values, for tests and recorded /proc trees."""

    page_size_bytes: int = 4096
    cpus: int = 1
    ticks: int = 100
    uptime_seconds: float = 0.0
    idle_seconds: float = 0.0

    def __post_init__(self) -> None:
        if self.ticks <= 0:
            raise MetricArithmeticError(f"ticks per second must be positive, got {self.ticks}")
        if self.page_size_bytes <= 0 or self.cpus <= 0:
            raise ValueError("page size and CPU count must be positive")

    def page_size(self) -> int:
        return self.page_size_bytes

    def cpu_count(self) -> int:
        return self.cpus

    def ticks_per_second(self) -> int:
        return self.ticks

    def uptime(self) -> UptimeRecord:
        return UptimeRecord(uptime_seconds=self.uptime_seconds, idle_seconds=self.idle_seconds)
