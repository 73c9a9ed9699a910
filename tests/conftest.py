"""Shared fixtures: a fake /proc tree written under tmp_path."""

from pathlib import Path

import pytest

from procstat.system import FixedSystemInfo


def stat_line(
    pid: int,
    comm: str = "(bash)",
    state: str = "S",
    utime: int = 0,
    stime: int = 0,
    starttime: int = 0,
    num_threads: int = 1,
    ppid: int = 1,
) -> str:
    """Build a /proc/[pid]/stat line with the kernel's 52 fields."""
    rest = [
        state, ppid, pid, pid, 34816, -1, 4194304, 1200, 0, 3, 0,
        utime, stime, 0, 0, 20, 0, num_threads, 0, starttime,
        12_345_678, 256,
    ]
    rest += [0] * (50 - len(rest))
    return f"{pid} {comm} " + " ".join(str(value) for value in rest)


def statm_line(resident: int = 256) -> str:
    return f"2000 {resident} 100 50 0 300 0"


class FakeProc:
    """Writes process directories and /proc/uptime into a temporary root."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.write_uptime(200.0, 100.0)

    def write_uptime(self, uptime: float, idle: float) -> None:
        (self.root / "uptime").write_text(f"{uptime:.2f} {idle:.2f}\n")

    def add_process(
        self,
        pid: int,
        comm: str = "(bash)",
        utime: int = 100,
        stime: int = 50,
        starttime: int = 0,
        resident: int = 256,
        tids: tuple[int, ...] | None = None,
    ) -> Path:
        """Create ``<root>/<pid>`` with stat, statm and one task per tid."""
        if tids is None:
            tids = (pid,)
        directory = self.root / str(pid)
        directory.mkdir()
        (directory / "stat").write_text(
            stat_line(pid, comm, utime=utime, stime=stime, starttime=starttime, num_threads=len(tids)) + "\n"
        )
        (directory / "statm").write_text(statm_line(resident) + "\n")
        (directory / "task").mkdir()
        for tid in tids:
            self.add_task(pid, tid, comm=comm, utime=utime // len(tids), stime=stime // len(tids),
                          starttime=starttime, resident=resident)
        return directory

    def add_task(
        self,
        pid: int,
        tid: int,
        comm: str = "(bash)",
        utime: int = 0,
        stime: int = 0,
        starttime: int = 0,
        resident: int = 256,
    ) -> Path:
        directory = self.root / str(pid) / "task" / str(tid)
        directory.mkdir(parents=True)
        (directory / "stat").write_text(
            stat_line(tid, comm, utime=utime, stime=stime, starttime=starttime, ppid=pid) + "\n"
        )
        (directory / "statm").write_text(statm_line(resident) + "\n")
        return directory


@pytest.fixture
def fake_proc(tmp_path: Path) -> FakeProc:
    """An empty fake /proc with an uptime of 200 seconds."""
    return FakeProc(tmp_path)


@pytest.fixture
def system_info() -> FixedSystemInfo:
    """Constants matching the fake /proc: 4 KiB pages, 100 Hz, 200s uptime."""
    return FixedSystemInfo(page_size_bytes=4096, cpus=4, ticks=100, uptime_seconds=200.0, idle_seconds=100.0)
