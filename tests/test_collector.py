"""Tests for one-shot process snapshots."""

import shutil

import pytest

from procstat.collector import ProcessSnapshot, TaskSnapshot, collect_process, collect_task
from procstat.errors import ProcNotFoundError, ProcParseError
from procstat.process import ProcessHandle, TaskHandle
from procstat.rows import LineSource
from procstat.system import FixedSystemInfo


class CountingSystemInfo:
    """SystemInfo that counts uptime reads."""

    def __init__(self, inner: FixedSystemInfo) -> None:
        self.inner = inner
        self.reads = 0

    def page_size(self) -> int:
        return self.inner.page_size()

    def cpu_count(self) -> int:
        return self.inner.cpu_count()

    def ticks_per_second(self) -> int:
        return self.inner.ticks_per_second()

    def uptime(self):
        self.reads += 1
        return self.inner.uptime()


class TestTaskSnapshot:
    """Tests for the TaskSnapshot dataclass."""

    def test_is_frozen(self):
        """Test that TaskSnapshot is immutable (frozen)."""
        snapshot = TaskSnapshot(tid=1, name="init", state="S", cpu_time=1.0, cpu_usage=0.1, rss_bytes=4096)
        with pytest.raises(AttributeError):
            snapshot.tid = 2

    def test_uses_slots(self):
        """Test that TaskSnapshot uses __slots__ for memory efficiency."""
        snapshot = TaskSnapshot(tid=1, name="init", state="S", cpu_time=1.0, cpu_usage=None, rss_bytes=0)
        assert not hasattr(snapshot, "__dict__")


class TestCollectProcess:
    """Tests for collect_process."""

    def test_snapshot(self, fake_proc, system_info):
        """Test a process and its tasks are collected."""
        fake_proc.add_process(300, comm="(worker pool)", utime=200, stime=100, resident=512, tids=(300, 301))
        snapshot = collect_process(ProcessHandle(300, fake_proc.root, system_info))

        assert isinstance(snapshot, ProcessSnapshot)
        assert snapshot.pid == 300
        assert snapshot.name == "worker pool"
        assert snapshot.state == "S"
        assert snapshot.ppid == 1
        assert snapshot.num_threads == 2
        assert snapshot.cpu_time == pytest.approx(3.0)
        assert snapshot.cpu_usage == pytest.approx(0.015)
        assert snapshot.rss_bytes == 512 * 4096
        assert snapshot.uptime_seconds == 200.0
        assert snapshot.cpu_count == 4
        assert [task.tid for task in snapshot.tasks] == [300, 301]
        assert snapshot.tasks[1].cpu_time == pytest.approx(1.5)

    def test_single_uptime_read(self, fake_proc):
        """Test every metric in a snapshot shares one uptime reading."""
        fake_proc.add_process(300, tids=(300, 301, 302))
        info = CountingSystemInfo(FixedSystemInfo(uptime_seconds=200.0))

        collect_process(ProcessHandle(300, fake_proc.root, info))

        assert info.reads == 1

    def test_unmeasurable_usage(self, fake_proc, system_info):
        """Test a start time after the uptime reading gives cpu_usage None."""
        fake_proc.add_process(300, starttime=50_000)
        snapshot = collect_process(ProcessHandle(300, fake_proc.root, system_info))

        assert snapshot.cpu_usage is None
        assert snapshot.tasks[0].cpu_usage is None

    def test_vanished_task_skipped(self, fake_proc, system_info, monkeypatch):
        """Test a task that exits mid-collection is left out."""
        directory = fake_proc.add_process(300, tids=(300, 301))
        process = ProcessHandle(300, fake_proc.root, system_info)
        tasks = process.tasks()
        shutil.rmtree(directory / "task" / "301")
        monkeypatch.setattr(ProcessHandle, "tasks", lambda self: tasks)

        snapshot = collect_process(process)

        assert [task.tid for task in snapshot.tasks] == [300]

    def test_exited_process(self, fake_proc, system_info):
        """Test a vanished process raises ProcNotFoundError."""
        with pytest.raises(ProcNotFoundError):
            collect_process(ProcessHandle(300, fake_proc.root, system_info))

    def test_malformed_task_propagates(self, fake_proc, system_info):
        """Test parse errors in a task are not swallowed."""
        directory = fake_proc.add_process(300, tids=(300, 301))
        (directory / "task" / "301" / "statm").write_text("garbage\n")

        with pytest.raises(ProcParseError):
            collect_process(ProcessHandle(300, fake_proc.root, system_info))


def test_collect_task(fake_proc, system_info):
    """Test a single task snapshot against an explicit uptime."""
    fake_proc.add_process(300, tids=(300,))
    fake_proc.add_task(300, 310, comm="(io)", utime=50, stime=50, resident=3)
    task = TaskHandle(310, ProcessHandle(300, fake_proc.root, system_info))

    snapshot = collect_task(task, uptime_seconds=10.0)

    assert snapshot == TaskSnapshot(tid=310, name="io", state="S", cpu_time=1.0, cpu_usage=0.1, rss_bytes=12288)


def test_collect_reads_each_stat_once(fake_proc, system_info, monkeypatch):
    """Test a snapshot derives every stat metric from a single read."""
    fake_proc.add_process(300, tids=(300, 301))
    reads = []
    read_lines = LineSource.read_lines

    def counting_read_lines(self):
        reads.append(str(self.path.relative_to(fake_proc.root)))
        return read_lines(self)

    monkeypatch.setattr(LineSource, "read_lines", counting_read_lines)

    collect_process(ProcessHandle(300, fake_proc.root, system_info))

    stat_reads = [path for path in reads if path.endswith("stat")]
    assert sorted(stat_reads) == ["300/stat", "300/task/300/stat", "300/task/301/stat"]
