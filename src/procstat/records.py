"""Typed records decoded from /proc pseudo-file lines.

Every record is an immutable value object built from a single line of the
kernel's text output:

- **StatRecord**: ``/proc/[pid]/stat``, scheduler statistics.
- **StatmRecord**: ``/proc/[pid]/statm``, memory summary in pages.
- **UptimeRecord**: ``/proc/uptime``, system uptime and idle time.

Clock-tick and page-count fields are kept in their raw kernel units;
conversions to seconds and bytes belong to the process handles.
"""

import re
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, ClassVar

from procstat.errors import ProcParseError
from procstat.rows import split_fields


def _first_line(lines: list[str], name: str) -> str:
    if not lines:
        raise ProcParseError(f"{name} is empty")
    return lines[0]


_INT_PATTERN = re.compile(r"-?[0-9]+")


def _parse_int(value: str, name: str, line: str, *, signed: bool = False) -> int:
    # Plain ASCII decimal only, the way the kernel prints it
    if _INT_PATTERN.fullmatch(value) is None:
        raise ProcParseError(f"Field {name} is not an integer ({value!r})", line)
    if value.startswith("-") and not signed:
        raise ProcParseError(f"Field {name} is negative ({value})", line)
    return int(value)


@dataclass(slots=True, frozen=True)
class StatRecord:
    """Scheduler statistics of one process or task."""

    # Kernel ABI positions 3..22 (1-indexed, pid is 1 and comm is 2).
    FIELDS: ClassVar[tuple[str, ...]] = (
        "state",
        "ppid",
        "pgrp",
        "session",
        "tty_nr",
        "tpgid",
        "flags",
        "minflt",
        "cminflt",
        "majflt",
        "cmajflt",
        "utime",
        "stime",
        "cutime",
        "cstime",
        "priority",
        "nice",
        "num_threads",
        "itrealvalue",
        "starttime",
    )
    SIGNED: ClassVar[frozenset[str]] = frozenset(
        {"ppid", "pgrp", "session", "tty_nr", "tpgid", "cutime", "cstime", "priority", "nice"}
    )

    pid: int
    comm: str  # including the surrounding parentheses
    state: str  # 'R', 'S', 'Z', 'D', etc.
    ppid: int
    pgrp: int
    session: int
    tty_nr: int
    tpgid: int
    flags: int
    minflt: int
    cminflt: int
    majflt: int
    cmajflt: int
    utime: int  # clock ticks
    stime: int  # clock ticks
    cutime: int
    cstime: int
    priority: int
    nice: int
    num_threads: int
    itrealvalue: int
    starttime: int  # clock ticks after boot
    extra: tuple[str, ...] = ()
    line: str = field(default="", repr=False)
    timestamp: datetime = field(default_factory=datetime.now, compare=False)

    @property
    def name(self) -> str:
        """Command name without the surrounding parentheses."""
        return self.comm[1:-1]

    @classmethod
    def parse(cls, line: str) -> "StatRecord":
        """
        Parse one line of ``/proc/[pid]/stat``.

        The command name may contain spaces and parentheses, so it is taken
        as everything from the first ``(`` up to the last ``)``. The fields
        around it are split on single spaces and assigned by position.

        Raises:
            ProcParseError: Missing parentheses, too few fields, or a
                numeric field that is not an integer.
        """
        open_paren = line.find("(")
        close_paren = line.rfind(")")
        if open_paren < 0 or close_paren < open_paren:
            raise ProcParseError("Command name is not enclosed in parentheses", line)

        head = line[:open_paren].strip()
        tail = line[close_paren + 1 :].strip()
        if not head or not tail:
            raise ProcParseError("Too few fields in stat line", line)
        rest = split_fields(tail, " ")
        if len(rest) < len(cls.FIELDS):
            raise ProcParseError(
                f"Expected at least {len(cls.FIELDS) + 2} fields, got {len(rest) + 2}", line
            )

        values: dict[str, Any] = {"state": rest[0]}
        for name, value in zip(cls.FIELDS[1:], rest[1:]):
            values[name] = _parse_int(value, name, line, signed=name in cls.SIGNED)

        return cls(
            pid=_parse_int(head, "pid", line),
            comm=line[open_paren : close_paren + 1],
            extra=tuple(rest[len(cls.FIELDS) :]),
            line=line,
            **values,
        )

    @classmethod
    def from_rows(cls, lines: list[str]) -> "StatRecord":
        return cls.parse(_first_line(lines, "stat"))

    def as_dict(self) -> dict[str, Any]:
        """Named fields, without the raw line and timestamp."""
        return {"pid": self.pid, "comm": self.comm, **{n: getattr(self, n) for n in self.FIELDS}}


@dataclass(slots=True, frozen=True)
class StatmRecord:
    """Memory usage of a process, every field a count of pages."""

    size: int
    resident: int
    shared: int
    text: int
    lib: int
    data: int
    dt: int
    timestamp: datetime = field(default_factory=datetime.now, compare=False)

    COLUMNS: ClassVar[tuple[str, ...]] = ("size", "resident", "shared", "text", "lib", "data", "dt")

    @classmethod
    def from_fields(cls, values: list[str]) -> "StatmRecord":
        """Build a record from the seven fields of a statm line."""
        line = " ".join(values)
        if len(values) != len(cls.COLUMNS):
            raise ProcParseError(f"Expected {len(cls.COLUMNS)} fields, got {len(values)}", line)
        return cls(**{name: _parse_int(v, name, line) for name, v in zip(cls.COLUMNS, values)})

    @classmethod
    def parse(cls, line: str) -> "StatmRecord":
        return cls.from_fields(split_fields(line.strip(), " "))

    @classmethod
    def from_rows(cls, rows: list[list[str]]) -> "StatmRecord":
        if not rows:
            raise ProcParseError("statm is empty")
        return cls.from_fields(rows[0])

    def as_dict(self) -> dict[str, int]:
        return {name: getattr(self, name) for name in self.COLUMNS}


_UPTIME_PATTERN = re.compile(r"^(?P<uptime_seconds>\d+\.\d+) (?P<idle_seconds>\d+\.\d+)$")


@dataclass(slots=True, frozen=True)
class UptimeRecord:
    """Seconds since boot, and idle seconds summed over all CPUs."""

    uptime_seconds: float
    idle_seconds: float
    timestamp: datetime = field(default_factory=datetime.now, compare=False)

    @classmethod
    def parse(cls, line: str) -> "UptimeRecord":
        match = _UPTIME_PATTERN.match(line.strip())
        if match is None:
            raise ProcParseError("Not an uptime line", line)
        return cls(**{name: float(value) for name, value in match.groupdict().items()})

    @classmethod
    def from_rows(cls, lines: list[str]) -> "UptimeRecord":
        return cls.parse(_first_line(lines, "uptime"))

    def as_dict(self) -> dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "timestamp"}
