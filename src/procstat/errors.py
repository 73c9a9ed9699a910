"""Exceptions raised by procstat."""

from pathlib import Path


class ProcError(Exception):
    """Raise when a /proc operation fails."""


class ProcReadError(ProcError):
    """A pseudo-file or directory under /proc could not be read."""

    def __init__(self, path: Path | str, message: str | None = None) -> None:
        self.path = Path(path)
        super().__init__(message or f"Cannot read {self.path}")


class ProcNotFoundError(ProcReadError):
    """The file or directory is gone, usually because the process exited."""

    def __init__(self, path: Path | str) -> None:
        super().__init__(path, f"No such file or directory: {path}")


class ProcPermissionError(ProcReadError):
    """The file or directory exists but cannot be read."""

    def __init__(self, path: Path | str) -> None:
        super().__init__(path, f"Permission denied: {path}")


class ProcParseError(ProcError, ValueError):
    """Content does not match the expected kernel text format."""

    def __init__(self, message: str, line: str | None = None) -> None:
        self.line = line
        if line is not None:
            message = f"{message}: {line!r}"
        super().__init__(message)


class MetricArithmeticError(ProcError, ArithmeticError):
    """A derived metric would divide by zero or a non-positive time span."""
