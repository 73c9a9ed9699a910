"""Line-oriented readers for /proc pseudo-files."""

import logging
from pathlib import Path

from procstat.errors import (
    ProcNotFoundError,
    ProcPermissionError,
    ProcReadError,
)

logger = logging.getLogger(__name__)


def translate_os_error(path: Path, exc: OSError) -> ProcReadError:
    """Map an OSError raised while reading ``path`` onto the procstat errors."""
    # ESRCH shows up when the pid disappears while its files are open
    if isinstance(exc, (FileNotFoundError, NotADirectoryError, ProcessLookupError)):
        return ProcNotFoundError(path)
    if isinstance(exc, PermissionError):
        return ProcPermissionError(path)
    return ProcReadError(path, f"Cannot read {path}: {exc}")


def split_fields(line: str, delimiter: str = " ") -> list[str]:
    """Split ``line`` on ``delimiter``, keeping empty fields as ``""``."""
    if not delimiter:
        raise ValueError("delimiter must not be empty")
    return line.split(delimiter)


class LineSource:
    """A named file inside a /proc directory, read as a list of lines."""

    def __init__(self, directory: Path | str, name: str) -> None:
        self._path = Path(directory) / name

    @property
    def path(self) -> Path:
        """Full path of the backing file."""
        return self._path

    def read_lines(self) -> list[str]:
        """
        Read every line of the file in a single read.

        The kernel does not guarantee UTF-8 (a command name is whatever bytes
        the process chose), so undecodable bytes are kept as lone surrogates.
        ``line.encode("utf-8", "surrogateescape")`` recovers the raw bytes.

        Returns:
            The lines without their line terminators.

        Raises:
            ProcNotFoundError: The directory or file does not exist.
            ProcPermissionError: The file cannot be opened for reading.
            ProcReadError: Any other I/O failure.
        """
        try:
            content = self._path.read_text(encoding="utf-8", errors="surrogateescape")
        except OSError as exc:
            raise translate_os_error(self._path, exc) from exc
        logger.debug("Read %d bytes from %s", len(content), self._path)
        return content.splitlines()


class DelimitedFields:
    """Decorates a LineSource, splitting every line into fields."""

    def __init__(self, source: LineSource, delimiter: str = " ") -> None:
        if not delimiter:
            raise ValueError("delimiter must not be empty")
        self._source = source
        self._delimiter = delimiter

    @property
    def path(self) -> Path:
        return self._source.path

    def read_rows(self) -> list[list[str]]:
        """Read the underlying file and return one field list per line."""
        return [split_fields(line, self._delimiter) for line in self._source.read_lines()]
