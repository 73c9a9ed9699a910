"""Runtime settings for the procstat command, read from the environment."""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

DEFAULT_PROC_ROOT = "/proc"
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass(slots=True, frozen=True)
class Settings:
    """Settings for the procstat command."""

    proc_root: Path = Path(DEFAULT_PROC_ROOT)
    log_level: str = DEFAULT_LOG_LEVEL


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """
    Load settings from environment variables.

    Args:
        environ: Mapping to read from. Defaults to ``os.environ``.

    Environment:
        PROCSTAT_PROC_ROOT: Mount point of the proc filesystem (default /proc)
        PROCSTAT_LOG_LEVEL: DEBUG, INFO, WARNING or ERROR (default WARNING)
    """
    if environ is None:
        environ = os.environ
    return Settings(
        proc_root=Path(environ.get("PROCSTAT_PROC_ROOT") or DEFAULT_PROC_ROOT),
        log_level=(environ.get("PROCSTAT_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
    )
