# src/workdesk/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class _ConsoleNoiseFilter(logging.Filter):
    """
    Console policy:
    - workdesk records pass, except snapshot storage below WARNING
    - captured py.warnings and third-party records only at ERROR+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith("workdesk.storage."):
            return record.levelno >= logging.WARNING
        if record.name.startswith("workdesk."):
            return True
        return record.levelno >= logging.ERROR


class _WorkdeskHandler:
    """Marks the handlers setup_logging owns, so a second call swaps only those."""


class _ConsoleHandler(logging.StreamHandler, _WorkdeskHandler):
    pass


class _FileHandler(logging.FileHandler, _WorkdeskHandler):
    pass


def setup_logging(
    *,
    log_dir: str | Path = ".local/workdesk",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    file_name: str = "workdesk.log",
) -> Path:
    """
    Console: `console_level`, noise-filtered. File: `<log_dir>/<file_name>` at
    `file_level`, which records every store mutation and rejected operation.

    Returns the log file path. Handlers installed by an earlier call are
    closed and replaced; foreign handlers on the root logger are left alone.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / file_name

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in [h for h in root.handlers if isinstance(h, _WorkdeskHandler)]:
        root.removeHandler(h)
        h.close()

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console = _ConsoleHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = _FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    return log_file


def level_from_name(name: str | None, default: int = logging.INFO) -> int:
    """Map "debug"/"INFO"/... to a logging level; unknown names give the default."""
    level = getattr(logging, str(name or "").upper(), None)
    return level if isinstance(level, int) else default
