"""
Logging configuration — console diagnostics plus an optional build log.

Called once at startup by main.py.  Every module that does
``logger = logging.getLogger(__name__)`` inherits this config.

Levels are resolved in precedence order:
    CLI flag  >  DISTBUILD_LOG_LEVEL env var  >  WARNING (default)

Two streams share the root logger:

    diagnostics    distbuild.* loggers; console and build log
    build output   the ``distbuild.build_output`` logger; build log only

Build output is what configure/make/install and interactive children
print.  It never reaches the console through logging (the operator
already sees it on the terminal when echo is on) and is written to the
file named by DISTBUILD_LOG_FILE regardless of DISTBUILD_LOG_FILE_LEVEL,
prefixed with the command that produced it:

    2024-05-01 10:02:11 INFO  distbuild.core.services.module_build:292 Running make
    2024-05-01 10:02:12 [make] cc -c -o Tty.o Tty.c
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

BUILD_OUTPUT_LOGGER = "distbuild.build_output"

_FMT_CONSOLE = {
    logging.DEBUG: ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d %(message)s", "%H:%M:%S"),
    logging.INFO: ("%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
}
_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d %(message)s"
_FMT_OUTPUT = "%(asctime)s [%(source)s] %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Configure Python logging for the entire process.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional build log path.  Receives diagnostics and
            every line of build output.
        log_file_level: Diagnostics level for the build log.
            Defaults to the console level.
    """
    console_level = _parse_level(level)
    if console_level <= logging.DEBUG:
        fmt, datefmt = _FMT_CONSOLE[logging.DEBUG]
    elif console_level <= logging.INFO:
        fmt, datefmt = _FMT_CONSOLE[logging.INFO]
    else:
        fmt, datefmt = "%(message)s", None

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    console.addFilter(_exclude_build_output)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        if isinstance(handler, logging.FileHandler):
            handler.close()
    root.addHandler(console)
    root.setLevel(console_level)

    output = logging.getLogger(BUILD_OUTPUT_LOGGER)
    output.setLevel(logging.INFO)

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setFormatter(_BuildLogFormatter())
        fh.addFilter(_DiagnosticsAtLeast(file_level))
        root.addHandler(fh)
        root.setLevel(min(console_level, file_level))

    logging.raiseExceptions = False


def build_log_enabled() -> bool:
    """True when a build log file is attached to the root logger."""
    return any(isinstance(h, logging.FileHandler) for h in logging.getLogger().handlers)


class BuildOutputWriter:
    """File-like sink that turns a child's output into build-log lines.

    Usable as pexpect's ``logfile_read`` and for captured output of plain
    commands.  Partial lines are held until a newline or ``close()``.

    Args:
        source: Short name of the producing command, shown in the log.
        echo: Stream that also receives the raw text (e.g. sys.stdout).
    """

    def __init__(self, source: str, echo: TextIO | None = None) -> None:
        self.source = source
        self.echo = echo
        self._logger = logging.getLogger(BUILD_OUTPUT_LOGGER)
        self._pending = ""

    def write(self, data: str) -> int:
        if self.echo is not None:
            self.echo.write(data)
        self._pending += data.replace("\r\n", "\n").replace("\r", "\n")
        *lines, self._pending = self._pending.split("\n")
        for line in lines:
            self._emit(line)
        return len(data)

    def flush(self) -> None:
        if self.echo is not None:
            self.echo.flush()

    def close(self) -> None:
        if self._pending:
            self._emit(self._pending)
            self._pending = ""
        self.flush()

    def _emit(self, line: str) -> None:
        self._logger.info(line, extra={"source": self.source})


# ── Handler plumbing ────────────────────────────────────────────


def _is_build_output(record: logging.LogRecord) -> bool:
    return record.name == BUILD_OUTPUT_LOGGER


def _exclude_build_output(record: logging.LogRecord) -> bool:
    return not _is_build_output(record)


class _DiagnosticsAtLeast(logging.Filter):
    """Passes all build output, and diagnostics at or above ``level``."""

    def __init__(self, level: int) -> None:
        super().__init__()
        self.level = level

    def filter(self, record: logging.LogRecord) -> bool:
        return _is_build_output(record) or record.levelno >= self.level


class _BuildLogFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__(_FMT_FILE, datefmt=_DATEFMT_FILE)
        self._output = logging.Formatter(_FMT_OUTPUT, datefmt=_DATEFMT_FILE)

    def format(self, record: logging.LogRecord) -> str:
        if _is_build_output(record):
            return self._output.format(record)
        return super().format(record)


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    numeric = getattr(logging, (level or "WARNING").upper(), None)
    return numeric if isinstance(numeric, int) else logging.WARNING
