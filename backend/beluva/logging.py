"""structlog setup for the API process.

Development gets the colored console renderer; every other environment
emits one JSON object per line. Exceptions logged with ``exc_info`` are
rendered as structured tracebacks in JSON mode.
"""

from __future__ import annotations

import logging
import sys
from typing import IO

import structlog

from beluva.config import settings

# Third-party loggers that are chatty at INFO
_QUIET_LOGGERS = ("httpx", "botocore", "boto3", "urllib3", "anthropic", "google_genai")


class _MirroredStdout:
    """File-like sink that writes to stdout and appends to ``path``.

    A log file that cannot be opened or written is dropped and stdout
    keeps working.
    """

    def __init__(self, path: str) -> None:
        self._path = path
        self._file: IO[str] | None = None
        try:
            self._file = open(path, "a", encoding="utf-8")  # noqa: SIM115
        except OSError as exc:
            # structlog is not configured yet at this point
            print(f"WARNING: log file {path!r} unavailable ({exc}); stdout only", file=sys.stderr)

    def _drop_file(self, action: str) -> None:
        self._file = None
        print(f"WARNING: log file {action} failed; file logging disabled", file=sys.stderr)

    def write(self, data: str) -> None:
        sys.stdout.write(data)
        if self._file is None:
            return
        try:
            self._file.write(data)
            self._file.flush()
        except (OSError, ValueError):
            self._drop_file("write")

    def flush(self) -> None:
        sys.stdout.flush()
        if self._file is None:
            return
        try:
            self._file.flush()
        except (OSError, ValueError):
            self._drop_file("flush")


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(
    environment: str | None = None,
    log_level: str | None = None,
    log_file: str | None = None,
) -> None:
    """Configure structlog. Arguments default to the values in settings."""
    environment = environment or settings.environment
    level = _level(log_level or settings.log_level)
    log_file = settings.log_file if log_file is None else log_file

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if environment == "development":
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]

    sink = _MirroredStdout(log_file) if log_file else sys.stdout

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        # PrintLogger only calls write() and flush() on the sink
        logger_factory=structlog.PrintLoggerFactory(file=sink),  # type: ignore[arg-type]
        cache_logger_on_first_use=True,
    )

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
