"""Logging setup and key=value context logging for stackship."""

import logging
from enum import Enum
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

# AWS SDK loggers that flood debug output with request dumps
QUIET_LOGGERS = ("boto3", "botocore", "s3transfer", "urllib3")


class LogLevel(str, Enum):
    """Log level enumeration."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


def setup_logging(level: LogLevel = LogLevel.INFO, rich_output: bool = True) -> None:
    """Route stackship logs to stderr through Rich.

    Args:
        level: Threshold for the stackship loggers
        rich_output: Colors, timestamps and rich tracebacks; plain text when False
    """
    log_level = getattr(logging, level.value.upper())

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # The console looks up sys.stderr on every write, so swapped streams
    # (click's CliRunner, pytest capture) keep working
    handler = RichHandler(
        console=Console(stderr=True, no_color=not rich_output, highlight=rich_output),
        show_time=rich_output,
        show_path=False,
        rich_tracebacks=rich_output,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)
    logging.getLogger("stackship").setLevel(log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``stackship`` namespace."""
    if name.startswith("stackship"):
        return logging.getLogger(name)
    return logging.getLogger(f"stackship.{name}")


class StructuredLogger:
    """Logger that appends bound and per-call context as ``[key=value ...]``."""

    def __init__(self, name: str, context: dict[str, Any] | None = None):
        self._logger = get_logger(name)
        self._context: dict[str, Any] = dict(context or {})

    def bind(self, **kwargs: Any) -> "StructuredLogger":
        """New logger carrying extra context, e.g. the stack being deployed."""
        return StructuredLogger(self._logger.name, {**self._context, **kwargs})

    def _log(self, level: int, message: str, context: dict[str, Any]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        merged = {**self._context, **context}
        if merged:
            message = f"{message} [{' '.join(f'{k}={v}' for k, v in merged.items())}]"
        self._logger.log(level, message)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, kwargs)
