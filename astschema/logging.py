"""Logger hierarchy for extraction runs."""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "astschema"

# Console records name the stage (crawler, tokens, schema) that emitted them.
CONSOLE_FORMAT = "astschema[%(stage)s] %(levelname)s %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class _StageFilter(logging.Filter):
    """Expose the last logger name component as ``%(stage)s``."""

    def filter(self, record: logging.LogRecord) -> bool:
        prefix = f"{_LOGGER_NAME}."
        record.stage = record.name[len(prefix) :] if record.name.startswith(prefix) else "main"
        return True


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``astschema.<name>``, or the package logger itself."""
    return logging.getLogger(f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Send extraction logs to stderr and, when given, to ``log_file``.

    ``verbose`` lowers the threshold to DEBUG, which lists every module file
    the crawler loads.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Repeated CLI invocations in one process must not stack handlers.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setLevel(level)
    console.addFilter(_StageFilter())
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        sink = logging.FileHandler(log_file, encoding="utf-8")
        sink.setLevel(level)
        sink.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(sink)

    return logger


__all__ = ["CONSOLE_FORMAT", "FILE_FORMAT", "configure_logging", "get_logger"]
