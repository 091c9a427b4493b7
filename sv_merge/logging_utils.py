"""Shared logging helpers for the SV consensus merge.

The module wires the ``sv_merger`` logger to the console using a consistent
timestamped format as soon as it is imported. The command line interface
calls :func:`configure_logging` again once the output location is known, so
that a persistent ``sv_merge.log`` trail is written next to the merged VCF.

:func:`configure_logging` is idempotent: call it with ``log_level`` to adjust
verbosity, ``log_file`` to redirect output, disable either of the console or
file handlers, or pass ``create_dirs`` when the destination directory still
has to be created. Repeated invocations clear previous handlers so no
duplicate outputs are accumulated.

For error handling the module defines :class:`MergeSVError` and specialised
subclasses for unusable inputs, unparsable record lines and malformed
grouping files. :func:`handle_critical_error` records fatal failures at
``CRITICAL`` level and raises them, while :func:`handle_non_critical_error`
logs recoverable conditions as warnings.
"""
from __future__ import annotations

import logging
import os
from typing import Iterable, Optional

LOG_FILE = "sv_merge.log"
LOG_FORMAT = "%(asctime)s : %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger("sv_merger")
logger.propagate = False


def _normalize_level(level: int | str) -> int:
    """Return a numeric logging level for *level*."""
    if isinstance(level, str):
        name = level.upper()
        try:
            return logging._nameToLevel[name]  # type: ignore[attr-defined]
        except KeyError as exc:
            raise ValueError(f"Unknown log level: {level}") from exc
    return int(level)


def _clear_handlers(existing: Iterable[logging.Handler]) -> None:
    for h in list(existing):
        try:
            h.close()
        finally:
            logger.removeHandler(h)


def configure_logging(
    *,
    log_level: int | str = logging.INFO,
    log_file: str | os.PathLike[str] | None = LOG_FILE,
    enable_file_logging: bool = True,
    enable_console: bool = True,
    create_dirs: bool = True,
) -> None:
    """Idempotent logger setup for the SV merger."""
    level = _normalize_level(log_level)
    _clear_handlers(logger.handlers)
    logger.setLevel(level)

    fmt = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    if enable_file_logging and log_file:
        path = os.fspath(log_file)
        if create_dirs:
            d = os.path.dirname(path)
            if d:
                os.makedirs(d, exist_ok=True)
        fh = logging.FileHandler(path)
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    if enable_console:
        sh = logging.StreamHandler()
        sh.setFormatter(fmt)
        logger.addHandler(sh)


class MergeSVError(RuntimeError):
    """Base exception for unrecoverable errors in the merge workflow."""


class ValidationError(MergeSVError):
    """Raised when an input or output file is missing, unreadable or invalid."""


class GroupingError(MergeSVError):
    """Raised when the cluster grouping cannot be loaded or is inconsistent."""


class RecordParseError(MergeSVError):
    """Raised when a variant line cannot be parsed into a record.

    ``path`` and ``line_number`` are filled in by the merge driver so that the
    final message points at the offending input line.
    """

    def __init__(self, message: str, *, path: Optional[str] = None, line_number: Optional[int] = None):
        self.path = path
        self.line_number = line_number
        if path is not None:
            location = f"{path}:{line_number}" if line_number is not None else path
            message = f"{location}: {message}"
        super().__init__(message)


def log_message(
    message: str,
    verbose: bool = False,
    level: int = logging.INFO,
    *,
    exc_info: BaseException | bool | None = None,
) -> None:
    """Log *message* at the requested level and optionally echo it to stdout."""

    logger.log(level, message, exc_info=exc_info)
    if verbose:
        print(message)


def handle_critical_error(
    message: str,
    exc_cls=None,
    *,
    exc_info: BaseException | bool | None = None,
) -> None:
    """Log and raise a fatal error."""

    log_message(message, level=logging.ERROR)
    logger.critical(message, exc_info=exc_info)
    exception_class = exc_cls or MergeSVError
    if isinstance(exc_info, BaseException):
        raise exception_class(message) from exc_info
    raise exception_class(message)


def handle_non_critical_error(message: str) -> None:
    """Log a recoverable error as a warning."""

    log_message(message, level=logging.WARNING)


__all__ = [
    "LOG_FILE",
    "configure_logging",
    "logger",
    "log_message",
    "handle_critical_error",
    "handle_non_critical_error",
    "MergeSVError",
    "ValidationError",
    "GroupingError",
    "RecordParseError",
]

# Default configuration: console only at INFO level.
configure_logging(enable_file_logging=False)
