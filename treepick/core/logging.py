"""Structured logging for TreePick.

Every message is rendered as ``message | key=value ...``. Context comes from
two places:
- Keyword arguments of the call itself
- Frames pushed with ``add_context()``, such as the ruleset being resolved
  or the pipeline stage being run

Frames are thread-local and nest; inner frames override outer keys.

Example:
    >>> logger = Logger(level=LogLevel.INFO)
    >>> with logger.add_context(stage="ModifiedFilter"):
    ...     logger.info("Filter removed files", before=120, after=4)
    Filter removed files | stage=ModifiedFilter before=120 after=4
"""

import logging
import logging.handlers
import threading
from contextlib import contextmanager
from enum import IntEnum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from treepick.core.constants import ConfigKey

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Rotation for the optional log file
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


class LogLevel(IntEnum):
    """Log levels matching Python's logging module."""

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


def _with_format(handler: logging.Handler) -> logging.Handler:
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


class Logger:
    """Key-value logger used by the walker, the pipeline and the manager.

    The merged context is also attached to each record as ``record.context``
    so handlers can read it without parsing the message.
    """

    _frames = threading.local()

    def __init__(
        self,
        name: str = "treepick",
        level: Union[LogLevel, str] = LogLevel.INFO,
        handlers: Optional[List[logging.Handler]] = None,
    ):
        """Initialize logger.

        Args:
            name: Name of the underlying ``logging`` logger
            level: Minimum level, as LogLevel or a level name
            handlers: Handlers replacing the default stderr handler
        """
        self.name = name
        self.logger = logging.getLogger(name)
        self.logger.propagate = False
        self.set_level(level)

        self.logger.handlers.clear()
        for handler in handlers if handlers is not None else [_with_format(logging.StreamHandler())]:
            self.logger.addHandler(handler)

    def create_file_handler(self, filename: Union[str, Path]) -> logging.handlers.RotatingFileHandler:
        """Create a rotating file handler using the console format."""
        return _with_format(
            logging.handlers.RotatingFileHandler(
                filename, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS
            )
        )

    def add_handler(self, handler: logging.Handler) -> None:
        self.logger.addHandler(handler)

    def set_level(self, level: Union[LogLevel, str]) -> None:
        if isinstance(level, str):
            level = LogLevel[level.upper()]
        self.logger.setLevel(level)

    @contextmanager
    def add_context(self, **context: Any) -> Iterator[None]:
        """Attach context to every message logged inside the block.

        Example:
            >>> with logger.add_context(ruleset="laravel"):
            ...     logger.info("Using predefined ruleset")
            Using predefined ruleset | ruleset=laravel
        """
        stack = self._stack()
        stack.append(context)
        try:
            yield
        finally:
            stack.pop()

    def _stack(self) -> List[Dict[str, Any]]:
        if not hasattr(self._frames, "stack"):
            self._frames.stack = []
        return self._frames.stack

    def _log(
        self, level: int, msg: str, context: Dict[str, Any], exc: Optional[BaseException] = None
    ) -> None:
        if not self.logger.isEnabledFor(level):
            return

        merged: Dict[str, Any] = {}
        for frame in self._stack():
            merged.update(frame)
        merged.update(context)

        if merged:
            msg = msg + " | " + " ".join(f"{key}={value}" for key, value in merged.items())
        self.logger.log(level, msg, exc_info=exc, extra={"context": merged})

    def debug(self, msg: str, **context) -> None:
        self._log(logging.DEBUG, msg, context)

    def info(self, msg: str, **context) -> None:
        self._log(logging.INFO, msg, context)

    def warning(self, msg: str, **context) -> None:
        self._log(logging.WARNING, msg, context)

    def exception(self, msg: str, exc: BaseException, **context) -> None:
        """Log an error with its traceback.

        The exception's type and message are added to the context.
        """
        context["exception_type"] = type(exc).__name__
        context["exception_message"] = str(exc)
        self._log(logging.ERROR, msg, context, exc=exc)


_global_logger: Optional[Logger] = None


def get_logger(name: str = "treepick") -> Logger:
    """Get the process-wide logger, creating it on first use or for a new name."""
    global _global_logger
    if _global_logger is None or _global_logger.name != name:
        _global_logger = Logger(name=name)
    return _global_logger


def set_global_logger(logger: Logger) -> None:
    global _global_logger
    _global_logger = logger


def configure_logging(config) -> Logger:
    """Build the global logger from configuration.

    Reads ``treepick.logging.level`` and ``treepick.logging.file``.

    Args:
        config: ConfigManager to read settings from

    Returns:
        The configured global logger
    """
    logger = Logger(level=config.get(ConfigKey.LOGGING_LEVEL, "INFO"))

    log_file = config.get(ConfigKey.LOGGING_FILE)
    if log_file:
        logger.add_handler(logger.create_file_handler(Path(log_file).expanduser()))

    set_global_logger(logger)
    return logger
