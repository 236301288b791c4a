"""Logging utilities for IoCShield."""

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

ROOT_LOGGER_NAME = "ioc_shield"

LOG_THEME = Theme({
    "info": "cyan",
    "warning": "yellow",
    "error": "red",
    "critical": "red bold",
    "debug": "dim",
})


class IoCShieldLogger:
    """Thin wrapper over a child of the ``ioc_shield`` logger.

    Handlers live on the parent and are installed by ``setup_logging``.
    """

    def __init__(self, name: str) -> None:
        self.logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")

    def info(self, msg: str, **kwargs: Any) -> None:
        """Log info message."""
        self.logger.info(msg, extra=kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        """Log warning message."""
        self.logger.warning(msg, extra=kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        """Log error message."""
        self.logger.error(msg, extra=kwargs)

    def debug(self, msg: str, **kwargs: Any) -> None:
        """Log debug message."""
        self.logger.debug(msg, extra=kwargs)

    def critical(self, msg: str, **kwargs: Any) -> None:
        """Log critical message."""
        self.logger.critical(msg, extra=kwargs)


def setup_logging(
    verbose: bool = False,
    quiet: bool = False,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """Setup logging configuration for IoCShield.

    Log output goes to stderr so that JSON reports on stdout stay clean.
    Calling this again replaces the previously installed handlers.

    The ``ioc_shield`` logger itself stays at DEBUG so that ``capture_logs``
    sees every record; ``verbose`` and ``quiet`` only set the level of the
    console and file handlers.

    Args:
        verbose: Enable debug logging
        quiet: Only log errors
        log_file: Optional file mirroring the log output

    Returns:
        The configured ``ioc_shield`` logger
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.INFO

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(logging.DEBUG)

    for handler in list(root.handlers):
        if not isinstance(handler, CapturingHandler):
            root.removeHandler(handler)
            handler.close()

    handler = RichHandler(
        console=Console(theme=LOG_THEME, stderr=True),
        show_time=True,
        show_path=False,
        markup=False,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt="%(name)s: %(message)s", datefmt="[%X]"))
    root.addHandler(handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        root.addHandler(file_handler)

    root.propagate = False

    logging.getLogger("aiohttp").setLevel(logging.WARNING)

    return root


def get_logger(name: str) -> IoCShieldLogger:
    """Get an IoCShield logger instance.

    Args:
        name: Logger name

    Returns:
        Logger bound to ``ioc_shield.<name>``
    """
    return IoCShieldLogger(name)


class CapturingHandler(logging.Handler):
    """Collects formatted records emitted on one thread."""

    def __init__(self, thread_id: int, level: int = logging.DEBUG) -> None:
        super().__init__(level)
        self.thread_id = thread_id
        self.lines: List[str] = []
        self.setFormatter(logging.Formatter("[%(asctime)s] %(levelname)s %(message)s"))

    def filter(self, record: logging.LogRecord) -> bool:
        return record.thread == self.thread_id and super().filter(record)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.lines.append(self.format(record))
        except Exception:
            self.handleError(record)

    def getvalue(self) -> str:
        return "\n".join(self.lines) + ("\n" if self.lines else "")


@contextmanager
def capture_logs() -> Iterator[CapturingHandler]:
    """Capture ``ioc_shield`` log records emitted by the calling thread.

    Used by bulk mode to give every project its own log while several
    projects are scanned concurrently.

    Yields:
        Handler whose ``lines`` accumulate the captured output
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    handler = CapturingHandler(threading.get_ident())
    root.addHandler(handler)
    try:
        yield handler
    finally:
        root.removeHandler(handler)
