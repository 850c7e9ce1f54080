# ABOUTME: Logging setup for the carryover subsystem and its CLI.
# ABOUTME: Routes stdlib logging through a Rich console handler, configured once per process.

import logging

from rich.console import Console
from rich.logging import RichHandler

QUIET_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")


def setup_logging(level: str = "INFO", console: Console | None = None) -> logging.Logger:
    """Configure the root logger with a Rich handler.

    Calling this more than once does not stack handlers.

    Args:
        level: Log level name, e.g. "INFO" or "DEBUG".
        console: Optional Rich console to write to. Defaults to stderr.

    Returns:
        The configured root logger.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())

    if not any(isinstance(h, RichHandler) for h in root_logger.handlers):
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger
