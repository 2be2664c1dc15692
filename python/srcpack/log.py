"""Logging setup for srcpack commands."""

import logging
import pathlib

from rich.console import Console
from rich.logging import RichHandler

_LOGGER_NAME = "srcpack"

console = Console()
_log_console = Console(stderr=True)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger under the srcpack hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: pathlib.Path | None = None
) -> logging.Logger:
    """Send srcpack log records to the rich console and an optional file."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Repeated CLI invocations in one process must not stack handlers.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    rich_handler = RichHandler(console=_log_console, show_path=False, show_time=False)
    rich_handler.setLevel(level)
    logger.addHandler(rich_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger
