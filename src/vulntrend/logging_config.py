"""
Logging configuration for vuln-trend.

Library modules log through :func:`get_logger` and never configure handlers;
only the CLI calls :func:`setup_logging`, with the verbosity resolved from
``HistoryConfig`` (flags, ``VULNTREND_VERBOSITY`` or a config file).
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

_ROOT_LOGGER = "vulntrend"

_LEVELS = {
    "quiet": logging.ERROR,
    "normal": logging.WARNING,
    "verbose": logging.DEBUG,
}


def setup_logging(verbosity: str = "normal", log_file: Optional[str] = None) -> logging.Logger:
    """
    Route vulntrend log records to stderr through a rich handler.

    Args:
        verbosity: One of ``quiet`` (errors only), ``normal`` (warnings) or
            ``verbose`` (debug, with source paths and traceback locals)
        log_file: Optional file path to append plain-text logs to

    Returns:
        The ``vulntrend`` logger
    """
    level = _LEVELS.get(verbosity, logging.WARNING)
    verbose = level == logging.DEBUG

    # stdout carries command output (JSON included), so logs stay on stderr
    handlers: list[logging.Handler] = [
        RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            tracebacks_show_locals=verbose,
            markup=False,
            show_time=verbose,
            show_path=verbose,
        )
    ]

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a")
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
            )
        )
        handlers.append(file_handler)

    logging.basicConfig(level=level, format="%(message)s", datefmt="[%X]", handlers=handlers)

    logger = logging.getLogger(_ROOT_LOGGER)
    logger.setLevel(level)
    logger.debug("Logging at %s verbosity", verbosity)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return ``vulntrend`` or a child of it; bare module names are prefixed."""
    if name is None:
        return logging.getLogger(_ROOT_LOGGER)

    if not name.startswith(_ROOT_LOGGER):
        name = f"{_ROOT_LOGGER}.{name}"

    return logging.getLogger(name)
