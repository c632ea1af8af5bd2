"""Console logging setup for the command line."""

import logging

from rich.logging import RichHandler

from config import LOG_LEVEL


def setup_logging(level: int | str = LOG_LEVEL) -> None:
    """Route all log records through a single rich console handler."""
    if isinstance(level, str):
        level = getattr(logging, level.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = RichHandler(rich_tracebacks=True, show_path=False)
    handler.setFormatter(logging.Formatter("%(name)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"))
    root_logger.addHandler(handler)

    # Matplotlib is chatty at DEBUG
    logging.getLogger('matplotlib').setLevel(logging.WARNING)
