"""Logging setup for saptune."""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

FILE_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(
    *,
    level: str = "INFO",
    log_file: Optional[str] = None,
    console: Optional[Console] = None,
    force: bool = False,
) -> None:
    """Initialise the root logger: rich output on stderr plus the log file.

    The file defaults to tuned's log, as the tuned daemon runs saptune too.
    If it cannot be opened, logging continues on stderr only. Pass
    ``force=True`` to reconfigure during tests.
    """

    handlers = [
        RichHandler(
            console=console or Console(stderr=True),
            show_time=False,
            show_path=False,
            markup=False,
        )
    ]

    file_error = None
    if log_file:
        try:
            file_handler = logging.FileHandler(log_file)
        except OSError as e:
            file_error = e
        else:
            file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
            handlers.append(file_handler)

    logging.basicConfig(level=level, format="%(message)s", handlers=handlers, force=force)

    if file_error is not None:
        logging.getLogger(__name__).warning("Cannot write log file %s: %s", log_file, file_error)
