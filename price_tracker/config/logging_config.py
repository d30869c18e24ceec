# price_tracker/config/logging_config.py

"""Per-run logging for catalog commands.

Each launch writes one file inside ``logs/`` named after the command and
the launch time (e.g. ``logs/refresh_20261019_153045.log``).  Every record
is stamped with the catalog user and command, so a refresh or repair run
leaves one log listing each skipped product and its reason.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from price_tracker.config.settings import Settings

_DETAILED_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(catalog_user)s:%(command)s | "
    "%(name)s | %(module)s:%(funcName)s:%(lineno)d | %(message)s"
)

_CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class RunContextFilter(logging.Filter):
    """Stamp records with the user and command of the current run."""

    def __init__(self, user: str, command: str) -> None:
        super().__init__()
        self.user = user
        self.command = command

    def filter(self, record: logging.LogRecord) -> bool:
        record.catalog_user = self.user
        record.command = self.command
        return True


def setup_logging(
    logs_dir: Path | None = None,
    user: str = "-",
    command: str = "run",
) -> Path:
    """Initialise the root ``price_tracker`` logger for one command.

    Returns:
        The :class:`~pathlib.Path` of the log file this run writes to.
        A repeated call keeps the existing handlers and returns their file.
    """
    root_logger = logging.getLogger("price_tracker")
    root_logger.setLevel(logging.DEBUG)

    for handler in root_logger.handlers:
        if isinstance(handler, logging.FileHandler):
            return Path(handler.baseFilename)

    directory: Path = logs_dir or Settings.LOGS_DIR
    directory.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = directory / f"{command}_{timestamp}.log"

    context = RunContextFilter(user, command)

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.addFilter(context)
    file_handler.setFormatter(
        logging.Formatter(_DETAILED_FORMAT, datefmt=_DATE_FORMAT)
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(
        logging.Formatter(_CONSOLE_FORMAT, datefmt=_DATE_FORMAT)
    )

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    root_logger.info(
        "Logging %s for user %s to %s", command, user, log_file,
    )
    return log_file
