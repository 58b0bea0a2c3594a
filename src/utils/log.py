"""
Logging setup shared by the bridge and the launcher.

Both entry points log to stderr (stdout carries JSON responses or the
language server's own traffic). The launcher additionally appends every
record to a diagnostic log file.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Optional

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"


class IsoFormatter(logging.Formatter):
    """Formatter stamping each line with an ISO-8601 UTC timestamp."""

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        stamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def configure_logging(level: str = "info", log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the ``copilot`` logger hierarchy.

    Args:
        level: "info" or "debug"; debug records are only emitted at "debug"
        log_file: Optional path of an append-only diagnostic log

    Returns:
        The root ``copilot`` logger
    """
    logger = logging.getLogger("copilot")
    logger.setLevel(logging.DEBUG if level == "debug" else logging.INFO)
    logger.propagate = False

    # Reconfiguring replaces handlers instead of stacking duplicates
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = IsoFormatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
