"""
Logging setup for the DAG report job.

One logging call fans out to every configured sink, so a status line printed
on the console is the same line appended to the log file.
"""
import logging
import os
import sys
from typing import Iterable, Optional

from config.config import DAG_LOGGING_DIRECTORY, DAG_LOGGING_FILENAME, LOGGING_LEVEL, LOG_SINKS

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
ROOT_LOGGER = "dag"

SUPPORTED_SINKS = ("console", "file")


def setup_logging(
    directory: str = DAG_LOGGING_DIRECTORY,
    filename: str = DAG_LOGGING_FILENAME,
    sinks: Optional[Iterable[str]] = None,
    level: str = LOGGING_LEVEL,
) -> logging.Logger:
    """
    Configure the ``dag`` logger hierarchy.

    Args:
        directory: Logging directory, created if absent when the file sink is used
        filename: Log file name inside ``directory``; opened in append mode
        sinks: Any of "console" and "file" (default: LOG_SINKS from the environment)
        level: Logging level name

    Returns:
        The configured ``dag`` root logger
    """
    sinks = list(LOG_SINKS if sinks is None else sinks)
    unknown = [s for s in sinks if s not in SUPPORTED_SINKS]
    if unknown:
        raise ValueError(f"Unsupported log sink(s): {', '.join(unknown)}")

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.propagate = False

    # Re-running setup (tests, repeated CLI calls) must not stack handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    if "console" in sinks:
        stream = logging.StreamHandler(sys.stdout)
        stream.setFormatter(formatter)
        logger.addHandler(stream)

    if "file" in sinks:
        os.makedirs(directory, exist_ok=True)
        file_handler = logging.FileHandler(os.path.join(directory, filename), mode="a", encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return logger
