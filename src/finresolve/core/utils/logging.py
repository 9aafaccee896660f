"""
Loguru sinks for finresolve.

Sync sessions log through ``logger.bind(identity=...)``; every sink
formats that ``identity`` extra, and records logged outside a session
show ``-`` instead.
"""

import os
import sys

from loguru import logger

CONSOLE_FORMAT = "<level>[{level.name}]</level> <cyan>{extra[identity]}</cyan> {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {extra[identity]} | {message}"


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    fmt: str = CONSOLE_FORMAT,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """
    Replace loguru's sinks with a stderr sink and an optional rotating file.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR).
        log_file: Path to log file. If None, only logs to stderr.
        fmt: Console format string.
        rotation: Log file rotation size.
        retention: How long to keep rotated logs.
    """
    logger.remove()
    logger.configure(extra={"identity": "-"})
    logger.add(sys.stderr, level=level, format=fmt)

    if log_file:
        logger.add(log_file, level=level, format=FILE_FORMAT, rotation=rotation, retention=retention)


def setup_logging_from_config(config, level: str | None = None) -> str | None:
    """Configure sinks from the ``logging`` section of a Config.

    ``logging.file`` may be an absolute path, a bare file name placed under
    ``paths.log_dir``, or empty for console only. *level* overrides
    ``logging.level``. Returns the log file path in use, if any.
    """
    log_file = config.get("logging.file") or None
    if log_file and not os.path.isabs(log_file):
        log_dir = os.path.expanduser(config.get("paths.log_dir", "."))
        os.makedirs(log_dir, exist_ok=True)
        log_file = os.path.join(log_dir, log_file)
    setup_logging(
        level=str(level or config.get("logging.level", "WARNING")).upper(),
        log_file=log_file,
    )
    return log_file
