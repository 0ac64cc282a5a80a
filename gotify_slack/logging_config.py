"""
Logging setup for gotify-slack.

All modules log below the "gotify_slack" logger. setup_logging() is called
once by the daemon or CLI entry point; library use without it leaves
logging to the host application.
"""

import logging
import logging.handlers
import sys

ROOT_LOGGER_NAME = "gotify_slack"

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(threadName)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are noisy at INFO
QUIET_LOGGERS = ("slack_sdk", "urllib3", "watchdog")


def _handlers(log_file: str | None, max_bytes: int, backup_count: int) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8"
        ))
    return handlers


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5
) -> None:
    """
    Configure the gotify_slack logger.

    Args:
        level: Log level name; unknown names fall back to INFO
        log_file: Also write to this file, rotated at max_bytes
        max_bytes: Size at which the log file is rotated
        backup_count: Number of rotated files to keep
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(log_level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in _handlers(log_file, max_bytes, backup_count):
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.propagate = False

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a module, nested under gotify_slack."""
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
