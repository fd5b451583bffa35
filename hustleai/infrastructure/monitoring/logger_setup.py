"""Root logger configuration for the hustleai CLI."""

import logging
import sys
from typing import Optional, Union

DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
# Request-per-line loggers, only useful when debugging
NOISY_LOGGERS = ("httpx", "httpcore")

logger = logging.getLogger(__name__)


def resolve_level(level: Union[int, str]) -> int:
    """Numeric level for a name such as 'debug'; unknown names give INFO."""
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else DEFAULT_LOG_LEVEL


def _attach(root: logging.Logger, handler: logging.Handler, level: int, formatter: logging.Formatter) -> None:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    root.addHandler(handler)


def setup_logging(
    log_level: Union[int, str] = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT,
    log_file: Optional[str] = None,
) -> None:
    """Sends every record to stderr, and also to `log_file` when one is given.

    Replaces whatever handlers the root logger had, so calling it again
    reconfigures rather than duplicates output.
    """
    level = resolve_level(log_level)
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    root.setLevel(level)

    formatter = logging.Formatter(log_format)
    # stdout carries command output
    _attach(root, logging.StreamHandler(sys.stderr), level, formatter)
    if log_file:
        try:
            _attach(root, logging.FileHandler(log_file, encoding="utf-8"), level, formatter)
        except OSError as e:
            logger.error(f"Cannot log to {log_file}: {e}")

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)
    logger.debug(f"Logging at {logging.getLevelName(level)}{f', file {log_file}' if log_file else ''}")
