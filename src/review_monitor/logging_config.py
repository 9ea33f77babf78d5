"""Logging setup for review monitor CLI runs."""

import logging
import sys
from pathlib import Path
from typing import List, Optional, Union


LOG_DIR = Path("logs")
LOG_FILENAME = "review_monitor.log"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
ROOT_LOGGER = "review_monitor"


def log_path(log_file: Optional[Union[str, Path]] = None, log_dir: Path = LOG_DIR) -> Path:
    """Where a run writes its log; bare names land under ``log_dir``."""
    if log_file is None:
        return log_dir / LOG_FILENAME
    path = Path(log_file)
    if path.is_absolute() or path.parent != Path("."):
        return path
    return log_dir / path


def setup_logging(
    verbose: bool = False,
    log_file: Optional[Union[str, Path]] = None,
    *,
    log_dir: Path = LOG_DIR,
    console: bool = True,
) -> logging.Logger:
    """Configure the ``review_monitor`` logger for one run.

    ``verbose`` switches both handlers to DEBUG. The console handler writes to
    stderr so JSON and report text printed on stdout stay parseable. Calling
    this again replaces the handlers of the previous call.

    Args:
        verbose: Log at DEBUG instead of INFO (the CLI's ``--verbose``)
        log_file: The CLI's ``--log-file``; a bare filename goes under ``log_dir``
        log_dir: Directory for the default and bare-name log files
        console: Also log to stderr

    Returns:
        The configured ``review_monitor`` logger
    """
    level = logging.DEBUG if verbose else logging.INFO
    path = log_path(log_file, log_dir)
    path.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    handlers: List[logging.Handler] = [logging.FileHandler(path, encoding="utf-8")]
    if console:
        handlers.append(logging.StreamHandler(sys.stderr))

    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    logger.setLevel(level)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.propagate = False

    logger.debug(f"Logging to {path} at {logging.getLevelName(level)}")
    return logger


def get_logger(name: str) -> logging.Logger:
    """Module logger under the ``review_monitor`` namespace."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
