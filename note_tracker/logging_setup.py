"""
Logging configuration for drivers and scripts.

The library only creates module loggers; applications call setup_logging()
once at startup.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    log_dir: str | Path | None = None,
    level: int = logging.INFO,
    log_file: str = "note_tracker.log",
) -> logging.Logger:
    """
    Configure the root logger.

    Args:
        log_dir: Directory for a rotating log file (1 MB, 3 backups);
            console only when None
        level: Level for the root logger and its handlers
        log_file: File name inside log_dir

    Returns:
        The root logger
    """
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(level)
    root_logger.addHandler(console_handler)

    if log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path / log_file,
            maxBytes=1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)
        root_logger.addHandler(file_handler)

    # Plotting backends are chatty at DEBUG
    logging.getLogger("matplotlib").setLevel(logging.WARNING)

    return root_logger
