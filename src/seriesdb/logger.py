"""
Logging setup for the seriesdb CLI.

Library modules only log through ``logging.getLogger(__name__)``; the CLI
calls ``setup_logger()`` once to route those records to stderr and,
if SERIESDB_LOG_FILE is set, to a file.
"""

import logging
from pathlib import Path
from typing import Optional

from seriesdb.config import config

FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(
    name: str = "seriesdb",
    log_level: Optional[str] = None,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """Attach a stderr handler (and a file handler when a log file is configured)."""
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, (log_level or config.log_level).upper(), logging.INFO))
    logger.handlers.clear()

    formatter = logging.Formatter(FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    log_path = log_file or config.log_file
    if log_path is not None:
        Path(log_path).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.propagate = False
    return logger
