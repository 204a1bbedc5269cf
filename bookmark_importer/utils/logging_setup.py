"""
Logging configuration for the Bookmark Importer.

This module sets up logging based on configuration settings.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    console_output: bool = True,
    log_dir: Optional[Path] = None,
) -> Path:
    """
    Set up logging configuration.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file name override
        console_output: Also log to stdout
        log_dir: Directory for log files (defaults to ./logs)

    Returns:
        Path of the log file in use
    """
    if log_file is None:
        log_file = "bookmark_importer.log"

    if log_dir is None:
        log_dir = Path.cwd() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    # Create timestamped log file
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_path = log_dir / f"{Path(log_file).stem}_{timestamp}.log"

    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    handlers = []

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(log_format, date_format))
    handlers.append(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(log_format, date_format))
        handlers.append(console_handler)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=handlers,
        force=True,
    )

    logger = logging.getLogger(__name__)
    logger.info(f"Bookmark Importer starting - Log file: {log_path}")
    logger.info(f"Log level: {level.upper()}")

    # Reduce noise from some libraries
    logging.getLogger("chardet").setLevel(logging.WARNING)
    logging.getLogger("bs4").setLevel(logging.WARNING)

    return log_path
