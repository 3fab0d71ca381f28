"""
Logging utility module for Screen Distance Monitor
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional


APP_LOGGER_NAME = "DistanceMonitor"

# Configured top-level loggers
_loggers = {}


def setup_logger(
    name: str = APP_LOGGER_NAME,
    level: int = logging.INFO,
    log_to_file: bool = True,
    log_dir: Optional[str] = None,
    console_output: bool = True
) -> logging.Logger:
    """
    Set up and configure a top-level logger.

    Args:
        name: Logger name
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_to_file: Whether to log to a file
        log_dir: Directory for log files. If None, uses ./logs
        console_output: Whether to output to console

    Returns:
        Configured logger instance
    """
    if name in _loggers:
        return _loggers[name]

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers.clear()

    formatter = logging.Formatter(
        fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_to_file:
        if log_dir is None:
            log_dir = Path(__file__).parent.parent.parent / "logs"
        else:
            log_dir = Path(log_dir)

        log_dir.mkdir(parents=True, exist_ok=True)

        # One file per day
        timestamp = datetime.now().strftime("%Y%m%d")
        log_file = log_dir / f"{name.lower()}_{timestamp}.log"

        file_handler = logging.FileHandler(
            log_file,
            mode='a',
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    _loggers[name] = logger

    logger.debug(f"Logger '{name}' initialized")

    return logger


def get_logger(component: Optional[str] = None) -> logging.Logger:
    """
    Get the logger for a component.

    Component loggers are children of the application logger, so they
    inherit whatever handlers setup_logger() installed. Until then they
    fall through to the root logger (which is what pytest captures).

    Args:
        component: Component name, e.g. "DetectionLoop"

    Returns:
        Logger instance
    """
    if not component:
        return logging.getLogger(APP_LOGGER_NAME)
    return logging.getLogger(f"{APP_LOGGER_NAME}.{component}")
