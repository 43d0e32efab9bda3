"""Logging configuration for CropAI processes."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import coloredlogs

from core.models.config import LoggingConfig

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(config: Optional[LoggingConfig] = None, verbose: bool = False) -> None:
    """Configure the root logger.

    Args:
        config: Logging section of the configuration (None = defaults)
        verbose: Force DEBUG level regardless of config
    """
    config = config or LoggingConfig()
    level = logging.DEBUG if verbose else getattr(logging, config.level.upper(), logging.INFO)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(level)

    if config.log_to_console:
        if config.console_colors:
            coloredlogs.install(level=level, logger=root, fmt=LOG_FORMAT)
        else:
            console = logging.StreamHandler()
            console.setFormatter(logging.Formatter(LOG_FORMAT))
            root.addHandler(console)

    if config.log_to_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(log_path, maxBytes=5 * 1024 * 1024, backupCount=3)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(file_handler)

    # Third-party clients are chatty at DEBUG
    for noisy in ("httpx", "httpcore", "hpack", "PIL"):
        logging.getLogger(noisy).setLevel(max(level, logging.INFO))
