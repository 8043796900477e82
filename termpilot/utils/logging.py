"""Logging configuration."""

import logging
import os
import sys
from pathlib import Path

from pydantic import BaseModel


class LogConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    file: Path | None = None


def setup_logging(config: LogConfig | None = None) -> None:
    """Set up logging configuration for the application.

    When ``config.file`` is set, records go to that file instead of stdout so they
    never interleave with the terminal UI.
    """
    if config is None:
        config = LogConfig()

    handlers: list[logging.Handler]
    if config.file is not None:
        config.file.parent.mkdir(parents=True, exist_ok=True)
        handlers = [logging.FileHandler(config.file, encoding="utf-8")]
    else:
        handlers = [logging.StreamHandler(sys.stdout)]

    # Configure root logger
    logging.basicConfig(
        level=getattr(logging, config.level.upper()),
        format=config.format,
        datefmt=config.date_format,
        handlers=handlers,
        force=True,  # Override any existing configuration
    )

    # Set specific log levels for third-party libraries
    logging.getLogger("anthropic").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str, level: str | None = None) -> logging.Logger:
    """Get a logger for a specific module.

    Args:
        name: Module name (typically __name__)
        level: Explicit level, overrides the LOG_LEVEL environment variable

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    log_level = level if level else os.getenv("LOG_LEVEL", "INFO")
    logger.setLevel(log_level.upper())

    return logger
