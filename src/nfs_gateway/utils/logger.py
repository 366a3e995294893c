"""
nfs-gateway logging utilities

Standard logging configuration for the gateway.
"""

import logging
from typing import Optional, Union

# Default logging format
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def parse_level(level: Union[int, str]) -> int:
    """Turn 'debug'/'INFO'/20 into a logging level number."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def configure_logging(
    level: Union[int, str] = logging.INFO,
    format: str = DEFAULT_FORMAT,
    file_path: Optional[str] = None
) -> None:
    """
    Configure root logging for the application.

    Args:
        level: Log level (number or name)
        format: Log format string
        file_path: Optional file path for file logging
    """
    formatter = logging.Formatter(format)

    root_logger = logging.getLogger()
    root_logger.setLevel(parse_level(level))

    # Clear existing handlers
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if file_path:
        file_handler = logging.FileHandler(file_path)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
