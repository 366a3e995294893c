"""
nfs-gateway utilities

Logging helpers.
"""

from nfs_gateway.utils.logger import (
    configure_logging,
    parse_level,
    DEFAULT_FORMAT,
)

__all__ = [
    "configure_logging",
    "parse_level",
    "DEFAULT_FORMAT",
]
