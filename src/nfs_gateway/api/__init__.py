"""
nfs-gateway API module

REST API and service entry point.
"""

from nfs_gateway.api.rest import (
    create_app,
    main,
    GatewayErrorResponse,
    HealthStatus,
    ERROR_CODE_MAP,
)

__all__ = [
    "create_app",
    "main",
    "GatewayErrorResponse",
    "HealthStatus",
    "ERROR_CODE_MAP",
]
