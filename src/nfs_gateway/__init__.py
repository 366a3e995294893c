"""
nfs-gateway: NFS volume control plane

Lets clients declare named volumes, each a directory exported over NFS
to a set of hosts, and keeps the volume records and the live export
table consistent.
"""

__version__ = "1.0.0"

from nfs_gateway.config import GatewayConfig
from nfs_gateway.manager import VolumeManager
from nfs_gateway.storage import RecordStore
from nfs_gateway.exports import ExportProjector, ExportfsProjector
from nfs_gateway.types import (
    NfsExport,
    Volume,
    CreateVolumeRequest,
    VolumeResponse,
)
from nfs_gateway.api.rest import create_app, main

from nfs_gateway.errors import (
    GatewayError,
    InvalidRequestError,
    VolumeExistsError,
    VolumeNotFoundError,
    ExportError,
    VolumeStorageError,
    VolumeCleanupError,
    ExportfsNotFoundError,
    BootstrapError,
)

__all__ = [
    "GatewayConfig",
    "VolumeManager",
    "RecordStore",
    "ExportProjector",
    "ExportfsProjector",
    "NfsExport",
    "Volume",
    "CreateVolumeRequest",
    "VolumeResponse",
    # API exports
    "create_app",
    "main",
    # Exception classes
    "GatewayError",
    "InvalidRequestError",
    "VolumeExistsError",
    "VolumeNotFoundError",
    "ExportError",
    "VolumeStorageError",
    "VolumeCleanupError",
    "ExportfsNotFoundError",
    "BootstrapError",
]
