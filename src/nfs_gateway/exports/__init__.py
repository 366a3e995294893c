"""
Export projection module

Maps volume records onto the live NFS export table.
"""

from nfs_gateway.exports.base import ExportProjector
from nfs_gateway.exports.exportfs import (
    ExportfsProjector,
    build_export_args,
    build_unexport_args,
    export_target,
)

__all__ = [
    "ExportProjector",
    "ExportfsProjector",
    "build_export_args",
    "build_unexport_args",
    "export_target",
]
