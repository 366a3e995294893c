"""
Storage module for nfs-gateway

Transactional record store holding one serialized record per volume.
"""

from .records import (
    RecordStore,
    Transaction,
    VolumeRecord,
    VOLUMES_BUCKET,
)

__all__ = [
    "RecordStore",
    "Transaction",
    "VolumeRecord",
    "VOLUMES_BUCKET",
]
