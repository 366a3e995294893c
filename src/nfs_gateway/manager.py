"""
nfs-gateway volume manager

The volume manager owns the ordering between the record store and the
live export table. Every mutation runs inside one record store
transaction:

- create: put record -> mkdir -> export; any failure undoes all three
- delete: remove record -> unexport -> rmdir; the record removal sticks
  even when cleanup fails
- reload: re-export every record at startup, best effort
- shutdown: unexport everything, best effort
"""

import logging
import shutil
from pathlib import Path
from typing import List, Optional, Union

from pydantic import ValidationError

from nfs_gateway.config import GatewayConfig
from nfs_gateway.errors import (
    VolumeCleanupError,
    VolumeExistsError,
    VolumeNotFoundError,
    VolumeStorageError,
)
from nfs_gateway.exports import ExportProjector, ExportfsProjector
from nfs_gateway.path_utils import (
    validate_export_host,
    validate_path_component,
    validate_resolved_path,
)
from nfs_gateway.storage import RecordStore
from nfs_gateway.types import NfsExport, Volume

logger = logging.getLogger(__name__)

# Volume directories live under <root>/NFS_SUBDIR/<name>
NFS_SUBDIR = "nfs"

DIR_MODE = 0o755


class VolumeManager:
    """
    Volume lifecycle manager - single entry point for volume operations.

    Responsibilities:
    - Recording volume intent in the record store
    - Projecting recorded volumes onto the export table
    - Creating and removing volume directories
    - Re-asserting exports after a restart

    The store and projector are shared by all request threads; the store's
    writer lock is the only serialization point.
    """

    def __init__(
        self,
        root: Union[str, Path],
        store: RecordStore,
        projector: ExportProjector,
    ):
        """
        Initialize the volume manager.

        Args:
            root: Data root; volumes live under <root>/nfs
            store: Record store holding one record per volume
            projector: Export projector for the live export table
        """
        self.root = Path(root)
        self.nfs_root = self.root / NFS_SUBDIR
        self.store = store
        self.projector = projector

    @classmethod
    def from_config(cls, config: GatewayConfig) -> "VolumeManager":
        """
        Wire up a manager from configuration.

        Locates exportfs, creates the NFS root and opens the record store.

        Raises:
            ExportfsNotFoundError: If exportfs is not available
            VolumeStorageError: If the data root or database cannot be set up
        """
        projector = ExportfsProjector.from_path(config.exportfs_path)

        try:
            config.nfs_root.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
        except OSError as e:
            raise VolumeStorageError(operation="making data root", reason=str(e)) from e

        store = RecordStore.open(config.db_path, timeout_sec=config.db_timeout_sec)
        return cls(root=config.data_root, store=store, projector=projector)

    def close(self) -> None:
        self.store.close()

    def nfs_path(self, name: str) -> Path:
        """
        Directory backing a volume.

        Raises:
            InvalidRequestError: If the name is not a safe directory name
        """
        validate_path_component(name, "name")
        path = self.nfs_root / name
        validate_resolved_path(path, self.nfs_root)
        return path

    # =========================================================================
    # Volume lifecycle
    # =========================================================================

    def create(
        self,
        name: str,
        hosts: Optional[List[str]] = None,
        options: str = "",
    ) -> Volume:
        """
        Create, record and export a volume.

        Args:
            name: Unique volume name
            hosts: Host patterns permitted to mount the volume
            options: exportfs options applied to every host

        Returns:
            The created Volume

        Raises:
            InvalidRequestError: If the name or a host pattern is invalid
            VolumeExistsError: If a volume with this name already exists
            VolumeStorageError: If the record or directory could not be written
            ExportError: If exportfs rejected the export
        """
        volume = Volume(
            name=name,
            export=NfsExport(
                path=str(self.nfs_path(name)),
                hosts=list(hosts or []),
                options=options or "",
            ),
        )
        for host in volume.export.hosts:
            validate_export_host(host)

        created_dir = False
        export_attempted = False

        try:
            with self.store.update() as tx:
                if tx.get(name) is not None:
                    logger.info(f"Volume '{name}' already exists")
                    raise VolumeExistsError(name)

                tx.put(name, volume.to_record())
                created_dir = self._make_dir(volume)
                export_attempted = True
                self.projector.apply(volume)
        except Exception as e:
            # the commit itself can fail after a successful export
            if export_attempted:
                logger.error(f"Failed to create volume '{name}', rolling back: {e}")
                self._retract_partial(volume)
            if created_dir:
                self._discard_dir(volume)
            raise

        logger.info(f"Volume '{name}' created at {volume.export.path}")
        return volume

    def get(self, name: str) -> Volume:
        """
        Look up a volume record.

        Raises:
            InvalidRequestError: If the name is invalid
            VolumeNotFoundError: If the volume does not exist
            VolumeStorageError: If the store could not be read
        """
        validate_path_component(name, "name")

        with self.store.view() as tx:
            data = tx.get(name)

        if data is None:
            raise VolumeNotFoundError(name)
        return self._decode(name, data)

    def delete(self, name: str) -> bool:
        """
        Delete a volume: remove its record, unexport it, remove its data.

        Deleting an absent volume is a no-op. Once the record is removed it
        stays removed: a failed unexport or directory removal is reported
        as VolumeCleanupError and needs operator attention.

        Returns:
            True if a volume was deleted, False if it did not exist

        Raises:
            InvalidRequestError: If the name is invalid
            VolumeStorageError: If the record could not be read or removed;
                after cleanup ran, the message also says what cleanup did
            VolumeCleanupError: If the export or directory could not be removed
        """
        validate_path_component(name, "name")
        cleanup_attempted = False
        cleanup_error: Optional[Exception] = None

        try:
            with self.store.update() as tx:
                data = tx.get(name)
                if data is None:
                    logger.debug(f"Volume '{name}' does not exist, nothing to delete")
                    return False

                volume = self._decode(name, data)
                tx.delete(name)

                cleanup_attempted = True
                try:
                    self.projector.retract(volume)
                    self._remove_dir(volume)
                except Exception as e:
                    cleanup_error = e
        except VolumeStorageError as e:
            if not cleanup_attempted:
                raise
            if cleanup_error is None:
                state = "export and data were removed"
            else:
                state = f"cleanup also failed: {cleanup_error}"
            logger.error(f"Record of volume '{name}' could not be removed after cleanup ({state}): {e}")
            raise VolumeStorageError(
                operation="removing volume record",
                reason=f"{e.reason}; {state}",
                volume=name,
            ) from e

        if cleanup_error is not None:
            logger.error(f"Volume '{name}' deleted but cleanup failed: {cleanup_error}")
            raise VolumeCleanupError(name, str(cleanup_error)) from cleanup_error

        logger.info(f"Volume '{name}' deleted")
        return True

    def count(self) -> int:
        """Number of recorded volumes."""
        with self.store.view() as tx:
            return tx.count()

    # =========================================================================
    # Startup / shutdown
    # =========================================================================

    def reload(self) -> int:
        """
        Re-export every recorded volume.

        Run once at startup before serving requests. A volume that cannot be
        decoded or exported is logged and skipped; the rest are still
        exported.

        Returns:
            Number of volumes exported

        Raises:
            VolumeStorageError: If the store itself could not be read
        """
        exported = 0
        failed = 0

        with self.store.view() as tx:
            for name, data in tx.items():
                try:
                    volume = self._decode(name, data)
                    self.projector.apply(volume)
                except Exception as e:
                    failed += 1
                    logger.error(f"Error exporting volume '{name}' on reload: {e}")
                    continue
                exported += 1

        logger.info(f"Reload exported {exported} volume(s), {failed} failed")
        return exported

    def shutdown(self) -> None:
        """Unexport everything. Errors are logged, never raised."""
        try:
            self.projector.retract_all()
        except Exception as e:
            logger.error(f"Error during shutdown: {e}")

    # =========================================================================
    # Helpers
    # =========================================================================

    def _decode(self, name: str, data: bytes) -> Volume:
        try:
            return Volume.from_record(data)
        except ValidationError as e:
            raise VolumeStorageError(
                operation="unmarshaling volume from database",
                reason=str(e),
                volume=name,
            ) from e

    def _make_dir(self, volume: Volume) -> bool:
        """mkdir -p the volume directory; returns True if it did not exist."""
        path = Path(volume.export.path)
        existed = path.exists()
        try:
            path.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
        except OSError as e:
            raise VolumeStorageError(
                operation="creating volume dir",
                reason=str(e),
                volume=volume.name,
            ) from e
        return not existed

    def _remove_dir(self, volume: Volume) -> None:
        try:
            shutil.rmtree(volume.export.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise VolumeStorageError(
                operation="removing volume data",
                reason=str(e),
                volume=volume.name,
            ) from e

    def _discard_dir(self, volume: Volume) -> None:
        try:
            self._remove_dir(volume)
        except VolumeStorageError as e:
            logger.error(f"Could not remove directory of failed volume '{volume.name}': {e}")

    def _retract_partial(self, volume: Volume) -> None:
        # a failed batch may still have exported some hosts
        try:
            self.projector.retract(volume)
        except Exception as e:
            logger.error(f"Could not retract partial export of volume '{volume.name}': {e}")


__all__ = ["VolumeManager", "NFS_SUBDIR"]
