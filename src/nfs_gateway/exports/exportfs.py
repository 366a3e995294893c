"""
exportfs-backed export projector.

Translates volumes into exportfs command lines:

    exportfs -o rw 10.0.0.0/24:/var/lib/nfsg/nfs/data1 -o rw host2:/...
    exportfs -u 10.0.0.0/24:/var/lib/nfsg/nfs/data1 host2:/...
    exportfs -ua

Each operation is one invocation; success is a zero exit status and the
combined stdout/stderr becomes the error detail otherwise.
"""

import logging
import shutil
import subprocess
from typing import List, Optional, Sequence

from ..errors import ExportError, ExportfsNotFoundError
from ..types import Volume
from .base import ExportProjector

logger = logging.getLogger(__name__)

EXPORTFS_BINARY = "exportfs"


def export_target(host: str, path: str) -> str:
    """exportfs client:path token"""
    return f"{host}:{path}"


def build_export_args(volume: Volume) -> List[str]:
    """Arguments exporting the volume to all of its hosts."""
    args: List[str] = []
    for host in volume.export.hosts:
        if volume.export.options:
            args.extend(["-o", volume.export.options])
        args.append(export_target(host, volume.export.path))
    return args


def build_unexport_args(volume: Volume) -> List[str]:
    """Arguments unexporting the volume from all of its hosts."""
    args = ["-u"]
    for host in volume.export.hosts:
        args.append(export_target(host, volume.export.path))
    return args


class ExportfsProjector(ExportProjector):
    """Projects volumes onto the kernel export table through exportfs."""

    def __init__(self, exportfs_path: str = EXPORTFS_BINARY):
        self.exportfs_path = exportfs_path

    @classmethod
    def from_path(cls, exportfs_path: Optional[str] = None) -> "ExportfsProjector":
        """
        Build a projector, locating exportfs on PATH when no path is given.

        Raises:
            ExportfsNotFoundError: If the binary cannot be found
        """
        resolved = shutil.which(exportfs_path or EXPORTFS_BINARY)
        if resolved is None:
            raise ExportfsNotFoundError(exportfs_path or EXPORTFS_BINARY)
        logger.debug(f"Using exportfs at {resolved}")
        return cls(resolved)

    def apply(self, volume: Volume) -> None:
        output = self._run(build_export_args(volume))
        if output is not None:
            raise ExportError("making nfs export", output, volume=volume.name)
        logger.info(
            f"Exported {volume.export.path} to {len(volume.export.hosts)} host(s) "
            f"for volume '{volume.name}'"
        )

    def retract(self, volume: Volume) -> None:
        output = self._run(build_unexport_args(volume))
        if output is not None:
            raise ExportError("unexporting nfs dir", output, volume=volume.name)
        logger.info(f"Unexported {volume.export.path} for volume '{volume.name}'")

    def retract_all(self) -> None:
        output = self._run(["-ua"])
        if output is not None:
            raise ExportError("unexporting all nfs dirs", output)
        logger.info("Unexported all nfs dirs")

    def _run(self, args: Sequence[str]) -> Optional[str]:
        """
        Run exportfs once.

        Returns:
            None on success, the combined output on failure
        """
        cmd = [self.exportfs_path, *args]
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except OSError as e:
            return str(e)

        if result.returncode != 0:
            output = result.stdout or ""
            return output or f"exit status {result.returncode}"
        return None
