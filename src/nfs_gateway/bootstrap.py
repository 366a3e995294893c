"""
Kernel NFS server preparation.

Best-effort steps run before the gateway starts serving:
1. Load the nfsd module if the kernel does not know the filesystem
2. Mount the nfsd control filesystem
3. Create the NFS state directories
4. Start rpc.mountd, rpc.nfsd and sm-notify
"""

import logging
import subprocess
from pathlib import Path
from typing import List, Union

from nfs_gateway.errors import BootstrapError

logger = logging.getLogger(__name__)

NFSD_MOUNT_POINT = "/proc/fs/nfsd"
NFSD_MOUNT_OPTIONS = "nodev,noexec,nosuid"
NFS_STATE_SUBDIRS = ["rpc_pipefs", "v4recovery", "v4root"]
NFS_DAEMONS = ["/usr/sbin/rpc.mountd", "/usr/sbin/rpc.nfsd", "/usr/bin/sm-notify"]


def nfsd_supported(filesystems_file: Union[str, Path] = "/proc/filesystems") -> bool:
    """Whether the running kernel lists the nfsd filesystem."""
    try:
        return "nfsd" in Path(filesystems_file).read_text()
    except OSError:
        # unreadable: assume present, modprobe would not help
        return True


def nfsd_mounted(
    mount_point: str = NFSD_MOUNT_POINT,
    mounts_file: Union[str, Path] = "/proc/self/mounts",
) -> bool:
    try:
        lines = Path(mounts_file).read_text().splitlines()
    except OSError:
        return False
    for line in lines:
        fields = line.split()
        if len(fields) >= 2 and fields[1] == mount_point:
            return True
    return False


def mount_nfsd(mount_point: str = NFSD_MOUNT_POINT) -> None:
    """
    Mount the nfsd filesystem; an existing mount counts as success.

    Raises:
        BootstrapError: If mount fails
    """
    if nfsd_mounted(mount_point):
        logger.debug(f"nfsd already mounted at {mount_point}")
        return

    try:
        result = subprocess.run(
            ["mount", "-t", "nfsd", "-o", NFSD_MOUNT_OPTIONS, "nfsd", mount_point],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
        )
    except OSError as e:
        raise BootstrapError("mounting nfsd", str(e)) from e
    if result.returncode != 0:
        raise BootstrapError("mounting nfsd", (result.stdout or "").strip())
    logger.info(f"Mounted nfsd at {mount_point}")


def start_daemons(daemons: List[str] = NFS_DAEMONS) -> List[subprocess.Popen]:
    """Start NFS daemons in the background; missing binaries are skipped."""
    started = []
    for daemon in daemons:
        try:
            started.append(subprocess.Popen([daemon]))
            logger.info(f"Started {daemon}")
        except OSError as e:
            logger.warning(f"Could not start {daemon}: {e}")
    return started


def setup_nfs(
    state_dir: Union[str, Path] = "/var/lib/nfs",
    mount_point: str = NFSD_MOUNT_POINT,
) -> List[subprocess.Popen]:
    """
    Prepare the kernel NFS server.

    Returns:
        Handles of the daemons that were started

    Raises:
        BootstrapError: If nfsd cannot be mounted or state dirs created
    """
    if not nfsd_supported():
        try:
            result = subprocess.run(["modprobe", "-q", "nfsd"], capture_output=True)
        except OSError as e:
            logger.warning(f"Could not run modprobe: {e}")
        else:
            if result.returncode != 0:
                logger.warning("modprobe nfsd failed, continuing")

    mount_nfsd(mount_point)

    for subdir in NFS_STATE_SUBDIRS:
        try:
            (Path(state_dir) / subdir).mkdir(mode=0o755, parents=True, exist_ok=True)
        except OSError as e:
            raise BootstrapError("setting up nfs dirs", str(e)) from e

    return start_daemons()


def stop_daemons(processes: List[subprocess.Popen]) -> None:
    for proc in processes:
        if proc.poll() is None:
            proc.terminate()
