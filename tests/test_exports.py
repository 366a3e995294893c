"""
Unit tests for the exportfs projector.

Checks the exact exportfs command lines and how exit statuses and
output turn into errors.
"""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from nfs_gateway.errors import ExportError, ExportfsNotFoundError
from nfs_gateway.exports import (
    ExportProjector,
    ExportfsProjector,
    build_export_args,
    build_unexport_args,
)
from nfs_gateway.types import NfsExport, Volume


def _completed(returncode: int = 0, stdout: str = "") -> MagicMock:
    return MagicMock(returncode=returncode, stdout=stdout)


def _volume(hosts, options="") -> Volume:
    return Volume(
        name="data1",
        export=NfsExport(path="/var/lib/nfsg/nfs/data1", hosts=hosts, options=options),
    )


class TestArgumentBuilding:
    """Tests for exportfs argument batching."""

    def test_export_args_with_options(self):
        """Options precede every host target."""
        volume = _volume(["10.0.0.0/24", "client.example.com"], options="rw,sync")

        assert build_export_args(volume) == [
            "-o", "rw,sync", "10.0.0.0/24:/var/lib/nfsg/nfs/data1",
            "-o", "rw,sync", "client.example.com:/var/lib/nfsg/nfs/data1",
        ]

    def test_export_args_without_options(self):
        """Empty options are left out entirely."""
        volume = _volume(["h1", "h2"])

        assert build_export_args(volume) == [
            "h1:/var/lib/nfsg/nfs/data1",
            "h2:/var/lib/nfsg/nfs/data1",
        ]

    def test_export_args_keep_host_order(self):
        volume = _volume(["z", "a", "m"])

        targets = [arg.split(":")[0] for arg in build_export_args(volume)]
        assert targets == ["z", "a", "m"]

    def test_unexport_args(self):
        """Unexport batches all hosts after a single -u."""
        volume = _volume(["h1", "h2"], options="rw")

        assert build_unexport_args(volume) == [
            "-u",
            "h1:/var/lib/nfsg/nfs/data1",
            "h2:/var/lib/nfsg/nfs/data1",
        ]

    def test_no_hosts(self):
        volume = _volume([], options="rw")

        assert build_export_args(volume) == []
        assert build_unexport_args(volume) == ["-u"]


class TestExportfsProjector:
    """Tests for exportfs invocation."""

    def test_is_export_projector(self):
        assert isinstance(ExportfsProjector(), ExportProjector)

    def test_apply_single_invocation(self):
        """apply runs exportfs once with the whole batch."""
        projector = ExportfsProjector("/usr/sbin/exportfs")
        volume = _volume(["h1", "h2"], options="rw")

        with patch("nfs_gateway.exports.exportfs.subprocess.run", return_value=_completed()) as run:
            projector.apply(volume)

        run.assert_called_once()
        cmd = run.call_args.args[0]
        assert cmd == ["/usr/sbin/exportfs", *build_export_args(volume)]
        assert run.call_args.kwargs["stderr"] == subprocess.STDOUT

    def test_apply_failure_carries_output(self):
        """A non-zero exit raises ExportError with the combined output."""
        projector = ExportfsProjector("/usr/sbin/exportfs")
        failed = _completed(1, "exportfs: Failed to stat /var/lib/nfsg/nfs/data1\n")

        with patch("nfs_gateway.exports.exportfs.subprocess.run", return_value=failed):
            with pytest.raises(ExportError) as exc_info:
                projector.apply(_volume(["h1"]))

        err = exc_info.value
        assert err.volume == "data1"
        assert "Failed to stat" in err.output
        assert "making nfs export" in err.message

    def test_failure_without_output(self):
        projector = ExportfsProjector("/usr/sbin/exportfs")

        with patch("nfs_gateway.exports.exportfs.subprocess.run", return_value=_completed(2)):
            with pytest.raises(ExportError, match="exit status 2"):
                projector.retract(_volume(["h1"]))

    def test_retract_single_invocation(self):
        projector = ExportfsProjector("/usr/sbin/exportfs")
        volume = _volume(["h1", "h2"])

        with patch("nfs_gateway.exports.exportfs.subprocess.run", return_value=_completed()) as run:
            projector.retract(volume)

        assert run.call_args.args[0] == ["/usr/sbin/exportfs", "-u", "h1:/var/lib/nfsg/nfs/data1", "h2:/var/lib/nfsg/nfs/data1"]

    def test_retract_all(self):
        projector = ExportfsProjector("/usr/sbin/exportfs")

        with patch("nfs_gateway.exports.exportfs.subprocess.run", return_value=_completed()) as run:
            projector.retract_all()

        assert run.call_args.args[0] == ["/usr/sbin/exportfs", "-ua"]

    def test_missing_binary_at_run_time(self):
        """An exec failure is reported as an export error."""
        projector = ExportfsProjector("/nonexistent/exportfs")

        with pytest.raises(ExportError, match="unexporting all"):
            projector.retract_all()


class TestExportfsLookup:
    """Tests for locating exportfs."""

    def test_from_path_found(self):
        with patch("nfs_gateway.exports.exportfs.shutil.which", return_value="/usr/sbin/exportfs") as which:
            projector = ExportfsProjector.from_path()

        which.assert_called_once_with("exportfs")
        assert projector.exportfs_path == "/usr/sbin/exportfs"

    def test_from_path_not_found(self):
        with patch("nfs_gateway.exports.exportfs.shutil.which", return_value=None):
            with pytest.raises(ExportfsNotFoundError):
                ExportfsProjector.from_path("exportfs")
