"""
Pytest configuration and fixtures for nfs-gateway tests.

This module provides shared fixtures and configuration for all tests.
"""

import sys
import tempfile
from pathlib import Path
from typing import Generator, List, Optional, Set, Tuple

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from nfs_gateway.errors import ExportError
from nfs_gateway.exports import ExportProjector
from nfs_gateway.types import NfsExport, Volume


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, isolated)"
    )
    config.addinivalue_line(
        "markers", "api: API endpoint tests"
    )
    config.addinivalue_line(
        "markers", "slow: Slow running tests"
    )


# =============================================================================
# Fake Export Projector
# =============================================================================

class FakeProjector(ExportProjector):
    """
    In-memory stand-in for exportfs.

    Records every call and keeps a live table of (host, path) pairs.
    Names in fail_apply / fail_retract make the matching call raise.
    """

    def __init__(self):
        self.calls: List[Tuple[str, Optional[str]]] = []
        self.table: Set[Tuple[str, str]] = set()
        self.fail_apply: Set[str] = set()
        self.fail_retract: Set[str] = set()
        self.fail_retract_all = False

    def apply(self, volume: Volume) -> None:
        self.calls.append(("apply", volume.name))
        if volume.name in self.fail_apply:
            raise ExportError("making nfs export", "exportfs: simulated failure", volume=volume.name)
        for host in volume.export.hosts:
            self.table.add((host, volume.export.path))

    def retract(self, volume: Volume) -> None:
        self.calls.append(("retract", volume.name))
        if volume.name in self.fail_retract:
            raise ExportError("unexporting nfs dir", "exportfs: simulated failure", volume=volume.name)
        for host in volume.export.hosts:
            self.table.discard((host, volume.export.path))

    def retract_all(self) -> None:
        self.calls.append(("retract_all", None))
        if self.fail_retract_all:
            raise ExportError("unexporting all nfs dirs", "exportfs: simulated failure")
        self.table.clear()

    def count(self, operation: str, name: Optional[str] = None) -> int:
        return sum(
            1 for op, vol in self.calls
            if op == operation and (name is None or vol == name)
        )


# =============================================================================
# Temporary Directories
# =============================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def data_root(temp_dir) -> Path:
    """Create a temporary gateway data root."""
    path = temp_dir / "nfsg"
    (path / "nfs").mkdir(parents=True)
    return path


# =============================================================================
# Gateway Fixtures
# =============================================================================

@pytest.fixture
def projector() -> FakeProjector:
    return FakeProjector()


@pytest.fixture
def record_store(data_root):
    """Open a record store in the data root."""
    from nfs_gateway.storage import RecordStore

    store = RecordStore.open(data_root / "volumes.db")
    yield store
    store.close()


@pytest.fixture
def volume_manager(data_root, record_store, projector):
    """Create a VolumeManager backed by the fake projector."""
    from nfs_gateway.manager import VolumeManager

    return VolumeManager(root=data_root, store=record_store, projector=projector)


# =============================================================================
# Sample Data Fixtures
# =============================================================================

@pytest.fixture
def sample_volume(data_root) -> Volume:
    return Volume(
        name="data1",
        export=NfsExport(
            path=str(data_root / "nfs" / "data1"),
            hosts=["10.0.0.0/24", "client.example.com"],
            options="rw,sync,no_subtree_check",
        ),
    )
