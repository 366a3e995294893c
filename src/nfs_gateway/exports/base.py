"""
Export projector base class

All export projectors must implement this interface.
"""

from abc import ABC, abstractmethod

from nfs_gateway.types import Volume


class ExportProjector(ABC):
    """
    Abstract port between volume records and the live NFS export table.

    Implementations are stateless: every call is a deterministic function
    of the Volume passed in, issues one batched invocation and does not
    retry. Failures raise ExportError.
    """

    @abstractmethod
    def apply(self, volume: Volume) -> None:
        """
        Export the volume's path to each of its hosts.

        Args:
            volume: Volume to export
        """
        pass

    @abstractmethod
    def retract(self, volume: Volume) -> None:
        """
        Unexport the volume's path from each of its hosts.

        Args:
            volume: Volume to unexport
        """
        pass

    @abstractmethod
    def retract_all(self) -> None:
        """Unexport everything in the live export table."""
        pass
