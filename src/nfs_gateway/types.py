"""
nfs-gateway type definitions

Volume records and the HTTP request/response bodies built from them.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List

__all__ = [
    "NfsExport",
    "Volume",
    "CreateVolumeRequest",
    "VolumeResponse",
]


class NfsExport(BaseModel):
    """Live export declaration of a volume"""

    path: str = Field(..., description="Absolute directory exported over NFS")

    hosts: List[str] = Field(
        default_factory=list,
        description="Host patterns permitted to mount the path, in order"
    )

    options: str = Field(
        default="",
        description="exportfs option string applied to every host"
    )


class Volume(BaseModel):
    """Persisted volume record (one per store key)"""

    name: str = Field(..., min_length=1, description="Volume name, the store key")
    export: NfsExport

    def to_record(self) -> bytes:
        """Serialize for the record store."""
        return self.model_dump_json().encode("utf-8")

    @classmethod
    def from_record(cls, data: bytes) -> "Volume":
        """Deserialize a record store value."""
        return cls.model_validate_json(data)


class CreateVolumeRequest(BaseModel):
    """Request body for volume creation (name comes from the query string)"""

    model_config = ConfigDict(populate_by_name=True)

    hosts: List[str] = Field(
        default_factory=list,
        alias="Hosts",
        description="Host patterns permitted to mount the volume"
    )

    options: str = Field(
        default="",
        alias="Options",
        description="exportfs options, e.g. 'rw,sync,no_subtree_check'"
    )


class VolumeResponse(BaseModel):
    """Volume as returned over HTTP"""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., alias="Name")
    path: str = Field(..., alias="Path")

    @classmethod
    def from_volume(cls, volume: Volume) -> "VolumeResponse":
        return cls(name=volume.name, path=volume.export.path)
