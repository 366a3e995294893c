"""
nfs-gateway error definitions

Standard exceptions used across the nfs-gateway project.
"""

from typing import Optional, Dict, Any


class GatewayError(Exception):
    """Base exception for all gateway errors"""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "UNKNOWN"
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


class InvalidRequestError(GatewayError):
    """Invalid request parameters"""

    def __init__(self, field: str, value: Any, reason: str):
        super().__init__(
            message=f"Invalid field '{field}': {reason}",
            error_code="INVALID_REQUEST",
            details={"field": field},
        )
        self.field = field
        self.value = value
        self.reason = reason


class VolumeExistsError(GatewayError):
    """Volume name is already taken"""

    def __init__(self, name: str):
        super().__init__(
            message=f"Volume '{name}' already exists",
            error_code="VOL_EXISTS",
            details={"volume": name},
        )
        self.name = name


class VolumeNotFoundError(GatewayError):
    """Volume does not exist"""

    def __init__(self, name: str):
        super().__init__(
            message=f"Volume '{name}' not found",
            error_code="VOL_NOT_FOUND",
            details={"volume": name},
        )
        self.name = name


class ExportError(GatewayError):
    """exportfs invocation failed"""

    def __init__(self, operation: str, output: str, volume: Optional[str] = None):
        target = f" for volume '{volume}'" if volume else ""
        super().__init__(
            message=f"Error {operation}{target}: {output.strip() or 'no output'}",
            error_code="EXPORT_FAILED",
            details={"operation": operation, "volume": volume, "output": output},
        )
        self.operation = operation
        self.output = output
        self.volume = volume


class VolumeStorageError(GatewayError):
    """Record store or volume directory operation failed"""

    def __init__(self, operation: str, reason: str, volume: Optional[str] = None):
        target = f" for volume '{volume}'" if volume else ""
        super().__init__(
            message=f"Error {operation}{target}: {reason}",
            error_code="STORE_FAILED",
            details={"operation": operation, "volume": volume},
        )
        self.operation = operation
        self.reason = reason
        self.volume = volume


class VolumeCleanupError(GatewayError):
    """Volume record was removed but its export or data could not be cleaned up"""

    def __init__(self, name: str, reason: str):
        super().__init__(
            message=f"Volume '{name}' deleted but cleanup failed: {reason}",
            error_code="VOL_CLEANUP_FAILED",
            details={"volume": name},
        )
        self.name = name
        self.reason = reason


class ExportfsNotFoundError(GatewayError):
    """exportfs binary is not available"""

    def __init__(self, binary: str = "exportfs"):
        super().__init__(
            message=f"Could not find required binary '{binary}'",
            error_code="EXPORTFS_NOT_FOUND",
        )
        self.binary = binary


class BootstrapError(GatewayError):
    """Kernel NFS server could not be prepared"""

    def __init__(self, step: str, reason: str):
        super().__init__(
            message=f"Error preparing NFS ({step}): {reason}",
            error_code="NFS_BOOTSTRAP_FAILED",
            details={"step": step},
        )
        self.step = step
        self.reason = reason


# Error codes
ERROR_CODES = {
    # Request errors
    "INVALID_REQUEST": "Invalid request parameter",

    # Volume errors (VOL_xxx)
    "VOL_EXISTS": "Volume already exists",
    "VOL_NOT_FOUND": "Volume does not exist",
    "VOL_CLEANUP_FAILED": "Volume removed but cleanup failed",

    # Infrastructure errors
    "EXPORT_FAILED": "exportfs invocation failed",
    "STORE_FAILED": "Record store or volume directory failure",
    "EXPORTFS_NOT_FOUND": "exportfs binary not available",
    "NFS_BOOTSTRAP_FAILED": "Kernel NFS server could not be prepared",
}
