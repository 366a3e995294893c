"""
Path and argument validation utilities for nfs-gateway.

Volume names become directory names under the NFS root, so they are
validated as a single path component that cannot escape that root.
Host patterns become exportfs arguments and are checked before use.
"""

import os
from pathlib import Path
from typing import Union

from nfs_gateway.errors import InvalidRequestError


def validate_path_component(value: str, field_name: str = "name") -> None:
    """
    Validate that a user-supplied value is safe to use as one directory name.

    Rules:
    - Must not be empty or whitespace
    - Must not be an absolute path
    - Must not contain a path separator
    - Must not be '.' or '..'

    Args:
        value: The user-supplied component (e.g. a volume name).
        field_name: Human-readable field name for error messages.

    Raises:
        InvalidRequestError: If the component is unsafe.
    """
    if not value or not value.strip():
        raise InvalidRequestError(
            field=field_name,
            value=value,
            reason=f"{field_name} cannot be empty",
        )

    if os.path.isabs(value) or value.startswith("/") or value.startswith("\\"):
        raise InvalidRequestError(
            field=field_name,
            value=value,
            reason="Absolute paths are not allowed",
        )

    if "/" in value or "\\" in value or "\x00" in value:
        raise InvalidRequestError(
            field=field_name,
            value=value,
            reason="Path separators are not allowed",
        )

    if value in (".", ".."):
        raise InvalidRequestError(
            field=field_name,
            value=value,
            reason="Path traversal ('..') is not allowed",
        )


def validate_resolved_path(child: Union[str, Path], base_dir: Union[str, Path]) -> Path:
    """
    Validate that a child path stays within base_dir.

    Args:
        child: The child path.
        base_dir: The base directory that the child must stay within.

    Returns:
        The resolved child Path.

    Raises:
        InvalidRequestError: If the resolved path escapes base_dir.
    """
    child_resolved = Path(child).resolve()
    base_resolved = Path(base_dir).resolve()

    try:
        common = Path(os.path.commonpath([str(child_resolved), str(base_resolved)]))
    except ValueError:
        raise InvalidRequestError(
            field="path",
            value=str(child),
            reason="Path is outside the allowed base directory",
        )

    if common != base_resolved or child_resolved == base_resolved:
        raise InvalidRequestError(
            field="path",
            value=str(child),
            reason="Path is outside the allowed base directory",
        )

    return child_resolved


def validate_export_host(value: str, field_name: str = "hosts") -> None:
    """
    Validate a host pattern before it is passed to exportfs.

    Each host becomes its own exportfs argument, so it must not be empty,
    must not read as an option and must not contain whitespace.

    Raises:
        InvalidRequestError: If the host pattern is unsafe.
    """
    if not value or not value.strip():
        raise InvalidRequestError(
            field=field_name,
            value=value,
            reason="Host pattern cannot be empty",
        )

    if value.startswith("-"):
        raise InvalidRequestError(
            field=field_name,
            value=value,
            reason="Host pattern cannot start with '-'",
        )

    if any(c.isspace() for c in value) or "\x00" in value:
        raise InvalidRequestError(
            field=field_name,
            value=value,
            reason="Host pattern cannot contain whitespace",
        )
