"""Utility functions for record ids, share links and file descriptors."""

import mimetypes
import time
import uuid
from pathlib import Path

from common.constants import DEFAULT_LINK_BASE_URL
from common.exceptions import InvalidArgument
from common.types import FileDescriptor, Identity

DEFAULT_MIME_TYPE = "application/octet-stream"


def generate_record_id(identity: Identity) -> str:
    """
    Generate a record id without coordinating with the store.

    Format: {identity}_{epoch_millis}_{uuid4 hex}. The uuid4 part alone
    carries 122 random bits, so ids stay unique across clients even when
    identity and millisecond collide.
    """
    return f"{identity}_{int(time.time() * 1000)}_{uuid.uuid4().hex}"


def shareable_link_for(record_id: str, base_url: str = DEFAULT_LINK_BASE_URL) -> str:
    return f"{base_url.rstrip('/')}/{record_id}"


def describe_file(path: str) -> FileDescriptor:
    """
    Build a FileDescriptor from a local file.

    Raises:
        InvalidArgument: If the path does not point to a regular file
    """
    file_path = Path(path).expanduser()
    if not file_path.is_file():
        raise InvalidArgument(f"Not a file: {path}")

    mime_type, _ = mimetypes.guess_type(file_path.name)
    return FileDescriptor(
        name=file_path.name,
        size_bytes=file_path.stat().st_size,
        mime_type=mime_type or DEFAULT_MIME_TYPE,
    )


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in bytes to human-readable format with appropriate unit.

    Uses binary units (1024-based) and automatically selects the most
    appropriate unit (B, KiB, MiB, GiB, TiB).

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted string with size and unit (e.g., "1.50 MiB", "512 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"

    units = ['KiB', 'MiB', 'GiB', 'TiB']
    size = size_bytes / 1024.0

    for unit in units:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0

    return f"{size:.2f} PiB"
