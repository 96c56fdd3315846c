"""Shared data type definitions (FileDescriptor, MetadataRecord, UploadTask, etc.)."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from common.exceptions import InvalidArgument

Identity = str


@dataclass(frozen=True)
class FileDescriptor:
    """
    A file selected for upload. Only its metadata is ever used.
    """
    name: str
    size_bytes: int
    mime_type: str

    def __post_init__(self):
        if not self.name:
            raise InvalidArgument("File name must not be empty")
        if not isinstance(self.size_bytes, int) or self.size_bytes < 0:
            raise InvalidArgument(f"Invalid size for '{self.name}': {self.size_bytes!r}")


@dataclass(frozen=True)
class MetadataRecord:
    """
    Metadata of one uploaded file as stored in the shared collection.

    uploaded_at is None until the store has resolved its server timestamp.
    """
    id: str
    file_name: str
    file_size_bytes: int
    file_type: str
    uploaded_by: Identity
    uploaded_at: Optional[datetime]
    shareable_link: str


OrderedSnapshot = Tuple[MetadataRecord, ...]


@dataclass(frozen=True)
class StoredDocument:
    """A document as delivered by a store snapshot."""
    id: str
    data: Dict[str, Any]


class UploadStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (UploadStatus.COMPLETED, UploadStatus.FAILED)


@dataclass
class UploadTask:
    """
    Simulated upload of a single file within a batch.
    """
    descriptor: FileDescriptor
    progress: int = 0
    status: UploadStatus = UploadStatus.PENDING
    message: Optional[str] = None
    record_id: Optional[str] = None
    write_attempts: int = 0


class EventKind(str, Enum):
    PROGRESS = "progress"
    COMPLETED = "completed"
    FAILED = "failed"
    BATCH_COMPLETED = "batch_completed"


@dataclass(frozen=True)
class BatchProgressEvent:
    """
    Event emitted by an upload batch.

    task_index and file_name are None for BATCH_COMPLETED events.
    batch_progress is the mean progress of all tasks in the batch.
    """
    kind: EventKind
    batch_progress: int
    task_index: Optional[int] = None
    file_name: Optional[str] = None
    progress: Optional[int] = None
    message: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
